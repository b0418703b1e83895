# This project was developed with assistance from AI tools.
"""
Bearer-token authentication against the Keycloak realm.

Two dependencies layer on each other:

- ``get_token_payload`` verifies the JWT signature and issuer and returns
  its claims. First-login provisioning stops here, since no Profile exists yet.
- ``get_current_user`` resolves the ``sub`` claim to a Profile. The Profile's
  role is authoritative; realm roles in the token are ignored, because a
  marketplace role changes through registration approval or admin action.

Set AUTH_DISABLED=true to bypass validation (tests / local dev without Keycloak).
"""

import logging
import time
from typing import Annotated

import httpx
import jwt
from db import Profile, get_db
from db.enums import UserRole
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..schemas.auth import TokenPayload, UserContext

logger = logging.getLogger(__name__)


def _realm_url() -> str:
    return f"{settings.KEYCLOAK_URL}/realms/{settings.KEYCLOAK_REALM}"


class _SigningKeys:
    """Realm signing keys, refetched when stale or when a token names an unknown kid."""

    def __init__(self):
        self._keys: dict[str, jwt.PyJWK] = {}
        self._loaded_at = 0.0

    def _refresh(self) -> None:
        response = httpx.get(f"{_realm_url()}/protocol/openid-connect/certs", timeout=5)
        response.raise_for_status()
        key_set = jwt.PyJWKSet.from_dict(response.json())
        self._keys = {key.key_id: key for key in key_set.keys}
        self._loaded_at = time.time()

    def get(self, kid: str | None) -> jwt.PyJWK:
        try:
            if not self._keys or time.time() - self._loaded_at > settings.JWKS_CACHE_TTL:
                self._refresh()
            if kid not in self._keys:
                # Key rotation: one forced refetch before giving up
                self._refresh()
        except httpx.HTTPError as exc:
            logger.error("Could not load signing keys for realm %s: %s", settings.KEYCLOAK_REALM, exc)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable",
            ) from exc
        if kid not in self._keys:
            raise jwt.InvalidTokenError(f"Unknown signing key kid={kid}")
        return self._keys[kid]


_signing_keys = _SigningKeys()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _bearer_token(request: Request) -> str:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme != "Bearer" or not token:
        raise _unauthorized("Missing authentication token")
    return token


def _verify(token: str) -> TokenPayload:
    kid = jwt.get_unverified_header(token).get("kid")
    claims = jwt.decode(
        token,
        _signing_keys.get(kid).key,
        algorithms=["RS256"],
        issuer=_realm_url(),
        options={"verify_aud": False},
    )
    return TokenPayload(**claims)


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

_DEV_CLAIMS = TokenPayload(sub="dev-user", email="dev@marketplace.local", name="Dev User")

_DEV_USER = UserContext(
    user_id=_DEV_CLAIMS.sub,
    role=UserRole.ADMIN,
    email=_DEV_CLAIMS.email,
    name=_DEV_CLAIMS.name,
)


async def get_token_payload(request: Request) -> TokenPayload:
    """FastAPI dependency: the verified claims of the caller's Bearer token."""
    if settings.AUTH_DISABLED:
        return _DEV_CLAIMS

    token = _bearer_token(request)
    try:
        return _verify(token)
    except jwt.ExpiredSignatureError as exc:
        raise _unauthorized("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise _unauthorized("Invalid token") from exc


TokenClaims = Annotated[TokenPayload, Depends(get_token_payload)]


async def get_current_user(
    payload: TokenClaims,
    session: AsyncSession = Depends(get_db),
) -> UserContext:
    """FastAPI dependency: the caller as a Profile-backed UserContext.

    An identity that never provisioned a Profile gets 403.
    """
    if settings.AUTH_DISABLED:
        return _DEV_USER

    profile = await session.get(Profile, payload.sub)
    if profile is None:
        logger.warning("Authenticated identity %s has no profile", payload.sub)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No profile for this identity -- complete onboarding first",
        )

    return UserContext(
        user_id=profile.id,
        role=profile.role,
        email=payload.email,
        name=profile.display_name,
    )


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


def require_roles(*allowed_roles: UserRole):
    """Dependency factory: restrict a route to specific marketplace roles.

    Usage:
        router = APIRouter(dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """

    async def _check(user: CurrentUser) -> UserContext:
        if user.role not in allowed_roles:
            logger.warning(
                "Role check failed: user=%s role=%s needs one of %s",
                user.user_id,
                user.role.value,
                [r.value for r in allowed_roles],
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return _check
