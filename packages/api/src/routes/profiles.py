# This project was developed with assistance from AI tools.
"""Profile routes: first-login provisioning and self-service contact info."""

from db import get_db
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, TokenClaims
from ..schemas.profile import ProfileCreate, ProfileResponse, ProfileUpdate
from ..services import profile as profile_service

router = APIRouter()


@router.post("/", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def provision_profile(
    body: ProfileCreate,
    claims: TokenClaims,
    session: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    """Create the caller's Profile on first login. Repeat calls return it unchanged."""
    profile = await profile_service.ensure_profile(
        session,
        claims.sub,
        body.display_name,
        phone=body.phone,
        role=body.role,
    )
    return ProfileResponse.model_validate(profile)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    profile = await profile_service.get_profile(session, user.user_id)
    return ProfileResponse.model_validate(profile)


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    body: ProfileUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    """Update contact fields. Roles change only through admin action or agent approval."""
    profile = await profile_service.update_profile(
        session, user.user_id, **body.model_dump(exclude_unset=True)
    )
    return ProfileResponse.model_validate(profile)
