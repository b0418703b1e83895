# This project was developed with assistance from AI tools.
"""Profile store: maps an external identity to a marketplace role.

Profiles are never deleted. Roles change only through an admin action
(``set_role``) or registration approval (see ``services.registration``).
"""

import logging

from db import Profile
from db.enums import UserRole
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import Action, require_capability
from ..core.errors import NotFoundError, ValidationError
from ..schemas.auth import UserContext

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {"display_name", "phone", "address", "city"}


async def get_profile(session: AsyncSession, profile_id: str) -> Profile:
    profile = await session.get(Profile, profile_id)
    if profile is None:
        raise NotFoundError(f"Profile {profile_id} not found")
    return profile


async def ensure_profile(
    session: AsyncSession,
    identity_id: str,
    display_name: str,
    phone: str | None = None,
    role: UserRole = UserRole.BUYER,
) -> Profile:
    """Return the Profile for ``identity_id``, creating it on first login.

    An existing profile is returned unchanged; the requested role only
    applies at creation and must be self-service (buyer or seller).
    """
    existing = await session.get(Profile, identity_id)
    if existing is not None:
        return existing

    if role not in UserRole.self_service_roles():
        raise ValidationError(
            f"Role '{role.value}' cannot be self-assigned", field="role"
        )

    profile = Profile(id=identity_id, display_name=display_name, phone=phone, role=role)
    session.add(profile)
    await session.commit()
    await session.refresh(profile)
    logger.info("Provisioned profile %s as %s", identity_id, role.value)
    return profile


async def update_profile(session: AsyncSession, profile_id: str, **updates) -> Profile:
    """Update contact fields. Role is not updatable here."""
    profile = await get_profile(session, profile_id)
    for field, value in updates.items():
        if field not in _UPDATABLE_FIELDS:
            continue
        setattr(profile, field, value)
    await session.commit()
    await session.refresh(profile)
    return profile


async def set_role(
    session: AsyncSession,
    actor: UserContext,
    profile_id: str,
    role: UserRole,
) -> Profile:
    """Admin action: change a profile's role."""
    profile = await get_profile(session, profile_id)
    require_capability(actor, profile, Action.PROFILE_SET_ROLE)

    previous = profile.role
    profile.role = role
    await session.commit()
    await session.refresh(profile)
    logger.info(
        "Role of %s changed %s -> %s by %s", profile_id, previous.value, role.value, actor.user_id
    )
    return profile


async def list_profiles(
    session: AsyncSession,
    *,
    page: int = 1,
    limit: int = 10,
    role: UserRole | None = None,
) -> tuple[list[Profile], int]:
    """Admin listing of profiles, newest first."""
    count_stmt = select(func.count(Profile.id))
    stmt = select(Profile).order_by(Profile.created_at.desc(), Profile.id)
    if role is not None:
        count_stmt = count_stmt.where(Profile.role == role)
        stmt = stmt.where(Profile.role == role)
    total = (await session.execute(count_stmt)).scalar() or 0
    result = await session.execute(stmt.offset((page - 1) * limit).limit(limit))
    return list(result.scalars().all()), total
