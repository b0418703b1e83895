# This project was developed with assistance from AI tools.
"""Saved-property (favorites) toggling and lookup."""

import logging

from db import Property, SavedProperty
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.errors import NotFoundError

logger = logging.getLogger(__name__)


async def _find_saved(session: AsyncSession, user_id: str, property_id: int) -> SavedProperty | None:
    stmt = select(SavedProperty).where(
        SavedProperty.user_id == user_id,
        SavedProperty.property_id == property_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def toggle_saved_property(session: AsyncSession, user_id: str, property_id: int) -> bool:
    """Save the listing if not saved yet, otherwise remove it.

    Only active listings can be saved. Returns the new saved state.
    """
    stmt = select(Property.id).where(Property.id == property_id, Property.is_active.is_(True))
    if (await session.execute(stmt)).scalar_one_or_none() is None:
        raise NotFoundError(f"Property {property_id} not found")

    existing = await _find_saved(session, user_id, property_id)
    if existing is not None:
        await session.delete(existing)
        await session.commit()
        logger.info("User %s removed property %s from favorites", user_id, property_id)
        return False

    session.add(SavedProperty(user_id=user_id, property_id=property_id))
    await session.commit()
    logger.info("User %s saved property %s", user_id, property_id)
    return True


async def is_property_saved(session: AsyncSession, user_id: str, property_id: int) -> bool:
    return await _find_saved(session, user_id, property_id) is not None


async def list_saved_properties(session: AsyncSession, user_id: str) -> list[Property]:
    """Active saved listings, most recently saved first."""
    stmt = (
        select(Property)
        .join(SavedProperty, SavedProperty.property_id == Property.id)
        .options(selectinload(Property.owner))
        .where(SavedProperty.user_id == user_id, Property.is_active.is_(True))
        .order_by(SavedProperty.created_at.desc(), SavedProperty.id.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
