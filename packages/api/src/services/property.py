# This project was developed with assistance from AI tools.
"""Property catalog: listing lifecycle and ownership checks.

Listings are created by their owner, edited only by their owner, and
"deleted" by flipping ``is_active`` -- rows are never removed. Public read
paths only ever see active listings.

Creation is two-phase: the row is committed with an empty image list, then
images are uploaded and attached. A failed image upload never undoes the
listing.
"""

import logging
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from db import Profile, Property
from db.enums import PropertyType
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.auth import Action, require_capability
from ..core.config import settings
from ..core.errors import NotFoundError, ValidationError
from ..schemas.auth import UserContext
from .storage import ALLOWED_IMAGE_TYPES, UploadBlob, get_storage_service, store_blobs, validate_blob
from .validation import (
    normalize_property_type,
    optional_text,
    parse_decimal,
    parse_int,
    parse_optional_int,
    require_fields,
    require_text,
)

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("title", "price", "location", "property_type")

_CENT = Decimal("0.01")

# Matches the Numeric(14, 2) price column
_PRICE_DIGITS = {"max_digits": 14, "places": 2}


def price_per_area(price: Decimal | None, area: int | None) -> Decimal | None:
    """Derived read-only metric; never stored."""
    if price is None or not area:
        return None
    return (Decimal(price) / Decimal(area)).quantize(_CENT, rounding=ROUND_HALF_UP)


def _parse_fields(values: Mapping[str, Any]) -> dict[str, Any]:
    """Parse whichever listing fields are present in ``values``.

    A key that is present with a blank value clears optional fields and is
    rejected for required ones.
    """
    parsed: dict[str, Any] = {}
    if "title" in values:
        parsed["title"] = require_text("title", values["title"])
    if "location" in values:
        parsed["location"] = require_text("location", values["location"])
    if "price" in values:
        parsed["price"] = parse_decimal("price", values["price"], **_PRICE_DIGITS)
    if "property_type" in values:
        parsed["property_type"] = normalize_property_type(values["property_type"])
    if "description" in values:
        parsed["description"] = optional_text(values["description"])
    for field in ("bedrooms", "bathrooms"):
        if field in values:
            raw = values[field]
            parsed[field] = 0 if raw is None or str(raw).strip() == "" else parse_int(field, raw)
    if "area" in values:
        parsed["area"] = parse_optional_int("area", values["area"], minimum=1)
    return parsed


def _with_owner():
    return selectinload(Property.owner)


async def _load_property(
    session: AsyncSession, property_id: int, *, active_only: bool
) -> Property:
    stmt = select(Property).options(_with_owner()).where(Property.id == property_id)
    if active_only:
        stmt = stmt.where(Property.is_active.is_(True))
    result = await session.execute(stmt.execution_options(populate_existing=True))
    prop = result.scalar_one_or_none()
    if prop is None:
        raise NotFoundError(f"Property {property_id} not found")
    return prop


async def create_property(
    session: AsyncSession,
    owner_id: str | None,
    fields: Mapping[str, Any],
    images: Sequence[UploadBlob] = (),
) -> tuple[Property, int, int]:
    """Create a listing and attach its images.

    Returns ``(property, images_uploaded, images_failed)``.
    """
    if not owner_id:
        raise ValidationError("Missing required field: owner_id", field="owner_id")
    require_fields(fields, _REQUIRED_FIELDS)
    values = _parse_fields(fields)

    if len(images) > settings.MAX_PROPERTY_IMAGES:
        raise ValidationError(
            f"At most {settings.MAX_PROPERTY_IMAGES} images per listing", field="images"
        )
    for blob in images:
        validate_blob(blob, "images", ALLOWED_IMAGE_TYPES)

    if await session.get(Profile, owner_id) is None:
        raise NotFoundError(f"Owner profile {owner_id} not found")

    storage = get_storage_service() if images else None

    prop = Property(
        owner_id=owner_id,
        title=values["title"],
        description=values.get("description"),
        price=values["price"],
        location=values["location"],
        bedrooms=values.get("bedrooms", 0),
        bathrooms=values.get("bathrooms", 0),
        area=values.get("area"),
        property_type=values["property_type"],
        images=[],
        is_active=True,
    )
    session.add(prop)
    await session.commit()
    property_id = prop.id
    logger.info("Property %s created by %s", property_id, owner_id)

    uploaded, failed = 0, 0
    if storage is not None:
        urls, failed = await store_blobs(
            storage,
            settings.S3_PROPERTY_IMAGES_BUCKET,
            images,
            lambda i, blob: storage.build_object_key(str(property_id), f"image_{i + 1}", blob),
        )
        stored = [url for url in urls if url]
        if stored:
            try:
                prop.images = stored
                await session.commit()
                uploaded = len(stored)
            except SQLAlchemyError:
                await session.rollback()
                logger.exception("Failed to attach images to property %s", property_id)
                failed = len(images)
        if failed:
            logger.warning(
                "Property %s created with %d of %d images", property_id, uploaded, len(images)
            )

    return await _load_property(session, property_id, active_only=False), uploaded, failed


async def get_property(session: AsyncSession, property_id: int) -> Property:
    """Public read: only active listings are visible."""
    return await _load_property(session, property_id, active_only=True)


async def update_property(
    session: AsyncSession,
    actor: UserContext,
    property_id: int,
    patch: Mapping[str, Any],
) -> Property:
    """Apply a partial update. Only keys present in ``patch`` change."""
    prop = await _load_property(session, property_id, active_only=False)
    require_capability(actor, prop, Action.PROPERTY_UPDATE)

    values = _parse_fields(patch)
    if "images" in patch:
        images = patch["images"]
        if images is None:
            images = []
        if not isinstance(images, list) or not all(isinstance(url, str) for url in images):
            raise ValidationError("images must be a list of URLs", field="images")
        values["images"] = list(images)
    if "is_active" in patch:
        if not isinstance(patch["is_active"], bool):
            raise ValidationError("is_active must be a boolean", field="is_active")
        values["is_active"] = patch["is_active"]

    for field, value in values.items():
        setattr(prop, field, value)
    await session.commit()
    logger.info("Property %s updated by %s (%s)", property_id, actor.user_id, sorted(values))
    return await _load_property(session, property_id, active_only=False)


async def deactivate_property(
    session: AsyncSession,
    actor: UserContext,
    property_id: int,
) -> Property:
    """Soft-delete a listing. Deactivating an inactive listing is a no-op."""
    prop = await _load_property(session, property_id, active_only=False)
    require_capability(actor, prop, Action.PROPERTY_DEACTIVATE)

    if prop.is_active:
        prop.is_active = False
        await session.commit()
        logger.info("Property %s deactivated by %s", property_id, actor.user_id)
        prop = await _load_property(session, property_id, active_only=False)
    return prop


async def list_owner_properties(
    session: AsyncSession,
    owner_id: str,
    *,
    page: int = 1,
    limit: int = 10,
    include_inactive: bool = False,
) -> tuple[list[Property], int]:
    """Return the owner's listings, newest first."""
    filters = [Property.owner_id == owner_id]
    if not include_inactive:
        filters.append(Property.is_active.is_(True))
    return await _paginate(session, filters, page=page, limit=limit)


async def list_active_properties(
    session: AsyncSession,
    *,
    page: int = 1,
    limit: int = 10,
    property_type: PropertyType | None = None,
) -> tuple[list[Property], int]:
    """Public catalog: active listings only, newest first."""
    filters = [Property.is_active.is_(True)]
    if property_type is not None:
        filters.append(Property.property_type == property_type)
    return await _paginate(session, filters, page=page, limit=limit)


async def _paginate(
    session: AsyncSession, filters: list, *, page: int, limit: int
) -> tuple[list[Property], int]:
    count_stmt = select(func.count(Property.id)).where(*filters)
    total = (await session.execute(count_stmt)).scalar() or 0

    stmt = (
        select(Property)
        .options(_with_owner())
        .where(*filters)
        .order_by(Property.created_at.desc(), Property.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all()), total
