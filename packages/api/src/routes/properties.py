# This project was developed with assistance from AI tools.
"""Property catalog routes.

Reads of the public catalog need no authentication. Creation, edits and
deactivation resolve the acting owner from the session; the service's
capability gate compares it against the listing before mutating.
"""

from db import Property, get_db
from db.enums import PropertyType, UserRole
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..middleware.auth import CurrentUser, require_roles
from ..schemas import Pagination
from ..schemas.property import (
    OwnerSummary,
    PropertyCreateResponse,
    PropertyListResponse,
    PropertyResponse,
    PropertyUpdate,
    SavedStatusResponse,
)
from ..services import favorites as favorites_service
from ..services import property as property_service
from ..services.storage import UploadBlob

router = APIRouter()

# Any marketplace member can list; bank agents work loans only
_LISTING_ROLES = (UserRole.BUYER, UserRole.SELLER, UserRole.ADMIN)


def build_property_response(prop: Property) -> PropertyResponse:
    """Build PropertyResponse from an ORM row loaded with its owner."""
    return PropertyResponse(
        id=prop.id,
        owner_id=prop.owner_id,
        owner=OwnerSummary.model_validate(prop.owner) if prop.owner else None,
        title=prop.title,
        description=prop.description,
        price=prop.price,
        location=prop.location,
        bedrooms=prop.bedrooms,
        bathrooms=prop.bathrooms,
        area=prop.area,
        property_type=prop.property_type,
        images=list(prop.images or []),
        is_active=prop.is_active,
        price_per_area=property_service.price_per_area(prop.price, prop.area),
        created_at=prop.created_at,
        updated_at=prop.updated_at,
    )


def _page_limit(limit: int | None) -> int:
    return min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)


@router.get("/", response_model=PropertyListResponse)
async def list_properties(
    session: AsyncSession = Depends(get_db),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    property_type: PropertyType | None = None,
) -> PropertyListResponse:
    """Public catalog: active listings, newest first."""
    limit = _page_limit(limit)
    items, total = await property_service.list_active_properties(
        session, page=page, limit=limit, property_type=property_type
    )
    return PropertyListResponse(
        data=[build_property_response(p) for p in items],
        pagination=Pagination.build(total, page, limit),
    )


@router.post(
    "/",
    response_model=PropertyCreateResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_LISTING_ROLES))],
)
async def create_property(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    price: str | None = Form(default=None),
    location: str | None = Form(default=None),
    bedrooms: str | None = Form(default=None),
    bathrooms: str | None = Form(default=None),
    area: str | None = Form(default=None),
    property_type: str | None = Form(default=None),
    images: list[UploadFile] = File(default=[]),
) -> PropertyCreateResponse:
    """Create a listing from a multipart form. Image upload failures are tolerated."""
    fields = {
        "title": title,
        "description": description,
        "price": price,
        "location": location,
        "bedrooms": bedrooms,
        "bathrooms": bathrooms,
        "area": area,
        "property_type": property_type,
    }
    blobs = [
        UploadBlob(
            filename=upload.filename or "image",
            content_type=upload.content_type or "application/octet-stream",
            data=await upload.read(),
        )
        for upload in images
        if upload.filename
    ]
    prop, uploaded, failed = await property_service.create_property(
        session, user.user_id, fields, blobs
    )
    message = "Property created successfully"
    if failed:
        message = f"Property created; {failed} of {len(blobs)} images failed to upload"
    return PropertyCreateResponse(
        data=build_property_response(prop),
        images_uploaded=uploaded,
        images_failed=failed,
        message=message,
    )


@router.get(
    "/mine",
    response_model=PropertyListResponse,
    dependencies=[Depends(require_roles(*_LISTING_ROLES))],
)
async def list_my_properties(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    include_inactive: bool = Query(default=False),
) -> PropertyListResponse:
    limit = _page_limit(limit)
    items, total = await property_service.list_owner_properties(
        session, user.user_id, page=page, limit=limit, include_inactive=include_inactive
    )
    return PropertyListResponse(
        data=[build_property_response(p) for p in items],
        pagination=Pagination.build(total, page, limit),
    )


@router.get("/saved", response_model=PropertyListResponse)
async def list_saved_properties(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PropertyListResponse:
    """The caller's favorites, most recently saved first."""
    items = await favorites_service.list_saved_properties(session, user.user_id)
    return PropertyListResponse(
        data=[build_property_response(p) for p in items],
        pagination=Pagination.build(len(items), 1, max(len(items), 1)),
    )


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: int,
    session: AsyncSession = Depends(get_db),
) -> PropertyResponse:
    prop = await property_service.get_property(session, property_id)
    return build_property_response(prop)


@router.patch("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: int,
    body: PropertyUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PropertyResponse:
    """Partial update by the listing owner."""
    prop = await property_service.update_property(
        session, user, property_id, body.model_dump(exclude_unset=True)
    )
    return build_property_response(prop)


@router.delete("/{property_id}", response_model=PropertyResponse)
async def deactivate_property(
    property_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PropertyResponse:
    """Soft delete. Repeating the call on an inactive listing succeeds."""
    prop = await property_service.deactivate_property(session, user, property_id)
    return build_property_response(prop)


@router.post("/{property_id}/save", response_model=SavedStatusResponse)
async def toggle_saved(
    property_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> SavedStatusResponse:
    is_saved = await favorites_service.toggle_saved_property(session, user.user_id, property_id)
    return SavedStatusResponse(property_id=property_id, is_saved=is_saved)


@router.get("/{property_id}/saved", response_model=SavedStatusResponse)
async def saved_status(
    property_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> SavedStatusResponse:
    is_saved = await favorites_service.is_property_saved(session, user.user_id, property_id)
    return SavedStatusResponse(property_id=property_id, is_saved=is_saved)
