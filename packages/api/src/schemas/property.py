# This project was developed with assistance from AI tools.
"""Property catalog request/response schemas."""

from datetime import datetime
from decimal import Decimal

from db.enums import PropertyType
from pydantic import BaseModel, ConfigDict

from . import Pagination


class PropertyUpdate(BaseModel):
    """Partial update to a listing.

    Numeric fields accept strings as sent by form-based clients; the
    catalog service parses them and rejects malformed values.
    """

    title: str | None = None
    description: str | None = None
    price: Decimal | str | None = None
    location: str | None = None
    bedrooms: int | str | None = None
    bathrooms: int | str | None = None
    area: int | str | None = None
    property_type: str | None = None
    images: list[str] | None = None
    is_active: bool | None = None


class OwnerSummary(BaseModel):
    """Owner contact nested inside property responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str
    phone: str | None = None


class PropertyResponse(BaseModel):
    """Single property response. ``price_per_area`` is derived on read."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    owner: OwnerSummary | None = None
    title: str
    description: str | None = None
    price: Decimal
    location: str
    bedrooms: int
    bathrooms: int
    area: int | None = None
    property_type: PropertyType
    images: list[str] = []
    is_active: bool
    price_per_area: Decimal | None = None
    created_at: datetime
    updated_at: datetime


class PropertyCreateResponse(BaseModel):
    """Result of a listing creation, including partial image upload outcome."""

    data: PropertyResponse
    images_uploaded: int
    images_failed: int
    message: str


class PropertyListResponse(BaseModel):
    """Paginated list of properties."""

    data: list[PropertyResponse]
    pagination: Pagination


class SavedStatusResponse(BaseModel):
    """Whether a property is in the caller's favorites."""

    property_id: int
    is_saved: bool
