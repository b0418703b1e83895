# This project was developed with assistance from AI tools.
"""Profile request/response schemas."""

from datetime import datetime

from db.enums import UserRole
from pydantic import BaseModel, ConfigDict, Field

from . import Pagination


class ProfileCreate(BaseModel):
    """First-login provisioning. Only buyer or seller may be self-selected."""

    display_name: str = Field(min_length=1, max_length=200)
    phone: str | None = None
    role: UserRole = UserRole.BUYER


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=200)
    phone: str | None = None
    address: str | None = None
    city: str | None = None


class RoleUpdate(BaseModel):
    role: UserRole


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str
    phone: str | None = None
    role: UserRole
    address: str | None = None
    city: str | None = None
    created_at: datetime
    updated_at: datetime


class ProfileListResponse(BaseModel):
    data: list[ProfileResponse]
    pagination: Pagination
