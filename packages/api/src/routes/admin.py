# This project was developed with assistance from AI tools.
"""Admin endpoints: registration moderation and role management."""

from db import get_db
from db.enums import RegistrationStatus, UserRole
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..middleware.auth import CurrentUser, require_roles
from ..schemas import Pagination
from ..schemas.profile import ProfileListResponse, ProfileResponse, RoleUpdate
from ..schemas.registration import (
    RegistrationListResponse,
    RegistrationResponse,
    RegistrationReview,
    StatusCounts,
)
from ..services import profile as profile_service
from ..services import registration as registration_service
from .bank_agents import build_registration_response

router = APIRouter(dependencies=[Depends(require_roles(UserRole.ADMIN))])


@router.get("/registrations", response_model=RegistrationListResponse)
async def list_registrations(
    session: AsyncSession = Depends(get_db),
    registration_status: RegistrationStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> RegistrationListResponse:
    """Moderation queue with per-status counts."""
    limit = min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    items, total = await registration_service.list_registrations(
        session, status=registration_status, page=page, limit=limit
    )
    counts = await registration_service.count_by_status(session)
    return RegistrationListResponse(
        data=[build_registration_response(r) for r in items],
        pagination=Pagination.build(total, page, limit),
        status_counts=StatusCounts(**{s.value: n for s, n in counts.items()}),
    )


@router.get("/registrations/{registration_id}", response_model=RegistrationResponse)
async def get_registration(
    registration_id: int,
    session: AsyncSession = Depends(get_db),
) -> RegistrationResponse:
    registration = await registration_service.get_registration(session, registration_id)
    return build_registration_response(registration)


@router.patch("/registrations/{registration_id}", response_model=RegistrationResponse)
async def review_registration(
    registration_id: int,
    body: RegistrationReview,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> RegistrationResponse:
    """Approve or reject. Approval promotes the applicant to bank_agent."""
    registration = await registration_service.review_registration(
        session,
        user,
        registration_id,
        body.decision,
        admin_notes=body.admin_notes,
        rejection_reason=body.rejection_reason,
    )
    return build_registration_response(registration)


@router.get("/users", response_model=ProfileListResponse)
async def list_users(
    session: AsyncSession = Depends(get_db),
    role: UserRole | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
) -> ProfileListResponse:
    limit = min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    items, total = await profile_service.list_profiles(session, page=page, limit=limit, role=role)
    return ProfileListResponse(
        data=[ProfileResponse.model_validate(p) for p in items],
        pagination=Pagination.build(total, page, limit),
    )


@router.patch("/users/{profile_id}/role", response_model=ProfileResponse)
async def set_user_role(
    profile_id: str,
    body: RoleUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    profile = await profile_service.set_role(session, user, profile_id, body.role)
    return ProfileResponse.model_validate(profile)
