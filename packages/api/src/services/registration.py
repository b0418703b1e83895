# This project was developed with assistance from AI tools.
"""Bank-agent registration workflow.

A user submits a registration (``pending``); an admin approves or rejects
it. Both outcomes are terminal. Approval promotes the user's Profile to
``bank_agent`` in the same transaction as the status change, and makes the
registration selectable on loan applications.

A user holds at most one pending/approved registration. The service checks
first for a friendly error, and the partial unique index
``uq_bank_agent_registrations_active_user`` closes the race between
concurrent submissions.
"""

import logging
from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any

from db import BankAgentRegistration, Profile
from db.enums import RegistrationStatus, UserRole
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import Action, require_capability
from ..core.config import settings
from ..core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from ..schemas.auth import UserContext
from .storage import (
    ALLOWED_DOCUMENT_TYPES,
    UploadBlob,
    get_storage_service,
    store_blobs,
    validate_blob,
)
from .validation import (
    is_blank,
    optional_text,
    parse_date_of_birth,
    require_fields,
    validate_local_phone,
)

logger = logging.getLogger(__name__)

PERSONAL_FIELDS = ("first_name", "last_name", "date_of_birth", "national_id", "phone", "address", "city")
BANK_FIELDS = ("bank_name", "position", "employee_id", "department", "supervisor_phone")

# Document slot -> (model column, object key stem)
_DOCUMENT_SLOTS = {
    "national_id_document": ("national_id_document", "national-id"),
    "bank_employment_letter": ("bank_employment_letter", "employment-letter"),
}


def age_on(date_of_birth: date, today: date | None = None) -> int:
    """Whole years between ``date_of_birth`` and ``today``."""
    today = today or date.today()
    return today.year - date_of_birth.year - (
        (today.month, today.day) < (date_of_birth.month, date_of_birth.day)
    )


async def get_registration(session: AsyncSession, registration_id: int) -> BankAgentRegistration:
    registration = await session.get(BankAgentRegistration, registration_id)
    if registration is None:
        raise NotFoundError(f"Registration {registration_id} not found")
    return registration


async def _active_registration(session: AsyncSession, user_id: str) -> BankAgentRegistration | None:
    stmt = select(BankAgentRegistration).where(
        BankAgentRegistration.user_id == user_id,
        BankAgentRegistration.status.in_(RegistrationStatus.active_statuses()),
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def submit_registration(
    session: AsyncSession,
    user_id: str | None,
    personal_info: Mapping[str, Any],
    bank_info: Mapping[str, Any],
    documents: Mapping[str, UploadBlob | None] | None = None,
) -> tuple[BankAgentRegistration, int]:
    """Create a pending registration, then attach its documents.

    Returns ``(registration, documents_failed)``. Document upload failures
    leave the matching column null and do not fail the submission.
    """
    if is_blank(user_id):
        raise ValidationError("Missing required field: user_id", field="user_id")
    require_fields(personal_info, PERSONAL_FIELDS, label="personal")
    require_fields(bank_info, BANK_FIELDS, label="bank")
    supervisor_phone = validate_local_phone("supervisor_phone", bank_info["supervisor_phone"])
    date_of_birth = parse_date_of_birth(personal_info["date_of_birth"])

    blobs = {slot: blob for slot, blob in (documents or {}).items() if blob is not None}
    for slot, blob in blobs.items():
        if slot not in _DOCUMENT_SLOTS:
            raise ValidationError(f"Unknown document: {slot}", field=slot)
        validate_blob(blob, slot, ALLOWED_DOCUMENT_TYPES)

    if await session.get(Profile, user_id) is None:
        raise NotFoundError(f"Profile {user_id} not found")

    existing = await _active_registration(session, user_id)
    if existing is not None:
        raise ConflictError(
            f"You already have a {existing.status.value} registration. "
            "Please wait for admin review."
        )

    storage = get_storage_service() if blobs else None

    registration = BankAgentRegistration(
        user_id=user_id,
        first_name=str(personal_info["first_name"]).strip(),
        last_name=str(personal_info["last_name"]).strip(),
        date_of_birth=date_of_birth,
        national_id=str(personal_info["national_id"]).strip(),
        phone=str(personal_info["phone"]).strip(),
        address=str(personal_info["address"]).strip(),
        city=str(personal_info["city"]).strip(),
        postal_code=optional_text(personal_info.get("postal_code")),
        bank_name=str(bank_info["bank_name"]).strip(),
        position=str(bank_info["position"]).strip(),
        employee_id=str(bank_info["employee_id"]).strip(),
        department=str(bank_info["department"]).strip(),
        work_address=optional_text(bank_info.get("work_address")),
        supervisor_name=optional_text(bank_info.get("supervisor_name")),
        supervisor_phone=supervisor_phone,
        status=RegistrationStatus.PENDING,
        submitted_at=datetime.now(UTC),
    )
    session.add(registration)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.warning("Concurrent registration rejected for user %s", user_id)
        raise ConflictError(
            "You already have a pending or approved registration. Please wait for admin review."
        ) from exc
    registration_id = registration.id
    logger.info("Bank agent registration %s submitted by %s", registration_id, user_id)

    failed = 0
    if storage is not None:
        slots = list(blobs)
        urls, failed = await store_blobs(
            storage,
            settings.S3_BANK_DOCUMENTS_BUCKET,
            [blobs[slot] for slot in slots],
            lambda i, blob: storage.build_object_key(
                f"bank-agent-{user_id}", _DOCUMENT_SLOTS[slots[i]][1], blob
            ),
        )
        attached = {
            _DOCUMENT_SLOTS[slot][0]: url for slot, url in zip(slots, urls, strict=True) if url
        }
        if attached:
            try:
                for column, url in attached.items():
                    setattr(registration, column, url)
                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                logger.exception("Failed to attach documents to registration %s", registration_id)
                failed = len(slots)
        if failed:
            logger.warning(
                "Registration %s submitted with %d of %d documents",
                registration_id,
                len(slots) - failed,
                len(slots),
            )

    await session.refresh(registration)
    return registration, failed


async def review_registration(
    session: AsyncSession,
    actor: UserContext,
    registration_id: int,
    decision: RegistrationStatus,
    *,
    admin_notes: str | None = None,
    rejection_reason: str | None = None,
) -> BankAgentRegistration:
    """Approve or reject a pending registration (admin only).

    Approval promotes the applicant's Profile to ``bank_agent`` in the same
    commit as the registration update. An admin applicant keeps the admin role.
    """
    registration = await get_registration(session, registration_id)
    require_capability(actor, registration, Action.REGISTRATION_REVIEW)

    if decision not in RegistrationStatus.review_outcomes():
        raise ValidationError(
            "decision must be 'approved' or 'rejected'", field="decision"
        )
    if decision == RegistrationStatus.REJECTED and is_blank(rejection_reason):
        raise ValidationError(
            "Rejection reason is required when rejecting", field="rejection_reason"
        )
    if registration.status != RegistrationStatus.PENDING:
        raise ConflictError(
            f"Registration {registration_id} is already {registration.status.value}"
        )

    profile = None
    if decision == RegistrationStatus.APPROVED:
        profile = await session.get(Profile, registration.user_id)
        if profile is None:
            raise NotFoundError(f"Profile {registration.user_id} not found")

    registration.status = decision
    registration.reviewed_at = datetime.now(UTC)
    registration.reviewed_by = actor.user_id
    if not is_blank(admin_notes):
        registration.admin_notes = admin_notes.strip()
    if decision == RegistrationStatus.REJECTED:
        registration.rejection_reason = rejection_reason.strip()

    # Admins keep their role; approval only records them as a lender
    promoted = profile is not None and profile.role != UserRole.ADMIN
    if promoted:
        profile.role = UserRole.BANK_AGENT

    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to record review of registration %s", registration_id)
        raise StorageError("Failed to record registration review") from exc

    logger.info(
        "Registration %s %s by %s", registration_id, decision.value, actor.user_id
    )
    if promoted:
        logger.info("Profile %s promoted to bank_agent", registration.user_id)
    elif profile is not None:
        logger.info("Profile %s is an admin and keeps its role", registration.user_id)

    await session.refresh(registration)
    return registration


async def list_approved_agents(session: AsyncSession) -> list[BankAgentRegistration]:
    """Registrations whose users can be selected as bank agents."""
    stmt = (
        select(BankAgentRegistration)
        .where(BankAgentRegistration.status == RegistrationStatus.APPROVED)
        .order_by(BankAgentRegistration.last_name, BankAgentRegistration.first_name)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_user_registrations(
    session: AsyncSession,
    user_id: str,
    status: RegistrationStatus | None = None,
) -> list[BankAgentRegistration]:
    """A user's registration history, newest first."""
    stmt = select(BankAgentRegistration).where(BankAgentRegistration.user_id == user_id)
    if status is not None:
        stmt = stmt.where(BankAgentRegistration.status == status)
    stmt = stmt.order_by(
        BankAgentRegistration.submitted_at.desc(), BankAgentRegistration.id.desc()
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_by_status(session: AsyncSession) -> dict[RegistrationStatus, int]:
    stmt = select(BankAgentRegistration.status, func.count(BankAgentRegistration.id)).group_by(
        BankAgentRegistration.status
    )
    result = await session.execute(stmt)
    counts = {status: 0 for status in RegistrationStatus}
    for status, count in result.all():
        counts[RegistrationStatus(status)] = count
    return counts


async def list_registrations(
    session: AsyncSession,
    *,
    status: RegistrationStatus | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[BankAgentRegistration], int]:
    """Admin moderation queue, newest submission first."""
    count_stmt = select(func.count(BankAgentRegistration.id))
    stmt = select(BankAgentRegistration)
    if status is not None:
        count_stmt = count_stmt.where(BankAgentRegistration.status == status)
        stmt = stmt.where(BankAgentRegistration.status == status)
    total = (await session.execute(count_stmt)).scalar() or 0

    stmt = (
        stmt.order_by(BankAgentRegistration.submitted_at.desc(), BankAgentRegistration.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all()), total
