# This project was developed with assistance from AI tools.
"""Loan application workflow.

An application carries two independent state fields:

- ``status``: the visible process state, which an agent may move between
  ``pending`` and ``under_review`` while working the file.
- ``bank_agent_decision``: the assigned agent's verdict.

They are never collapsed into one field. ``LoanStatus.allowed_decisions()``
is the table of legal pairings, ``LoanStatus.valid_transitions()`` the
status graph. Recording a decision drives ``status`` to the same value.

Creation is two-phase like property listings: the row is committed first,
then the identity card and proof of income are uploaded and attached.
"""

import logging
from collections.abc import Mapping
from typing import Any

from db import BankAgentRegistration, LoanApplication, Profile, Property
from db.enums import AgentDecision, LoanStatus, RegistrationStatus
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.auth import Action, require_capability
from ..core.config import settings
from ..core.errors import ConflictError, NotFoundError, ValidationError
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
    parse_bool,
    parse_decimal,
    parse_int,
    parse_optional_decimal,
    parse_optional_int,
    parse_string_list,
    require_fields,
    require_text,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(ConflictError):
    """Raised when a status/decision change is not allowed."""

    pass


_REQUIRED_FIELDS = ("loan_amount", "loan_term_years", "employment_status", "annual_income")

# (max_digits, places) of the Numeric columns each amount is stored in
_MONEY = {"max_digits": 14, "places": 2}
_PAYMENT = {"max_digits": 12, "places": 2}
_RATE = {"max_digits": 6, "places": 3}
_INSURANCE = {"max_digits": 10, "places": 2}

# Document slot -> (model column, object key stem, descriptor label)
_DOCUMENT_SLOTS = {
    "identity_card": ("identity_card_document", "identity-card", "Identity Card"),
    "proof_of_income": ("proof_of_income_document", "proof-of-income", "Proof of Income"),
}

# Patch fields grouped by the capability needed to change them.
_FIELD_ACTIONS = {
    "bank_agent_decision": Action.LOAN_DECIDE,
    "status": Action.LOAN_MANAGE,
    "loan_amount": Action.LOAN_MANAGE,
    "loan_term_years": Action.LOAN_MANAGE,
    "interest_rate": Action.LOAN_MANAGE,
    "monthly_payment": Action.LOAN_MANAGE,
    "bank_agent_notes": Action.LOAN_MANAGE,
    "submitted_documents": Action.LOAN_AMEND,
    "include_insurance": Action.LOAN_AMEND,
    "monthly_insurance_amount": Action.LOAN_AMEND,
    "selected_bank_agent_id": Action.LOAN_AMEND,
}


# ---------------------------------------------------------------------------
# Two-track state
# ---------------------------------------------------------------------------


def _parse_enum(enum_cls, field: str, value: Any):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}", field=field) from exc


def is_consistent(status: LoanStatus, decision: AgentDecision | None) -> bool:
    """Whether ``(status, decision)`` is one of the allowed pairings."""
    return LoanStatus.allowed_decisions()[status] == decision


def next_state(
    current_status: LoanStatus,
    current_decision: AgentDecision | None,
    patch: Mapping[str, Any],
) -> tuple[LoanStatus, AgentDecision | None]:
    """Compute the ``(status, decision)`` pair a patch would produce.

    Only the ``status`` and ``bank_agent_decision`` keys are read. Raises
    ValidationError for unparsable values or a terminal status without its
    decision, and InvalidTransitionError for a disallowed move.
    """
    status = current_status
    decision = current_decision

    if "bank_agent_decision" in patch:
        raw = patch["bank_agent_decision"]
        decision = None if is_blank(raw) else _parse_enum(AgentDecision, "bank_agent_decision", raw)
        if decision is not None:
            status = LoanStatus(decision.value)

    if "status" in patch:
        requested = _parse_enum(LoanStatus, "status", patch["status"])
        if "bank_agent_decision" in patch and decision is not None and requested != status:
            raise InvalidTransitionError(
                f"Status '{requested.value}' does not match decision '{decision.value}'"
            )
        required = LoanStatus.allowed_decisions()[requested]
        if required is not None and decision != required:
            raise ValidationError(
                f"Status '{requested.value}' requires bank_agent_decision '{required.value}'",
                field="status",
            )
        status = requested

    if status != current_status:
        allowed = LoanStatus.valid_transitions().get(current_status, frozenset())
        if status not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition from '{current_status.value}' to '{status.value}'. "
                f"Allowed: {sorted(s.value for s in allowed) if allowed else 'none (terminal status)'}."
            )

    if not is_consistent(status, decision):
        raise InvalidTransitionError(
            f"Status '{status.value}' cannot carry decision "
            f"'{decision.value if decision else None}'"
        )
    return status, decision


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _with_joins():
    return (
        selectinload(LoanApplication.applicant),
        selectinload(LoanApplication.property),
        selectinload(LoanApplication.selected_bank_agent),
    )


async def _load_application(session: AsyncSession, application_id: int) -> LoanApplication:
    stmt = (
        select(LoanApplication)
        .options(*_with_joins())
        .where(LoanApplication.id == application_id)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFoundError(f"Loan application {application_id} not found")
    return application


async def get_application(
    session: AsyncSession,
    application_id: int,
    actor: UserContext | None = None,
) -> LoanApplication:
    """Return an application with applicant, property and agent joined.

    When ``actor`` is given, the read is checked against ``loan:read``.
    """
    application = await _load_application(session, application_id)
    if actor is not None:
        require_capability(actor, application, Action.LOAN_READ)
    return application


async def _require_approved_agent(session: AsyncSession, registration_id: int) -> BankAgentRegistration:
    registration = await session.get(BankAgentRegistration, registration_id)
    if registration is None:
        raise NotFoundError(f"Bank agent {registration_id} not found")
    if registration.status != RegistrationStatus.APPROVED:
        raise ValidationError(
            f"Bank agent {registration_id} is not approved",
            field="selected_bank_agent_id",
        )
    return registration


def _resolve_insurance(
    include: bool, amount: Any, warnings: list[str]
) -> Any:
    """Apply the insurance policy: amount kept only when insurance is included."""
    if not include:
        return None
    parsed = parse_optional_decimal("monthly_insurance_amount", amount, **_INSURANCE)
    if parsed is None:
        warnings.append("Insurance included without a monthly_insurance_amount")
    return parsed


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def create_application(
    session: AsyncSession,
    applicant_id: str | None,
    fields: Mapping[str, Any],
    documents: Mapping[str, UploadBlob | None] | None = None,
) -> tuple[LoanApplication, int, list[str]]:
    """Create a pending application, then attach its documents.

    Returns ``(application, documents_failed, warnings)``.
    """
    if is_blank(applicant_id):
        raise ValidationError("Missing required field: applicant_id", field="applicant_id")
    require_fields(fields, _REQUIRED_FIELDS)

    loan_amount = parse_decimal("loan_amount", fields["loan_amount"], **_MONEY)
    loan_term_years = parse_int("loan_term_years", fields["loan_term_years"], minimum=1)
    employment_status = require_text("employment_status", fields["employment_status"])
    annual_income = parse_decimal("annual_income", fields["annual_income"], **_MONEY)
    interest_rate = parse_optional_decimal(
        "interest_rate", fields.get("interest_rate"), allow_zero=True, **_RATE
    )
    monthly_payment = parse_optional_decimal(
        "monthly_payment", fields.get("monthly_payment"), **_PAYMENT
    )
    property_id = parse_optional_int("property_id", fields.get("property_id"), minimum=1)
    agent_id = parse_optional_int(
        "selected_bank_agent_id", fields.get("selected_bank_agent_id"), minimum=1
    )
    submitted = parse_string_list("submitted_documents", fields.get("submitted_documents"))

    warnings: list[str] = []
    include_insurance = parse_bool("include_insurance", fields.get("include_insurance"))
    insurance_amount = _resolve_insurance(
        include_insurance, fields.get("monthly_insurance_amount"), warnings
    )

    blobs = {slot: blob for slot, blob in (documents or {}).items() if blob is not None}
    for slot, blob in blobs.items():
        if slot not in _DOCUMENT_SLOTS:
            raise ValidationError(f"Unknown document: {slot}", field=slot)
        validate_blob(blob, slot, ALLOWED_DOCUMENT_TYPES)

    if await session.get(Profile, applicant_id) is None:
        raise NotFoundError(f"Applicant profile {applicant_id} not found")
    if property_id is not None:
        stmt = select(Property.id).where(Property.id == property_id, Property.is_active.is_(True))
        if (await session.execute(stmt)).scalar_one_or_none() is None:
            raise NotFoundError(f"Property {property_id} not found")
    if agent_id is not None:
        await _require_approved_agent(session, agent_id)

    storage = get_storage_service() if blobs else None

    if insurance_amount is not None:
        submitted.append(f"Insurance: {insurance_amount} per month")

    application = LoanApplication(
        applicant_id=applicant_id,
        property_id=property_id,
        selected_bank_agent_id=agent_id,
        loan_amount=loan_amount,
        loan_term_years=loan_term_years,
        interest_rate=interest_rate,
        monthly_payment=monthly_payment,
        employment_status=employment_status,
        annual_income=annual_income,
        include_insurance=include_insurance,
        monthly_insurance_amount=insurance_amount,
        submitted_documents=submitted,
        status=LoanStatus.PENDING,
        bank_agent_decision=None,
    )
    session.add(application)
    await session.commit()
    application_id = application.id
    logger.info("Loan application %s created by %s", application_id, applicant_id)
    for warning in warnings:
        logger.warning("Loan application %s: %s", application_id, warning)

    failed = 0
    if storage is not None:
        slots = list(blobs)
        urls, failed = await store_blobs(
            storage,
            settings.S3_LOAN_DOCUMENTS_BUCKET,
            [blobs[slot] for slot in slots],
            lambda i, blob: storage.build_object_key(
                f"loan-{application_id}", _DOCUMENT_SLOTS[slots[i]][1], blob
            ),
        )
        stored = [(slot, url) for slot, url in zip(slots, urls, strict=True) if url]
        if stored:
            try:
                descriptors = list(application.submitted_documents or [])
                for slot, url in stored:
                    column, _, label = _DOCUMENT_SLOTS[slot]
                    setattr(application, column, url)
                    descriptors.append(f"{label}: {blobs[slot].filename} - {url}")
                application.submitted_documents = descriptors
                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                logger.exception("Failed to attach documents to loan application %s", application_id)
                failed = len(slots)
        if failed:
            logger.warning(
                "Loan application %s created with %d of %d documents",
                application_id,
                len(slots) - failed,
                len(slots),
            )

    return await _load_application(session, application_id), failed, warnings


async def update_application(
    session: AsyncSession,
    actor: UserContext,
    application_id: int,
    patch: Mapping[str, Any],
) -> tuple[LoanApplication, list[str]]:
    """Apply a partial update. Only keys present in ``patch`` change.

    Each key is checked against the capability that guards it before
    anything is written. Returns ``(application, warnings)``.
    """
    application = await _load_application(session, application_id)

    unknown = sorted(set(patch) - set(_FIELD_ACTIONS))
    if unknown:
        raise ValidationError(
            f"Fields cannot be updated: {', '.join(unknown)}",
            errors=[{"field": name, "message": "Field cannot be updated"} for name in unknown],
        )
    for action in dict.fromkeys(_FIELD_ACTIONS[name] for name in patch):
        require_capability(actor, application, action)

    values: dict[str, Any] = {}
    warnings: list[str] = []

    if "status" in patch or "bank_agent_decision" in patch:
        status, decision = next_state(application.status, application.bank_agent_decision, patch)
        values["status"] = status
        values["bank_agent_decision"] = decision

    if "loan_amount" in patch:
        values["loan_amount"] = parse_decimal("loan_amount", patch["loan_amount"], **_MONEY)
    if "loan_term_years" in patch:
        values["loan_term_years"] = parse_int("loan_term_years", patch["loan_term_years"], minimum=1)
    if "interest_rate" in patch:
        values["interest_rate"] = parse_optional_decimal(
            "interest_rate", patch["interest_rate"], allow_zero=True, **_RATE
        )
    if "monthly_payment" in patch:
        values["monthly_payment"] = parse_optional_decimal(
            "monthly_payment", patch["monthly_payment"], **_PAYMENT
        )
    if "bank_agent_notes" in patch:
        values["bank_agent_notes"] = optional_text(patch["bank_agent_notes"])
    if "submitted_documents" in patch:
        values["submitted_documents"] = parse_string_list(
            "submitted_documents", patch["submitted_documents"]
        )

    if "include_insurance" in patch or "monthly_insurance_amount" in patch:
        include = (
            parse_bool("include_insurance", patch["include_insurance"])
            if "include_insurance" in patch
            else application.include_insurance
        )
        amount = patch.get("monthly_insurance_amount", application.monthly_insurance_amount)
        values["include_insurance"] = include
        values["monthly_insurance_amount"] = _resolve_insurance(include, amount, warnings)

    if "selected_bank_agent_id" in patch:
        if application.status != LoanStatus.PENDING:
            raise InvalidTransitionError(
                "Bank agent can only be changed while the application is pending "
                f"(currently {application.status.value})"
            )
        agent_id = parse_optional_int(
            "selected_bank_agent_id", patch["selected_bank_agent_id"], minimum=1
        )
        if agent_id is not None:
            await _require_approved_agent(session, agent_id)
        values["selected_bank_agent_id"] = agent_id

    for field, value in values.items():
        setattr(application, field, value)
    await session.commit()

    logger.info(
        "Loan application %s updated by %s (%s)", application_id, actor.user_id, sorted(values)
    )
    if "status" in values:
        logger.info(
            "Loan application %s state: status=%s decision=%s",
            application_id,
            values["status"].value,
            values["bank_agent_decision"].value if values["bank_agent_decision"] else None,
        )
    for warning in warnings:
        logger.warning("Loan application %s: %s", application_id, warning)

    return await _load_application(session, application_id), warnings


async def delete_application(
    session: AsyncSession,
    actor: UserContext,
    application_id: int,
) -> None:
    """Hard-delete an application. Unlike listings, applications are not retained."""
    application = await _load_application(session, application_id)
    require_capability(actor, application, Action.LOAN_DELETE)
    await session.delete(application)
    await session.commit()
    logger.info("Loan application %s deleted by %s", application_id, actor.user_id)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_applicant_applications(
    session: AsyncSession, applicant_id: str
) -> list[LoanApplication]:
    """The applicant's applications, newest first, with property joined."""
    stmt = (
        select(LoanApplication)
        .options(*_with_joins())
        .where(LoanApplication.applicant_id == applicant_id)
        .order_by(LoanApplication.created_at.desc(), LoanApplication.id.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_agent_applications(
    session: AsyncSession,
    agent_user_id: str,
    status: LoanStatus | None = None,
) -> list[LoanApplication]:
    """Work queue: applications whose selected agent registration belongs to the user."""
    stmt = (
        select(LoanApplication)
        .join(
            BankAgentRegistration,
            BankAgentRegistration.id == LoanApplication.selected_bank_agent_id,
        )
        .options(*_with_joins())
        .where(BankAgentRegistration.user_id == agent_user_id)
    )
    if status is not None:
        stmt = stmt.where(LoanApplication.status == status)
    stmt = stmt.order_by(LoanApplication.created_at.desc(), LoanApplication.id.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())
