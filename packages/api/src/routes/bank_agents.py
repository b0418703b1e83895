# This project was developed with assistance from AI tools.
"""Bank-agent registration routes for applying users, plus the agent directory."""

from db import BankAgentRegistration, get_db
from db.enums import RegistrationStatus
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser
from ..schemas.registration import (
    BankAgentListResponse,
    BankAgentSummary,
    RegistrationResponse,
    RegistrationSubmit,
    RegistrationSubmitResponse,
)
from ..services import registration as registration_service
from ..services.storage import decode_base64_blob

router = APIRouter()


def build_registration_response(registration: BankAgentRegistration) -> RegistrationResponse:
    return RegistrationResponse(
        id=registration.id,
        user_id=registration.user_id,
        first_name=registration.first_name,
        last_name=registration.last_name,
        full_name=f"{registration.first_name} {registration.last_name}",
        date_of_birth=registration.date_of_birth,
        age=registration_service.age_on(registration.date_of_birth),
        national_id=registration.national_id,
        phone=registration.phone,
        address=registration.address,
        city=registration.city,
        postal_code=registration.postal_code,
        bank_name=registration.bank_name,
        position=registration.position,
        employee_id=registration.employee_id,
        department=registration.department,
        work_address=registration.work_address,
        supervisor_name=registration.supervisor_name,
        supervisor_phone=registration.supervisor_phone,
        national_id_document=registration.national_id_document,
        bank_employment_letter=registration.bank_employment_letter,
        status=registration.status,
        submitted_at=registration.submitted_at,
        reviewed_at=registration.reviewed_at,
        admin_notes=registration.admin_notes,
        rejection_reason=registration.rejection_reason,
    )


@router.post(
    "/registrations",
    response_model=RegistrationSubmitResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_registration(
    body: RegistrationSubmit,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> RegistrationSubmitResponse:
    """Apply to become a bank agent. Fails with 409 while one is pending or approved."""
    documents = {
        slot: decode_base64_blob(slot, payload)
        for slot, payload in body.documents.model_dump().items()
        if payload
    }
    registration, failed = await registration_service.submit_registration(
        session,
        user.user_id,
        body.personal_info.model_dump(),
        body.bank_info.model_dump(),
        documents,
    )
    message = "Registration submitted successfully. Awaiting admin review."
    if failed:
        message = f"Registration submitted; {failed} document(s) failed to upload."
    return RegistrationSubmitResponse(
        registration_id=registration.id,
        status=registration.status,
        documents_failed=failed,
        message=message,
    )


@router.get("/registrations/mine", response_model=list[RegistrationResponse])
async def list_my_registrations(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    registration_status: RegistrationStatus | None = Query(default=None, alias="status"),
) -> list[RegistrationResponse]:
    registrations = await registration_service.list_user_registrations(
        session, user.user_id, registration_status
    )
    return [build_registration_response(r) for r in registrations]


@router.get("/approved", response_model=BankAgentListResponse)
async def list_approved_agents(
    _user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> BankAgentListResponse:
    """Agents a loan applicant may select."""
    registrations = await registration_service.list_approved_agents(session)
    return BankAgentListResponse(
        data=[
            BankAgentSummary(
                registration_id=r.id,
                user_id=r.user_id,
                full_name=f"{r.first_name} {r.last_name}",
                bank_name=r.bank_name,
                position=r.position,
                department=r.department,
                phone=r.phone,
            )
            for r in registrations
        ]
    )
