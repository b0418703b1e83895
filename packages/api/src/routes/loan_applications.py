# This project was developed with assistance from AI tools.
"""Loan application routes with capability enforcement.

Applicants create and list their own applications. The assigned bank agent
works its queue and records decisions; admins may manage any application.
Per-row permission checks live in the service's capability gate.
"""

from db import LoanApplication, get_db
from db.enums import LoanStatus, UserRole
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.loan_application import (
    AgentSummary,
    ApplicantSummary,
    LoanApplicationCreateResponse,
    LoanApplicationListResponse,
    LoanApplicationResponse,
    LoanApplicationUpdate,
    PropertySummary,
)
from ..services import loan_application as loan_service
from ..services.storage import UploadBlob

router = APIRouter()


def build_application_response(application: LoanApplication) -> LoanApplicationResponse:
    """Build LoanApplicationResponse from an ORM row with its joins loaded."""
    prop = application.property
    agent = application.selected_bank_agent
    return LoanApplicationResponse(
        id=application.id,
        applicant_id=application.applicant_id,
        applicant=(
            ApplicantSummary.model_validate(application.applicant) if application.applicant else None
        ),
        property_id=application.property_id,
        property=(
            PropertySummary(
                id=prop.id,
                title=prop.title,
                price=prop.price,
                location=prop.location,
                image=prop.images[0] if prop.images else None,
            )
            if prop
            else None
        ),
        selected_bank_agent_id=application.selected_bank_agent_id,
        selected_bank_agent=(
            AgentSummary(
                registration_id=agent.id,
                user_id=agent.user_id,
                full_name=f"{agent.first_name} {agent.last_name}",
                bank_name=agent.bank_name,
            )
            if agent
            else None
        ),
        loan_amount=application.loan_amount,
        loan_term_years=application.loan_term_years,
        interest_rate=application.interest_rate,
        monthly_payment=application.monthly_payment,
        employment_status=application.employment_status,
        annual_income=application.annual_income,
        identity_card_document=application.identity_card_document,
        proof_of_income_document=application.proof_of_income_document,
        submitted_documents=list(application.submitted_documents or []),
        include_insurance=application.include_insurance,
        monthly_insurance_amount=application.monthly_insurance_amount,
        status=application.status,
        bank_agent_decision=application.bank_agent_decision,
        bank_agent_notes=application.bank_agent_notes,
        created_at=application.created_at,
        updated_at=application.updated_at,
    )


async def _to_blob(upload: UploadFile | None) -> UploadBlob | None:
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    if not data:
        return None
    return UploadBlob(
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        data=data,
    )


@router.post(
    "/",
    response_model=LoanApplicationCreateResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(UserRole.BUYER, UserRole.SELLER))],
)
async def create_application(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    property_id: str | None = Form(default=None),
    loan_amount: str | None = Form(default=None),
    loan_term_years: str | None = Form(default=None),
    interest_rate: str | None = Form(default=None),
    monthly_payment: str | None = Form(default=None),
    employment_status: str | None = Form(default=None),
    annual_income: str | None = Form(default=None),
    selected_bank_agent_id: str | None = Form(default=None),
    include_insurance: str | None = Form(default=None),
    monthly_insurance_amount: str | None = Form(default=None),
    submitted_documents: list[str] = Form(default=[]),
    identity_card: UploadFile | None = File(default=None),
    proof_of_income: UploadFile | None = File(default=None),
) -> LoanApplicationCreateResponse:
    """Submit a loan application from a multipart form.

    Document upload failures are reported in ``documents_failed`` and never
    undo the application.
    """
    fields = {
        "property_id": property_id,
        "loan_amount": loan_amount,
        "loan_term_years": loan_term_years,
        "interest_rate": interest_rate,
        "monthly_payment": monthly_payment,
        "employment_status": employment_status,
        "annual_income": annual_income,
        "selected_bank_agent_id": selected_bank_agent_id,
        "include_insurance": include_insurance,
        "monthly_insurance_amount": monthly_insurance_amount,
        "submitted_documents": submitted_documents,
    }
    documents = {
        "identity_card": await _to_blob(identity_card),
        "proof_of_income": await _to_blob(proof_of_income),
    }
    application, failed, warnings = await loan_service.create_application(
        session, user.user_id, fields, documents
    )
    message = "Loan application submitted successfully"
    if failed:
        message = f"Loan application submitted; {failed} document(s) failed to upload"
    return LoanApplicationCreateResponse(
        data=build_application_response(application),
        documents_failed=failed,
        warnings=warnings,
        message=message,
    )


@router.get("/mine", response_model=LoanApplicationListResponse)
async def list_my_applications(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LoanApplicationListResponse:
    """The caller's applications, newest first."""
    applications = await loan_service.list_applicant_applications(session, user.user_id)
    return LoanApplicationListResponse(
        data=[build_application_response(a) for a in applications],
        count=len(applications),
    )


@router.get(
    "/assigned",
    response_model=LoanApplicationListResponse,
    dependencies=[Depends(require_roles(UserRole.BANK_AGENT))],
)
async def list_assigned_applications(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    application_status: LoanStatus | None = Query(default=None, alias="status"),
) -> LoanApplicationListResponse:
    """The calling bank agent's work queue."""
    applications = await loan_service.list_agent_applications(
        session, user.user_id, application_status
    )
    return LoanApplicationListResponse(
        data=[build_application_response(a) for a in applications],
        count=len(applications),
    )


@router.get("/{application_id}", response_model=LoanApplicationResponse)
async def get_application(
    application_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LoanApplicationResponse:
    application = await loan_service.get_application(session, application_id, actor=user)
    return build_application_response(application)


@router.patch("/{application_id}", response_model=LoanApplicationCreateResponse)
async def update_application(
    application_id: int,
    body: LoanApplicationUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LoanApplicationCreateResponse:
    """Partial update. Each supplied field is checked against the caller's capabilities."""
    application, warnings = await loan_service.update_application(
        session, user, application_id, body.model_dump(exclude_unset=True)
    )
    return LoanApplicationCreateResponse(
        data=build_application_response(application),
        warnings=warnings,
        message="Loan application updated successfully",
    )


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_application(
    application_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> None:
    """Hard delete by the applicant or an admin."""
    await loan_service.delete_application(session, user, application_id)
