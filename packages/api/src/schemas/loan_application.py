# This project was developed with assistance from AI tools.
"""Loan application request/response schemas."""

from datetime import datetime
from decimal import Decimal

from db.enums import AgentDecision, LoanStatus
from pydantic import BaseModel, ConfigDict


class LoanApplicationUpdate(BaseModel):
    """Partial update from the applicant, the assigned agent or an admin.

    Which fields a caller may touch is decided by the capability gate,
    not by this schema.
    """

    loan_amount: Decimal | str | None = None
    loan_term_years: int | str | None = None
    interest_rate: Decimal | str | None = None
    monthly_payment: Decimal | str | None = None
    status: LoanStatus | None = None
    bank_agent_decision: AgentDecision | None = None
    bank_agent_notes: str | None = None
    submitted_documents: list[str] | None = None
    include_insurance: bool | None = None
    monthly_insurance_amount: Decimal | str | None = None
    selected_bank_agent_id: int | None = None


class ApplicantSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str
    phone: str | None = None


class PropertySummary(BaseModel):
    """Joined property summary shown alongside an application."""

    id: int
    title: str
    price: Decimal
    location: str
    image: str | None = None


class AgentSummary(BaseModel):
    registration_id: int
    user_id: str
    full_name: str
    bank_name: str


class LoanApplicationResponse(BaseModel):
    id: int
    applicant_id: str
    applicant: ApplicantSummary | None = None
    property_id: int | None = None
    property: PropertySummary | None = None
    selected_bank_agent_id: int | None = None
    selected_bank_agent: AgentSummary | None = None
    loan_amount: Decimal
    loan_term_years: int
    interest_rate: Decimal | None = None
    monthly_payment: Decimal | None = None
    employment_status: str
    annual_income: Decimal
    identity_card_document: str | None = None
    proof_of_income_document: str | None = None
    submitted_documents: list[str] = []
    include_insurance: bool
    monthly_insurance_amount: Decimal | None = None
    status: LoanStatus
    bank_agent_decision: AgentDecision | None = None
    bank_agent_notes: str | None = None
    created_at: datetime
    updated_at: datetime


class LoanApplicationCreateResponse(BaseModel):
    data: LoanApplicationResponse
    documents_failed: int = 0
    warnings: list[str] = []
    message: str


class LoanApplicationListResponse(BaseModel):
    data: list[LoanApplicationResponse]
    count: int
