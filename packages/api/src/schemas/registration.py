# This project was developed with assistance from AI tools.
"""Bank-agent registration request/response schemas."""

from datetime import date, datetime

from db.enums import RegistrationStatus
from pydantic import BaseModel, ConfigDict, Field

from . import Pagination


class PersonalInfo(BaseModel):
    """Applicant identity block. Blank values are rejected by the service."""

    first_name: str = ""
    last_name: str = ""
    date_of_birth: str = Field(default="", description="DD/MM/YYYY or YYYY-MM-DD")
    national_id: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    postal_code: str | None = None


class BankInfo(BaseModel):
    """Employer block."""

    bank_name: str = ""
    position: str = ""
    employee_id: str = ""
    department: str = ""
    work_address: str | None = None
    supervisor_name: str | None = None
    supervisor_phone: str = ""


class RegistrationDocuments(BaseModel):
    """Base64 payloads (optionally ``data:`` URLs) for the two supporting documents."""

    national_id_document: str | None = None
    bank_employment_letter: str | None = None


class RegistrationSubmit(BaseModel):
    personal_info: PersonalInfo
    bank_info: BankInfo
    documents: RegistrationDocuments = Field(default_factory=RegistrationDocuments)


class RegistrationReview(BaseModel):
    """Admin decision on a pending registration."""

    decision: RegistrationStatus
    admin_notes: str | None = None
    rejection_reason: str | None = None


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    first_name: str
    last_name: str
    full_name: str
    date_of_birth: date
    age: int | None = None
    national_id: str
    phone: str
    address: str
    city: str
    postal_code: str | None = None
    bank_name: str
    position: str
    employee_id: str
    department: str
    work_address: str | None = None
    supervisor_name: str | None = None
    supervisor_phone: str
    national_id_document: str | None = None
    bank_employment_letter: str | None = None
    status: RegistrationStatus
    submitted_at: datetime
    reviewed_at: datetime | None = None
    admin_notes: str | None = None
    rejection_reason: str | None = None


class RegistrationSubmitResponse(BaseModel):
    registration_id: int
    status: RegistrationStatus
    documents_failed: int = 0
    message: str


class StatusCounts(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0


class RegistrationListResponse(BaseModel):
    data: list[RegistrationResponse]
    pagination: Pagination
    status_counts: StatusCounts | None = None


class BankAgentSummary(BaseModel):
    """Selectable bank agent, as shown to loan applicants."""

    registration_id: int
    user_id: str
    full_name: str
    bank_name: str
    position: str
    department: str
    phone: str


class BankAgentListResponse(BaseModel):
    data: list[BankAgentSummary]
