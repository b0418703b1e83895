# This project was developed with assistance from AI tools.
"""Loan simulator schemas."""

from decimal import Decimal

from pydantic import BaseModel, Field


class LoanSimulationRequest(BaseModel):
    """Input for the loan simulator."""

    principal: Decimal = Field(gt=0)
    annual_interest_rate: Decimal = Field(default=Decimal("6.5"), ge=0, le=30)
    loan_term_years: int = Field(default=20, ge=1, le=40)
    monthly_insurance: Decimal | None = Field(default=None, ge=0)


class LoanSimulationResponse(BaseModel):
    """Loan simulation results, rounded to cents."""

    monthly_payment: Decimal
    total_payment: Decimal
    total_interest: Decimal
    monthly_insurance: Decimal
    total_monthly_payment: Decimal
