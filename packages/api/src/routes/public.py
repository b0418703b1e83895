# This project was developed with assistance from AI tools.
"""Public API routes -- no authentication required."""

from fastapi import APIRouter

from ..schemas.calculator import LoanSimulationRequest, LoanSimulationResponse
from ..services.calculator import simulate_loan

router = APIRouter()


@router.post("/loan-simulation", response_model=LoanSimulationResponse)
async def loan_simulation(req: LoanSimulationRequest) -> LoanSimulationResponse:
    """Estimate the monthly payment and lifetime cost of a loan.

    Uses the standard amortization formula; insurance is added on top of the
    monthly payment when supplied.
    """
    return simulate_loan(
        req.principal,
        req.annual_interest_rate,
        req.loan_term_years,
        req.monthly_insurance,
    )
