# This project was developed with assistance from AI tools.
"""Loan simulation logic.

Pure math, no I/O. Used by the public simulator route; the server never
fills in ``monthly_payment`` on an application by itself.
"""

from decimal import ROUND_HALF_UP, Decimal

from ..core.errors import ValidationError
from ..schemas.calculator import LoanSimulationResponse

_CENT = Decimal("0.01")


def _cents(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def compute_monthly_payment(principal: Decimal, annual_rate: Decimal, years: int) -> Decimal:
    """Standard amortized payment, rounded half-up to cents.

    ``annual_rate`` is a percentage (6.5 means 6.5%). A zero rate spreads
    the principal evenly over the term.
    """
    principal = Decimal(principal)
    annual_rate = Decimal(annual_rate)
    if principal <= 0:
        raise ValidationError("principal must be greater than zero", field="principal")
    if annual_rate < 0:
        raise ValidationError("annual_rate cannot be negative", field="annual_rate")
    if years < 1:
        raise ValidationError("years must be at least 1", field="years")

    n_payments = years * 12
    monthly_rate = annual_rate / 100 / 12
    if monthly_rate == 0:
        return _cents(principal / n_payments)

    # P = L * [r(1+r)^n] / [(1+r)^n - 1]
    compound = (1 + monthly_rate) ** n_payments
    return _cents(principal * monthly_rate * compound / (compound - 1))


def simulate_loan(
    principal: Decimal,
    annual_rate: Decimal,
    years: int,
    monthly_insurance: Decimal | None = None,
) -> LoanSimulationResponse:
    """Monthly and lifetime cost of a loan, with optional insurance on top."""
    monthly_payment = compute_monthly_payment(principal, annual_rate, years)
    insurance = _cents(Decimal(monthly_insurance or 0))
    total_payment = _cents(monthly_payment * years * 12)
    return LoanSimulationResponse(
        monthly_payment=monthly_payment,
        total_payment=total_payment,
        total_interest=_cents(total_payment - Decimal(principal)),
        monthly_insurance=insurance,
        total_monthly_payment=monthly_payment + insurance,
    )
