import math
from dataclasses import dataclass
from typing import List

from config import InvalidLoanTerm
from constants import DAYS_PER_MONTH, DAY_EPSILON, MONTHS_PER_YEAR


@dataclass(frozen=True)
class LoanPayment:
    """One scheduled installment of an amortized loan."""

    number: int
    day: int
    payment: float
    interest: float
    principal: float
    remaining: float


def term_months(term_years: float) -> int:
    return int(round(term_years * MONTHS_PER_YEAR))


def monthly_payment(principal: float, annual_rate: float, term_years: float) -> float:
    """Fixed monthly payment from the standard annuity formula. Nothing is owed on a non-positive principal."""
    if principal <= 0:
        return 0.0
    n = term_months(term_years)
    if n <= 0:
        raise InvalidLoanTerm(f"Loan term must cover at least one month, got {term_years} years")
    monthly_rate = annual_rate / MONTHS_PER_YEAR
    if abs(monthly_rate) < 1e-12:
        return principal / n
    growth = (1.0 + monthly_rate) ** n
    return principal * monthly_rate * growth / (growth - 1.0)


def payment_day(origination_day: float, number: int) -> int:
    """Whole day on which payment ``number`` (1-based) falls."""
    return int(math.ceil(origination_day + number * DAYS_PER_MONTH - DAY_EPSILON))


def amortization_schedule(
    principal: float,
    annual_rate: float,
    term_years: float,
    origination_day: float,
) -> List[LoanPayment]:
    """
    Monthly schedule for a fixed-payment loan.

    Interest on each installment is the outstanding principal times rate/12 and
    the remainder of the fixed payment retires principal. The last installment
    retires whatever principal is left, so the schedule always ends at exactly zero.
    A non-positive principal (an all-cash purchase) has no schedule at all.
    """
    if principal <= 0:
        return []
    n = term_months(term_years)
    payment = monthly_payment(principal, annual_rate, term_years)

    monthly_rate = annual_rate / MONTHS_PER_YEAR
    outstanding = principal
    schedule: List[LoanPayment] = []
    for number in range(1, n + 1):
        interest = outstanding * monthly_rate
        if number == n:
            principal_part = outstanding
            this_payment = principal_part + interest
        else:
            principal_part = payment - interest
            this_payment = payment
        outstanding = outstanding - principal_part
        schedule.append(
            LoanPayment(
                number=number,
                day=payment_day(origination_day, number),
                payment=this_payment,
                interest=interest,
                principal=principal_part,
                remaining=outstanding,
            )
        )
    return schedule
