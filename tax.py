from dataclasses import dataclass

DEPENDENT_CREDIT: float = 2000.0


@dataclass(frozen=True)
class Paycheck:
    """Split of one pay period's gross pay."""

    gross: float
    federal: float
    state: float
    social_security: float
    medicare: float
    contribution_401k: float
    employer_match: float

    @property
    def withholding(self) -> float:
        return self.federal + self.state + self.social_security + self.medicare

    @property
    def net(self) -> float:
        """Take-home pay: gross less withholding and the employee 401k deferral."""
        return self.gross - self.withholding - self.contribution_401k

    @property
    def retirement_deposit(self) -> float:
        return self.contribution_401k + self.employer_match


def paycheck_breakdown(
    gross: float,
    federal_rate: float,
    state_rate: float,
    social_security_rate: float,
    medicare_rate: float,
    contribution_rate: float,
    match_rate: float,
) -> Paycheck:
    # All withholding and the 401k deferral are flat rates on gross pay.
    return Paycheck(
        gross=gross,
        federal=gross * federal_rate,
        state=gross * state_rate,
        social_security=gross * social_security_rate,
        medicare=gross * medicare_rate,
        contribution_401k=gross * contribution_rate,
        employer_match=gross * match_rate,
    )


def estimate_taxes(
    salary: float,
    capital_gains: float = 0.0,
    retirement_contributions: float = 0.0,
    itemized_deductions: float = 0.0,
    number_of_dependents: float = 0.0,
    federal_tax_rate: float = 0.12,
    state_tax_rate: float = 0.05,
    federal_income_tax_withheld: float = 0.0,
    state_income_tax_withheld: float = 0.0,
) -> float:
    """
    Rough balance due for a tax year.

    Taxable income is salary plus gains less pre-tax contributions and
    deductions; a flat per-dependent credit is subtracted before withholding is
    netted out. A negative result is a refund.
    """
    taxable_income = max(0.0, salary + capital_gains - retirement_contributions - itemized_deductions)
    total_tax = taxable_income * (federal_tax_rate + state_tax_rate)
    total_tax = max(0.0, total_tax - number_of_dependents * DEPENDENT_CREDIT)
    return total_tax - federal_income_tax_withheld - state_income_tax_withheld
