"""
Unit tests for paycheck withholding and estimated taxes.
"""
import pytest

from tax import DEPENDENT_CREDIT, estimate_taxes, paycheck_breakdown


class TestPaycheckBreakdown:
    """Flat-rate withholding on gross pay"""

    def test_components(self):
        pay = paycheck_breakdown(1_000, 0.10, 0.05, 0.062, 0.0145, 0.05, 0.03)
        assert pay.federal == pytest.approx(100)
        assert pay.state == pytest.approx(50)
        assert pay.social_security == pytest.approx(62)
        assert pay.medicare == pytest.approx(14.5)
        assert pay.withholding == pytest.approx(226.5)

    def test_net_excludes_withholding_and_deferral(self):
        pay = paycheck_breakdown(1_000, 0.10, 0.05, 0.062, 0.0145, 0.05, 0.03)
        assert pay.net == pytest.approx(723.5)

    def test_retirement_deposit_includes_match(self):
        pay = paycheck_breakdown(1_000, 0.10, 0.05, 0.062, 0.0145, 0.05, 0.03)
        assert pay.retirement_deposit == pytest.approx(80)

    def test_no_rates_pays_gross(self):
        pay = paycheck_breakdown(2_500, 0, 0, 0, 0, 0, 0)
        assert pay.net == 2_500
        assert pay.retirement_deposit == 0


class TestEstimateTaxes:
    """Balance due estimate"""

    def test_balance_due(self):
        due = estimate_taxes(salary=50_000, itemized_deductions=10_000, federal_tax_rate=0.10, state_tax_rate=0.05)
        assert due == pytest.approx(6_000)

    def test_dependent_credit_and_withholding(self):
        due = estimate_taxes(
            salary=50_000,
            itemized_deductions=10_000,
            number_of_dependents=1,
            federal_tax_rate=0.10,
            state_tax_rate=0.05,
            federal_income_tax_withheld=4_000,
            state_income_tax_withheld=1_000,
        )
        assert due == pytest.approx(6_000 - DEPENDENT_CREDIT - 5_000)

    def test_refund_is_negative(self):
        due = estimate_taxes(salary=10_000, federal_tax_rate=0.1, state_tax_rate=0.0, federal_income_tax_withheld=3_000)
        assert due == pytest.approx(-2_000)

    def test_credit_cannot_make_tax_negative(self):
        due = estimate_taxes(salary=10_000, number_of_dependents=3, federal_tax_rate=0.1, state_tax_rate=0.0)
        assert due == 0.0

    def test_pretax_contributions_reduce_income(self):
        base = estimate_taxes(salary=60_000, federal_tax_rate=0.1, state_tax_rate=0.0)
        reduced = estimate_taxes(salary=60_000, retirement_contributions=5_000, federal_tax_rate=0.1, state_tax_rate=0.0)
        assert base - reduced == pytest.approx(500)
