"""
End-to-end tests for the day-stepped simulator.
"""
import pytest

from amortization import amortization_schedule
from config import ConfigurationError, InvalidLoanTerm, UnknownEventType, load_plan
from simulation import FinancialEventSimulator, SimulatorState, run_simulation

JOB_TAXES = {
    "federal_income_tax": 0,
    "state_income_tax": 0,
    "social_security_tax": 0,
    "medicare_tax": 0,
    "p_401k_contribution": 0,
}


def _by_date(samples):
    return {s.date: s for s in samples}


class TestNegativeBalances:
    """Shortfalls are reported, never clamped"""

    def test_cash_purchase_goes_negative(self, schema, make_event, make_plan, envelope):
        plan = make_plan([envelope()], [make_event(0, "purchase", {"start_time": 0, "money": 2000, "from_key": "Cash"})])
        samples = run_simulation(plan, schema, 0, 10, 5)
        assert [s.date for s in samples] == [0, 5, 10]
        for sample in samples:
            assert sample.parts["Cash"] == -2000
            assert sample.total_value == -2000
            assert sample.flagged
            assert sample.warnings[0].envelope == "Cash"
            assert sample.warnings[0].balance == -2000

    def test_debt_envelope_is_not_flagged(self, schema, make_event, make_plan, envelope):
        plan = make_plan(
            [envelope(balance=20000), envelope("Loan", category="Debt")],
            [
                make_event(
                    0,
                    "loan_amortization",
                    {"start_time": 0, "principal": 1000, "interest_rate": 0.05, "loan_term_years": 1,
                     "from_key": "Cash", "to_key": "Loan"},
                )
            ],
        )
        samples = run_simulation(plan, schema, 0, 30, 10)
        assert samples[0].parts["Loan"] == -1000
        assert not any(s.flagged for s in samples)


class TestDeterminism:
    """Same inputs, same outputs"""

    def test_repeated_runs_are_identical(self, schema, example_plan_document):
        plan = load_plan(example_plan_document)
        simulator = FinancialEventSimulator(plan, schema)
        first = simulator.run(0, 3650, 30)
        second = simulator.run(0, 3650, 30)
        assert [s.model_dump() for s in first] == [s.model_dump() for s in second]
        assert [s.model_dump() for s in run_simulation(plan, schema, 0, 3650, 30)] == [
            s.model_dump() for s in first
        ]

    def test_plan_is_not_mutated(self, schema, example_plan_document):
        plan = load_plan(example_plan_document)
        before = plan.model_dump()
        run_simulation(plan, schema, 0, 1000, 50)
        assert plan.model_dump() == before


class TestConservation:
    """Transfers move money without creating it"""

    def test_transfer_keeps_total(self, schema, make_event, make_plan, envelope):
        plan = make_plan(
            [envelope(balance=1000), envelope("Savings", category="Savings")],
            [
                make_event(
                    0,
                    "transfer_money",
                    {"start_time": 0, "frequency_days": 7, "amount": 35, "from_key": "Cash", "to_key": "Savings"},
                )
            ],
        )
        samples = run_simulation(plan, schema, 0, 200, 1)
        assert all(s.total_value == pytest.approx(1000) for s in samples)
        assert samples[-1].parts["Savings"] == pytest.approx(35 * 29)


class TestPaychecks:
    """Salary jobs and raises"""

    def _job(self, make_event, raise_day=None, **overrides):
        params = {"start_time": 0, "salary": 73000, "pay_period": 73, "p_401k_match": 0,
                  "to_key": "Cash", "p_401k_key": "401k", **JOB_TAXES, **overrides}
        updating = [(0, "get_a_raise", {"start_time": raise_day, "salary": 146000})] if raise_day is not None else []
        return make_event(0, "get_job", params, updating)

    def test_raise_switches_salary_without_blending(self, schema, make_event, make_plan, envelope):
        plan = make_plan([envelope(), envelope("401k", category="Retirement")], [self._job(make_event, 1095)])
        samples = _by_date(run_simulation(plan, schema, 0, 1100, 1))
        assert samples[1090].parts["Cash"] - samples[1089].parts["Cash"] == pytest.approx(1000)
        assert samples[1095].parts["Cash"] - samples[1094].parts["Cash"] == pytest.approx(2000)
        assert samples[1100].parts["Cash"] - samples[1099].parts["Cash"] == pytest.approx(2000)

    def test_withholding_and_401k(self, schema, make_event, make_plan, envelope):
        job = self._job(make_event, federal_income_tax=0.1, p_401k_contribution=0.05, p_401k_match=0.02)
        plan = make_plan([envelope(), envelope("401k", category="Retirement")], [job])
        samples = run_simulation(plan, schema, 0, 0, 1)
        assert samples[0].parts["Cash"] == pytest.approx(850)
        assert samples[0].parts["401k"] == pytest.approx(70)

    def test_bonus_goes_to_paycheck_envelope(self, schema, make_event, make_plan, envelope):
        job = make_event(
            0,
            "get_job",
            {"start_time": 0, "end_time": 0, "salary": 73000, "pay_period": 73, "p_401k_match": 0,
             "to_key": "Cash", "p_401k_key": "401k", **JOB_TAXES},
            [(0, "get_a_bonus", {"start_time": 50, "bonus": 5000})],
        )
        plan = make_plan([envelope(), envelope("401k", category="Retirement")], [job])
        samples = _by_date(run_simulation(plan, schema, 0, 60, 10))
        assert samples[40].parts["Cash"] == pytest.approx(1000)
        assert samples[50].parts["Cash"] == pytest.approx(6000)


class TestLoans:
    """Amortized purchases"""

    def test_loan_ends_at_zero(self, schema, make_event, make_plan, envelope):
        plan = make_plan(
            [envelope(), envelope("Loan", category="Debt")],
            [
                make_event(
                    0,
                    "loan_amortization",
                    {"start_time": 0, "principal": 12000, "interest_rate": 0.06, "loan_term_years": 1,
                     "from_key": "Cash", "to_key": "Loan"},
                )
            ],
        )
        final = run_simulation(plan, schema, 0, 400, 400)[-1]
        paid = sum(p.payment for p in amortization_schedule(12000, 0.06, 1, 0))
        assert final.parts["Loan"] == pytest.approx(0, abs=1e-6)
        assert final.parts["Cash"] == pytest.approx(12000 - paid)

    def test_house_purchase(self, schema, make_event, make_plan, envelope):
        plan = make_plan(
            [envelope(balance=100000), envelope("House", category="Assets"), envelope("Mortgage", category="Debt")],
            [
                make_event(
                    0,
                    "buy_house",
                    {"start_time": 10, "home_value": 300000, "downpayment": 60000, "loan_rate": 0.065,
                     "loan_term_years": 30, "from_key": "Cash", "to_key": "House", "mortgage_envelope": "Mortgage"},
                )
            ],
        )
        samples = _by_date(run_simulation(plan, schema, 0, 20, 10))
        assert samples[0].parts == {"Cash": 100000, "House": 0, "Mortgage": 0}
        assert samples[10].parts == {"Cash": 40000, "House": 300000, "Mortgage": -240000}
        assert samples[10].total_value == pytest.approx(100000)

    def test_all_cash_car_without_loan_term(self, schema, make_event, make_plan, envelope):
        plan = make_plan(
            [envelope(balance=30000), envelope("Car", category="Assets"), envelope("Car Loan", category="Debt")],
            [
                make_event(
                    0,
                    "buy_car",
                    {"start_time": 0, "car_value": 20000, "downpayment": 20000, "loan_rate": 0.05,
                     "loan_term_years": 0, "from_key": "Cash", "to_key": "Car", "car_loan_envelope": "Car Loan"},
                )
            ],
        )
        samples = run_simulation(plan, schema, 0, 60, 30)
        for sample in samples:
            assert sample.parts == {"Cash": 10000, "Car": 20000, "Car Loan": 0}

    def test_zero_principal_loan_has_no_installments(self, schema, make_event, make_plan, envelope):
        plan = make_plan(
            [envelope(balance=500), envelope("Loan", category="Debt")],
            [
                make_event(
                    0,
                    "loan_amortization",
                    {"start_time": 0, "principal": 0, "interest_rate": 0.06, "loan_term_years": 2,
                     "from_key": "Cash", "to_key": "Loan"},
                )
            ],
        )
        simulator = FinancialEventSimulator(plan, schema)
        assert len(simulator.build_timeline(800)) == 2
        final = simulator.run(0, 800, 400)[-1]
        assert final.parts == {"Cash": 500, "Loan": 0}

    def test_financed_loan_with_zero_term_is_rejected(self, schema, make_event, make_plan, envelope):
        plan = make_plan(
            [envelope(balance=5000), envelope("Loan", category="Debt")],
            [
                make_event(
                    0,
                    "loan_amortization",
                    {"start_time": 0, "principal": 3000, "interest_rate": 0.06, "loan_term_years": 0,
                     "from_key": "Cash", "to_key": "Loan"},
                )
            ],
        )
        with pytest.raises(InvalidLoanTerm):
            run_simulation(plan, schema, 0, 30, 10)

    def test_financed_car_with_zero_term_is_a_configuration_error(self, schema, make_event, make_plan, envelope):
        plan = make_plan(
            [envelope(balance=30000), envelope("Car", category="Assets"), envelope("Car Loan", category="Debt")],
            [
                make_event(
                    0,
                    "buy_car",
                    {"start_time": 0, "car_value": 25000, "downpayment": 5000, "loan_rate": 0.05,
                     "loan_term_years": 0, "from_key": "Cash", "to_key": "Car", "car_loan_envelope": "Car Loan"},
                )
            ],
        )
        with pytest.raises(ConfigurationError):
            run_simulation(plan, schema, 0, 30, 10)


class TestGrowthAndCorrections:
    """Envelope growth and declared balances"""

    def test_appreciation_sampled_after_a_year(self, schema, make_plan):
        plan = make_plan(
            [{"name": "Savings", "category": "Savings", "growth": "Appreciation", "rate": 0.1, "initial_balance": 1000}],
            [],
        )
        samples = _by_date(run_simulation(plan, schema, 0, 365, 365))
        assert samples[365].parts["Savings"] == pytest.approx(1100)

    def test_declare_accounts_overwrites(self, schema, make_event, make_plan, envelope):
        params = {"start_time": 5}
        for slot, (name, amount) in enumerate([("Cash", 250), ("Savings", 75), ("", 0), ("", 0), ("", 0)], start=1):
            params[f"envelope{slot}"] = name
            params[f"amount{slot}"] = amount
        plan = make_plan(
            [envelope(balance=1000), envelope("Savings", balance=10, category="Savings")],
            [make_event(0, "declare_accounts", params)],
        )
        samples = _by_date(run_simulation(plan, schema, 0, 10, 5))
        assert samples[0].parts == {"Cash": 1000, "Savings": 10}
        assert samples[5].parts == {"Cash": 250, "Savings": 75}

    def test_manual_correction(self, schema, make_event, make_plan, envelope):
        plan = make_plan(
            [envelope(balance=-40)],
            [make_event(0, "manual_correction", {"start_time": 3, "amount": 100, "to_key": "Cash"})],
        )
        samples = _by_date(run_simulation(plan, schema, 0, 3, 3))
        assert samples[0].flagged
        assert samples[3].parts["Cash"] == 100
        assert not samples[3].flagged


class TestRunContract:
    """Arguments, state and ranges"""

    def test_states(self, schema, make_plan, envelope):
        simulator = FinancialEventSimulator(make_plan([envelope()], []), schema)
        assert simulator.state == SimulatorState.IDLE
        simulator.run(0, 10, 5)
        assert simulator.state == SimulatorState.DONE

    def test_bad_interval(self, schema, make_plan, envelope):
        with pytest.raises(ValueError):
            run_simulation(make_plan([envelope()], []), schema, 0, 10, 0)

    def test_end_before_start(self, schema, make_plan, envelope):
        with pytest.raises(ValueError):
            run_simulation(make_plan([envelope()], []), schema, 10, 5, 1)

    def test_configuration_error_aborts_run(self, schema, make_event, make_plan, envelope):
        plan = make_plan([envelope()], [make_event(0, "win_lottery", {"start_time": 0})])
        simulator = FinancialEventSimulator(plan, schema)
        with pytest.raises(UnknownEventType):
            simulator.run(0, 10, 1)
        assert simulator.state == SimulatorState.IDLE

    def test_operations_before_start_are_applied_not_sampled(self, schema, make_event, make_plan, envelope):
        plan = make_plan([envelope()], [make_event(0, "inflow", {"start_time": 2, "amount": 500, "to_key": "Cash"})])
        samples = run_simulation(plan, schema, 10, 20, 5)
        assert [s.date for s in samples] == [10, 15, 20]
        assert samples[0].parts["Cash"] == 500

    def test_sample_on_end_day_when_aligned(self, schema, make_plan, envelope):
        samples = run_simulation(make_plan([envelope()], []), schema, 0, 12, 5)
        assert [s.date for s in samples] == [0, 5, 10]


class TestInflationAdjustment:
    """Present-value output"""

    def test_adjusted_plan_is_deflated(self, schema, make_plan, envelope):
        plan = make_plan([envelope(balance=1000)], [], inflation_rate=0.1, adjust_for_inflation=True, current_time_days=0)
        samples = _by_date(run_simulation(plan, schema, 0, 365, 365))
        assert samples[0].total_value == pytest.approx(1000)
        assert samples[365].total_value == pytest.approx(1000 / 1.1)
        assert samples[365].parts["Cash"] == pytest.approx(1000 / 1.1)

    def test_unadjusted_plan_is_nominal(self, schema, make_plan, envelope):
        plan = make_plan([envelope(balance=1000)], [], inflation_rate=0.1, adjust_for_inflation=False)
        samples = run_simulation(plan, schema, 0, 365, 365)
        assert samples[-1].total_value == 1000

    def test_day_zero_defaults_to_start_day(self, schema, make_plan, envelope):
        plan = make_plan([envelope(balance=1000)], [], inflation_rate=0.1, adjust_for_inflation=True)
        samples = run_simulation(plan, schema, 365, 730, 365)
        assert samples[0].total_value == pytest.approx(1000)
        assert samples[1].total_value == pytest.approx(1000 / 1.1)

    def test_shortfall_warnings_are_deflated(self, schema, make_plan, envelope):
        plan = make_plan([envelope(balance=-1100)], [], inflation_rate=0.1, adjust_for_inflation=True, current_time_days=0)
        samples = _by_date(run_simulation(plan, schema, 0, 365, 365))
        assert samples[365].warnings[0].balance == pytest.approx(-1000)
        assert samples[365].warnings[0].balance == pytest.approx(samples[365].parts["Cash"])
