"""
Event handlers: how each event type turns its effective parameters into ledger steps.

Every supported event type is a member of ``EventKind`` and owns exactly one
``EventHandler`` in ``HANDLERS``. A handler never touches a ledger itself; it
describes the steps an occurrence performs (and any follow-up emissions such as
loan installments) and the scheduler places them on the timeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from loguru import logger

from config import (
    ConfigurationError,
    InvalidRecurrence,
    MissingParameter,
    ParameterValue,
    UnknownEventType,
)
from constants import ACTION_PERIOD_DAYS, DAYS_PER_YEAR, WEEKS_PER_YEAR
from amortization import amortization_schedule
from ledger import EnvelopeLedger
from tax import estimate_taxes, paycheck_breakdown

Params = Dict[str, ParameterValue]

DECLARE_SLOTS: int = 5


class EventKind(str, Enum):
    PURCHASE = "purchase"
    GIFT = "gift"
    INFLOW = "inflow"
    OUTFLOW = "outflow"
    TRANSFER_MONEY = "transfer_money"
    REOCCURING_INCOME = "reoccuring_income"
    REOCCURING_INCOME_CHANGING_PARAMETERS = "reoccuring_income_changing_parameters"
    REOCCURING_SPENDING = "reoccuring_spending"
    REOCCURING_SPENDING_INFLATION_ADJUSTED = "reoccuring_spending_inflation_adjusted"
    MONTHLY_BUDGETING = "monthly_budgeting"
    BUY_GROCERIES = "buy_groceries"
    HAVE_KID = "have_kid"
    MARRIAGE = "marriage"
    DIVORCE = "divorce"
    PASS_AWAY = "pass_away"
    GET_JOB = "get_job"
    GET_WAGE_JOB = "get_wage_job"
    START_BUSINESS = "start_business"
    RETIREMENT = "retirement"
    RECEIVE_GOVERNMENT_AID = "receive_government_aid"
    BUY_CAR = "buy_car"
    BUY_HOUSE = "buy_house"
    LOAN_AMORTIZATION = "loan_amortization"
    BUY_HEALTH_INSURANCE = "buy_health_insurance"
    BUY_LIFE_INSURANCE = "buy_life_insurance"
    BUY_HOME_INSURANCE = "buy_home_insurance"
    ROTH_IRA_CONTRIBUTION = "roth_ira_contribution"
    INVEST_MONEY = "invest_money"
    HIGH_YIELD_SAVINGS_ACCOUNT = "high_yield_savings_account"
    PAY_TAXES = "pay_taxes"
    TAX_PAYMENT_ESTIMATED = "tax_payment_estimated"
    DECLARE_ACCOUNTS = "declare_accounts"
    MANUAL_CORRECTION = "manual_correction"


class StepAction(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    TRANSFER = "transfer"
    DECLARE = "declare"
    CLOSE_ALL = "close_all"


@dataclass(frozen=True)
class LedgerStep:
    action: StepAction
    key: str
    amount: float
    to_key: Optional[str] = None
    note: str = ""


@dataclass(frozen=True)
class Emission:
    """Steps to place on the timeline from ``start``, repeating every ``period`` days up to ``end``."""

    start: float
    steps: Tuple[LedgerStep, ...]
    period: Optional[float] = None
    end: Optional[float] = None


@dataclass(frozen=True)
class UpdatingAction:
    """An updating event that emits its own operations instead of overriding parameters."""

    required: Tuple[str, ...]
    envelope_params: Tuple[str, ...]
    emit: Callable[[Params, Params, float], List[Emission]]
    blank_envelopes_allowed: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class EventHandler:
    kind: EventKind
    required: Tuple[str, ...]
    envelope_params: Tuple[str, ...]
    # Called with (params) or, for dated handlers, (params, day).
    occurrence: Callable[..., List[LedgerStep]]
    period: Optional[Callable[[Params], Optional[float]]] = None
    follow_up: Optional[Callable[[Params], List[Emission]]] = None
    # Absolute last day of the occurrence window; defaults to the end_time parameter.
    window_end: Optional[Callable[[Params], float]] = None
    dated: bool = False
    # updating type -> {updating parameter: parent parameter}
    overrides: Dict[str, Dict[str, str]] = field(default_factory=dict)
    actions: Dict[str, UpdatingAction] = field(default_factory=dict)
    blank_envelopes_allowed: FrozenSet[str] = frozenset()

    def required_for_update(self, updating_type: str) -> Tuple[str, ...]:
        if updating_type in self.actions:
            return self.actions[updating_type].required
        return tuple(self.overrides.get(updating_type, {}))

    def apply_override(self, params: Params, updating_type: str, update: Params) -> Params:
        """Parent parameters with one override updating event laid on top."""
        merged = dict(params)
        renames = self.overrides.get(updating_type)
        if renames is None:
            merged.update({k: v for k, v in update.items() if k != "start_time"})
        else:
            for source, target in renames.items():
                merged[target] = update[source]
        return merged

    def steps_for(self, params: Params, day: int) -> List[LedgerStep]:
        if self.dated:
            return self.occurrence(params, day)
        return self.occurrence(params)


# ---------------------------------------------------------------------------
# Parameter access
# ---------------------------------------------------------------------------


def num(params: Params, key: str) -> float:
    try:
        value = params[key]
    except KeyError:
        raise MissingParameter(f"Missing parameter '{key}'") from None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Parameter '{key}' must be numeric, got {value!r}") from None


def optional_num(params: Params, key: str) -> Optional[float]:
    if params.get(key) in (None, ""):
        return None
    return num(params, key)


def key(params: Params, name: str) -> str:
    try:
        return str(params[name])
    except KeyError:
        raise MissingParameter(f"Missing parameter '{name}'") from None


def _credit(envelope: str, amount: float, note: str = "") -> LedgerStep:
    return LedgerStep(StepAction.CREDIT, envelope, amount, note=note)


def _debit(envelope: str, amount: float, note: str = "") -> LedgerStep:
    return LedgerStep(StepAction.DEBIT, envelope, amount, note=note)


def _transfer(from_key: str, to_key: str, amount: float, note: str = "") -> LedgerStep:
    return LedgerStep(StepAction.TRANSFER, from_key, amount, to_key=to_key, note=note)


def apply_step(ledger: EnvelopeLedger, step: LedgerStep, day: int) -> None:
    if step.note:
        logger.debug(f"Day {day}: {step.note} ({step.action.value} {step.amount:,.2f} on '{step.key}')")
    if step.action == StepAction.CREDIT:
        ledger.credit(step.key, step.amount)
    elif step.action == StepAction.DEBIT:
        ledger.debit(step.key, step.amount)
    elif step.action == StepAction.TRANSFER:
        ledger.transfer(step.key, step.to_key, step.amount)
    elif step.action == StepAction.DECLARE:
        ledger.declare(step.key, step.amount, day)
    elif step.action == StepAction.CLOSE_ALL:
        for name in ledger.names:
            ledger.declare(name, 0.0, day)
    else:
        raise ValueError(f"Unknown ledger step action: {step.action}")


# ---------------------------------------------------------------------------
# Periods and windows
# ---------------------------------------------------------------------------


def _frequency(params: Params) -> float:
    return num(params, "frequency_days")


def _optional_frequency(params: Params) -> Optional[float]:
    return optional_num(params, "frequency_days")


def _monthly(params: Params) -> float:
    return ACTION_PERIOD_DAYS


def _pay_period_days(params: Params) -> float:
    periods = num(params, "pay_period")
    if periods <= 0:
        raise InvalidRecurrence(f"pay_period must be positive, got {periods}")
    return DAYS_PER_YEAR / periods


def _duration_window(params: Params) -> float:
    # end_time counts days after start_time
    return num(params, "start_time") + num(params, "end_time")


def _term_window(params: Params) -> float:
    return num(params, "start_time") + num(params, "term_years") * DAYS_PER_YEAR


def _inflation_factor(params: Params, day: int) -> float:
    years = (day - num(params, "start_time")) / DAYS_PER_YEAR
    return (1.0 + num(params, "inflation_rate")) ** years


# ---------------------------------------------------------------------------
# Occurrence functions
# ---------------------------------------------------------------------------


def _purchase(p: Params) -> List[LedgerStep]:
    return [_debit(key(p, "from_key"), num(p, "money"), "purchase")]


def _gift(p: Params) -> List[LedgerStep]:
    return [_credit(key(p, "to_key"), num(p, "money"), "gift")]


def _inflow(p: Params) -> List[LedgerStep]:
    return [_credit(key(p, "to_key"), num(p, "amount"))]


def _outflow(p: Params) -> List[LedgerStep]:
    return [_debit(key(p, "from_key"), num(p, "amount"))]


def _move(p: Params) -> List[LedgerStep]:
    return [_transfer(key(p, "from_key"), key(p, "to_key"), num(p, "amount"))]


def _inflated_outflow(p: Params, day: int) -> List[LedgerStep]:
    amount = num(p, "amount") * _inflation_factor(p, day)
    return [_debit(key(p, "from_key"), amount, "inflation-adjusted spending")]


_BUDGET_RESERVED = frozenset({"start_time", "end_time", "frequency_days", "from_key", "inflation_rate"})


def _monthly_budget(p: Params, day: int) -> List[LedgerStep]:
    """One debit per positive numeric budget line, grown with inflation since start_time."""
    factor = _inflation_factor(p, day)
    source = key(p, "from_key")
    return [
        _debit(source, float(value) * factor, f"budget: {line}")
        for line, value in p.items()
        if line not in _BUDGET_RESERVED and isinstance(value, (int, float)) and value > 0
    ]


def _groceries(p: Params) -> List[LedgerStep]:
    return [_debit(key(p, "from_key"), num(p, "monthly_amount"), "groceries")]


def _have_kid(p: Params) -> List[LedgerStep]:
    return [_debit(key(p, "from_key"), num(p, "initial_costs"), "child initial costs")]


def _marriage(p: Params) -> List[LedgerStep]:
    return [_debit(key(p, "from_key"), num(p, "cost"), "wedding")]


def _divorce(p: Params) -> List[LedgerStep]:
    source = key(p, "from_key")
    return [
        _debit(source, num(p, "settlement_amount"), "divorce settlement"),
        _debit(source, num(p, "attorney_fees"), "attorney fees"),
    ]


def _estate_settlement(p: Params) -> List[Emission]:
    # Balances still count on the day of death and are zeroed the day after.
    close = LedgerStep(StepAction.CLOSE_ALL, "", 0.0, note="estate settled")
    return [Emission(start=num(p, "start_time") + 1, steps=(close,))]


def _premium(p: Params) -> List[LedgerStep]:
    return [_debit(key(p, "from_key"), num(p, "monthly_premium"), "insurance premium")]


def _aid(p: Params) -> List[LedgerStep]:
    return [_credit(key(p, "to_key"), num(p, "amount"), "government aid")]


def _business_start(p: Params) -> List[LedgerStep]:
    return [_debit(key(p, "from_key"), num(p, "initial_investment"), "business investment")]


def _paycheck_steps(p: Params, gross: float, match_param: str) -> List[LedgerStep]:
    pay = paycheck_breakdown(
        gross,
        federal_rate=num(p, "federal_income_tax"),
        state_rate=num(p, "state_income_tax"),
        social_security_rate=num(p, "social_security_tax"),
        medicare_rate=num(p, "medicare_tax"),
        contribution_rate=num(p, "p_401k_contribution"),
        match_rate=num(p, match_param),
    )
    steps = [_credit(key(p, "to_key"), pay.net, "net pay")]
    if pay.retirement_deposit != 0:
        steps.append(_credit(key(p, "p_401k_key"), pay.retirement_deposit, "401k deposit"))
    return steps


def _salary(p: Params) -> List[LedgerStep]:
    gross = num(p, "salary") / num(p, "pay_period")
    return _paycheck_steps(p, gross, "p_401k_match")


def _wage(p: Params) -> List[LedgerStep]:
    gross = num(p, "hourly_wage") * num(p, "hours_per_week") * WEEKS_PER_YEAR / num(p, "pay_period")
    return _paycheck_steps(p, gross, "employer_match")


def _pay_taxes(p: Params) -> List[LedgerStep]:
    return [_debit(key(p, "from_key"), num(p, "total_tax_due"), "tax payment")]


def _estimated_taxes(p: Params) -> List[LedgerStep]:
    due = estimate_taxes(
        salary=num(p, "salary"),
        capital_gains=num(p, "capital_gains"),
        retirement_contributions=num(p, "retirement_contributions"),
        itemized_deductions=num(p, "itemized_deductions"),
        number_of_dependents=num(p, "number_of_dependents"),
        federal_tax_rate=num(p, "federal_tax_rate"),
        state_tax_rate=num(p, "state_tax_rate"),
        federal_income_tax_withheld=num(p, "federal_income_tax_withheld"),
        state_income_tax_withheld=num(p, "state_income_tax_withheld"),
    )
    if due >= 0:
        return [_debit(key(p, "from_key"), due, "estimated tax")]
    return [_credit(key(p, "from_key"), -due, "estimated tax refund")]


def _declare_accounts(p: Params) -> List[LedgerStep]:
    steps = []
    for slot in range(1, DECLARE_SLOTS + 1):
        envelope = key(p, f"envelope{slot}").strip()
        if envelope:
            steps.append(LedgerStep(StepAction.DECLARE, envelope, num(p, f"amount{slot}")))
    return steps


def _manual_correction(p: Params) -> List[LedgerStep]:
    return [LedgerStep(StepAction.DECLARE, key(p, "to_key"), num(p, "amount"))]


# ---------------------------------------------------------------------------
# Loans
# ---------------------------------------------------------------------------


def _origination(p: Params, value_param: str, loan_param: str) -> List[LedgerStep]:
    value = num(p, value_param)
    downpayment = num(p, "downpayment")
    return [
        _debit(key(p, "from_key"), downpayment, "downpayment"),
        _credit(key(p, "to_key"), value, "asset purchase"),
        _debit(key(p, loan_param), value - downpayment, "loan origination"),
    ]


def _installments(
    p: Params, principal: float, rate_param: str, pay_from: str, loan_key: str
) -> List[Emission]:
    schedule = amortization_schedule(
        principal, num(p, rate_param), num(p, "loan_term_years"), num(p, "start_time")
    )
    return [
        Emission(
            start=payment.day,
            steps=(
                _debit(pay_from, payment.payment, f"loan payment {payment.number}"),
                _credit(loan_key, payment.principal, f"principal {payment.number}"),
            ),
        )
        for payment in schedule
    ]


def _car_payments(p: Params) -> List[Emission]:
    loan = num(p, "car_value") - num(p, "downpayment")
    return _installments(p, loan, "loan_rate", key(p, "from_key"), key(p, "car_loan_envelope"))


def _house_payments(p: Params) -> List[Emission]:
    loan = num(p, "home_value") - num(p, "downpayment")
    return _installments(p, loan, "loan_rate", key(p, "from_key"), key(p, "mortgage_envelope"))


def _loan_origination(p: Params) -> List[LedgerStep]:
    principal = num(p, "principal")
    return [
        _credit(key(p, "from_key"), principal, "loan proceeds"),
        _debit(key(p, "to_key"), principal, "loan origination"),
    ]


def _loan_payments(p: Params) -> List[Emission]:
    return _installments(p, num(p, "principal"), "interest_rate", key(p, "from_key"), key(p, "to_key"))


# ---------------------------------------------------------------------------
# Updating actions
# ---------------------------------------------------------------------------


def _once(start: float, *steps: LedgerStep) -> Emission:
    return Emission(start=start, steps=steps)


def _bonus(parent: Params, upd: Params, start: float) -> List[Emission]:
    return [_once(start, _credit(key(parent, "to_key"), num(upd, "bonus"), "bonus"))]


def _tax_refund(parent: Params, upd: Params, start: float) -> List[Emission]:
    return [_once(start, _credit(key(upd, "to_key"), num(upd, "amount"), "tax refund"))]


def _childcare(parent: Params, upd: Params, start: float) -> List[Emission]:
    return [
        Emission(
            start=start,
            steps=(_debit(key(upd, "from_key"), num(upd, "monthly_cost"), "childcare"),),
            period=ACTION_PERIOD_DAYS,
            end=start + num(upd, "end_time"),
        )
    ]


def _college_fund(parent: Params, upd: Params, start: float) -> List[Emission]:
    source, fund = key(upd, "from_key"), key(upd, "to_key")
    return [
        _once(start, _transfer(source, fund, num(upd, "initial_contribution"), "college fund deposit")),
        Emission(
            start=start,
            steps=(_transfer(source, fund, num(upd, "monthly_contribution"), "college fund contribution"),),
            period=ACTION_PERIOD_DAYS,
            end=start + num(upd, "end_time"),
        ),
    ]


def _business_income(parent: Params, upd: Params, start: float) -> List[Emission]:
    return [
        Emission(
            start=start,
            steps=(_credit(key(upd, "to_key"), num(parent, "monthly_income"), "business income"),),
            period=ACTION_PERIOD_DAYS,
            end=optional_num(upd, "end_time"),
        )
    ]


def _business_loss(parent: Params, upd: Params, start: float) -> List[Emission]:
    return [_once(start, _debit(key(upd, "from_key"), num(upd, "loss_amount"), "business loss"))]


def _medical_expense(parent: Params, upd: Params, start: float) -> List[Emission]:
    """Deductible first, then the uncovered share of whatever the deductible did not absorb."""
    total = num(upd, "total_cost")
    deductible = optional_num(upd, "deductible")
    deductible = num(parent, "deductible") if deductible is None else deductible
    coverage = optional_num(upd, "insurance_coverage")
    coverage = num(parent, "coverage_percentage") if coverage is None else coverage

    paid_deductible = min(max(deductible, 0.0), total)
    out_of_pocket = (total - paid_deductible) * (1.0 - coverage)
    source = key(upd, "from_key")
    steps = []
    if paid_deductible > 0:
        steps.append(_debit(source, paid_deductible, "medical deductible"))
    if out_of_pocket > 0:
        steps.append(_debit(source, out_of_pocket, "medical out-of-pocket"))
    return [_once(start, *steps)] if steps else []


def _home_damage(parent: Params, upd: Params, start: float) -> List[Emission]:
    coverage = optional_num(upd, "insurance_coverage")
    coverage = num(parent, "coverage_percentage") if coverage is None else coverage
    source = key(parent, "from_key")
    payee = str(upd.get("to_key", "")).strip() or source
    payout = num(upd, "damage_cost") * coverage
    steps = [_debit(source, num(parent, "deductible"), "insurance deductible")]
    if payout > 0:
        steps.append(_credit(payee, payout, "insurance payout"))
    return [_once(start, *steps)]


def _dividends(parent: Params, upd: Params, start: float) -> List[Emission]:
    return [
        Emission(
            start=start,
            steps=(_credit(key(parent, "to_key"), num(upd, "amount"), "dividend"),),
            period=num(upd, "frequency_days"),
            end=optional_num(upd, "end_time"),
        )
    ]


def _contributions(parent: Params, upd: Params, start: float) -> List[Emission]:
    return [
        Emission(
            start=start,
            steps=(_transfer(key(parent, "from_key"), key(parent, "to_key"), num(upd, "amount"), "contribution"),),
            period=num(upd, "frequency_days"),
            end=optional_num(upd, "end_time"),
        )
    ]


_DAMAGE = UpdatingAction(("damage_cost",), ("to_key",), _home_damage, blank_envelopes_allowed=frozenset({"to_key"}))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_JOB_TAXES = (
    "federal_income_tax",
    "state_income_tax",
    "social_security_tax",
    "medicare_tax",
    "p_401k_contribution",
)
_RECURRING = ("start_time", "frequency_days")
_AMOUNT_UPDATE = {"update_amount": {"amount": "amount"}}

HANDLERS: Dict[EventKind, EventHandler] = {
    h.kind: h
    for h in (
        EventHandler(EventKind.PURCHASE, ("start_time", "money", "from_key"), ("from_key",), _purchase),
        EventHandler(EventKind.GIFT, ("start_time", "money", "to_key"), ("to_key",), _gift),
        EventHandler(EventKind.INFLOW, ("start_time", "amount", "to_key"), ("to_key",), _inflow),
        EventHandler(EventKind.OUTFLOW, ("start_time", "amount", "from_key"), ("from_key",), _outflow),
        EventHandler(
            EventKind.TRANSFER_MONEY,
            ("start_time", "amount", "from_key", "to_key"),
            ("from_key", "to_key"),
            _move,
            period=_optional_frequency,
        ),
        EventHandler(
            EventKind.REOCCURING_INCOME,
            _RECURRING + ("amount", "to_key"),
            ("to_key",),
            _inflow,
            period=_frequency,
            overrides=_AMOUNT_UPDATE,
        ),
        EventHandler(
            EventKind.REOCCURING_INCOME_CHANGING_PARAMETERS,
            _RECURRING + ("amount", "to_key"),
            ("to_key",),
            _inflow,
            period=_frequency,
            overrides=_AMOUNT_UPDATE,
        ),
        EventHandler(
            EventKind.REOCCURING_SPENDING,
            _RECURRING + ("amount", "from_key"),
            ("from_key",),
            _outflow,
            period=_frequency,
            overrides=_AMOUNT_UPDATE,
        ),
        EventHandler(
            EventKind.REOCCURING_SPENDING_INFLATION_ADJUSTED,
            _RECURRING + ("amount", "from_key"),
            ("from_key",),
            _inflated_outflow,
            period=_frequency,
            dated=True,
        ),
        EventHandler(
            EventKind.MONTHLY_BUDGETING,
            _RECURRING + ("from_key",),
            ("from_key",),
            _monthly_budget,
            period=_frequency,
            dated=True,
        ),
        EventHandler(
            EventKind.BUY_GROCERIES,
            ("start_time", "end_time", "monthly_amount", "from_key"),
            ("from_key",),
            _groceries,
            period=_monthly,
            window_end=_duration_window,
        ),
        EventHandler(
            EventKind.HAVE_KID,
            ("start_time", "initial_costs", "from_key"),
            ("from_key",),
            _have_kid,
            actions={
                "childcare_costs": UpdatingAction(
                    ("monthly_cost", "end_time", "from_key"), ("from_key",), _childcare
                ),
                "college_fund": UpdatingAction(
                    ("initial_contribution", "monthly_contribution", "end_time", "from_key", "to_key"),
                    ("from_key", "to_key"),
                    _college_fund,
                ),
            },
        ),
        EventHandler(EventKind.MARRIAGE, ("start_time", "cost", "from_key"), ("from_key",), _marriage),
        EventHandler(
            EventKind.DIVORCE,
            ("start_time", "settlement_amount", "attorney_fees", "from_key"),
            ("from_key",),
            _divorce,
        ),
        EventHandler(EventKind.PASS_AWAY, ("start_time",), (), lambda p: [], follow_up=_estate_settlement),
        EventHandler(
            EventKind.GET_JOB,
            ("start_time", "salary", "pay_period", "p_401k_match", "to_key", "p_401k_key") + _JOB_TAXES,
            ("to_key", "p_401k_key"),
            _salary,
            period=_pay_period_days,
            overrides={
                "get_a_raise": {"salary": "salary"},
                "change_401k_contribution": {"p_401k_contribution": "p_401k_contribution"},
            },
            actions={"get_a_bonus": UpdatingAction(("bonus",), (), _bonus)},
        ),
        EventHandler(
            EventKind.GET_WAGE_JOB,
            ("start_time", "hourly_wage", "hours_per_week", "pay_period", "employer_match", "to_key", "p_401k_key")
            + _JOB_TAXES,
            ("to_key", "p_401k_key"),
            _wage,
            period=_pay_period_days,
            overrides={
                "get_a_raise": {"new_hourly_wage": "hourly_wage"},
                "change_hours": {"new_hours": "hours_per_week"},
                "change_401k_contribution": {"p_401k_contribution": "p_401k_contribution"},
                "change_employer_match": {"new_match_rate": "employer_match"},
            },
        ),
        EventHandler(
            EventKind.START_BUSINESS,
            ("start_time", "initial_investment", "monthly_income", "from_key"),
            ("from_key",),
            _business_start,
            actions={
                "business_income": UpdatingAction(("to_key",), ("to_key",), _business_income),
                "business_loss": UpdatingAction(("loss_amount", "from_key"), ("from_key",), _business_loss),
            },
        ),
        EventHandler(
            EventKind.RETIREMENT,
            _RECURRING + ("amount", "from_key", "to_key"),
            ("from_key", "to_key"),
            _move,
            period=_frequency,
            overrides=_AMOUNT_UPDATE,
        ),
        EventHandler(
            EventKind.RECEIVE_GOVERNMENT_AID,
            _RECURRING + ("end_time", "amount", "to_key"),
            ("to_key",),
            _aid,
            period=_frequency,
            window_end=_duration_window,
        ),
        EventHandler(
            EventKind.BUY_CAR,
            ("start_time", "car_value", "downpayment", "loan_rate", "loan_term_years",
             "from_key", "to_key", "car_loan_envelope"),
            ("from_key", "to_key", "car_loan_envelope"),
            lambda p: _origination(p, "car_value", "car_loan_envelope"),
            follow_up=_car_payments,
        ),
        EventHandler(
            EventKind.BUY_HOUSE,
            ("start_time", "home_value", "downpayment", "loan_rate", "loan_term_years",
             "from_key", "to_key", "mortgage_envelope"),
            ("from_key", "to_key", "mortgage_envelope"),
            lambda p: _origination(p, "home_value", "mortgage_envelope"),
            follow_up=_house_payments,
        ),
        EventHandler(
            EventKind.LOAN_AMORTIZATION,
            ("start_time", "principal", "interest_rate", "loan_term_years", "from_key", "to_key"),
            ("from_key", "to_key"),
            _loan_origination,
            follow_up=_loan_payments,
        ),
        EventHandler(
            EventKind.BUY_HEALTH_INSURANCE,
            ("start_time", "monthly_premium", "deductible", "coverage_percentage", "from_key"),
            ("from_key",),
            _premium,
            period=_monthly,
            actions={
                "medical_expense": UpdatingAction(("total_cost", "from_key"), ("from_key",), _medical_expense),
            },
        ),
        EventHandler(
            EventKind.BUY_LIFE_INSURANCE,
            ("start_time", "monthly_premium", "term_years", "from_key"),
            ("from_key",),
            _premium,
            period=_monthly,
            window_end=_term_window,
            overrides={"increase_coverage": {"new_monthly_premium": "monthly_premium"}},
        ),
        EventHandler(
            EventKind.BUY_HOME_INSURANCE,
            ("start_time", "monthly_premium", "deductible", "coverage_percentage", "from_key"),
            ("from_key",),
            _premium,
            period=_monthly,
            actions={"tornado_damage": _DAMAGE, "house_fire": _DAMAGE, "flood_damage": _DAMAGE},
        ),
        EventHandler(
            EventKind.ROTH_IRA_CONTRIBUTION,
            _RECURRING + ("amount", "from_key", "to_key"),
            ("from_key", "to_key"),
            _move,
            period=_frequency,
            overrides=_AMOUNT_UPDATE,
        ),
        EventHandler(
            EventKind.INVEST_MONEY,
            ("start_time", "amount", "from_key", "to_key"),
            ("from_key", "to_key"),
            _move,
            actions={
                "Reoccuring Dividend Payout": UpdatingAction(("amount", "frequency_days"), (), _dividends),
                "Reoccuring Contribution": UpdatingAction(("amount", "frequency_days"), (), _contributions),
            },
        ),
        EventHandler(
            EventKind.HIGH_YIELD_SAVINGS_ACCOUNT,
            ("start_time", "amount", "from_key", "to_key"),
            ("from_key", "to_key"),
            _move,
        ),
        EventHandler(
            EventKind.PAY_TAXES,
            ("start_time", "total_tax_due", "from_key"),
            ("from_key",),
            _pay_taxes,
            actions={"receive_tax_refund": UpdatingAction(("amount", "to_key"), ("to_key",), _tax_refund)},
        ),
        EventHandler(
            EventKind.TAX_PAYMENT_ESTIMATED,
            ("start_time", "from_key", "salary", "capital_gains", "retirement_contributions",
             "itemized_deductions", "number_of_dependents", "federal_tax_rate", "state_tax_rate",
             "federal_income_tax_withheld", "state_income_tax_withheld"),
            ("from_key",),
            _estimated_taxes,
        ),
        EventHandler(
            EventKind.DECLARE_ACCOUNTS,
            ("start_time",)
            + tuple(f"{prefix}{slot}" for slot in range(1, DECLARE_SLOTS + 1) for prefix in ("envelope", "amount")),
            tuple(f"envelope{slot}" for slot in range(1, DECLARE_SLOTS + 1)),
            _declare_accounts,
            blank_envelopes_allowed=frozenset(f"envelope{slot}" for slot in range(1, DECLARE_SLOTS + 1)),
        ),
        EventHandler(
            EventKind.MANUAL_CORRECTION, ("start_time", "amount", "to_key"), ("to_key",), _manual_correction
        ),
    )
}


def handler_for(event_type: str) -> EventHandler:
    try:
        return HANDLERS[EventKind(event_type)]
    except ValueError:
        raise UnknownEventType(f"No handler for event type '{event_type}'") from None
