from typing import Dict, Iterable, List, Optional

from loguru import logger

from config import Envelope, GrowthMode, UnresolvedEnvelopeReference
from constants import DAYS_PER_YEAR, MONTHS_PER_YEAR


def growth_factor(
    mode: GrowthMode,
    rate: float,
    elapsed_days: float,
    age_days: float = 0.0,
    days_of_usefulness: Optional[float] = None,
) -> float:
    """
    Multiplier applied to a balance after ``elapsed_days`` under ``mode``.

    Simple Interest and Depreciation (Days) are linear in time, so they are
    measured from the start of the envelope's growth history: ``age_days`` is
    how old that history already was before this step. Chained steps then
    multiply out to the same factor as a single step over the whole span.
    """
    if elapsed_days <= 0 or mode == GrowthMode.NONE:
        return 1.0
    years = elapsed_days / DAYS_PER_YEAR
    if mode == GrowthMode.APPRECIATION or mode == GrowthMode.YEARLY_COMPOUND:
        return (1.0 + rate) ** years
    if mode == GrowthMode.DEPRECIATION:
        return max(0.0, 1.0 - rate) ** years
    if mode == GrowthMode.DAILY_COMPOUND:
        return (1.0 + rate / DAYS_PER_YEAR) ** elapsed_days
    if mode == GrowthMode.MONTHLY_COMPOUND:
        return (1.0 + rate / MONTHS_PER_YEAR) ** (MONTHS_PER_YEAR * years)
    if mode == GrowthMode.SIMPLE_INTEREST:
        before = 1.0 + rate * age_days / DAYS_PER_YEAR
        after = 1.0 + rate * (age_days + elapsed_days) / DAYS_PER_YEAR
        return after / before if before > 0 else 0.0
    if mode == GrowthMode.DEPRECIATION_DAYS:
        if not days_of_usefulness or days_of_usefulness <= 0:
            raise ValueError("days_of_usefulness must be positive")
        before = max(0.0, 1.0 - age_days / days_of_usefulness)
        after = max(0.0, 1.0 - (age_days + elapsed_days) / days_of_usefulness)
        return after / before if before > 0 else 0.0
    raise ValueError(f"Unknown growth mode: {mode}")


class EnvelopeLedger:
    """
    Running balances for one simulation run.

    Growth is accrued lazily: each envelope remembers the day its balance was
    last brought up to date (its anchor) and compounds the whole gap in one
    multiplication when it is next touched or sampled. The day its growth
    history began (its origin) is kept for the linear growth modes.
    """

    def __init__(self, envelopes: Iterable[Envelope], start_day: int = 0):
        self._envelopes: Dict[str, Envelope] = {}
        self._balances: Dict[str, float] = {}
        self._anchors: Dict[str, int] = {}
        self._origins: Dict[str, int] = {}
        for env in envelopes:
            self._envelopes[env.name] = env
            self._balances[env.name] = float(env.initial_balance)
            self._anchors[env.name] = start_day
            self._origins[env.name] = start_day

    def _require(self, name: str) -> Envelope:
        try:
            return self._envelopes[name]
        except KeyError:
            raise UnresolvedEnvelopeReference(f"Unknown envelope '{name}'") from None

    @property
    def names(self) -> List[str]:
        return list(self._envelopes)

    def envelope(self, name: str) -> Envelope:
        return self._require(name)

    def balance(self, name: str) -> float:
        self._require(name)
        return self._balances[name]

    def anchor(self, name: str) -> int:
        self._require(name)
        return self._anchors[name]

    def apply_growth(self, name: str, elapsed_days: float) -> None:
        env = self._require(name)
        age = self._anchors[name] - self._origins[name]
        self._balances[name] *= growth_factor(
            env.growth_mode, env.rate, elapsed_days, age, env.days_of_usefulness
        )

    def accrue(self, name: str, day: int) -> None:
        """Bring one envelope's growth up to ``day`` and move its anchor there."""
        anchor = self.anchor(name)
        if day > anchor:
            self.apply_growth(name, day - anchor)
            self._anchors[name] = day

    def accrue_all(self, day: int) -> None:
        for name in self._envelopes:
            self.accrue(name, day)

    def credit(self, name: str, amount: float) -> None:
        self._require(name)
        self._balances[name] += amount

    def debit(self, name: str, amount: float) -> None:
        # Never clamps: a negative non-debt balance is a shortfall the caller reports.
        self._require(name)
        self._balances[name] -= amount

    def transfer(self, from_key: str, to_key: str, amount: float) -> None:
        self._require(from_key)
        self._require(to_key)
        self._balances[from_key] -= amount
        self._balances[to_key] += amount

    def declare(self, name: str, amount: float, day: int) -> None:
        """Overwrite a balance and restart its growth history at ``day``."""
        self._require(name)
        logger.debug(f"Declaring '{name}' = {amount:,.2f} on day {day} (was {self._balances[name]:,.2f})")
        self._balances[name] = float(amount)
        self._anchors[name] = day
        self._origins[name] = day

    def snapshot(self) -> Dict[str, float]:
        return dict(self._balances)

    def total(self) -> float:
        return sum(self._balances.values())
