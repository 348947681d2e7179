from enum import Enum
from typing import Dict, List, Set

from loguru import logger

from catalog import EventCatalog
from config import NegativeBalanceWarning, Plan, Schema, SimulationSample
from constants import DEFAULT_HORIZON_DAYS, DEFAULT_SAMPLE_INTERVAL_DAYS, SMALL_EPSILON
from handlers import apply_step
from inflation import deflate
from ledger import EnvelopeLedger
from scheduler import Operation, build_timeline, group_by_day


class SimulatorState(str, Enum):
    IDLE = "Idle"
    RUNNING = "Running"
    DONE = "Done"


class FinancialEventSimulator:
    """
    A day-stepped ledger simulator for a financial plan.

    Expands the plan's events into dated operations, walks the days from the
    earliest operation to ``end_day`` applying them to a fresh envelope ledger,
    and records a balance snapshot every ``sample_interval_days`` from
    ``start_day`` on.
    """

    def __init__(self, plan: Plan, schema: Schema):
        # Private copy; the caller's plan is never touched.
        self.plan = plan.model_copy(deep=True)
        self.catalog = EventCatalog(schema)
        self.state = SimulatorState.IDLE
        logger.info(
            f"Simulator initialized with {len(self.plan.envelopes)} envelopes and {len(self.plan.events)} events"
        )

    def build_timeline(self, end_day: int) -> List[Operation]:
        return build_timeline(self.plan, self.catalog, end_day)

    def _take_sample(self, ledger: EnvelopeLedger, day: int, warned: Set[str]) -> SimulationSample:
        parts = ledger.snapshot()
        warnings = []
        for name, balance in parts.items():
            envelope = ledger.envelope(name)
            if envelope.is_debt or balance >= -SMALL_EPSILON:
                continue
            warnings.append(
                NegativeBalanceWarning(envelope=name, category=envelope.category, balance=balance, day=day)
            )
            if name not in warned:
                warned.add(name)
                logger.warning(f"Envelope '{name}' ({envelope.category.value}) is negative on day {day}: {balance:,.2f}")
        return SimulationSample(date=day, total_value=sum(parts.values()), parts=parts, warnings=warnings)

    def run(
        self,
        start_day: int = 0,
        end_day: int = DEFAULT_HORIZON_DAYS,
        sample_interval_days: int = DEFAULT_SAMPLE_INTERVAL_DAYS,
    ) -> List[SimulationSample]:
        """
        Runs one simulation and returns raw (nominal) samples.

        Every call starts from a fresh ledger seeded with the envelopes' initial
        balances, so repeated calls on the same simulator are independent and
        produce identical output. Configuration errors abort before any sample
        is produced.
        """
        if sample_interval_days <= 0:
            raise ValueError(f"sample_interval_days must be positive, got {sample_interval_days}")
        if end_day < start_day:
            raise ValueError(f"end_day ({end_day}) is before start_day ({start_day})")

        operations = self.build_timeline(end_day)
        by_day: Dict[int, List[Operation]] = group_by_day(operations)
        walk_start = min(start_day, operations[0].day) if operations else start_day
        ledger = EnvelopeLedger(self.plan.envelopes, walk_start)

        logger.info(
            f"Running simulation from day {start_day} to {end_day} every {sample_interval_days} days "
            f"({len(operations)} operations)"
        )
        self.state = SimulatorState.RUNNING
        samples: List[SimulationSample] = []
        warned: Set[str] = set()
        try:
            for day in range(walk_start, end_day + 1):
                todays = by_day.get(day)
                sampling = day >= start_day and (day - start_day) % sample_interval_days == 0
                if not todays and not sampling:
                    continue
                ledger.accrue_all(day)
                if todays:
                    for op in todays:
                        apply_step(ledger, op.step, day)
                if sampling:
                    samples.append(self._take_sample(ledger, day, warned))
        except Exception:
            self.state = SimulatorState.IDLE
            raise

        self.state = SimulatorState.DONE
        logger.info(f"Simulation finished with {len(samples)} samples")
        return samples

    def present_value(self, samples: List[SimulationSample], start_day: int = 0) -> List[SimulationSample]:
        """Applies the plan's inflation setting to a raw run; a pass-through when it is off."""
        if not self.plan.adjust_for_inflation:
            return samples
        day_zero = self.plan.current_time_days if self.plan.current_time_days is not None else start_day
        return deflate(samples, self.plan.inflation_rate, day_zero)


def run_simulation(
    plan: Plan,
    schema: Schema,
    start_day: int = 0,
    end_day: int = DEFAULT_HORIZON_DAYS,
    sample_interval_days: int = DEFAULT_SAMPLE_INTERVAL_DAYS,
) -> List[SimulationSample]:
    """(plan, schema, start, end, interval) -> samples, deflated when the plan asks for it."""
    simulator = FinancialEventSimulator(plan, schema)
    raw = simulator.run(start_day, end_day, sample_interval_days)
    return simulator.present_value(raw, start_day)
