import itertools
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from loguru import logger

from catalog import EventCatalog
from config import EventInstance, InvalidRecurrence, Plan
from constants import DAY_EPSILON
from handlers import Emission, EventHandler, LedgerStep, Params, handler_for, num


@dataclass(frozen=True, order=True)
class Operation:
    """One ledger step pinned to a day. Ordering is (day, plan position, emission order)."""

    day: int
    sequence: int
    step_index: int
    event_id: int = field(compare=False)
    event_type: str = field(compare=False)
    step: LedgerStep = field(compare=False)


def to_day(t: float) -> int:
    """First whole day at or after time ``t``."""
    return int(math.ceil(t - DAY_EPSILON))


def occurrence_days(start: float, period: Optional[float], end: float) -> List[int]:
    """
    Days on which an event fires inside the closed window [start, end].

    A missing period means a one-time event. Occurrences are generated from the
    raw (possibly fractional) times start + i * period, so a 365/26-day pay
    cycle does not drift.
    """
    if period is None:
        return [to_day(start)] if start <= end + DAY_EPSILON else []
    if period <= 0:
        raise InvalidRecurrence(f"Recurrence period must be positive, got {period}")
    days: List[int] = []
    for i in itertools.count():
        t = start + i * period
        if t > end + DAY_EPSILON:
            break
        days.append(to_day(t))
    return days


def _end_time(params: Params, handler: EventHandler, horizon_end: float) -> float:
    if handler.window_end is not None:
        return min(handler.window_end(params), horizon_end)
    value = params.get("end_time")
    if value is None or value == "":
        return horizon_end
    return min(num(params, "end_time"), horizon_end)


def _with_inflation(params: Params, inflation_rate: float) -> Params:
    """Events without their own inflation_rate grow with the plan's rate."""
    if params.get("inflation_rate") in (None, ""):
        return {**params, "inflation_rate": inflation_rate}
    return params


class ParameterTimeline:
    """Effective parameters of one event over time, with override updating events applied in order."""

    def __init__(self, base: Params, handler: EventHandler, overrides: List[Tuple[float, int, str, Params]]):
        self._segments: List[Tuple[float, Params]] = []
        current = dict(base)
        for start, _upd_id, upd_type, upd_params in sorted(overrides, key=lambda o: (o[0], o[1])):
            current = handler.apply_override(current, upd_type, upd_params)
            self._segments.append((start, current))
        self._base = dict(base)

    def at(self, day: float) -> Params:
        params = self._base
        for start, segment in self._segments:
            if start <= day + DAY_EPSILON:
                params = segment
            else:
                break
        return params


def _expand_emission(emission: Emission, horizon_end: float) -> Iterator[Tuple[int, LedgerStep]]:
    end = horizon_end if emission.end is None else min(emission.end, horizon_end)
    for day in occurrence_days(emission.start, emission.period, end):
        for step in emission.steps:
            yield day, step


def expand_event(
    instance: EventInstance, sequence: int, horizon_end: float, inflation_rate: float = 0.0
) -> List[Operation]:
    handler = handler_for(instance.type)
    base = _with_inflation(instance.parameter_map(), inflation_rate)
    start = num(base, "start_time")

    overrides: List[Tuple[float, int, str, Params]] = []
    actions: List[Tuple[float, int, str, Params]] = []
    for upd in instance.updating_events:
        entry = (upd.effective_start, upd.id, upd.type, upd.parameter_map())
        (actions if upd.type in handler.actions else overrides).append(entry)
    timeline = ParameterTimeline(base, handler, overrides)

    counter = itertools.count()
    operations: List[Operation] = []

    def emit(day: int, step: LedgerStep) -> None:
        if day <= horizon_end:
            operations.append(Operation(day, sequence, next(counter), instance.id, instance.type, step))

    period = handler.period(base) if handler.period is not None else None
    for day in occurrence_days(start, period, _end_time(base, handler, horizon_end)):
        for step in handler.steps_for(timeline.at(day), day):
            emit(day, step)

    if handler.follow_up is not None:
        for emission in handler.follow_up(timeline.at(to_day(start))):
            for day, step in _expand_emission(emission, horizon_end):
                emit(day, step)

    for upd_start, _upd_id, upd_type, upd_params in sorted(actions, key=lambda a: (a[0], a[1])):
        action = handler.actions[upd_type]
        for emission in action.emit(timeline.at(upd_start), upd_params, upd_start):
            for day, step in _expand_emission(emission, horizon_end):
                emit(day, step)

    logger.debug(f"Event {instance.id} ({instance.type}) expanded into {len(operations)} operations")
    return operations


def build_timeline(plan: Plan, catalog: EventCatalog, horizon_end: float) -> List[Operation]:
    """Validate every plan event and flatten them into one ordered list of operations."""
    catalog.validate_plan(plan)
    operations: List[Operation] = []
    for sequence, instance in enumerate(plan.events):
        operations.extend(expand_event(instance, sequence, horizon_end, plan.inflation_rate))
    operations.sort()
    return operations


def group_by_day(operations: List[Operation]) -> Dict[int, List[Operation]]:
    grouped: Dict[int, List[Operation]] = {}
    for op in operations:
        grouped.setdefault(op.day, []).append(op)
    return grouped
