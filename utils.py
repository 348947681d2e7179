import datetime as _dt
from typing import Dict, List, Optional, Tuple

import pandas as pd
from loguru import logger

from config import GrowthMode, Plan, SimulationSample
from constants import DAYS_PER_YEAR

TOTAL_COLUMN = "Total"


def day_to_date(birth_date: _dt.date, day: int) -> _dt.date:
    """Calendar date of a simulation day, counting day 0 as the plan's birth date."""
    return birth_date + _dt.timedelta(days=int(day))


def split_by_envelope(samples: List[SimulationSample]) -> Dict[str, List[Tuple[int, float]]]:
    """Reshapes a sample series into {envelope: [(date, value), ...]} in sample order."""
    series: Dict[str, List[Tuple[int, float]]] = {}
    for sample in samples:
        for name, value in sample.parts.items():
            series.setdefault(name, []).append((sample.date, value))
    return series


def samples_to_dataframe(
    samples: List[SimulationSample], birth_date: Optional[_dt.date] = None
) -> pd.DataFrame:
    """
    One row per sample, one column per envelope plus a ``Total`` column.

    Indexed by simulation day. When ``birth_date`` is given a ``Date`` column
    holding the calendar date of each row is added.
    """
    if not samples:
        return pd.DataFrame(columns=[TOTAL_COLUMN])

    df = pd.DataFrame([s.parts for s in samples], index=pd.Index([s.date for s in samples], name="Day"))
    df[TOTAL_COLUMN] = [s.total_value for s in samples]
    df["Warnings"] = [len(s.warnings) for s in samples]
    if birth_date is not None:
        df.insert(0, "Date", [day_to_date(birth_date, d) for d in df.index])
    return df


def yearly_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Last sampled row of each simulated year, indexed by year number."""
    if df.empty:
        return df
    numeric = df.drop(columns=["Date", "Warnings"], errors="ignore")
    return numeric.groupby(numeric.index // DAYS_PER_YEAR).last().rename_axis("Year")


def log_plan_summary(plan: Plan) -> None:
    """Logs the envelopes and events of a plan before a run."""
    logger.info("--- Plan Summary ---")
    if plan.birth_date is not None:
        logger.info(f"Birth Date: {plan.birth_date.isoformat()}")
    logger.info(
        f"Inflation: {plan.inflation_rate * 100:.2f}% "
        f"({'adjusting to present value' if plan.adjust_for_inflation else 'nominal values'})"
    )
    logger.info(f"Envelopes ({len(plan.envelopes)}):")
    for env in plan.envelopes:
        growth = env.growth_mode.value
        rate_str = "" if env.growth_mode == GrowthMode.NONE else f" @ {env.rate * 100:.2f}%"
        logger.info(
            f"  - {env.name} [{env.category.value}]: ${env.initial_balance:,.2f}, growth {growth}{rate_str}"
        )
    logger.info(f"Events ({len(plan.events)}):")
    for event in plan.events:
        title = event.title or event.type
        start = event.parameter_map().get("start_time", "?")
        updates = f", {len(event.updating_events)} updates" if event.updating_events else ""
        logger.info(f"  - #{event.id} {title} ({event.type}) from day {start}{updates}")
    logger.info("--- End of Plan Summary ---")


def log_simulation_results(samples: List[SimulationSample], birth_date: Optional[_dt.date] = None) -> None:
    """Logs the final balances, yearly totals and any shortfalls of a run."""
    if not samples:
        logger.warning("Simulation produced no samples.")
        return

    last = samples[-1]
    logger.info(f"--- Simulation Results: {len(samples)} samples, days {samples[0].date}..{last.date} ---")
    logger.info(f"Final Total: ${last.total_value:,.2f}")
    for name, value in last.parts.items():
        logger.info(f"  {name}: ${value:,.2f}")

    df = samples_to_dataframe(samples, birth_date)
    yearly = yearly_summary(df)
    logger.info("Year-End Totals ($):")
    for year, total in yearly[TOTAL_COLUMN].items():
        logger.info(f"  Year {year}: {total:,.2f}")

    flagged = df[df["Warnings"] > 0]
    if not flagged.empty:
        first_day = int(flagged.index[0])
        envelopes = sorted({w.envelope for s in samples for w in s.warnings})
        logger.warning(
            f"{len(flagged)} samples show negative non-debt balances (first on day {first_day}): "
            f"{', '.join(envelopes)}"
        )
