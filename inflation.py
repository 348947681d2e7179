from typing import List, Sequence

import numpy as np

from config import SimulationSample
from constants import DAYS_PER_YEAR


def value_to_today(value_at_day: float, target_day: float, current_day: float, inflation_rate: float) -> float:
    """Present value of an amount stated in ``target_day`` money."""
    return value_at_day / (1.0 + inflation_rate) ** ((target_day - current_day) / DAYS_PER_YEAR)


def value_to_day(value_today: float, target_day: float, current_day: float, inflation_rate: float) -> float:
    """Amount in ``target_day`` money equivalent to ``value_today``. Inverse of value_to_today."""
    return value_today * (1.0 + inflation_rate) ** ((target_day - current_day) / DAYS_PER_YEAR)


def inflation_factors(dates: Sequence[int], inflation_rate: float, day_zero: int) -> np.ndarray:
    days = np.asarray(dates, dtype=float)
    return np.power(1.0 + inflation_rate, (days - day_zero) / DAYS_PER_YEAR)


def _rescale(samples: List[SimulationSample], factors: np.ndarray) -> List[SimulationSample]:
    if not samples:
        return []
    names = list(samples[0].parts)
    parts = np.array([[s.parts[n] for n in names] for s in samples], dtype=float).reshape(len(samples), len(names))
    totals = np.array([s.total_value for s in samples], dtype=float)

    scaled_parts = parts / factors[:, None]
    scaled_totals = totals / factors
    return [
        sample.model_copy(
            update={
                "total_value": float(scaled_totals[i]),
                "parts": {name: float(scaled_parts[i, j]) for j, name in enumerate(names)},
                "warnings": [
                    w.model_copy(update={"balance": float(w.balance / factors[i])}) for w in sample.warnings
                ],
            }
        )
        for i, sample in enumerate(samples)
    ]


def deflate(samples: List[SimulationSample], inflation_rate: float, day_zero: int) -> List[SimulationSample]:
    """
    Restate every sample in day-zero dollars.

    Each value is divided by (1 + rate) ** ((date - day_zero) / 365). The input
    list is left untouched so the raw series can be re-deflated at another rate.
    """
    if inflation_rate == 0:
        return [s.model_copy(deep=True) for s in samples]
    factors = inflation_factors([s.date for s in samples], inflation_rate, day_zero)
    return _rescale(samples, factors)


def inflate(samples: List[SimulationSample], inflation_rate: float, day_zero: int) -> List[SimulationSample]:
    """Inverse of ``deflate``: restate day-zero dollars as nominal values."""
    if inflation_rate == 0:
        return [s.model_copy(deep=True) for s in samples]
    factors = inflation_factors([s.date for s in samples], inflation_rate, day_zero)
    return _rescale(samples, 1.0 / factors)
