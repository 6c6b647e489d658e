"""
Numeric helpers for team scoring: means over golfer fields and rounding.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

import numpy as np

from .config import SCORE_PLACES
from .models import Golfer
from .selection import round_strokes


def mean(values: Iterable[Optional[float]]) -> Optional[float]:
    """
    Arithmetic mean, ignoring None and non-finite values.
    Returns None when nothing is left to average.
    """
    arr = np.array([v for v in values if v is not None], dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        return None
    return float(np.mean(arr))


def mean_field(golfers: List[Golfer], field: str, missing_as_zero: bool = False) -> Optional[float]:
    """Average a numeric golfer field; missing values are skipped unless counted as 0."""
    values = []
    for g in golfers:
        value = getattr(g, field)
        if value is None and missing_as_zero:
            value = 0
        values.append(value)
    return mean(values)


def mean_today(golfers: List[Golfer]) -> Optional[float]:
    """Average live over/under for the round (golfers yet to start count as par)."""
    return mean_field(golfers, "today", missing_as_zero=True)


def mean_thru(golfers: List[Golfer]) -> Optional[float]:
    """Average holes completed."""
    return mean_field(golfers, "thru", missing_as_zero=True)


def mean_raw(golfers: List[Golfer], round_number: int, par: int) -> Optional[float]:
    """Average raw strokes for a completed round (WD/DQ penalties applied)."""
    return mean(round_strokes(g, round_number, par) for g in golfers)


def mean_over_par(golfers: List[Golfer], round_number: int, par: int) -> Optional[float]:
    """Average over/under par for a completed round."""
    values = []
    for g in golfers:
        strokes = round_strokes(g, round_number, par)
        values.append(None if strokes is None else strokes - par)
    return mean(values)


def round_decimal(value: Optional[float], places: int = SCORE_PLACES) -> Optional[float]:
    """Round half away from zero to a fixed number of places."""
    if value is None:
        return None
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
