"""Column vocabulary and small conversion helpers for engine DataFrames.

Every stage passes a pandas DataFrame with a RangeIndex and one row per
trading day (or per bucket), sorted by ``date``.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Any

import numpy as np
import pandas as pd

PRICE_COLUMNS = ["date", "open", "high", "low", "close", "volume"]
RETURN_COLUMNS = PRICE_COLUMNS + ["prev_close", "return_points", "return_percentage"]

# Containing-period return columns broadcast onto every row by the bucketer.
LEVEL_RETURN_COLUMNS = {
    "week": "week_return",
    "month": "month_return",
    "year": "year_return",
}


def empty_frame(columns: list[str] | None = None) -> pd.DataFrame:
    cols = columns or RETURN_COLUMNS
    frame = pd.DataFrame({c: pd.Series(dtype="float64") for c in cols})
    if "date" in frame:
        frame["date"] = pd.Series(dtype="datetime64[ns]")
    return frame


def opt_float(value: Any) -> float | None:
    """NaN/None -> None, everything else -> float."""
    if value is None:
        return None
    result = float(value)
    return None if math.isnan(result) else result


def opt_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NA:
        return None
    return int(value)


def to_date(value: Any) -> date:
    return pd.Timestamp(value).date()


def returns_array(frame: pd.DataFrame, column: str = "return_percentage") -> np.ndarray:
    """Defined (non-NaN) returns in chronological order."""
    if frame.empty or column not in frame:
        return np.array([], dtype=float)
    values = frame[column].to_numpy(dtype=float)
    return values[~np.isnan(values)]
