"""Return calculator: raw daily bars -> per-day return series.

  return_percentage_t = (close_t - close_{t-1}) / close_{t-1} * 100
  return_points_t     = close_t - close_{t-1}

The first bar of the queried range has no defined return (NaN) but stays in
the frame as the cumulative anchor.  Integrity problems are recovered
locally: the offending value is excluded, a warning is logged and the
count is exposed as ``frame.attrs["invalid_records"]``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

import numpy as np
import pandas as pd

from seasonality.domain.errors import InvalidDataError
from seasonality.domain.models.enums import Weekday
from seasonality.domain.models.market_data import PriceBar, ReturnRecord
from seasonality.domain.services.frames import (
    RETURN_COLUMNS,
    empty_frame,
    opt_float,
    opt_int,
    to_date,
)

logger = logging.getLogger(__name__)


class ReturnCalculator:
    """Stateless conversion of an ordered PriceBar sequence to a return frame."""

    def compute(
        self,
        bars: Iterable[PriceBar],
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> pd.DataFrame:
        """Build the daily return frame for one symbol.

        Args:
            bars: Bars for one symbol, expected in ascending date order.
            start_date: Inclusive lower bound; bars before it are ignored.
            end_date: Inclusive upper bound.

        Returns:
            DataFrame with RETURN_COLUMNS, one row per trading day.
        """
        issues: list[InvalidDataError] = []
        ordered = self._ordered(bars, issues)
        ordered = [
            b
            for b in ordered
            if (start_date is None or b.bar_date >= start_date)
            and (end_date is None or b.bar_date <= end_date)
        ]
        if not ordered:
            frame = empty_frame(RETURN_COLUMNS)
            frame.attrs["invalid_records"] = len(issues)
            return frame

        frame = pd.DataFrame(
            {
                "date": pd.to_datetime([b.bar_date for b in ordered]),
                "open": [np.nan if b.open is None else b.open for b in ordered],
                "high": [b.high for b in ordered],
                "low": [b.low for b in ordered],
                "close": [b.close for b in ordered],
                "volume": [b.volume for b in ordered],
            }
        )
        prev_close = frame["close"].shift(1)
        frame["open"] = frame["open"].fillna(prev_close).fillna(frame["close"])

        zero_prev = prev_close == 0
        for day in frame.loc[zero_prev, "date"]:
            issue = InvalidDataError("previous close is zero; return undefined", row_date=day.date())
            logger.warning("%s on %s", issue, issue.row_date)
            issues.append(issue)

        safe_prev = prev_close.where(~zero_prev)
        frame["prev_close"] = prev_close
        frame["return_points"] = frame["close"] - safe_prev
        frame["return_percentage"] = frame["return_points"] / safe_prev * 100.0
        frame.attrs["invalid_records"] = len(issues)
        return frame

    @staticmethod
    def _ordered(bars: Iterable[PriceBar], issues: list[InvalidDataError]) -> list[PriceBar]:
        """Enforce strictly increasing dates.

        A repeated date supersedes the earlier bar; a date earlier than the
        last kept one is dropped.
        """
        kept: list[PriceBar] = []
        for bar in bars:
            if kept and bar.bar_date == kept[-1].bar_date:
                logger.debug("Bar for %s on %s superseded by re-ingested row", bar.symbol, bar.bar_date)
                kept[-1] = bar
            elif kept and bar.bar_date < kept[-1].bar_date:
                issue = InvalidDataError(
                    f"non-monotonic date after {kept[-1].bar_date}; bar dropped",
                    row_date=bar.bar_date,
                )
                logger.warning("%s (%s on %s)", issue, bar.symbol, bar.bar_date)
                issues.append(issue)
            else:
                kept.append(bar)
        return kept

    def to_records(self, annotated: pd.DataFrame, symbol: str) -> list[ReturnRecord]:
        """Map a bucketer-annotated daily frame to ReturnRecord models."""
        records: list[ReturnRecord] = []
        for row in annotated.itertuples(index=False):
            records.append(
                ReturnRecord(
                    symbol=symbol,
                    bar_date=to_date(row.date),
                    open=row.open,
                    high=row.high,
                    low=row.low,
                    close=row.close,
                    volume=int(row.volume),
                    prev_close=opt_float(row.prev_close),
                    return_points=opt_float(row.return_points),
                    return_percentage=opt_float(row.return_percentage),
                    weekday_name=Weekday(row.weekday),
                    calendar_month_day=int(row.calendar_month_day),
                    trading_month_day=int(row.trading_month_day),
                    calendar_year_day=int(row.calendar_year_day),
                    trading_year_day=int(row.trading_year_day),
                    month_number=int(row.month_number),
                    year=int(row.year),
                    week_number_monthly=opt_int(row.week_number_monthly),
                    week_number_yearly=opt_int(row.week_number_yearly),
                    is_monday_week_start=bool(row.is_monday_week_start),
                    is_expiry_week_start=bool(row.is_expiry_week_start),
                )
            )
        return records
