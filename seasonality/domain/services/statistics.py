"""Aggregation & statistics engine shared by every timeframe.

Formulas (r_i are period returns in percent, undefined returns excluded):

  cumulative    C_t = (prod_{i<=t}(1 + r_i/100) - 1) * 100
  CAGR          ((prod(1 + r_i/100)) ** (365.25 / calendar_days) - 1) * 100
  Sharpe        mean(r) / std(r) * sqrt(periods_per_year),  std with ddof=0
  max drawdown  min_t (F_t / max(1, max_{s<=t} F_s) - 1) * 100,  F_t = C_t/100 + 1
  win rate      pos / (pos + neg) * 100   (zero returns count in `count` only)

Compounding is the only cumulative measure; the arithmetic sum is reported
separately as sum_return and is never substituted for it.
"""

from __future__ import annotations

from datetime import date

import numpy as np
import pandas as pd
from scipy import stats as sp_stats

from seasonality.domain.models.analysis import (
    AggregateRow,
    ChartPoint,
    Statistics,
    Streak,
    SuperimposedPoint,
)
from seasonality.domain.models.enums import AggregateField, AggregateType, Timeframe, Weekday
from seasonality.domain.services.frames import opt_float, to_date

_WEEKDAY_ORDER = {d.value: d.index for d in Weekday}


class StatisticsEngine:
    """Stateless; every method is a pure function of its inputs."""

    # ------------------------------------------------------------------ #
    # Scalar measures                                                      #
    # ------------------------------------------------------------------ #

    def cumulative_curve(self, returns: np.ndarray | pd.Series) -> np.ndarray:
        values = np.asarray(returns, dtype=float)
        if values.size == 0:
            return values
        return (np.cumprod(1.0 + values / 100.0) - 1.0) * 100.0

    def cumulative_return(self, returns: np.ndarray | pd.Series) -> float:
        curve = self.cumulative_curve(returns)
        return float(curve[-1]) if curve.size else 0.0

    def cagr(self, returns: np.ndarray, start: date, end: date) -> float:
        """Annualised compounded growth; 0.0 when the span or factor is unusable."""
        days = (end - start).days
        factor = float(np.prod(1.0 + np.asarray(returns, dtype=float) / 100.0))
        if days <= 0 or factor <= 0:
            return 0.0
        with np.errstate(over="ignore"):
            value = (factor ** (365.25 / days) - 1.0) * 100.0
        return float(value) if np.isfinite(value) else 0.0

    def sharpe_ratio(self, returns: np.ndarray, periods_per_year: int) -> float:
        values = np.asarray(returns, dtype=float)
        if values.size == 0:
            return 0.0
        std = float(np.std(values))
        if std == 0.0 or not np.isfinite(std):
            return 0.0
        return float(np.mean(values) / std * np.sqrt(periods_per_year))

    def max_drawdown(self, returns: np.ndarray) -> float:
        """Largest peak-to-trough decline of the compounded curve, as a percent <= 0."""
        values = np.asarray(returns, dtype=float)
        if values.size == 0:
            return 0.0
        factors = np.cumprod(1.0 + values / 100.0)
        peaks = np.maximum.accumulate(np.concatenate(([1.0], factors)))[1:]
        drawdowns = (factors / peaks - 1.0) * 100.0
        return float(min(drawdowns.min(), 0.0))

    def longest_streak(
        self, returns: np.ndarray, positive: bool = True
    ) -> tuple[int, int, int]:
        """(length, start_index, end_index) of the longest same-sign run.

        Zero returns break a run.  Ties keep the earliest run.  An absent run
        returns (0, -1, -1).
        """
        values = np.asarray(returns, dtype=float)
        hits = values > 0 if positive else values < 0
        best = (0, -1, -1)
        run_start = -1
        for i, hit in enumerate(hits):
            if hit:
                if run_start < 0:
                    run_start = i
                length = i - run_start + 1
                if length > best[0]:
                    best = (length, run_start, i)
            else:
                run_start = -1
        return best

    def z_scores(self, values: np.ndarray | pd.Series) -> np.ndarray:
        """(x - mean) / std with ddof=0; NaN stays NaN, zero spread gives 0."""
        data = np.asarray(values, dtype=float)
        result = np.full(data.shape, np.nan)
        valid = ~np.isnan(data)
        if valid.sum() == 0:
            return result
        if valid.sum() == 1 or float(np.std(data[valid])) == 0.0:
            result[valid] = 0.0
            return result
        result[valid] = sp_stats.zscore(data[valid], ddof=0)
        return result

    # ------------------------------------------------------------------ #
    # Series summaries                                                     #
    # ------------------------------------------------------------------ #

    def compute(self, frame: pd.DataFrame, timeframe: Timeframe) -> Statistics:
        """Statistics over the frame's defined return_percentage values."""
        if frame.empty or "return_percentage" not in frame:
            return Statistics()
        valid = frame[frame["return_percentage"].notna()]
        if valid.empty:
            return Statistics()

        r = valid["return_percentage"].to_numpy(dtype=float)
        positives, negatives = r[r > 0], r[r < 0]
        pos, neg = int(positives.size), int(negatives.size)
        decided = pos + neg

        start_col = "start_date" if "start_date" in valid else "date"
        end_col = "end_date" if "end_date" in valid else "date"
        start, end = to_date(valid[start_col].iloc[0]), to_date(valid[end_col].iloc[-1])
        if start_col == "date" and pd.isna(frame["return_percentage"].iloc[0]):
            # the anchor bar's close is the base of the first return
            start = to_date(frame["date"].iloc[0])
        dates = valid["date" if "date" in valid else start_col].to_numpy()

        pos_streak = self.longest_streak(r, positive=True)
        neg_streak = self.longest_streak(r, positive=False)

        return Statistics(
            count=int(r.size),
            pos_count=pos,
            neg_count=neg,
            zero_count=int(r.size) - decided,
            avg_return=float(r.mean()),
            sum_return=float(r.sum()),
            avg_positive_return=float(positives.mean()) if pos else 0.0,
            avg_negative_return=float(negatives.mean()) if neg else 0.0,
            sum_positive_return=float(positives.sum()),
            sum_negative_return=float(negatives.sum()),
            cumulative_return=self.cumulative_return(r),
            pos_accuracy=pos / decided * 100.0 if decided else 0.0,
            neg_accuracy=neg / decided * 100.0 if decided else 0.0,
            std_dev=float(np.std(r)),
            cagr=self.cagr(r, start, end),
            sharpe_ratio=self.sharpe_ratio(r, timeframe.periods_per_year),
            max_drawdown=self.max_drawdown(r),
            max_gain=float(r.max()),
            max_loss=float(r.min()),
            max_consecutive_positive=pos_streak[0],
            max_consecutive_negative=neg_streak[0],
            longest_positive_streak=self._streak(pos_streak, dates),
            longest_negative_streak=self._streak(neg_streak, dates),
        )

    @staticmethod
    def _streak(found: tuple[int, int, int], dates: np.ndarray) -> Streak | None:
        length, first, last = found
        if length == 0:
            return None
        return Streak(length=length, start_date=to_date(dates[first]), end_date=to_date(dates[last]))

    def with_series_columns(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Copy of frame with cumulative_return and z_score columns.

        Undefined returns contribute a factor of 1, so the first row of a
        daily series anchors the curve at 0.
        """
        out = frame.copy()
        if out.empty:
            out["cumulative_return"] = pd.Series(dtype="float64")
            out["z_score"] = pd.Series(dtype="float64")
            return out
        returns = out["return_percentage"].astype(float)
        out["cumulative_return"] = self.cumulative_curve(returns.fillna(0.0).to_numpy())
        out["z_score"] = self.z_scores(returns.to_numpy())
        return out

    def chart_points(self, frame: pd.DataFrame) -> list[ChartPoint]:
        series = self.with_series_columns(frame) if "cumulative_return" not in frame else frame
        return [
            ChartPoint(
                point_date=to_date(row.date),
                return_percentage=opt_float(row.return_percentage),
                cumulative_return=float(row.cumulative_return),
            )
            for row in series.itertuples(index=False)
        ]

    # ------------------------------------------------------------------ #
    # Grouped views                                                        #
    # ------------------------------------------------------------------ #

    def _groups(self, frame: pd.DataFrame, field: AggregateField) -> list[tuple[int | str, np.ndarray]]:
        if frame.empty:
            return []
        valid = frame[frame["return_percentage"].notna() & frame[field.column].notna()]
        groups = [
            (key, members["return_percentage"].to_numpy(dtype=float))
            for key, members in valid.groupby(field.column, sort=False)
        ]
        if field == AggregateField.WEEKDAY:
            groups.sort(key=lambda item: _WEEKDAY_ORDER[item[0]])
            return [(str(key), values) for key, values in groups]
        groups.sort(key=lambda item: float(item[0]))
        return [(int(key), values) for key, values in groups]

    def grouped_aggregate(
        self,
        frame: pd.DataFrame,
        field: AggregateField,
        kind: AggregateType,
    ) -> list[AggregateRow]:
        """Reduce return_percentage within each group of ``field``.

        total = sum, avg = mean, max, min.  Weekdays are ordered Monday first,
        numeric keys ascending.
        """
        reducers = {
            AggregateType.TOTAL: np.sum,
            AggregateType.AVG: np.mean,
            AggregateType.MAX: np.max,
            AggregateType.MIN: np.min,
        }
        reduce = reducers[kind]
        rows: list[AggregateRow] = []
        for key, values in self._groups(frame, field):
            pos, neg = int((values > 0).sum()), int((values < 0).sum())
            rows.append(
                AggregateRow(
                    key=key,
                    value=float(reduce(values)),
                    count=int(values.size),
                    pos_count=pos,
                    neg_count=neg,
                    pos_accuracy=pos / (pos + neg) * 100.0 if pos + neg else 0.0,
                )
            )
        return rows

    def superimposed(self, frame: pd.DataFrame, field: AggregateField) -> list[SuperimposedPoint]:
        """Average return per key, compounded along the key axis."""
        groups = self._groups(frame, field)
        averages = np.array([values.mean() for _, values in groups], dtype=float)
        curve = self.cumulative_curve(averages)
        return [
            SuperimposedPoint(
                key=key,
                avg_return=float(avg),
                cumulative_return=float(cum),
                count=int(values.size),
            )
            for (key, values), avg, cum in zip(groups, averages, curve)
        ]
