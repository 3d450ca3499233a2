"""Scenario analysis over a filtered daily series.

Historic trend: every row that completes ``consecutive_days`` same-direction
returns is a trigger T (the counter restarts after each trigger).  For each
trigger the returns from T-day_range to T+day_range are tabulated, each
column is summarised, and the column averages are compounded into a
superimposed path.

Trending streak: maximal runs whose returns stay above ("more") or below
("less") a threshold, reported when at least ``min_length`` days long.  A
streak's percent change compounds its daily returns, so it runs from the
close before its first day to the close of its last.
Offsets are in rows of the filtered series, not calendar days.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from seasonality.domain.models.enums import StreakComparison, TrendDirection
from seasonality.domain.models.scenarios import (
    ColumnStats,
    HistoricTrend,
    PathPoint,
    TrendingStreak,
    TrendOccurrence,
)
from seasonality.domain.services.frames import to_date
from seasonality.domain.services.statistics import StatisticsEngine


def trend_columns(day_range: int) -> list[str]:
    """T-n ... T-1, T, T+1 ... T+n"""
    before = [f"T{i}" for i in range(-day_range, 0)]
    after = [f"T+{i}" for i in range(1, day_range + 1)]
    return before + ["T"] + after


class ScenarioService:
    def __init__(self, statistics: StatisticsEngine | None = None) -> None:
        self._stats = statistics or StatisticsEngine()

    def historic_trend(
        self,
        frame: pd.DataFrame,
        direction: TrendDirection = TrendDirection.BULLISH,
        consecutive_days: int = 3,
        day_range: int = 10,
    ) -> HistoricTrend:
        columns = trend_columns(day_range)
        valid = frame[frame["return_percentage"].notna()] if not frame.empty else frame
        if valid.empty:
            return HistoricTrend(
                direction=direction,
                consecutive_days=consecutive_days,
                day_range=day_range,
                columns=columns,
                superimposed=[PathPoint(column=c, cumulative_return=0.0) for c in columns],
            )

        returns = valid["return_percentage"].to_numpy(dtype=float)
        dates = valid["date"].to_numpy()
        trending = returns > 0 if direction == TrendDirection.BULLISH else returns < 0

        triggers: list[int] = []
        run = 0
        for i, hit in enumerate(trending):
            run = run + 1 if hit else 0
            if run == consecutive_days:
                triggers.append(i)
                run = 0

        occurrences: list[TrendOccurrence] = []
        table = np.full((len(triggers), len(columns)), np.nan)
        for row, t in enumerate(triggers):
            values: dict[str, float | None] = {}
            for col, offset in enumerate(range(-day_range, day_range + 1)):
                idx = t + offset
                if 0 <= idx < len(returns):
                    table[row, col] = returns[idx]
                    values[columns[col]] = float(returns[idx])
                else:
                    values[columns[col]] = None
            occurrences.append(TrendOccurrence(trigger_date=to_date(dates[t]), values=values))

        column_stats: dict[str, ColumnStats] = {}
        averages = np.zeros(len(columns))
        for col, name in enumerate(columns):
            data = table[:, col]
            data = data[~np.isnan(data)]
            if data.size == 0:
                continue
            averages[col] = data.mean()
            column_stats[name] = ColumnStats(
                count=int(data.size),
                pos_count=int((data > 0).sum()),
                neg_count=int((data < 0).sum()),
                avg_return=float(data.mean()),
                sum_return=float(data.sum()),
            )

        path = self._stats.cumulative_curve(averages)
        return HistoricTrend(
            direction=direction,
            consecutive_days=consecutive_days,
            day_range=day_range,
            columns=columns,
            occurrences=occurrences,
            column_stats=column_stats,
            superimposed=[
                PathPoint(column=name, cumulative_return=float(value))
                for name, value in zip(columns, path)
            ],
            total_occurrences=len(triggers),
        )

    def trending_streaks(
        self,
        frame: pd.DataFrame,
        min_length: int = 5,
        comparison: StreakComparison = StreakComparison.LESS,
        threshold: float = 0.0,
    ) -> list[TrendingStreak]:
        if frame.empty:
            return []
        valid = frame[frame["return_percentage"].notna()]
        returns = valid["return_percentage"].to_numpy(dtype=float)
        closes = valid["close"].to_numpy(dtype=float)
        dates = valid["date"].to_numpy()
        meets = returns > threshold if comparison == StreakComparison.MORE else returns < threshold

        streaks: list[TrendingStreak] = []
        start = None
        # sentinel False closes a run that reaches the end of the series
        for i, hit in enumerate(np.append(meets, False)):
            if hit and start is None:
                start = i
            elif not hit and start is not None:
                end = i - 1
                length = end - start + 1
                if length >= min_length:
                    streaks.append(
                        TrendingStreak(
                            start_date=to_date(dates[start]),
                            start_close=float(closes[start]),
                            end_date=to_date(dates[end]),
                            end_close=float(closes[end]),
                            total_days=length,
                            percent_change=self._stats.cumulative_return(returns[start : end + 1]),
                        )
                    )
                start = None
        return streaks
