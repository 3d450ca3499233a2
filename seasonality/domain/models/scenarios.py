"""Scenario analysis models: historic trending days and trending streaks."""

from __future__ import annotations

from datetime import date

from pydantic import Field

from .analysis import AnalysisMeta, AnalysisRequest
from .base import WireModel
from .enums import StreakComparison, TrendDirection


class ScenarioRequest(AnalysisRequest):
    """Daily scenario over the filtered series.

    historic trend:  rows that complete ``consecutive_days`` same-direction
                     days, with returns from T-day_range to T+day_range.
    trending streak: runs of at least ``streak_min_length`` days whose return
                     is above ("more") or below ("less") ``streak_threshold``.
    """

    trend_direction: TrendDirection = TrendDirection.BULLISH
    consecutive_days: int = Field(default=3, ge=1)
    day_range: int = Field(default=10, ge=0, le=60)
    streak_min_length: int = Field(default=5, ge=1)
    streak_comparison: StreakComparison = StreakComparison.LESS
    streak_threshold: float = 0.0


class TrendOccurrence(WireModel):
    trigger_date: date
    values: dict[str, float | None] = Field(default_factory=dict)


class ColumnStats(WireModel):
    count: int
    pos_count: int
    neg_count: int
    avg_return: float
    sum_return: float


class PathPoint(WireModel):
    column: str
    cumulative_return: float


class HistoricTrend(WireModel):
    direction: TrendDirection
    consecutive_days: int
    day_range: int
    columns: list[str] = Field(default_factory=list)
    occurrences: list[TrendOccurrence] = Field(default_factory=list)
    column_stats: dict[str, ColumnStats] = Field(default_factory=dict)
    superimposed: list[PathPoint] = Field(default_factory=list)
    total_occurrences: int = 0


class TrendingStreak(WireModel):
    start_date: date
    start_close: float
    end_date: date
    end_close: float
    total_days: int
    percent_change: float


class ScenarioResult(WireModel):
    symbol: str
    historic_trend: HistoricTrend
    trending_streaks: list[TrendingStreak] = Field(default_factory=list)
    meta: AnalysisMeta
