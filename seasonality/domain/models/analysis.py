"""Analysis request and result models.

The result of every timeframe analysis is keyed by symbol so callers can
index multi-symbol responses:  {symbol: AnalysisResult}.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import Field, field_validator, model_validator

from .base import RequestModel, WireModel
from .enums import (
    AggregateField,
    AggregateType,
    ElectionCycle,
    PeriodType,
    ReturnBasis,
    Timeframe,
    Weekday,
    WeekType,
)
from .filters import FilterSet
from .market_data import ReturnRecord


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class AnalysisRequest(RequestModel):
    """Input shared by every timeframe analysis.

    Accepts either ``symbols`` (list) or a single ``symbol``.  start_date and
    end_date are inclusive; omitting them selects the full stored history.
    """

    symbols: list[str] = Field(min_length=1)
    start_date: date | None = None
    end_date: date | None = None
    filters: FilterSet = Field(default_factory=FilterSet)
    week_type: WeekType = WeekType.MONDAY
    month_type: PeriodType = PeriodType.CALENDAR
    year_type: PeriodType = PeriodType.CALENDAR
    return_basis: ReturnBasis = ReturnBasis.OPEN_TO_CLOSE

    @model_validator(mode="before")
    @classmethod
    def _single_symbol(cls, data: Any) -> Any:
        if isinstance(data, dict) and "symbol" in data and "symbols" not in data:
            data = dict(data)
            data["symbols"] = [data.pop("symbol")]
        return data

    @field_validator("symbols")
    @classmethod
    def _normalise_symbols(cls, value: list[str]) -> list[str]:
        cleaned = [s.strip().upper() for s in value]
        if any(not s for s in cleaned):
            raise ValueError("symbol must be a non-empty string")
        return list(dict.fromkeys(cleaned))

    @model_validator(mode="after")
    def _check_range(self) -> "AnalysisRequest":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError(
                f"start_date ({self.start_date}) must be <= end_date ({self.end_date})"
            )
        return self

    def cache_params(self) -> dict[str, Any]:
        """Everything except the symbol list; the cache keys symbols separately."""
        return self.model_dump(mode="json", by_alias=True, exclude={"symbols"})


class AggregateRequest(AnalysisRequest):
    aggregate_field: AggregateField = AggregateField.WEEKDAY
    aggregate_type: AggregateType = AggregateType.AVG


class SuperimposedRequest(AnalysisRequest):
    """Average-then-compound path over a grouping key (e.g. trading day of year).

    election_cycles restricts the sample to years in the selected cycles.
    """

    timeframe: Timeframe = Timeframe.DAILY
    group_by: AggregateField = AggregateField.CALENDAR_YEAR_DAY
    election_cycles: list[ElectionCycle] = Field(default_factory=list)
    election_country: str | None = None

    @field_validator("timeframe")
    @classmethod
    def _no_yearly(cls, value: Timeframe) -> Timeframe:
        if value == Timeframe.YEARLY:
            raise ValueError("superimposed analysis needs a sub-yearly timeframe")
        return value

    @field_validator("election_cycles")
    @classmethod
    def _sort_cycles(cls, value: list[ElectionCycle]) -> list[ElectionCycle]:
        return sorted(set(value), key=lambda c: c.value)

    @model_validator(mode="after")
    def _check_group_by(self) -> "SuperimposedRequest":
        allowed = _GROUP_KEYS_BY_TIMEFRAME[self.timeframe]
        if self.group_by not in allowed:
            raise ValueError(
                f"group_by {self.group_by.value!r} is not available for {self.timeframe.value} rows"
            )
        return self


# Keys present on the rows of each timeframe.
_GROUP_KEYS_BY_TIMEFRAME = {
    Timeframe.DAILY: frozenset(AggregateField),
    Timeframe.WEEKLY: frozenset(
        {
            AggregateField.WEEK_NUMBER_MONTHLY,
            AggregateField.WEEK_NUMBER_YEARLY,
            AggregateField.MONTH_NUMBER,
        }
    ),
    Timeframe.MONTHLY: frozenset({AggregateField.MONTH_NUMBER}),
}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class PeriodAggregate(WireModel):
    """One bucketed row (a day, week, month or year).

    open/high/low/close are first/max/min/last of the member bars and
    return_percentage is measured on the bucket itself, never summed from
    member returns.  anchor_date is the first member for calendar and
    Monday buckets and the expiry date for expiry buckets.
    """

    period_key: str
    timeframe: Timeframe
    anchor_date: date
    start_date: date
    end_date: date
    open: float
    high: float
    low: float
    close: float
    volume: int
    return_points: float | None = None
    return_percentage: float | None = None
    member_count: int
    year: int
    month_number: int
    week_number_monthly: int | None = None
    week_number_yearly: int | None = None
    weekday: Weekday
    cumulative_return: float | None = None
    z_score: float | None = None


class Streak(WireModel):
    length: int
    start_date: date
    end_date: date


class Statistics(WireModel):
    """Summary of a filtered return series.

    An empty series produces count == 0 and every other numeric field 0.
    """

    count: int = 0
    pos_count: int = 0
    neg_count: int = 0
    zero_count: int = 0
    avg_return: float = 0.0
    sum_return: float = 0.0
    avg_positive_return: float = 0.0
    avg_negative_return: float = 0.0
    sum_positive_return: float = 0.0
    sum_negative_return: float = 0.0
    cumulative_return: float = 0.0
    pos_accuracy: float = 0.0
    neg_accuracy: float = 0.0
    std_dev: float = 0.0
    cagr: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    max_gain: float = 0.0
    max_loss: float = 0.0
    max_consecutive_positive: int = 0
    max_consecutive_negative: int = 0
    longest_positive_streak: Streak | None = None
    longest_negative_streak: Streak | None = None


class ChartPoint(WireModel):
    point_date: date
    return_percentage: float | None = None
    cumulative_return: float


class AnalysisMeta(WireModel):
    symbol: str
    timeframe: Timeframe
    start_date: date | None = None
    end_date: date | None = None
    total_records: int = 0
    filtered_records: int = 0
    invalid_records: int = 0
    filters_applied: list[str] = Field(default_factory=list)
    week_type: WeekType = WeekType.MONDAY
    month_type: PeriodType = PeriodType.CALENDAR
    year_type: PeriodType = PeriodType.CALENDAR
    return_basis: ReturnBasis = ReturnBasis.OPEN_TO_CLOSE


class AnalysisResult(WireModel):
    symbol: str
    timeframe: Timeframe
    data: list[PeriodAggregate] = Field(default_factory=list)
    statistics: Statistics = Field(default_factory=Statistics)
    chart_data: list[ChartPoint] = Field(default_factory=list)
    table_data: list[ReturnRecord] | list[PeriodAggregate] = Field(default_factory=list)
    meta: AnalysisMeta


class AggregateRow(WireModel):
    key: int | str
    value: float
    count: int
    pos_count: int
    neg_count: int
    pos_accuracy: float


class AggregateResult(WireModel):
    symbol: str
    aggregate_field: AggregateField
    aggregate_type: AggregateType
    rows: list[AggregateRow] = Field(default_factory=list)
    statistics: Statistics = Field(default_factory=Statistics)
    meta: AnalysisMeta


class SuperimposedPoint(WireModel):
    key: int | str
    avg_return: float
    cumulative_return: float
    count: int


class SuperimposedResult(WireModel):
    symbol: str
    timeframe: Timeframe
    group_by: AggregateField
    election_cycles: list[ElectionCycle] = Field(default_factory=list)
    years: list[int] = Field(default_factory=list)
    points: list[SuperimposedPoint] = Field(default_factory=list)
    statistics: Statistics = Field(default_factory=Statistics)
    meta: AnalysisMeta
