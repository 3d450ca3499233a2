"""Event-study request and result models.

An event (festival, holiday, budget day, election ...) is resolved to its
historical dates, each anchored onto the trading calendar as relative day 0.
Occurrences are aligned on that relative-day axis and summarised.
"""

from __future__ import annotations

import re
from datetime import date

from pydantic import Field, field_validator, model_validator

from seasonality.domain.errors import InsufficientDataError

from .base import RequestModel, WireModel
from .enums import AnchorPolicy, PriceField, ResultStatus

_ENTRY_PATTERN = re.compile(r"^T([+-]?\d+)_(OPEN|CLOSE)$")


class EventWindowConfig(RequestModel):
    days_before: int = Field(default=10, ge=0, le=250)
    days_after: int = Field(default=10, ge=0, le=250)
    anchor_policy: AnchorPolicy = AnchorPolicy.NEXT_TRADING_DAY


class TradeConfig(RequestModel):
    """Entry/exit rule for the per-occurrence trade.

    entry_type is ``T<offset>_<OPEN|CLOSE>``; the default buys the close one
    trading day before the event.  The exit is always the close of
    T+exit_day (defaults to the window's days_after).
    """

    entry_type: str = "T-1_CLOSE"
    exit_day: int | None = Field(default=None, ge=0)

    @field_validator("entry_type")
    @classmethod
    def _check_entry(cls, value: str) -> str:
        normalised = value.strip().upper()
        if not _ENTRY_PATTERN.match(normalised):
            raise ValueError(f"entry_type must look like 'T-1_CLOSE' or 'T0_OPEN', got {value!r}")
        return normalised

    @property
    def entry_offset(self) -> int:
        return int(_ENTRY_PATTERN.match(self.entry_type).group(1))

    @property
    def entry_field(self) -> PriceField:
        return PriceField(_ENTRY_PATTERN.match(self.entry_type).group(2).lower())


class EventAnalysisRequest(RequestModel):
    symbol: str = Field(min_length=1)
    start_date: date
    end_date: date
    event_names: list[str] = Field(default_factory=list)
    event_categories: list[str] = Field(default_factory=list)
    country: str | None = None
    window: EventWindowConfig = Field(default_factory=EventWindowConfig)
    trade: TradeConfig = Field(default_factory=TradeConfig)
    min_occurrences: int | None = Field(default=None, ge=1)

    @field_validator("symbol")
    @classmethod
    def _upper_symbol(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("event_names", "event_categories")
    @classmethod
    def _normalise_names(cls, value: list[str]) -> list[str]:
        return sorted({v.strip().upper() for v in value if v.strip()})

    @field_validator("country")
    @classmethod
    def _upper_country(cls, value: str | None) -> str | None:
        return value.strip().upper() if value else None

    @model_validator(mode="after")
    def _check(self) -> "EventAnalysisRequest":
        if self.start_date > self.end_date:
            raise ValueError(
                f"start_date ({self.start_date}) must be <= end_date ({self.end_date})"
            )
        if not self.event_names and not self.event_categories:
            raise ValueError("either event_names or event_categories must be provided")
        exit_day = self.exit_day
        if self.trade.entry_offset >= exit_day:
            raise ValueError(
                f"entry T{self.trade.entry_offset:+d} must precede exit T+{exit_day}"
            )
        if self.trade.entry_offset < -self.window.days_before:
            raise ValueError("entry day lies before the start of the event window")
        return self

    @property
    def exit_day(self) -> int:
        return self.trade.exit_day if self.trade.exit_day is not None else self.window.days_after


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class RelativeDayPoint(WireModel):
    """One day of an occurrence's window.

    cumulative_return is measured from the occurrence's entry price.
    """

    relative_day: int
    day_date: date
    close: float
    return_percentage: float | None = None
    cumulative_return: float | None = None


class EventOccurrence(WireModel):
    name: str
    category: str
    event_date: date
    anchor_date: date
    entry_date: date
    entry_price: float
    exit_date: date | None = None
    exit_price: float | None = None
    return_percent: float | None = None
    return_points: float | None = None
    holding_days: int | None = None
    mfe: float | None = None
    mae: float | None = None
    event_day_return: float | None = None
    event_day_z_score: float | None = None
    relative_day_curve: list[RelativeDayPoint] = Field(default_factory=list)

    @property
    def is_tradable(self) -> bool:
        return self.return_percent is not None


class AverageCurvePoint(WireModel):
    relative_day: int
    avg_return: float
    median_return: float
    std_dev: float
    min_return: float
    max_return: float
    avg_cumulative_return: float | None = None
    count: int
    is_event_day: bool


class SegmentStats(WireModel):
    label: str
    count: int = 0
    avg_return: float = 0.0
    median_return: float = 0.0
    std_dev: float = 0.0
    win_rate: float = 0.0


class SegmentedStats(WireModel):
    pre_event: SegmentStats
    event_day: SegmentStats
    post_event: SegmentStats


class EventExtreme(WireModel):
    event_date: date
    return_percent: float


class EventMetrics(WireModel):
    """Metrics over per-occurrence trade returns.

    profit_factor is None when there are no losing trades.  max_drawdown is
    measured on a compounded equity curve and is <= 0.
    """

    total_events: int
    winning_events: int
    losing_events: int
    flat_events: int
    win_rate: float
    avg_return: float
    median_return: float
    std_dev: float
    total_return: float
    profit_factor: float | None = None
    sharpe_ratio: float
    sortino_ratio: float
    max_drawdown: float
    best_event: EventExtreme
    worst_event: EventExtreme


class EquityPoint(WireModel):
    event_date: date | None = None
    event_name: str | None = None
    equity: float
    return_percent: float | None = None


class InsufficientDataAdvisory(WireModel):
    reason_code: str
    found: int
    required: int
    message: str


class EventSummary(WireModel):
    total_events_found: int
    valid_events: int
    tradable_events: int
    excluded_events: int
    exclusion_reasons: dict[str, int] = Field(default_factory=dict)
    start_date: date
    end_date: date


class EventAnalysisResult(WireModel):
    symbol: str
    status: ResultStatus = ResultStatus.OK
    advisory: InsufficientDataAdvisory | None = None
    summary: EventSummary
    average_curve: list[AverageCurvePoint] = Field(default_factory=list)
    segmented_stats: SegmentedStats | None = None
    occurrences: list[EventOccurrence] = Field(default_factory=list)
    metrics: EventMetrics | None = None
    equity_curve: list[EquityPoint] = Field(default_factory=list)

    def raise_for_status(self) -> "EventAnalysisResult":
        """Raise InsufficientDataError for callers that prefer exceptions."""
        if self.status == ResultStatus.INSUFFICIENT_DATA and self.advisory is not None:
            raise InsufficientDataError(
                self.advisory.message,
                found=self.advisory.found,
                required=self.advisory.required,
                reason_code=self.advisory.reason_code,
            )
        return self


class EventComparison(WireModel):
    """Event days versus every other trading day in the same range."""

    symbol: str
    event_days: SegmentStats
    non_event_days: SegmentStats
    avg_return_difference: float
    win_rate_difference: float
