"""Domain model package.

All domain objects are Pydantic models with no ORM or infrastructure
dependencies.  Import from this package to avoid coupling application code
to individual module paths.
"""

from .analysis import (
    AggregateRequest,
    AggregateResult,
    AggregateRow,
    AnalysisMeta,
    AnalysisRequest,
    AnalysisResult,
    ChartPoint,
    PeriodAggregate,
    Statistics,
    Streak,
    SuperimposedPoint,
    SuperimposedRequest,
    SuperimposedResult,
)
from .catalogs import ElectionCalendar, ExpiryCalendar, SpecialDay
from .enums import (
    AggregateField,
    AggregateType,
    AnchorPolicy,
    BucketScheme,
    ElectionCycle,
    ParityFilter,
    PeriodType,
    PriceField,
    ResultStatus,
    ReturnBasis,
    SignFilter,
    StreakComparison,
    Timeframe,
    TrendDirection,
    Weekday,
    WeekType,
    YearParityFilter,
)
from .events import (
    AverageCurvePoint,
    EquityPoint,
    EventAnalysisRequest,
    EventAnalysisResult,
    EventComparison,
    EventExtreme,
    EventMetrics,
    EventOccurrence,
    EventSummary,
    EventWindowConfig,
    InsufficientDataAdvisory,
    RelativeDayPoint,
    SegmentedStats,
    SegmentStats,
    TradeConfig,
)
from .filters import (
    DayFilters,
    FilterSet,
    MonthFilters,
    OutlierFilters,
    PercentageRange,
    SpecialDaysFilters,
    WeekFilters,
    YearFilters,
)
from .market_data import PriceBar, ReturnRecord
from .scenarios import (
    ColumnStats,
    HistoricTrend,
    PathPoint,
    ScenarioRequest,
    ScenarioResult,
    TrendingStreak,
    TrendOccurrence,
)

__all__ = [
    # enums
    "AggregateField",
    "AggregateType",
    "AnchorPolicy",
    "BucketScheme",
    "ElectionCycle",
    "ParityFilter",
    "PeriodType",
    "PriceField",
    "ResultStatus",
    "ReturnBasis",
    "SignFilter",
    "StreakComparison",
    "Timeframe",
    "TrendDirection",
    "Weekday",
    "WeekType",
    "YearParityFilter",
    # market data
    "PriceBar",
    "ReturnRecord",
    # catalogs
    "ElectionCalendar",
    "ExpiryCalendar",
    "SpecialDay",
    # filters
    "DayFilters",
    "FilterSet",
    "MonthFilters",
    "OutlierFilters",
    "PercentageRange",
    "SpecialDaysFilters",
    "WeekFilters",
    "YearFilters",
    # analysis
    "AggregateRequest",
    "AggregateResult",
    "AggregateRow",
    "AnalysisMeta",
    "AnalysisRequest",
    "AnalysisResult",
    "ChartPoint",
    "PeriodAggregate",
    "Statistics",
    "Streak",
    "SuperimposedPoint",
    "SuperimposedRequest",
    "SuperimposedResult",
    # events
    "AverageCurvePoint",
    "EquityPoint",
    "EventAnalysisRequest",
    "EventAnalysisResult",
    "EventComparison",
    "EventExtreme",
    "EventMetrics",
    "EventOccurrence",
    "EventSummary",
    "EventWindowConfig",
    "InsufficientDataAdvisory",
    "RelativeDayPoint",
    "SegmentedStats",
    "SegmentStats",
    "TradeConfig",
    # scenarios
    "ColumnStats",
    "HistoricTrend",
    "PathPoint",
    "ScenarioRequest",
    "ScenarioResult",
    "TrendingStreak",
    "TrendOccurrence",
]
