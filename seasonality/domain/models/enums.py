"""Domain enumerations for the seasonality engine.

All string-valued enums use the str mixin so they serialize cleanly to JSON
and stay comparable to the plain strings the dashboard sends.
"""

from enum import Enum


class Timeframe(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def periods_per_year(self) -> int:
        """Annualisation factor used by the Sharpe ratio."""
        return {
            Timeframe.DAILY: 252,
            Timeframe.WEEKLY: 52,
            Timeframe.MONTHLY: 12,
            Timeframe.YEARLY: 1,
        }[self]

    @property
    def level(self) -> int:
        """Nesting depth: a filter category applies to its own level and finer."""
        return {
            Timeframe.DAILY: 0,
            Timeframe.WEEKLY: 1,
            Timeframe.MONTHLY: 2,
            Timeframe.YEARLY: 3,
        }[self]


class WeekType(str, Enum):
    MONDAY = "monday"
    EXPIRY = "expiry"


class PeriodType(str, Enum):
    """Month/year anchoring: calendar boundaries or expiry-to-expiry spans."""

    CALENDAR = "calendar"
    EXPIRY = "expiry"


class BucketScheme(str, Enum):
    MONDAY_WEEK = "monday_week"
    EXPIRY_WEEK = "expiry_week"
    CALENDAR_MONTH = "calendar_month"
    EXPIRY_MONTH = "expiry_month"
    CALENDAR_YEAR = "calendar_year"
    EXPIRY_YEAR = "expiry_year"

    @property
    def is_expiry(self) -> bool:
        return self in (
            BucketScheme.EXPIRY_WEEK,
            BucketScheme.EXPIRY_MONTH,
            BucketScheme.EXPIRY_YEAR,
        )

    @classmethod
    def for_week(cls, week_type: WeekType) -> "BucketScheme":
        return cls.EXPIRY_WEEK if week_type == WeekType.EXPIRY else cls.MONDAY_WEEK

    @classmethod
    def for_month(cls, month_type: PeriodType) -> "BucketScheme":
        return cls.EXPIRY_MONTH if month_type == PeriodType.EXPIRY else cls.CALENDAR_MONTH

    @classmethod
    def for_year(cls, year_type: PeriodType) -> "BucketScheme":
        return cls.EXPIRY_YEAR if year_type == PeriodType.EXPIRY else cls.CALENDAR_YEAR


class SignFilter(str, Enum):
    ALL = "All"
    POSITIVE = "Positive"
    NEGATIVE = "Negative"


class ParityFilter(str, Enum):
    ALL = "All"
    EVEN = "Even"
    ODD = "Odd"


class YearParityFilter(str, Enum):
    ALL = "All"
    EVEN = "Even"
    ODD = "Odd"
    LEAP = "Leap"
    ELECTION = "Election"


class Weekday(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @property
    def index(self) -> int:
        """Monday == 0, matching datetime.date.weekday()."""
        return list(Weekday).index(self)


class AggregateField(str, Enum):
    """Grouping key for the daily aggregate and superimposed views."""

    WEEKDAY = "weekday"
    CALENDAR_YEAR_DAY = "calendarYearDay"
    TRADING_YEAR_DAY = "tradingYearDay"
    CALENDAR_MONTH_DAY = "calendarMonthDay"
    TRADING_MONTH_DAY = "tradingMonthDay"
    MONTH_NUMBER = "monthNumber"
    WEEK_NUMBER_MONTHLY = "weekNumberMonthly"
    WEEK_NUMBER_YEARLY = "weekNumberYearly"

    @property
    def column(self) -> str:
        """Name of the annotated-frame column holding this key."""
        return {
            AggregateField.WEEKDAY: "weekday",
            AggregateField.CALENDAR_YEAR_DAY: "calendar_year_day",
            AggregateField.TRADING_YEAR_DAY: "trading_year_day",
            AggregateField.CALENDAR_MONTH_DAY: "calendar_month_day",
            AggregateField.TRADING_MONTH_DAY: "trading_month_day",
            AggregateField.MONTH_NUMBER: "month_number",
            AggregateField.WEEK_NUMBER_MONTHLY: "week_number_monthly",
            AggregateField.WEEK_NUMBER_YEARLY: "week_number_yearly",
        }[self]


class AggregateType(str, Enum):
    TOTAL = "total"
    AVG = "avg"
    MAX = "max"
    MIN = "min"


class ElectionCycle(str, Enum):
    ELECTION = "election"
    PRE_ELECTION = "pre_election"
    POST_ELECTION = "post_election"
    MID_TERM = "mid_term"


class ReturnBasis(str, Enum):
    """How a bucket's return is measured.

    OPEN_TO_CLOSE   first member's open to last member's close (default).
    PREVIOUS_CLOSE  previous bucket's close to this bucket's close.
    """

    OPEN_TO_CLOSE = "open_to_close"
    PREVIOUS_CLOSE = "previous_close"


class AnchorPolicy(str, Enum):
    """How an event date maps onto the trading calendar."""

    NEXT_TRADING_DAY = "next_trading_day"
    EXACT = "exact"


class PriceField(str, Enum):
    OPEN = "open"
    CLOSE = "close"


class TrendDirection(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"


class StreakComparison(str, Enum):
    MORE = "more"
    LESS = "less"


class ResultStatus(str, Enum):
    OK = "ok"
    INSUFFICIENT_DATA = "insufficient_data"
