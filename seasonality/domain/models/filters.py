"""FilterSet: the closed, validated predicate configuration for one analysis.

Every part is frozen and rejects unknown fields.  Field names are snake_case
in Python and camelCase on the wire (``positiveNegativeYears`` ...).

List-valued fields are de-duplicated and sorted on construction, so two
structurally equal filter sets always serialize to the same canonical JSON
regardless of the order the caller supplied keys or list items in.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .enums import ParityFilter, SignFilter, Weekday, WeekType, YearParityFilter


class _FilterModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class YearFilters(_FilterModel):
    """Year-level predicates.

    decade_years holds allowed last digits of the year.  The dashboard sends
    ``10`` for the zero digit; it is normalised to ``0`` here.
    """

    positive_negative_years: SignFilter = SignFilter.ALL
    even_odd_years: YearParityFilter = YearParityFilter.ALL
    decade_years: list[int] = Field(default_factory=list)
    specific_years: list[int] = Field(default_factory=list)

    @field_validator("decade_years")
    @classmethod
    def _normalise_decades(cls, value: list[int]) -> list[int]:
        bad = [d for d in value if not 0 <= d <= 10]
        if bad:
            raise ValueError(f"decade digits must be in 0..10, got {bad}")
        return sorted({d % 10 for d in value})

    @field_validator("specific_years")
    @classmethod
    def _sort_years(cls, value: list[int]) -> list[int]:
        return sorted(set(value))


class MonthFilters(_FilterModel):
    positive_negative_months: SignFilter = SignFilter.ALL
    even_odd_months: ParityFilter = ParityFilter.ALL
    specific_month: int = Field(default=0, ge=0, le=12)  # 0 = any month


class WeekFilters(_FilterModel):
    """Week-level predicates.

    week_type picks the week scheme used for these predicates when the
    analysed timeframe is not itself weekly.
    """

    week_type: WeekType = WeekType.MONDAY
    positive_negative_weeks: SignFilter = SignFilter.ALL
    even_odd_weeks_monthly: ParityFilter = ParityFilter.ALL
    even_odd_weeks_yearly: ParityFilter = ParityFilter.ALL
    specific_week_monthly: int = Field(default=0, ge=0, le=6)  # 0 = any week


class DayFilters(_FilterModel):
    positive_negative_days: SignFilter = SignFilter.ALL
    weekdays: list[Weekday] = Field(default_factory=list)
    even_odd_calendar_days_monthly: ParityFilter = ParityFilter.ALL
    even_odd_calendar_days_yearly: ParityFilter = ParityFilter.ALL
    even_odd_trading_days_monthly: ParityFilter = ParityFilter.ALL
    even_odd_trading_days_yearly: ParityFilter = ParityFilter.ALL

    @field_validator("weekdays")
    @classmethod
    def _sort_weekdays(cls, value: list[Weekday]) -> list[Weekday]:
        return sorted(set(value), key=lambda d: d.index)


class PercentageRange(_FilterModel):
    """Inclusive return bound; records outside [min, max] are dropped, not clipped.

    A missing bound is open on that side.
    """

    enabled: bool = False
    lower: float | None = Field(default=None, alias="min")
    upper: float | None = Field(default=None, alias="max")

    @model_validator(mode="after")
    def _check_bounds(self) -> "PercentageRange":
        if self.lower is not None and self.upper is not None and self.lower > self.upper:
            raise ValueError(f"min ({self.lower}) must be <= max ({self.upper})")
        return self

    @property
    def is_active(self) -> bool:
        return self.enabled and (self.lower is not None or self.upper is not None)


class OutlierFilters(_FilterModel):
    daily_percentage_range: PercentageRange = Field(default_factory=PercentageRange)
    weekly_percentage_range: PercentageRange = Field(default_factory=PercentageRange)
    monthly_percentage_range: PercentageRange = Field(default_factory=PercentageRange)
    yearly_percentage_range: PercentageRange = Field(default_factory=PercentageRange)


class SpecialDaysFilters(_FilterModel):
    """Restrict to dates tagged with one of the selected special-day names."""

    selected_days: list[str] = Field(default_factory=list)
    country: str | None = None

    @field_validator("selected_days")
    @classmethod
    def _normalise_names(cls, value: list[str]) -> list[str]:
        return sorted({name.strip().upper() for name in value if name.strip()})

    @field_validator("country")
    @classmethod
    def _upper_country(cls, value: str | None) -> str | None:
        return value.strip().upper() if value else None


class FilterSet(_FilterModel):
    year_filters: YearFilters = Field(default_factory=YearFilters)
    month_filters: MonthFilters = Field(default_factory=MonthFilters)
    week_filters: WeekFilters = Field(default_factory=WeekFilters)
    day_filters: DayFilters = Field(default_factory=DayFilters)
    outlier_filters: OutlierFilters = Field(default_factory=OutlierFilters)
    special_days_filters: SpecialDaysFilters = Field(default_factory=SpecialDaysFilters)

    @property
    def needs_election_years(self) -> bool:
        return self.year_filters.even_odd_years == YearParityFilter.ELECTION

    @property
    def needs_special_days(self) -> bool:
        return bool(self.special_days_filters.selected_days)
