"""Unit tests for FilterEngine predicate composition."""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from seasonality.domain.models.enums import (
    ParityFilter,
    SignFilter,
    Timeframe,
    Weekday,
    YearParityFilter,
)
from seasonality.domain.models.filters import (
    DayFilters,
    FilterSet,
    MonthFilters,
    OutlierFilters,
    PercentageRange,
    SpecialDaysFilters,
    WeekFilters,
    YearFilters,
)
from seasonality.domain.services.bucketing import PeriodBucketer
from seasonality.domain.services.filtering import FilterContext, FilterEngine


def _daily(seed: int = 0, periods: int = 600, start: str = "2021-01-01") -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    closes = 100.0 * np.cumprod(1.0 + rng.normal(0.0003, 0.012, periods))
    prev = pd.Series(closes).shift(1)
    frame = pd.DataFrame(
        {
            "date": pd.bdate_range(start, periods=periods),
            "open": closes,
            "high": closes * 1.01,
            "low": closes * 0.99,
            "close": closes,
            "volume": np.full(periods, 10, dtype="int64"),
            "prev_close": prev,
            "return_points": closes - prev,
            "return_percentage": (closes - prev) / prev * 100.0,
        }
    )
    bucketer = PeriodBucketer()
    return bucketer.period_frame(bucketer.annotate(frame), Timeframe.DAILY)


def _yearly(years=range(2016, 2026)) -> pd.DataFrame:
    years = list(years)
    starts = pd.to_datetime([f"{y}-01-01" for y in years])
    return pd.DataFrame(
        {
            "date": starts,
            "start_date": starts,
            "end_date": pd.to_datetime([f"{y}-12-31" for y in years]),
            "year": years,
            "return_percentage": [5.0 if y % 3 else -5.0 for y in years],
            "year_return": [5.0 if y % 3 else -5.0 for y in years],
        }
    )


@pytest.fixture
def engine() -> FilterEngine:
    return FilterEngine()


# ---------------------------------------------------------------------------
# Year filters
# ---------------------------------------------------------------------------


class TestYearFilters:
    def test_even_years(self, engine):
        fs = FilterSet(year_filters=YearFilters(even_odd_years=YearParityFilter.EVEN))
        out = engine.apply(_yearly(), fs, Timeframe.YEARLY)
        assert out["year"].tolist() == [2016, 2018, 2020, 2022, 2024]

    def test_odd_years(self, engine):
        fs = FilterSet(year_filters=YearFilters(even_odd_years=YearParityFilter.ODD))
        out = engine.apply(_yearly(), fs, Timeframe.YEARLY)
        assert out["year"].tolist() == [2017, 2019, 2021, 2023, 2025]

    def test_leap_years(self, engine):
        fs = FilterSet(year_filters=YearFilters(even_odd_years=YearParityFilter.LEAP))
        out = engine.apply(_yearly(), fs, Timeframe.YEARLY)
        assert out["year"].tolist() == [2016, 2020, 2024]

    def test_century_rule_for_leap_years(self, engine):
        fs = FilterSet(year_filters=YearFilters(even_odd_years=YearParityFilter.LEAP))
        out = engine.apply(_yearly([1900, 2000, 2100]), fs, Timeframe.YEARLY)
        assert out["year"].tolist() == [2000]

    def test_election_years_from_context(self, engine):
        fs = FilterSet(year_filters=YearFilters(even_odd_years=YearParityFilter.ELECTION))
        ctx = FilterContext(election_years=frozenset({2019, 2024}))
        out = engine.apply(_yearly(), fs, Timeframe.YEARLY, ctx)
        assert out["year"].tolist() == [2019, 2024]

    def test_election_filter_without_calendar_matches_nothing(self, engine):
        fs = FilterSet(year_filters=YearFilters(even_odd_years=YearParityFilter.ELECTION))
        assert engine.apply(_yearly(), fs, Timeframe.YEARLY).empty

    def test_positive_years(self, engine):
        fs = FilterSet(year_filters=YearFilters(positive_negative_years=SignFilter.POSITIVE))
        out = engine.apply(_yearly(), fs, Timeframe.YEARLY)
        assert (out["year_return"] > 0).all()
        assert 2016 not in out["year"].tolist()  # 2016 % 3 == 0

    def test_decade_digit_zero(self, engine):
        fs = FilterSet(year_filters=YearFilters(decade_years=[10]))
        out = engine.apply(_yearly(range(2005, 2026)), fs, Timeframe.YEARLY)
        assert out["year"].tolist() == [2010, 2020]

    def test_specific_years(self, engine):
        fs = FilterSet(year_filters=YearFilters(specific_years=[2017, 2023, 1999]))
        out = engine.apply(_yearly(), fs, Timeframe.YEARLY)
        assert out["year"].tolist() == [2017, 2023]

    def test_year_filters_apply_to_daily_rows(self, engine):
        fs = FilterSet(year_filters=YearFilters(specific_years=[2022]))
        out = engine.apply(_daily(), fs, Timeframe.DAILY)
        assert set(out["year"]) == {2022}


# ---------------------------------------------------------------------------
# Day / week / month filters
# ---------------------------------------------------------------------------


class TestDailyFilters:
    def test_positive_days_exclude_zero_and_undefined(self, engine):
        frame = _daily()
        frame.loc[5, "return_percentage"] = 0.0
        fs = FilterSet(day_filters=DayFilters(positive_negative_days=SignFilter.POSITIVE))
        out = engine.apply(frame, fs, Timeframe.DAILY)
        assert (out["return_percentage"] > 0).all()
        assert 0 not in out.index  # first day has no return
        assert 5 not in out.index

    def test_weekdays(self, engine):
        fs = FilterSet(day_filters=DayFilters(weekdays=[Weekday.MONDAY, Weekday.FRIDAY]))
        out = engine.apply(_daily(), fs, Timeframe.DAILY)
        assert set(out["weekday"]) == {"Monday", "Friday"}

    def test_even_trading_days_of_month(self, engine):
        fs = FilterSet(day_filters=DayFilters(even_odd_trading_days_monthly=ParityFilter.EVEN))
        out = engine.apply(_daily(), fs, Timeframe.DAILY)
        assert (out["trading_month_day"] % 2 == 0).all()

    def test_odd_calendar_days_of_year(self, engine):
        fs = FilterSet(day_filters=DayFilters(even_odd_calendar_days_yearly=ParityFilter.ODD))
        out = engine.apply(_daily(), fs, Timeframe.DAILY)
        assert (out["calendar_year_day"] % 2 == 1).all()

    def test_specific_month(self, engine):
        fs = FilterSet(month_filters=MonthFilters(specific_month=3))
        out = engine.apply(_daily(), fs, Timeframe.DAILY)
        assert set(out["month_number"]) == {3}
        assert set(out["date"].dt.month) == {3}

    def test_negative_months_on_daily_rows(self, engine):
        fs = FilterSet(month_filters=MonthFilters(positive_negative_months=SignFilter.NEGATIVE))
        out = engine.apply(_daily(), fs, Timeframe.DAILY)
        assert not out.empty
        assert (out["month_return"] < 0).all()

    def test_specific_week_of_month(self, engine):
        fs = FilterSet(week_filters=WeekFilters(specific_week_monthly=2))
        out = engine.apply(_daily(), fs, Timeframe.DAILY)
        assert set(out["week_number_monthly"]) == {2}

    def test_daily_outlier_range_is_inclusive_and_drops_undefined(self, engine):
        frame = _daily()
        bounds = PercentageRange(enabled=True, lower=-1.0, upper=1.0)
        fs = FilterSet(outlier_filters=OutlierFilters(daily_percentage_range=bounds))
        out = engine.apply(frame, fs, Timeframe.DAILY)
        assert out["return_percentage"].between(-1.0, 1.0).all()
        assert 0 not in out.index

    def test_disabled_range_is_ignored(self, engine):
        frame = _daily()
        bounds = PercentageRange(enabled=False, lower=-0.1, upper=0.1)
        fs = FilterSet(outlier_filters=OutlierFilters(daily_percentage_range=bounds))
        assert len(engine.apply(frame, fs, Timeframe.DAILY)) == len(frame)


# ---------------------------------------------------------------------------
# Special days
# ---------------------------------------------------------------------------


class TestSpecialDays:
    def test_daily_rows_match_exact_dates(self, engine):
        frame = _daily()
        tagged = frozenset({date(2021, 1, 5), date(2021, 2, 10), date(2021, 1, 9)})  # 9th is a Saturday
        fs = FilterSet(special_days_filters=SpecialDaysFilters(selected_days=["BUDGET"]))
        out = engine.apply(frame, fs, Timeframe.DAILY, FilterContext(special_dates=tagged))
        assert [d.date() for d in out["date"]] == [date(2021, 1, 5), date(2021, 2, 10)]

    def test_period_rows_match_when_date_inside_period(self, engine):
        fs = FilterSet(special_days_filters=SpecialDaysFilters(selected_days=["DIWALI"]))
        ctx = FilterContext(special_dates=frozenset({date(2018, 11, 7), date(2020, 11, 14)}))
        out = engine.apply(_yearly(), fs, Timeframe.YEARLY, ctx)
        assert out["year"].tolist() == [2018, 2020]

    def test_no_tagged_dates_matches_nothing(self, engine):
        fs = FilterSet(special_days_filters=SpecialDaysFilters(selected_days=["DIWALI"]))
        assert engine.apply(_yearly(), fs, Timeframe.YEARLY).empty


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


class TestComposition:
    def test_no_filters_keeps_everything(self, engine):
        frame = _daily()
        assert engine.predicates(FilterSet(), Timeframe.DAILY) == []
        assert len(engine.apply(frame, FilterSet(), Timeframe.DAILY)) == len(frame)

    def test_day_categories_ignored_on_monthly_rows(self, engine):
        fs = FilterSet(
            day_filters=DayFilters(
                weekdays=[Weekday.MONDAY], positive_negative_days=SignFilter.POSITIVE
            ),
            week_filters=WeekFilters(specific_week_monthly=1),
        )
        assert engine.predicates(fs, Timeframe.MONTHLY) == []

    def test_year_categories_apply_to_yearly_rows(self, engine):
        fs = FilterSet(
            month_filters=MonthFilters(specific_month=1),
            year_filters=YearFilters(even_odd_years=YearParityFilter.EVEN),
        )
        assert [p.name for p in engine.predicates(fs, Timeframe.YEARLY)] == ["even_odd_years"]

    def test_predicate_order(self, engine):
        fs = FilterSet(
            special_days_filters=SpecialDaysFilters(selected_days=["BUDGET"]),
            outlier_filters=OutlierFilters(
                daily_percentage_range=PercentageRange(enabled=True, upper=2.0)
            ),
            month_filters=MonthFilters(specific_month=2, even_odd_months=ParityFilter.EVEN),
            day_filters=DayFilters(weekdays=[Weekday.FRIDAY], positive_negative_days=SignFilter.NEGATIVE),
            year_filters=YearFilters(specific_years=[2022]),
        )
        names = [p.name for p in engine.predicates(fs, Timeframe.DAILY)]
        assert names == [
            "positive_negative_days",
            "even_odd_months",
            "specific_years",
            "weekdays",
            "specific_month",
            "daily_percentage_range",
            "special_days",
        ]

    @pytest.mark.parametrize("seed", [11, 12, 13, 14])
    def test_apply_matches_conjunctive_mask(self, engine, seed):
        frame = _daily(seed)
        fs = FilterSet(
            day_filters=DayFilters(
                positive_negative_days=SignFilter.POSITIVE,
                even_odd_calendar_days_monthly=ParityFilter.ODD,
            ),
            month_filters=MonthFilters(positive_negative_months=SignFilter.POSITIVE),
            year_filters=YearFilters(even_odd_years=YearParityFilter.ODD),
        )
        applied = engine.apply(frame, fs, Timeframe.DAILY)
        masked = frame[engine.mask(frame, fs, Timeframe.DAILY)]
        assert applied.index.tolist() == masked.index.tolist()

    @pytest.mark.parametrize("seed", [21, 22, 23])
    def test_filtering_is_idempotent(self, engine, seed):
        frame = _daily(seed)
        fs = FilterSet(
            week_filters=WeekFilters(positive_negative_weeks=SignFilter.NEGATIVE),
            outlier_filters=OutlierFilters(
                daily_percentage_range=PercentageRange(enabled=True, lower=-1.5, upper=1.5)
            ),
        )
        once = engine.apply(frame, fs, Timeframe.DAILY)
        twice = engine.apply(once, fs, Timeframe.DAILY)
        assert once.index.tolist() == twice.index.tolist()

    def test_result_preserves_row_order(self, engine):
        fs = FilterSet(day_filters=DayFilters(weekdays=[Weekday.WEDNESDAY]))
        out = engine.apply(_daily(), fs, Timeframe.DAILY)
        assert out["date"].is_monotonic_increasing
