"""Filter engine: FilterSet -> ordered predicates over an annotated frame.

Predicates are composed with logical AND and evaluated in a fixed order,
cheapest first:

  1. sign          (positive / negative day, week, month, year)
  2. parity        (even / odd ordinals, leap and election years)
  3. year sets     (decade digit, explicit years)
  4. weekday
  5. specific unit (month number, week of month)
  6. outlier range (percentage bounds per level)
  7. special days  (catalog date lookup)

apply() narrows progressively: each predicate only sees the rows that
passed every earlier one, and evaluation stops once nothing is left.

A category applies to its own timeframe and finer ones.  Daily rows accept
every category; weekly rows accept week, month and year predicates; monthly
rows month and year; yearly rows only year.  Special days apply everywhere:
a period row matches when a tagged date falls inside [start_date, end_date].
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

import numpy as np
import pandas as pd

from seasonality.domain.models.enums import (
    ParityFilter,
    SignFilter,
    Timeframe,
    YearParityFilter,
)
from seasonality.domain.models.filters import FilterSet, PercentageRange

logger = logging.getLogger(__name__)

_DAY, _WEEK, _MONTH, _YEAR = 0, 1, 2, 3


@dataclass(frozen=True)
class FilterContext:
    """Catalog data a FilterSet may reference, resolved by the caller."""

    special_dates: frozenset[date] = field(default_factory=frozenset)
    election_years: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class Predicate:
    name: str
    test: Callable[[pd.DataFrame], pd.Series]


# ---------------------------------------------------------------------------
# Predicate builders
# ---------------------------------------------------------------------------


def _sign(column: str, mode: SignFilter) -> Callable[[pd.DataFrame], pd.Series]:
    # exactly-zero and undefined returns match neither Positive nor Negative
    if mode == SignFilter.POSITIVE:
        return lambda df: df[column] > 0
    return lambda df: df[column] < 0


def _parity(column: str, mode: ParityFilter | YearParityFilter) -> Callable[[pd.DataFrame], pd.Series]:
    remainder = 0 if mode.value == "Even" else 1
    return lambda df: df[column].astype(float) % 2 == remainder


def _is_leap(years: pd.Series) -> pd.Series:
    y = years.astype("int64")
    return (y % 4 == 0) & ((y % 100 != 0) | (y % 400 == 0))


def _in_range(column: str, bounds: PercentageRange) -> Callable[[pd.DataFrame], pd.Series]:
    def test(df: pd.DataFrame) -> pd.Series:
        values = df[column]
        mask = values.notna()
        if bounds.lower is not None:
            mask &= values >= bounds.lower
        if bounds.upper is not None:
            mask &= values <= bounds.upper
        return mask

    return test


def _on_special_day(dates: frozenset[date]) -> Callable[[pd.DataFrame], pd.Series]:
    tagged = np.sort(pd.to_datetime(list(dates)).to_numpy()) if dates else np.array([], dtype="datetime64[ns]")

    def test(df: pd.DataFrame) -> pd.Series:
        start = df["start_date"] if "start_date" in df else df["date"]
        end = df["end_date"] if "end_date" in df else df["date"]
        left = np.searchsorted(tagged, start.dt.normalize().to_numpy(), side="left")
        right = np.searchsorted(tagged, end.dt.normalize().to_numpy(), side="right")
        return pd.Series(right > left, index=df.index)

    return test


class FilterEngine:
    """Pure predicate evaluation.  No state is kept between calls."""

    def predicates(
        self,
        filters: FilterSet,
        timeframe: Timeframe,
        context: FilterContext | None = None,
    ) -> list[Predicate]:
        """Active predicates for this timeframe, in evaluation order."""
        ctx = context or FilterContext()
        level = timeframe.level
        yf, mf = filters.year_filters, filters.month_filters
        wf, df_ = filters.week_filters, filters.day_filters
        of = filters.outlier_filters

        def applies(category_level: int) -> bool:
            return category_level >= level

        sign: list[Predicate] = []
        for cat_level, name, column, mode in (
            (_DAY, "positive_negative_days", "return_percentage", df_.positive_negative_days),
            (_WEEK, "positive_negative_weeks", "week_return", wf.positive_negative_weeks),
            (_MONTH, "positive_negative_months", "month_return", mf.positive_negative_months),
            (_YEAR, "positive_negative_years", "year_return", yf.positive_negative_years),
        ):
            if applies(cat_level) and mode != SignFilter.ALL:
                sign.append(Predicate(name, _sign(column, mode)))

        parity: list[Predicate] = []
        for cat_level, name, column, mode in (
            (_DAY, "even_odd_calendar_days_monthly", "calendar_month_day", df_.even_odd_calendar_days_monthly),
            (_DAY, "even_odd_calendar_days_yearly", "calendar_year_day", df_.even_odd_calendar_days_yearly),
            (_DAY, "even_odd_trading_days_monthly", "trading_month_day", df_.even_odd_trading_days_monthly),
            (_DAY, "even_odd_trading_days_yearly", "trading_year_day", df_.even_odd_trading_days_yearly),
            (_WEEK, "even_odd_weeks_monthly", "week_number_monthly", wf.even_odd_weeks_monthly),
            (_WEEK, "even_odd_weeks_yearly", "week_number_yearly", wf.even_odd_weeks_yearly),
            (_MONTH, "even_odd_months", "month_number", mf.even_odd_months),
        ):
            if applies(cat_level) and mode != ParityFilter.ALL:
                parity.append(Predicate(name, _parity(column, mode)))

        year_mode = yf.even_odd_years
        if year_mode in (YearParityFilter.EVEN, YearParityFilter.ODD):
            parity.append(Predicate("even_odd_years", _parity("year", year_mode)))
        elif year_mode == YearParityFilter.LEAP:
            parity.append(Predicate("leap_years", lambda df: _is_leap(df["year"])))
        elif year_mode == YearParityFilter.ELECTION:
            elections = ctx.election_years
            if not elections:
                logger.warning("Election year filter requested but the election calendar is empty")
            parity.append(Predicate("election_years", lambda df: df["year"].isin(elections)))

        year_sets: list[Predicate] = []
        if yf.decade_years:
            digits = set(yf.decade_years)
            year_sets.append(
                Predicate("decade_years", lambda df: (df["year"].astype("int64") % 10).isin(digits))
            )
        if yf.specific_years:
            years = set(yf.specific_years)
            year_sets.append(Predicate("specific_years", lambda df: df["year"].isin(years)))

        weekday: list[Predicate] = []
        if applies(_DAY) and df_.weekdays:
            names = {d.value for d in df_.weekdays}
            weekday.append(Predicate("weekdays", lambda df: df["weekday"].isin(names)))

        units: list[Predicate] = []
        if applies(_MONTH) and mf.specific_month:
            month = mf.specific_month
            units.append(Predicate("specific_month", lambda df: df["month_number"] == month))
        if applies(_WEEK) and wf.specific_week_monthly:
            week = wf.specific_week_monthly
            units.append(
                Predicate("specific_week_monthly", lambda df: df["week_number_monthly"] == week)
            )

        ranges: list[Predicate] = []
        for cat_level, name, column, bounds in (
            (_DAY, "daily_percentage_range", "return_percentage", of.daily_percentage_range),
            (_WEEK, "weekly_percentage_range", "week_return", of.weekly_percentage_range),
            (_MONTH, "monthly_percentage_range", "month_return", of.monthly_percentage_range),
            (_YEAR, "yearly_percentage_range", "year_return", of.yearly_percentage_range),
        ):
            if applies(cat_level) and bounds.is_active:
                ranges.append(Predicate(name, _in_range(column, bounds)))

        special: list[Predicate] = []
        if filters.needs_special_days:
            special.append(Predicate("special_days", _on_special_day(ctx.special_dates)))

        return sign + parity + year_sets + weekday + units + ranges + special

    def apply(
        self,
        frame: pd.DataFrame,
        filters: FilterSet,
        timeframe: Timeframe,
        context: FilterContext | None = None,
    ) -> pd.DataFrame:
        """Rows passing every predicate, in original order."""
        subset = frame
        for predicate in self.predicates(filters, timeframe, context):
            if subset.empty:
                break
            keep = predicate.test(subset).fillna(False).to_numpy(dtype=bool)
            subset = subset[keep]
            logger.debug("Filter %s kept %d rows", predicate.name, len(subset))
        return subset

    def mask(
        self,
        frame: pd.DataFrame,
        filters: FilterSet,
        timeframe: Timeframe,
        context: FilterContext | None = None,
    ) -> pd.Series:
        """Boolean row mask equivalent to apply(), evaluated over every row."""
        result = pd.Series(True, index=frame.index)
        if frame.empty:
            return result
        for predicate in self.predicates(filters, timeframe, context):
            result &= predicate.test(frame).fillna(False).astype(bool)
        return result
