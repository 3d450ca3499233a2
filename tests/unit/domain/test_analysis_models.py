"""Tests for seasonality/domain/models/analysis.py and catalogs.py."""

from datetime import date

import pytest
from pydantic import ValidationError

from seasonality.domain.models.analysis import (
    AggregateRequest,
    AnalysisRequest,
    Statistics,
    SuperimposedRequest,
)
from seasonality.domain.models.catalogs import ElectionCalendar, ExpiryCalendar, SpecialDay
from seasonality.domain.models.enums import (
    AggregateField,
    AggregateType,
    ElectionCycle,
    PeriodType,
    ReturnBasis,
    Timeframe,
)


# --- AnalysisRequest ---

def test_single_symbol_is_promoted_to_list():
    assert AnalysisRequest.model_validate({"symbol": "nifty"}).symbols == ["NIFTY"]


def test_symbols_uppercased_and_deduplicated():
    req = AnalysisRequest(symbols=["nifty", "NIFTY", "banknifty"])
    assert req.symbols == ["NIFTY", "BANKNIFTY"]


def test_empty_symbols_rejected():
    with pytest.raises(ValidationError):
        AnalysisRequest(symbols=[])


def test_blank_symbol_rejected():
    with pytest.raises(ValidationError):
        AnalysisRequest(symbols=["  "])


def test_start_after_end_rejected():
    with pytest.raises(ValidationError):
        AnalysisRequest(symbols=["X"], start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))


def test_camel_case_dates_accepted():
    req = AnalysisRequest.model_validate(
        {"symbols": ["X"], "startDate": "2020-01-01", "endDate": "2020-12-31", "monthType": "expiry"}
    )
    assert req.start_date == date(2020, 1, 1)
    assert req.month_type == PeriodType.EXPIRY


def test_request_defaults():
    req = AnalysisRequest(symbols=["X"])
    assert req.return_basis == ReturnBasis.OPEN_TO_CLOSE
    assert req.year_type == PeriodType.CALENDAR


def test_unknown_request_field_rejected():
    with pytest.raises(ValidationError):
        AnalysisRequest.model_validate({"symbols": ["X"], "lastNDays": 30})


def test_cache_params_exclude_symbols_and_use_camel_case():
    params = AnalysisRequest(symbols=["X"], start_date=date(2020, 1, 1)).cache_params()
    assert "symbols" not in params
    assert params["startDate"] == "2020-01-01"
    assert "yearFilters" in params["filters"]


def test_aggregate_request_defaults():
    req = AggregateRequest(symbols=["X"])
    assert req.aggregate_field == AggregateField.WEEKDAY
    assert req.aggregate_type == AggregateType.AVG


def test_aggregate_request_parses_camel_case_field():
    req = AggregateRequest.model_validate(
        {"symbol": "X", "aggregateField": "tradingYearDay", "aggregateType": "total"}
    )
    assert req.aggregate_field == AggregateField.TRADING_YEAR_DAY


# --- SuperimposedRequest ---

def test_superimposed_rejects_yearly_timeframe():
    with pytest.raises(ValidationError):
        SuperimposedRequest(symbols=["X"], timeframe=Timeframe.YEARLY, group_by=AggregateField.MONTH_NUMBER)


def test_superimposed_rejects_day_key_for_weekly_rows():
    with pytest.raises(ValidationError):
        SuperimposedRequest(symbols=["X"], timeframe=Timeframe.WEEKLY)


def test_superimposed_accepts_week_key_for_weekly_rows():
    req = SuperimposedRequest(
        symbols=["X"], timeframe=Timeframe.WEEKLY, group_by=AggregateField.WEEK_NUMBER_YEARLY
    )
    assert req.group_by == AggregateField.WEEK_NUMBER_YEARLY


def test_superimposed_election_cycles_deduplicated():
    req = SuperimposedRequest(
        symbols=["X"],
        election_cycles=[ElectionCycle.MID_TERM, ElectionCycle.ELECTION, ElectionCycle.MID_TERM],
    )
    assert req.election_cycles == [ElectionCycle.ELECTION, ElectionCycle.MID_TERM]


# --- Statistics ---

def test_default_statistics_are_zero():
    stats = Statistics()
    assert stats.count == 0
    assert stats.cumulative_return == 0.0
    assert stats.longest_positive_streak is None


def test_statistics_wire_names_are_camel_case():
    wire = Statistics().to_wire()
    assert "posAccuracy" in wire
    assert "maxConsecutivePositive" in wire


# --- Catalogs ---

def test_special_day_fields_uppercased():
    day = SpecialDay(name="diwali", category="festival", country="india", day_date=date(2024, 11, 1))
    assert (day.name, day.category, day.country) == ("DIWALI", "FESTIVAL", "INDIA")


def test_expiry_calendar_sorted_unique():
    cal = ExpiryCalendar(weekly=(date(2024, 1, 11), date(2024, 1, 4), date(2024, 1, 11)))
    assert cal.weekly == (date(2024, 1, 4), date(2024, 1, 11))
    assert not cal.is_empty


def test_empty_expiry_calendar():
    assert ExpiryCalendar().is_empty


def test_election_calendar_defaults_to_election_cycle():
    cal = ElectionCalendar(
        country="INDIA",
        years={
            ElectionCycle.ELECTION: frozenset({2014, 2019}),
            ElectionCycle.PRE_ELECTION: frozenset({2013, 2018}),
        },
    )
    assert cal.years_for() == frozenset({2014, 2019})
    assert cal.election_years == frozenset({2014, 2019})
    assert cal.years_for(ElectionCycle.ELECTION, ElectionCycle.PRE_ELECTION) == frozenset(
        {2013, 2014, 2018, 2019}
    )


def test_election_calendar_missing_cycle_is_empty():
    assert ElectionCalendar(country="US").years_for(ElectionCycle.MID_TERM) == frozenset()
