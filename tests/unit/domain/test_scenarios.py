"""Tests for seasonality/domain/services/scenarios.py."""

import numpy as np
import pandas as pd
import pytest
from datetime import date

from seasonality.domain.models.enums import StreakComparison, TrendDirection
from seasonality.domain.services.scenarios import ScenarioService, trend_columns


def _frame(returns, closes=None):
    n = len(returns)
    return pd.DataFrame(
        {
            "date": pd.bdate_range("2024-01-01", periods=n),
            "close": np.asarray(closes if closes is not None else [100.0 + i for i in range(n)], dtype=float),
            "return_percentage": np.asarray(returns, dtype=float),
        }
    )


@pytest.fixture
def service():
    return ScenarioService()


# --- trend_columns ---

def test_trend_columns_day_range_one():
    assert trend_columns(1) == ["T-1", "T", "T+1"]


def test_trend_columns_day_range_zero():
    assert trend_columns(0) == ["T"]


def test_trend_columns_length():
    assert len(trend_columns(10)) == 21


# --- historic_trend ---

def test_trigger_counter_restarts(service):
    trend = service.historic_trend(_frame([1, 1, 1, 1, 1, 1, -1]), consecutive_days=3, day_range=1)
    assert trend.total_occurrences == 2
    assert [o.trigger_date for o in trend.occurrences] == [date(2024, 1, 3), date(2024, 1, 8)]


def test_bearish_direction(service):
    trend = service.historic_trend(
        _frame([-1, -1, 2, -1, -1]), direction=TrendDirection.BEARISH, consecutive_days=2, day_range=1
    )
    assert trend.total_occurrences == 2


def test_window_values_around_trigger(service):
    trend = service.historic_trend(_frame([0.5, 1, 2, 3, -4]), consecutive_days=3, day_range=1)
    # triggers at index 2 (0.5, 1, 2) only; index 3 restarts the count
    values = trend.occurrences[0].values
    assert values == {"T-1": 1.0, "T": 2.0, "T+1": 3.0}


def test_window_past_series_edge_is_none(service):
    trend = service.historic_trend(_frame([1, 1]), consecutive_days=2, day_range=2)
    values = trend.occurrences[0].values
    assert values["T+1"] is None
    assert values["T-1"] == 1.0
    assert values["T-2"] is None


def test_column_stats(service):
    trend = service.historic_trend(_frame([1, 1, -2, 1, 1, 3]), consecutive_days=2, day_range=1)
    stats = trend.column_stats["T+1"]
    assert stats.count == 2
    assert stats.pos_count == 1
    assert stats.neg_count == 1
    assert stats.avg_return == pytest.approx(0.5)


def test_superimposed_path_compounds_column_averages(service):
    trend = service.historic_trend(_frame([10, 10, -10, 10, 10, -10]), consecutive_days=2, day_range=1)
    path = [p.cumulative_return for p in trend.superimposed]
    assert path == pytest.approx([10.0, 21.0, (1.21 * 0.9 - 1.0) * 100.0])


def test_undefined_returns_skipped(service):
    trend = service.historic_trend(_frame([np.nan, 1, 1]), consecutive_days=2, day_range=0)
    assert trend.total_occurrences == 1


def test_no_triggers(service):
    trend = service.historic_trend(_frame([-1, -1]), consecutive_days=2, day_range=1)
    assert trend.total_occurrences == 0
    assert [p.cumulative_return for p in trend.superimposed] == [0.0, 0.0, 0.0]


def test_empty_frame(service):
    trend = service.historic_trend(_frame([]), day_range=1)
    assert trend.columns == ["T-1", "T", "T+1"]
    assert trend.occurrences == []


# --- trending_streaks ---

def test_streak_below_threshold(service):
    frame = _frame([1, -1, -1, -1, 2])
    streaks = service.trending_streaks(frame, min_length=3, comparison=StreakComparison.LESS)
    assert len(streaks) == 1
    assert streaks[0].start_date == date(2024, 1, 2)
    assert streaks[0].end_date == date(2024, 1, 4)
    assert streaks[0].total_days == 3


def test_streak_percent_change_includes_first_day_move(service):
    # 100 -> 90 -> 81: the streak starts from the 100 close before its first day
    frame = _frame([-10.0, -10.0], closes=[90.0, 81.0])
    streak = service.trending_streaks(frame, min_length=2)[0]
    assert streak.start_close == 90.0
    assert streak.end_close == 81.0
    assert streak.percent_change == pytest.approx(-19.0)


def test_streak_running_to_series_end(service):
    frame = _frame([-1, 2, 3, 4])
    streaks = service.trending_streaks(frame, min_length=3, comparison=StreakComparison.MORE)
    assert len(streaks) == 1
    assert streaks[0].end_date == date(2024, 1, 4)


def test_streak_threshold(service):
    frame = _frame([0.5, 1.5, 2.0, 0.8])
    streaks = service.trending_streaks(frame, min_length=2, comparison=StreakComparison.MORE, threshold=1.0)
    assert [s.total_days for s in streaks] == [2]


def test_short_streaks_dropped(service):
    assert service.trending_streaks(_frame([-1, 1, -1]), min_length=2) == []


def test_streaks_empty_frame(service):
    assert service.trending_streaks(_frame([])) == []
