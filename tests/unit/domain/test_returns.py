"""Unit tests for ReturnCalculator.

  return_percentage_t = (close_t - close_{t-1}) / close_{t-1} * 100
"""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from seasonality.domain.models.market_data import PriceBar
from seasonality.domain.services.bucketing import PeriodBucketer
from seasonality.domain.services.frames import RETURN_COLUMNS
from seasonality.domain.services.returns import ReturnCalculator


def _bars(closes, start="2024-01-01", opens=None, symbol="TEST"):
    dates = pd.bdate_range(start, periods=len(closes))
    bars = []
    for i, (day, close) in enumerate(zip(dates, closes)):
        open_ = opens[i] if opens is not None else close
        body = [close] if open_ is None else [open_, close]
        bars.append(
            PriceBar(
                symbol=symbol,
                bar_date=day.date(),
                open=open_,
                high=max(body) * 1.01,
                low=min(body) * 0.99,
                close=close,
                volume=1000,
            )
        )
    return bars


@pytest.fixture
def calculator() -> ReturnCalculator:
    return ReturnCalculator()


class TestCompute:
    def test_columns(self, calculator):
        frame = calculator.compute(_bars([100.0, 101.0]))
        assert list(frame.columns) == RETURN_COLUMNS

    def test_first_bar_has_no_return(self, calculator):
        frame = calculator.compute(_bars([100.0, 102.0]))
        assert np.isnan(frame["return_percentage"].iloc[0])
        assert len(frame) == 2

    def test_return_formula(self, calculator):
        frame = calculator.compute(_bars([100.0, 102.0, 99.0, 99.0, 105.0]))
        expected = [2.0, (99 - 102) / 102 * 100, 0.0, (105 - 99) / 99 * 100]
        assert frame["return_percentage"].iloc[1:].tolist() == pytest.approx(expected)

    def test_return_points(self, calculator):
        frame = calculator.compute(_bars([100.0, 102.0, 99.0]))
        assert frame["return_points"].iloc[1:].tolist() == pytest.approx([2.0, -3.0])

    def test_prev_close_column(self, calculator):
        frame = calculator.compute(_bars([100.0, 102.0]))
        assert frame["prev_close"].iloc[1] == 100.0

    def test_missing_open_uses_previous_close(self, calculator):
        frame = calculator.compute(_bars([100.0, 102.0], opens=[99.0, None]))
        assert frame["open"].iloc[1] == 100.0

    def test_missing_open_on_first_bar_uses_own_close(self, calculator):
        frame = calculator.compute(_bars([100.0, 102.0], opens=[None, 101.0]))
        assert frame["open"].iloc[0] == 100.0

    def test_range_slicing_resets_first_return(self, calculator):
        bars = _bars([100.0, 102.0, 104.0, 106.0])
        frame = calculator.compute(bars, start_date=bars[2].bar_date)
        assert len(frame) == 2
        assert np.isnan(frame["return_percentage"].iloc[0])

    def test_end_date_is_inclusive(self, calculator):
        bars = _bars([100.0, 102.0, 104.0, 106.0])
        frame = calculator.compute(bars, end_date=bars[1].bar_date)
        assert len(frame) == 2

    def test_empty_input(self, calculator):
        frame = calculator.compute([])
        assert frame.empty
        assert frame.attrs["invalid_records"] == 0

    def test_valid_series_reports_no_invalid_records(self, calculator):
        assert calculator.compute(_bars([1.0, 2.0])).attrs["invalid_records"] == 0


class TestIntegrity:
    def test_duplicate_date_superseded_by_later_bar(self, calculator):
        first, second = _bars([100.0, 102.0])
        replacement = PriceBar(
            symbol="TEST", bar_date=second.bar_date, open=110.0, high=112.0, low=109.0, close=111.0
        )
        frame = calculator.compute([first, second, replacement])
        assert len(frame) == 2
        assert frame["close"].iloc[1] == 111.0
        assert frame.attrs["invalid_records"] == 0

    def test_out_of_order_bar_dropped_and_counted(self, calculator):
        bars = _bars([100.0, 102.0, 104.0])
        frame = calculator.compute([bars[0], bars[2], bars[1]])
        assert frame["close"].tolist() == [100.0, 104.0]
        assert frame.attrs["invalid_records"] == 1

    def test_zero_previous_close_gives_undefined_return(self, calculator):
        frame = calculator.compute(_bars([100.0, 0.0, 5.0], opens=[100.0, None, 5.0]))
        assert np.isnan(frame["return_percentage"].iloc[2])
        assert frame.attrs["invalid_records"] == 1


class TestToRecords:
    def test_records_carry_ordinals(self, calculator):
        annotated = PeriodBucketer().annotate(calculator.compute(_bars([100.0, 101.0, 102.0])))
        records = calculator.to_records(annotated, "TEST")
        assert [r.bar_date for r in records] == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
        assert records[0].return_percentage is None
        assert records[1].trading_month_day == 2
        assert records[2].calendar_year_day == 3
        assert records[0].weekday_name == "Monday"
        assert records[0].is_monday_week_start is True
        assert records[0].year == 2024
