"""Market data domain models.

PriceBar      one trading day of OHLCV data for one symbol.
ReturnRecord  a PriceBar annotated with its return and calendar ordinals.

Both are immutable value objects keyed by (symbol, date).
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import Weekday


class PriceBar(BaseModel):
    """Daily OHLCV bar.

    open is optional; the return calculator substitutes the prior close when
    it is missing.  Re-ingesting the same (symbol, bar_date) supersedes the
    stored bar rather than mutating it.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(min_length=1)
    bar_date: date
    open: float | None = Field(default=None, ge=0.0)
    high: float = Field(ge=0.0)
    low: float = Field(ge=0.0)
    close: float = Field(ge=0.0)
    volume: int = Field(default=0, ge=0)

    @field_validator("symbol")
    @classmethod
    def _upper_symbol(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def _check_range(self) -> "PriceBar":
        body = [self.close] if self.open is None else [self.open, self.close]
        if self.high < max(body):
            raise ValueError(
                f"high ({self.high}) must be >= max(open, close) ({max(body)}) on {self.bar_date}"
            )
        if self.low > min(body):
            raise ValueError(
                f"low ({self.low}) must be <= min(open, close) ({min(body)}) on {self.bar_date}"
            )
        return self


class ReturnRecord(BaseModel):
    """One annotated trading day.

    return_percentage = (close - prev_close) / prev_close * 100
    return_points     = close - prev_close

    Both are None for the first bar of the queried range and for bars whose
    previous close is zero.  Week numbers are None inside a trailing expiry
    week that has no expiry date yet.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    bar_date: date
    open: float
    high: float
    low: float
    close: float
    volume: int = 0
    prev_close: float | None = None
    return_points: float | None = None
    return_percentage: float | None = None
    weekday_name: Weekday
    calendar_month_day: int
    trading_month_day: int
    calendar_year_day: int
    trading_year_day: int
    month_number: int
    year: int
    week_number_monthly: int | None = None
    week_number_yearly: int | None = None
    is_monday_week_start: bool = False
    is_expiry_week_start: bool = False
