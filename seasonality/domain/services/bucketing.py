"""Period bucketer: assigns trading days to week / month / year buckets.

Bucket schemes
--------------
  MONDAY_WEEK     days sharing the same Monday; the week starts on the first
                  trading day on or after that Monday.
  EXPIRY_WEEK     days after one weekly expiry up to and including the next.
  CALENDAR_MONTH  calendar month.
  EXPIRY_MONTH    days after one monthly expiry up to and including the next.
  CALENDAR_YEAR   calendar year.
  EXPIRY_YEAR     days after one year's last monthly expiry up to and
                  including the next year's last monthly expiry.

Every row belongs to exactly one bucket per scheme.  Buckets are contiguous
and numbered 0..n-1 in chronological order.  Days after the final known
expiry form a trailing partial bucket whose key carries a ``+`` suffix.

Bucket prices are first open / max high / min low / last close / summed
volume, and the bucket return is measured on the bucket itself:

  OPEN_TO_CLOSE:   r = (close_last - open_first) / open_first * 100
  PREVIOUS_CLOSE:  r = (close_last - close_prev_bucket) / close_prev_bucket * 100

It is never the sum of member returns.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from seasonality.domain.errors import InvalidDataError, NotFoundError
from seasonality.domain.models.catalogs import ExpiryCalendar
from seasonality.domain.models.enums import (
    BucketScheme,
    PeriodType,
    ReturnBasis,
    Timeframe,
    WeekType,
)

logger = logging.getLogger(__name__)

ANNOTATION_COLUMNS = [
    "weekday",
    "calendar_month_day",
    "calendar_year_day",
    "trading_month_day",
    "trading_year_day",
    "week_key",
    "week_return",
    "week_number_monthly",
    "week_number_yearly",
    "month_key",
    "month_return",
    "month_number",
    "year_key",
    "year_return",
    "year",
    "is_monday_week_start",
    "is_expiry_week_start",
]

PERIOD_COLUMNS = [
    "period_key",
    "date",
    "anchor_date",
    "start_date",
    "end_date",
    "open",
    "high",
    "low",
    "close",
    "volume",
    "member_count",
    "return_points",
    "return_percentage",
    "year",
    "month_number",
    "week_number_monthly",
    "week_number_yearly",
    "weekday",
    "week_return",
    "month_return",
    "year_return",
]

_LEVEL_OF = {
    Timeframe.WEEKLY: "week",
    Timeframe.MONTHLY: "month",
    Timeframe.YEARLY: "year",
}


class PeriodBucketer:
    """Stateless bucketing over a ReturnCalculator frame.

    Expiry schemes need an ExpiryCalendar; the bucketer only consumes the
    dates, it never derives them.
    """

    # ------------------------------------------------------------------ #
    # Bucket assignment                                                    #
    # ------------------------------------------------------------------ #

    def assign(
        self,
        frame: pd.DataFrame,
        scheme: BucketScheme,
        calendar: ExpiryCalendar | None = None,
    ) -> pd.Series:
        """Return the 0-based bucket id of every row (frame must be date-sorted)."""
        raw = self._raw_labels(frame, scheme, calendar)
        changed = raw.ne(raw.shift())
        return (changed.cumsum() - 1).astype("int64")

    def split(
        self,
        frame: pd.DataFrame,
        scheme: BucketScheme,
        calendar: ExpiryCalendar | None = None,
    ) -> list[pd.DataFrame]:
        """Member rows of each bucket, in chronological order."""
        if frame.empty:
            return []
        ids = self.assign(frame, scheme, calendar)
        return [members for _, members in frame.groupby(ids, sort=True)]

    def _raw_labels(
        self,
        frame: pd.DataFrame,
        scheme: BucketScheme,
        calendar: ExpiryCalendar | None,
    ) -> pd.Series:
        dates = frame["date"]
        if scheme == BucketScheme.MONDAY_WEEK:
            return dates - pd.to_timedelta(dates.dt.weekday, unit="D")
        if scheme == BucketScheme.CALENDAR_MONTH:
            return dates.dt.year * 100 + dates.dt.month
        if scheme == BucketScheme.CALENDAR_YEAR:
            return dates.dt.year
        boundaries = self.boundaries(scheme, calendar)
        positions = boundaries.searchsorted(dates.to_numpy(), side="left")
        return pd.Series(positions, index=frame.index)

    def boundaries(
        self,
        scheme: BucketScheme,
        calendar: ExpiryCalendar | None,
    ) -> pd.DatetimeIndex:
        """Closing dates of an expiry scheme's buckets, ascending."""
        if calendar is None:
            raise NotFoundError(f"{scheme.value} bucketing requires an expiry calendar")
        if scheme == BucketScheme.EXPIRY_WEEK:
            dates = calendar.weekly
        elif scheme in (BucketScheme.EXPIRY_MONTH, BucketScheme.EXPIRY_YEAR):
            dates = calendar.monthly
        else:
            raise ValueError(f"{scheme.value} is not an expiry scheme")
        if not dates:
            kind = "weekly" if scheme == BucketScheme.EXPIRY_WEEK else "monthly"
            raise NotFoundError(f"expiry calendar has no {kind} expiries")
        index = pd.DatetimeIndex(pd.to_datetime(list(dates)))
        if scheme == BucketScheme.EXPIRY_YEAR:
            index = pd.DatetimeIndex(index.to_series().groupby(index.year).max().to_numpy())
        return index

    # ------------------------------------------------------------------ #
    # Bucket aggregation                                                   #
    # ------------------------------------------------------------------ #

    def aggregate(
        self,
        frame: pd.DataFrame,
        scheme: BucketScheme,
        calendar: ExpiryCalendar | None = None,
        basis: ReturnBasis = ReturnBasis.OPEN_TO_CLOSE,
    ) -> pd.DataFrame:
        """One row per bucket with OHLCV, bucket return and labels.

        Columns: period_key, anchor_date, start_date, end_date, open, high,
        low, close, volume, member_count, return_points, return_percentage,
        year, month_number, week_number_monthly, week_number_yearly, weekday.
        """
        if frame.empty:
            return pd.DataFrame(columns=[c for c in PERIOD_COLUMNS if c != "date"])
        ids = self.assign(frame, scheme, calendar)
        return self._bucket_table(frame, scheme, calendar, basis, ids)

    def _bucket_table(
        self,
        frame: pd.DataFrame,
        scheme: BucketScheme,
        calendar: ExpiryCalendar | None,
        basis: ReturnBasis,
        ids: pd.Series,
    ) -> pd.DataFrame:
        table = frame.groupby(ids, sort=True).agg(
            start_date=("date", "first"),
            end_date=("date", "last"),
            open=("open", "first"),
            high=("high", "max"),
            low=("low", "min"),
            close=("close", "last"),
            volume=("volume", "sum"),
            member_count=("date", "size"),
        )
        table = table.reset_index(drop=True)

        tail = pd.Series(False, index=table.index)
        week_monthly = pd.Series(np.nan, index=table.index)
        week_yearly = pd.Series(np.nan, index=table.index)

        if scheme.is_expiry:
            bounds = self.boundaries(scheme, calendar)
            positions = self._raw_labels(frame, scheme, calendar).groupby(ids, sort=True).first()
            positions = positions.reset_index(drop=True).to_numpy()
            tail = pd.Series(positions >= len(bounds), index=table.index)
            clipped = np.minimum(positions, len(bounds) - 1)
            anchor = pd.Series(bounds[clipped], index=table.index).where(~tail, table["end_date"])
            if scheme == BucketScheme.EXPIRY_WEEK:
                ranks = self._expiry_week_ranks(bounds)
                week_monthly = pd.Series(ranks["monthly"][clipped], index=table.index).where(~tail)
                week_yearly = pd.Series(ranks["yearly"][clipped], index=table.index).where(~tail)
        else:
            anchor = table["start_date"]
            if scheme == BucketScheme.MONDAY_WEEK:
                week_monthly, week_yearly = self._calendar_week_numbers(anchor)

        table["anchor_date"] = anchor
        table["period_key"] = self._period_keys(scheme, table, tail)
        table["year"] = anchor.dt.year
        table["month_number"] = anchor.dt.month
        table["week_number_monthly"] = week_monthly
        table["week_number_yearly"] = week_yearly
        table["weekday"] = anchor.dt.day_name()

        base = table["open"] if basis == ReturnBasis.OPEN_TO_CLOSE else (
            table["close"].shift(1).fillna(table["open"])
        )
        zero_base = base == 0
        for key in table.loc[zero_base, "period_key"]:
            issue = InvalidDataError(f"bucket {key} has a zero base price; return undefined")
            logger.warning("%s", issue)
        safe_base = base.where(~zero_base)
        table["return_points"] = table["close"] - safe_base
        table["return_percentage"] = table["return_points"] / safe_base * 100.0
        return table

    @staticmethod
    def _period_keys(scheme: BucketScheme, table: pd.DataFrame, tail: pd.Series) -> pd.Series:
        anchor = table["anchor_date"]
        if scheme == BucketScheme.MONDAY_WEEK:
            monday = anchor - pd.to_timedelta(anchor.dt.weekday, unit="D")
            keys = monday.dt.strftime("%Y-%m-%d")
        elif scheme == BucketScheme.EXPIRY_WEEK:
            keys = anchor.dt.strftime("%Y-%m-%d")
        elif scheme in (BucketScheme.CALENDAR_MONTH, BucketScheme.EXPIRY_MONTH):
            keys = anchor.dt.strftime("%Y-%m")
        else:
            keys = anchor.dt.strftime("%Y")
        return keys.where(~tail, keys + "+")

    @staticmethod
    def _calendar_week_numbers(anchor: pd.Series) -> tuple[pd.Series, pd.Series]:
        """Monday-based week of month / week of year of each anchor date.

          week_of_month = (day - 1 + weekday(first of month)) // 7 + 1
          week_of_year  = (day_of_year - 1 + weekday(1 Jan)) // 7 + 1
        """
        day = anchor.dt.day
        doy = anchor.dt.dayofyear
        first_of_month = anchor - pd.to_timedelta(day - 1, unit="D")
        first_of_year = anchor - pd.to_timedelta(doy - 1, unit="D")
        monthly = (day - 1 + first_of_month.dt.weekday) // 7 + 1
        yearly = (doy - 1 + first_of_year.dt.weekday) // 7 + 1
        return monthly.astype(float), yearly.astype(float)

    @staticmethod
    def _expiry_week_ranks(bounds: pd.DatetimeIndex) -> dict[str, np.ndarray]:
        """1-based rank of each weekly expiry within its month and its year."""
        series = pd.Series(bounds)
        monthly = series.groupby([series.dt.year, series.dt.month]).cumcount() + 1
        yearly = series.groupby(series.dt.year).cumcount() + 1
        return {
            "monthly": monthly.to_numpy(dtype=float),
            "yearly": yearly.to_numpy(dtype=float),
        }

    # ------------------------------------------------------------------ #
    # Daily annotation                                                     #
    # ------------------------------------------------------------------ #

    def annotate(
        self,
        frame: pd.DataFrame,
        week_type: WeekType = WeekType.MONDAY,
        month_type: PeriodType = PeriodType.CALENDAR,
        year_type: PeriodType = PeriodType.CALENDAR,
        calendar: ExpiryCalendar | None = None,
        basis: ReturnBasis = ReturnBasis.OPEN_TO_CLOSE,
        history: pd.Series | None = None,
    ) -> pd.DataFrame:
        """Add calendar ordinals and containing-period metadata to daily rows.

        Trading ordinals are 1-based ranks among the trading days of the
        calendar month/year.  They are counted over ``history`` (every stored
        trading date up to the frame's end, from at least January 1 of its
        first year) so a day keeps its ordinal whatever the query start;
        without it only the frame's own dates are counted.

        week/month/year numbers, keys and returns are those of the bucket
        that contains the day under the chosen scheme, so a day in a positive
        month carries month_return > 0.
        """
        out = frame.copy()
        if out.empty:
            for column in ANNOTATION_COLUMNS:
                out[column] = pd.Series(dtype="object" if column.endswith("key") else "float64")
            out["weekday"] = pd.Series(dtype="object")
            return out

        dates = out["date"]
        out["weekday"] = dates.dt.day_name()
        out["calendar_month_day"] = dates.dt.day
        out["calendar_year_day"] = dates.dt.dayofyear
        ordinals = self.trading_ordinals(dates, history)
        out["trading_month_day"] = ordinals["trading_month_day"].to_numpy()
        out["trading_year_day"] = ordinals["trading_year_day"].to_numpy()

        levels = (
            ("week", BucketScheme.for_week(week_type)),
            ("month", BucketScheme.for_month(month_type)),
            ("year", BucketScheme.for_year(year_type)),
        )
        for level, scheme in levels:
            ids = self.assign(out, scheme, calendar)
            table = self._bucket_table(out, scheme, calendar, basis, ids)
            positions = ids.to_numpy()
            out[f"{level}_key"] = table["period_key"].to_numpy()[positions]
            out[f"{level}_return"] = table["return_percentage"].to_numpy()[positions]
            if level == "week":
                out["week_number_monthly"] = table["week_number_monthly"].to_numpy()[positions]
                out["week_number_yearly"] = table["week_number_yearly"].to_numpy()[positions]
            elif level == "month":
                out["month_number"] = table["month_number"].to_numpy()[positions]
            else:
                out["year"] = table["year"].to_numpy()[positions]

        out["is_monday_week_start"] = self._starts(out, BucketScheme.MONDAY_WEEK, calendar)
        if calendar is not None and calendar.weekly:
            out["is_expiry_week_start"] = self._starts(out, BucketScheme.EXPIRY_WEEK, calendar)
        else:
            out["is_expiry_week_start"] = False
        return out

    @staticmethod
    def trading_ordinals(dates: pd.Series, history: pd.Series | None = None) -> pd.DataFrame:
        """Rank each of ``dates`` among the trading days of its month and year."""
        days = pd.to_datetime(pd.Series(dates))
        if history is not None:
            days = pd.concat([pd.to_datetime(pd.Series(history)), days])
        days = days.drop_duplicates().sort_values().reset_index(drop=True)
        ranks = pd.DataFrame(
            {
                "trading_month_day": days.groupby([days.dt.year, days.dt.month]).cumcount() + 1,
                "trading_year_day": days.groupby(days.dt.year).cumcount() + 1,
            }
        )
        ranks.index = pd.DatetimeIndex(days)
        return ranks.reindex(pd.DatetimeIndex(pd.to_datetime(pd.Series(dates))))

    def _starts(self, frame: pd.DataFrame, scheme: BucketScheme, calendar) -> pd.Series:
        ids = self.assign(frame, scheme, calendar)
        return ids.ne(ids.shift())

    # ------------------------------------------------------------------ #
    # Period frames                                                        #
    # ------------------------------------------------------------------ #

    def period_frame(
        self,
        annotated: pd.DataFrame,
        timeframe: Timeframe,
        week_type: WeekType = WeekType.MONDAY,
        month_type: PeriodType = PeriodType.CALENDAR,
        year_type: PeriodType = PeriodType.CALENDAR,
        calendar: ExpiryCalendar | None = None,
        basis: ReturnBasis = ReturnBasis.OPEN_TO_CLOSE,
    ) -> pd.DataFrame:
        """Rows of the requested timeframe carrying PERIOD_COLUMNS.

        Containing-level metadata (year, month_number, the level returns) is
        taken from the bucket's anchor day: the first member for calendar
        and Monday buckets, the last member for expiry buckets.
        """
        if timeframe == Timeframe.DAILY:
            daily = annotated.copy()
            daily["period_key"] = daily["date"].dt.strftime("%Y-%m-%d")
            daily["anchor_date"] = daily["date"]
            daily["start_date"] = daily["date"]
            daily["end_date"] = daily["date"]
            daily["member_count"] = 1
            return daily

        if annotated.empty:
            return pd.DataFrame(columns=PERIOD_COLUMNS)

        level = _LEVEL_OF[timeframe]
        scheme = {
            "week": BucketScheme.for_week(week_type),
            "month": BucketScheme.for_month(month_type),
            "year": BucketScheme.for_year(year_type),
        }[level]
        ids = self.assign(annotated, scheme, calendar)
        table = self._bucket_table(annotated, scheme, calendar, basis, ids)

        grouped = annotated.groupby(ids, sort=True)
        anchor_rows = grouped.tail(1) if scheme.is_expiry else grouped.head(1)
        anchor_rows = anchor_rows.reset_index(drop=True)

        table["year"] = anchor_rows["year"].to_numpy()
        table["month_number"] = anchor_rows["month_number"].to_numpy()
        if level != "week":
            table["week_number_monthly"] = np.nan
            table["week_number_yearly"] = np.nan
        for column in ("week_return", "month_return", "year_return"):
            table[column] = anchor_rows[column].to_numpy()
        table[f"{level}_return"] = table["return_percentage"]
        table["date"] = table["anchor_date"]
        return table[PERIOD_COLUMNS]
