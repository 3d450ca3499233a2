"""Default expiry-calendar generator.

Exchanges publish their expiry schedules and the calendar repository is the
authoritative source.  This helper reproduces the common rule (weekly
contracts expire every Thursday, monthly contracts on the month's last
Thursday, both moved back to the previous business day over holidays) for
symbols whose exchange has no stored schedule, and for tests.
"""

from __future__ import annotations

import calendar as _calendar
from collections.abc import Iterable
from datetime import date, timedelta

from seasonality.domain.models.catalogs import ExpiryCalendar


def _previous_business_day(day: date, holidays: set[date]) -> date:
    while day.weekday() >= 5 or day in holidays:
        day -= timedelta(days=1)
    return day


def generate_expiry_calendar(
    start: date,
    end: date,
    holidays: Iterable[date] = (),
    weekday: int = 3,
) -> ExpiryCalendar:
    """Weekly and monthly expiries covering [start, end].

    The schedule runs one week (weekly) / one month (monthly) past ``end``
    so the final bucket of a series closes on a real expiry.

    Args:
        start: First date that must be covered.
        end: Last date that must be covered.
        holidays: Exchange holidays; an expiry falling on one moves back.
        weekday: Expiry weekday, Monday == 0 (default Thursday).
    """
    if start > end:
        raise ValueError(f"start ({start}) must be <= end ({end})")
    closed = set(holidays)

    weekly: list[date] = []
    day = start + timedelta(days=(weekday - start.weekday()) % 7)
    horizon = end + timedelta(days=7)
    while day <= horizon:
        weekly.append(_previous_business_day(day, closed))
        day += timedelta(days=7)

    monthly: list[date] = []
    year, month = start.year, start.month
    last_year, last_month = (end.year + end.month // 12, end.month % 12 + 1)
    while (year, month) <= (last_year, last_month):
        last_day = date(year, month, _calendar.monthrange(year, month)[1])
        expiry = last_day - timedelta(days=(last_day.weekday() - weekday) % 7)
        monthly.append(_previous_business_day(expiry, closed))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)

    return ExpiryCalendar(weekly=tuple(weekly), monthly=tuple(monthly))
