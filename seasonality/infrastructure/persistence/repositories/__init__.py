"""Concrete SQLAlchemy repository implementations.

Exports all SqlRepository classes and the get_repositories() factory function
for wiring at the application boundary.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from .calendars import SqlCalendarRepository
from .prices import SqlPriceRepository
from .special_days import SqlSpecialDayRepository


@dataclass
class Repositories:
    """All repository instances bound to a single AsyncSession."""

    prices: SqlPriceRepository
    special_days: SqlSpecialDayRepository
    calendars: SqlCalendarRepository


def get_repositories(session: AsyncSession) -> Repositories:
    """Construct all repositories bound to the given session.

        async with AsyncSessionLocal() as session:
            repos = get_repositories(session)
            bars = await repos.prices.get_prices("NIFTY")
    """
    return Repositories(
        prices=SqlPriceRepository(session),
        special_days=SqlSpecialDayRepository(session),
        calendars=SqlCalendarRepository(session),
    )


__all__ = [
    "SqlPriceRepository",
    "SqlSpecialDayRepository",
    "SqlCalendarRepository",
    "Repositories",
    "get_repositories",
]
