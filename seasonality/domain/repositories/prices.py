"""Price repository interface.

Price bars have no single-entity CRUD lifecycle.  They are ingested in bulk
(re-ingesting a date supersedes the stored bar) and queried by symbol and
date range.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from seasonality.domain.models.market_data import PriceBar


class PriceRepository(ABC):
    """Read/write interface for daily price bars."""

    @abstractmethod
    async def get_prices(
        self,
        symbol: str,
        start: date | None = None,
        end: date | None = None,
    ) -> list[PriceBar]:
        """Return bars for one symbol in ascending date order.

        start and end are inclusive.  An unknown symbol returns an empty list.
        """

    @abstractmethod
    async def get_date_range(self, symbol: str) -> tuple[date, date] | None:
        """Return (first, last) stored bar_date for the symbol, or None."""

    @abstractmethod
    async def list_symbols(self) -> list[str]:
        """Return every symbol with stored bars, alphabetically."""

    @abstractmethod
    async def bulk_insert(self, bars: list[PriceBar]) -> int:
        """Upsert bars (insert, or replace on (symbol, bar_date) conflict).

        Returns the number of rows affected.
        """
