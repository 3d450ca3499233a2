"""SQLAlchemy implementation of PriceRepository."""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from seasonality.domain.models.market_data import PriceBar as DomainPriceBar
from seasonality.domain.repositories.prices import PriceRepository
from seasonality.infrastructure.persistence.models.market_data import PriceBar as OrmPriceBar
from seasonality.infrastructure.persistence.models.reference import Ticker


class SqlPriceRepository(PriceRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def _to_domain(row: OrmPriceBar, symbol: str) -> DomainPriceBar:
        return DomainPriceBar(
            symbol=symbol,
            bar_date=row.bar_date,
            open=row.open,
            high=row.high,
            low=row.low,
            close=row.close,
            volume=row.volume or 0,
        )

    async def get_prices(
        self,
        symbol: str,
        start: date | None = None,
        end: date | None = None,
    ) -> list[DomainPriceBar]:
        symbol = symbol.upper()
        stmt = (
            select(OrmPriceBar)
            .join(Ticker, Ticker.ticker_id == OrmPriceBar.ticker_id)
            .where(Ticker.symbol == symbol)
            .order_by(OrmPriceBar.bar_date.asc())
        )
        if start is not None:
            stmt = stmt.where(OrmPriceBar.bar_date >= start)
        if end is not None:
            stmt = stmt.where(OrmPriceBar.bar_date <= end)
        result = await self._session.execute(stmt)
        return [self._to_domain(row, symbol) for row in result.scalars()]

    async def get_date_range(self, symbol: str) -> tuple[date, date] | None:
        stmt = (
            select(func.min(OrmPriceBar.bar_date), func.max(OrmPriceBar.bar_date))
            .join(Ticker, Ticker.ticker_id == OrmPriceBar.ticker_id)
            .where(Ticker.symbol == symbol.upper())
        )
        result = await self._session.execute(stmt)
        first, last = result.one()
        if first is None:
            return None
        return first, last

    async def list_symbols(self) -> list[str]:
        stmt = (
            select(Ticker.symbol)
            .join(OrmPriceBar, OrmPriceBar.ticker_id == Ticker.ticker_id)
            .distinct()
            .order_by(Ticker.symbol)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def _ticker_ids(self, symbols: set[str]) -> dict[str, uuid.UUID]:
        """Return {symbol: ticker_id}, creating missing tickers."""
        insert_stmt = pg_insert(Ticker).values(
            [{"ticker_id": uuid.uuid4(), "symbol": s} for s in sorted(symbols)]
        )
        await self._session.execute(insert_stmt.on_conflict_do_nothing(index_elements=["symbol"]))
        result = await self._session.execute(
            select(Ticker.symbol, Ticker.ticker_id).where(Ticker.symbol.in_(symbols))
        )
        return {symbol: ticker_id for symbol, ticker_id in result.all()}

    async def bulk_insert(self, bars: list[DomainPriceBar]) -> int:
        if not bars:
            return 0
        ids = await self._ticker_ids({b.symbol for b in bars})
        values = [
            {
                "ticker_id": ids[b.symbol],
                "bar_date": b.bar_date,
                "open": b.open,
                "high": b.high,
                "low": b.low,
                "close": b.close,
                "volume": b.volume,
            }
            for b in bars
        ]
        stmt = pg_insert(OrmPriceBar).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["ticker_id", "bar_date"],
            set_={
                "open": stmt.excluded.open,
                "high": stmt.excluded.high,
                "low": stmt.excluded.low,
                "close": stmt.excluded.close,
                "volume": stmt.excluded.volume,
                "ingested_at": func.now(),
            },
        )
        result = await self._session.execute(stmt)
        return result.rowcount
