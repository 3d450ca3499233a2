"""Market data layer ORM models: price_bars."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import BigInteger, Date, DateTime, Double, ForeignKey, Index, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from seasonality.infrastructure.database import Base


class PriceBar(Base):
    """Daily OHLCV bar for a ticker.

    Composite PK: (ticker_id, bar_date).  Re-ingesting a date overwrites the
    row and refreshes ingested_at.  open is nullable for sources that only
    publish closes.
    """

    __tablename__ = "price_bars"
    __table_args__ = (Index("ix_price_bars_bar_date", "bar_date"),)

    ticker_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tickers.ticker_id", ondelete="CASCADE"), primary_key=True
    )
    bar_date: Mapped[date] = mapped_column(Date, primary_key=True, nullable=False)
    open: Mapped[Optional[float]] = mapped_column(Double, nullable=True)
    high: Mapped[float] = mapped_column(Double, nullable=False)
    low: Mapped[float] = mapped_column(Double, nullable=False)
    close: Mapped[float] = mapped_column(Double, nullable=False)
    volume: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    ingested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    ticker: Mapped["Ticker"] = relationship(back_populates="price_bars")
