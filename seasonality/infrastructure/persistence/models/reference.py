"""Reference layer ORM models: tickers, special_days, expiry_dates, election_years."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Index, Integer, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from seasonality.infrastructure.database import Base


class Ticker(Base):
    """Instrument whose daily bars are stored in price_bars.

    symbol is stored upper-case; lookups compare upper-case values.
    """

    __tablename__ = "tickers"
    __table_args__ = (UniqueConstraint("symbol", name="uq_tickers_symbol"),)

    ticker_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    symbol: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    price_bars: Mapped[list["PriceBar"]] = relationship(
        back_populates="ticker", cascade="all, delete-orphan"
    )


class SpecialDay(Base):
    """One tagged calendar date (festival, holiday, budget day, ...)."""

    __tablename__ = "special_days"
    __table_args__ = (
        UniqueConstraint("name", "country", "day_date", name="uq_special_days_name_country_date"),
        Index("ix_special_days_country_date", "country", "day_date"),
    )

    special_day_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    country: Mapped[str] = mapped_column(Text, nullable=False)
    day_date: Mapped[date] = mapped_column(Date, nullable=False)


class ExpiryDate(Base):
    """Derivatives expiry date; expiry_type is 'weekly' or 'monthly'."""

    __tablename__ = "expiry_dates"

    expiry_type: Mapped[str] = mapped_column(Text, primary_key=True, nullable=False)
    expiry_date: Mapped[date] = mapped_column(Date, primary_key=True, nullable=False)


class ElectionYear(Base):
    """Year membership in an election cycle (election / pre_election / ...)."""

    __tablename__ = "election_years"

    country: Mapped[str] = mapped_column(Text, primary_key=True, nullable=False)
    cycle: Mapped[str] = mapped_column(Text, primary_key=True, nullable=False)
    year: Mapped[int] = mapped_column(Integer, primary_key=True, nullable=False)
