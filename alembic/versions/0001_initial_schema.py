"""Initial schema: reference catalogs and daily price bars.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ------------------------------------------------------------------ #
    # 1. REFERENCE LAYER                                                   #
    # ------------------------------------------------------------------ #

    op.create_table(
        "tickers",
        sa.Column("ticker_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("symbol", sa.Text, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.UniqueConstraint("symbol", name="uq_tickers_symbol"),
    )

    op.create_table(
        "special_days",
        sa.Column("special_day_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("category", sa.Text, nullable=False),
        sa.Column("country", sa.Text, nullable=False),
        sa.Column("day_date", sa.Date, nullable=False),
        sa.UniqueConstraint(
            "name", "country", "day_date", name="uq_special_days_name_country_date"
        ),
    )
    op.create_index(
        "ix_special_days_country_date", "special_days", ["country", "day_date"]
    )

    op.create_table(
        "expiry_dates",
        sa.Column("expiry_type", sa.Text, primary_key=True, nullable=False),
        sa.Column("expiry_date", sa.Date, primary_key=True, nullable=False),
    )

    op.create_table(
        "election_years",
        sa.Column("country", sa.Text, primary_key=True, nullable=False),
        sa.Column("cycle", sa.Text, primary_key=True, nullable=False),
        sa.Column("year", sa.Integer, primary_key=True, nullable=False),
    )

    # ------------------------------------------------------------------ #
    # 2. MARKET DATA LAYER                                                 #
    # ------------------------------------------------------------------ #

    op.create_table(
        "price_bars",
        sa.Column(
            "ticker_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tickers.ticker_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("bar_date", sa.Date, primary_key=True, nullable=False),
        sa.Column("open", sa.Double, nullable=True),
        sa.Column("high", sa.Double, nullable=False),
        sa.Column("low", sa.Double, nullable=False),
        sa.Column("close", sa.Double, nullable=False),
        sa.Column("volume", sa.BigInteger, nullable=False),
        sa.Column(
            "ingested_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index("ix_price_bars_bar_date", "price_bars", ["bar_date"])


def downgrade() -> None:
    # Drop in reverse dependency order (leaves first, roots last).
    op.drop_index("ix_price_bars_bar_date", table_name="price_bars")
    op.drop_index("ix_special_days_country_date", table_name="special_days")

    op.drop_table("price_bars")
    op.drop_table("election_years")
    op.drop_table("expiry_dates")
    op.drop_table("special_days")
    op.drop_table("tickers")
