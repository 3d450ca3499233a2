"""ORM model registry: imports every layer module so each mapper class is
registered with Base.metadata before Alembic or SQLAlchemy runs.

Import order follows the dependency graph (referenced tables first).
"""

from seasonality.infrastructure.persistence.models.reference import (
    ElectionYear,
    ExpiryDate,
    SpecialDay,
    Ticker,
)
from seasonality.infrastructure.persistence.models.market_data import PriceBar

__all__ = [
    # Reference
    "ElectionYear",
    "ExpiryDate",
    "SpecialDay",
    "Ticker",
    # Market data
    "PriceBar",
]
