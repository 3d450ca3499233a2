"""Repository interfaces (domain-side data-access contracts).

Concrete SQLAlchemy implementations live in
seasonality/infrastructure/persistence/repositories/ and are wired at the
application boundary.  All methods are async to accommodate asyncpg.
"""

from .calendars import CalendarRepository
from .prices import PriceRepository
from .special_days import SpecialDayRepository

__all__ = [
    "CalendarRepository",
    "PriceRepository",
    "SpecialDayRepository",
]
