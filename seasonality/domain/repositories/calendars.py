"""Reference calendar interface: derivatives expiries and election cycles."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from seasonality.domain.models.catalogs import ElectionCalendar, ExpiryCalendar


class CalendarRepository(ABC):
    @abstractmethod
    async def get_expiry_calendar(
        self,
        start: date | None = None,
        end: date | None = None,
    ) -> ExpiryCalendar:
        """Weekly and monthly expiry dates.

        Implementations should include the first expiry after ``end`` so the
        last bucket of a series closes on a real expiry.
        """

    @abstractmethod
    async def get_election_calendar(self, country: str) -> ElectionCalendar:
        """Election-cycle years for a country (empty when none are stored)."""
