"""Special-day catalog interface (festivals, holidays, budgets, elections)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from seasonality.domain.models.catalogs import SpecialDay


class SpecialDayRepository(ABC):
    @abstractmethod
    async def find(
        self,
        names: list[str] | None = None,
        categories: list[str] | None = None,
        country: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[SpecialDay]:
        """Return matching special days in ascending date order.

        names and categories are alternatives: when names is non-empty the
        categories argument is ignored.  Matching is case-insensitive.
        """

    @abstractmethod
    async def list_names(self, country: str | None = None) -> list[str]:
        """Distinct special-day names, alphabetically."""

    @abstractmethod
    async def list_categories(self, country: str | None = None) -> list[str]:
        """Distinct categories, alphabetically."""
