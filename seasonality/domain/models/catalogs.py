"""Externally supplied reference catalogs consumed read-only by the engine.

SpecialDay        one tagged calendar date (festival, holiday, budget, ...).
ExpiryCalendar    ordered weekly and monthly derivatives-expiry dates.
ElectionCalendar  election-cycle year sets for one country.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import ElectionCycle


class SpecialDay(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    country: str = Field(min_length=1)
    day_date: date

    @field_validator("name", "category", "country")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()


class ExpiryCalendar(BaseModel):
    """Expiry dates, each list sorted ascending without duplicates.

    monthly is the last-Thursday (holiday adjusted) contract expiry of each
    month; weekly is every weekly contract expiry.  Either may be empty when
    the exchange has no such contract; bucketing then reports NotFoundError.
    """

    model_config = ConfigDict(frozen=True)

    weekly: tuple[date, ...] = ()
    monthly: tuple[date, ...] = ()

    @field_validator("weekly", "monthly")
    @classmethod
    def _sorted_unique(cls, value: tuple[date, ...]) -> tuple[date, ...]:
        return tuple(sorted(set(value)))

    @property
    def is_empty(self) -> bool:
        return not self.weekly and not self.monthly


class ElectionCalendar(BaseModel):
    """Election-cycle membership of years for one country.

    No default contents: the authoritative lists come from the catalog
    repository.  An empty calendar makes the Election year filter match nothing.
    """

    model_config = ConfigDict(frozen=True)

    country: str
    years: dict[ElectionCycle, frozenset[int]] = Field(default_factory=dict)

    def years_for(self, *cycles: ElectionCycle) -> frozenset[int]:
        selected = cycles or (ElectionCycle.ELECTION,)
        result: set[int] = set()
        for cycle in selected:
            result |= self.years.get(cycle, frozenset())
        return frozenset(result)

    @property
    def election_years(self) -> frozenset[int]:
        return self.years_for(ElectionCycle.ELECTION)
