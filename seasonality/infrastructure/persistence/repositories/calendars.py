"""SQLAlchemy implementation of CalendarRepository."""

from __future__ import annotations

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from seasonality.domain.models.catalogs import ElectionCalendar, ExpiryCalendar
from seasonality.domain.models.enums import ElectionCycle
from seasonality.domain.repositories.calendars import CalendarRepository
from seasonality.infrastructure.persistence.models.reference import ElectionYear, ExpiryDate

WEEKLY = "weekly"
MONTHLY = "monthly"


class SqlCalendarRepository(CalendarRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def _to_domain(rows: list[ElectionYear], country: str) -> ElectionCalendar:
        years: dict[ElectionCycle, set[int]] = {}
        for row in rows:
            years.setdefault(ElectionCycle(row.cycle), set()).add(row.year)
        return ElectionCalendar(
            country=country,
            years={cycle: frozenset(values) for cycle, values in years.items()},
        )

    async def _expiries(self, expiry_type: str, start: date | None, end: date | None) -> list[date]:
        stmt = (
            select(ExpiryDate.expiry_date)
            .where(ExpiryDate.expiry_type == expiry_type)
            .order_by(ExpiryDate.expiry_date.asc())
        )
        if start is not None:
            stmt = stmt.where(ExpiryDate.expiry_date >= start)
        if end is not None:
            stmt = stmt.where(ExpiryDate.expiry_date <= end)
        result = await self._session.execute(stmt)
        dates = list(result.scalars())
        if end is not None:
            # first expiry after the range closes the last bucket
            following = await self._session.execute(
                select(func.min(ExpiryDate.expiry_date)).where(
                    ExpiryDate.expiry_type == expiry_type,
                    ExpiryDate.expiry_date > end,
                )
            )
            next_date = following.scalar_one_or_none()
            if next_date is not None:
                dates.append(next_date)
        return dates

    async def get_expiry_calendar(
        self,
        start: date | None = None,
        end: date | None = None,
    ) -> ExpiryCalendar:
        return ExpiryCalendar(
            weekly=tuple(await self._expiries(WEEKLY, start, end)),
            monthly=tuple(await self._expiries(MONTHLY, start, end)),
        )

    async def get_election_calendar(self, country: str) -> ElectionCalendar:
        country = country.upper()
        stmt = select(ElectionYear).where(ElectionYear.country == country)
        result = await self._session.execute(stmt)
        return self._to_domain(list(result.scalars()), country)
