"""SQLAlchemy implementation of SpecialDayRepository."""

from __future__ import annotations

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from seasonality.domain.models.catalogs import SpecialDay as DomainSpecialDay
from seasonality.domain.repositories.special_days import SpecialDayRepository
from seasonality.infrastructure.persistence.models.reference import SpecialDay as OrmSpecialDay


class SqlSpecialDayRepository(SpecialDayRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def _to_domain(row: OrmSpecialDay) -> DomainSpecialDay:
        return DomainSpecialDay(
            name=row.name,
            category=row.category,
            country=row.country,
            day_date=row.day_date,
        )

    async def find(
        self,
        names: list[str] | None = None,
        categories: list[str] | None = None,
        country: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[DomainSpecialDay]:
        stmt = select(OrmSpecialDay).order_by(OrmSpecialDay.day_date.asc(), OrmSpecialDay.name)
        if names:
            stmt = stmt.where(func.upper(OrmSpecialDay.name).in_([n.upper() for n in names]))
        elif categories:
            stmt = stmt.where(
                func.upper(OrmSpecialDay.category).in_([c.upper() for c in categories])
            )
        if country is not None:
            stmt = stmt.where(func.upper(OrmSpecialDay.country) == country.upper())
        if start is not None:
            stmt = stmt.where(OrmSpecialDay.day_date >= start)
        if end is not None:
            stmt = stmt.where(OrmSpecialDay.day_date <= end)
        result = await self._session.execute(stmt)
        return [self._to_domain(row) for row in result.scalars()]

    async def list_names(self, country: str | None = None) -> list[str]:
        stmt = select(OrmSpecialDay.name).distinct().order_by(OrmSpecialDay.name)
        if country is not None:
            stmt = stmt.where(func.upper(OrmSpecialDay.country) == country.upper())
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def list_categories(self, country: str | None = None) -> list[str]:
        stmt = select(OrmSpecialDay.category).distinct().order_by(OrmSpecialDay.category)
        if country is not None:
            stmt = stmt.where(func.upper(OrmSpecialDay.country) == country.upper())
        result = await self._session.execute(stmt)
        return list(result.scalars())
