"""Wiring: one process-wide result cache, one AnalysisService per session."""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from seasonality.domain.services.analysis import AnalysisService
from seasonality.domain.services.cache import ResultCache
from seasonality.infrastructure.database import Settings, settings
from seasonality.infrastructure.persistence.repositories import get_repositories


@lru_cache(maxsize=1)
def get_result_cache() -> ResultCache:
    return ResultCache(ttl_seconds=settings.cache_ttl_seconds)


def get_analysis_service(
    session: AsyncSession,
    config: Settings | None = None,
    cache: ResultCache | None = None,
) -> AnalysisService:
    """Build an AnalysisService over the session's repositories.

    Usage:
        async with AsyncSessionLocal() as session:
            service = get_analysis_service(session)
            results = await service.monthly_analysis({"symbol": "NIFTY"})
    """
    config = config or settings
    repos = get_repositories(session)
    return AnalysisService(
        repos.prices,
        repos.special_days,
        repos.calendars,
        cache if cache is not None else get_result_cache(),
        default_country=config.default_country,
        event_buffer_days=config.event_buffer_days,
        event_min_occurrences=config.event_min_occurrences,
    )
