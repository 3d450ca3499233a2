"""Tests for the get_repositories() DI factory."""

from unittest.mock import AsyncMock

from seasonality.infrastructure.persistence.repositories import (
    Repositories,
    SqlCalendarRepository,
    SqlPriceRepository,
    SqlSpecialDayRepository,
    get_repositories,
)


def _repos():
    return get_repositories(AsyncMock())


def test_get_repositories_returns_repositories_instance():
    assert isinstance(_repos(), Repositories)


def test_repositories_prices_is_correct_type():
    assert isinstance(_repos().prices, SqlPriceRepository)


def test_repositories_special_days_is_correct_type():
    assert isinstance(_repos().special_days, SqlSpecialDayRepository)


def test_repositories_calendars_is_correct_type():
    assert isinstance(_repos().calendars, SqlCalendarRepository)


def test_repositories_share_one_session():
    session = AsyncMock()
    repos = get_repositories(session)
    assert repos.prices._session is repos.special_days._session is repos.calendars._session is session


def test_repositories_dataclass_has_three_fields():
    assert len(Repositories.__dataclass_fields__) == 3
