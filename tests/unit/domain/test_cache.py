"""Unit tests for ResultCache: fingerprints, single-flight, invalidation and TTL."""

import asyncio
from datetime import date

import pytest

from seasonality.domain.models.filters import FilterSet
from seasonality.domain.services.cache import ResultCache, canonical_json


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _key(cache, symbol="NIFTY", params=None):
    return cache.fingerprint(symbol, "daily", date(2020, 1, 1), date(2024, 12, 31), params or {"a": 1})


# ---------------------------------------------------------------------------
# Fingerprints
# ---------------------------------------------------------------------------


class TestFingerprint:
    def test_key_order_does_not_matter(self):
        first = ResultCache.fingerprint("NIFTY", "daily", None, None, {"a": 1, "b": {"x": 1, "y": 2}})
        second = ResultCache.fingerprint("NIFTY", "daily", None, None, {"b": {"y": 2, "x": 1}, "a": 1})
        assert first == second

    def test_symbol_is_case_insensitive(self):
        assert ResultCache.fingerprint("nifty", "daily", None, None) == ResultCache.fingerprint(
            "NIFTY", "daily", None, None
        )

    @pytest.mark.parametrize(
        "other",
        [
            ("BANKNIFTY", "daily", None, None, {"a": 1}),
            ("NIFTY", "weekly", None, None, {"a": 1}),
            ("NIFTY", "daily", date(2020, 1, 1), None, {"a": 1}),
            ("NIFTY", "daily", None, None, {"a": 2}),
        ],
    )
    def test_any_component_changes_key(self, other):
        base = ResultCache.fingerprint("NIFTY", "daily", None, None, {"a": 1})
        assert ResultCache.fingerprint(*other) != base

    def test_model_params_match_their_dump(self):
        filters = FilterSet()
        as_model = ResultCache.fingerprint("NIFTY", "daily", None, None, filters)
        as_dict = ResultCache.fingerprint(
            "NIFTY", "daily", None, None, filters.model_dump(mode="json", by_alias=True)
        )
        assert as_model == as_dict

    def test_canonical_json_is_compact_and_sorted(self):
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_str(self):
        key = ResultCache.fingerprint("NIFTY", "daily", None, None)
        assert str(key).startswith("analysis:daily:NIFTY:")


# ---------------------------------------------------------------------------
# get_or_compute
# ---------------------------------------------------------------------------


async def test_computes_once_then_hits():
    cache = ResultCache()
    key = _key(cache)
    calls = 0

    async def factory():
        nonlocal calls
        calls += 1
        return "value"

    assert await cache.get_or_compute(key, factory) == "value"
    assert await cache.get_or_compute(key, factory) == "value"
    assert calls == 1
    assert cache.stats.hits == 1
    assert cache.stats.misses == 1
    assert len(cache) == 1


async def test_concurrent_callers_share_one_computation():
    cache = ResultCache()
    key = _key(cache)
    gate = asyncio.Event()
    calls = 0

    async def factory():
        nonlocal calls
        calls += 1
        await gate.wait()
        return {"rows": 3}

    tasks = [asyncio.create_task(cache.get_or_compute(key, factory)) for _ in range(5)]
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(*tasks)

    assert calls == 1
    assert all(r == {"rows": 3} for r in results)
    assert cache.stats.joins == 4
    assert cache.stats.in_flight == 0


async def test_failure_propagates_and_is_not_cached():
    cache = ResultCache()
    key = _key(cache)

    async def boom():
        raise RuntimeError("db down")

    with pytest.raises(RuntimeError, match="db down"):
        await cache.get_or_compute(key, boom)
    assert len(cache) == 0

    async def ok():
        return 42

    assert await cache.get_or_compute(key, ok) == 42


async def test_failure_reaches_waiters():
    cache = ResultCache()
    key = _key(cache)
    gate = asyncio.Event()

    async def boom():
        await gate.wait()
        raise ValueError("bad data")

    tasks = [asyncio.create_task(cache.get_or_compute(key, boom)) for _ in range(3)]
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(*tasks, return_exceptions=True)
    assert all(isinstance(r, ValueError) for r in results)


async def test_cancelled_first_caller_does_not_cancel_waiters():
    cache = ResultCache()
    key = _key(cache)
    gate = asyncio.Event()
    calls = 0

    async def slow():
        nonlocal calls
        calls += 1
        await gate.wait()
        return {"rows": 7}

    first = asyncio.create_task(cache.get_or_compute(key, slow))
    await asyncio.sleep(0)
    second = asyncio.create_task(cache.get_or_compute(key, slow))
    await asyncio.sleep(0)
    first.cancel()
    await asyncio.sleep(0)
    gate.set()

    assert await second == {"rows": 7}
    with pytest.raises(asyncio.CancelledError):
        await first
    assert calls == 1
    assert await cache.get(key) == {"rows": 7}


async def test_cancelled_sole_caller_still_caches_result():
    cache = ResultCache()
    key = _key(cache)
    gate = asyncio.Event()

    async def slow():
        await gate.wait()
        return 5

    caller = asyncio.create_task(cache.get_or_compute(key, slow))
    await asyncio.sleep(0)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller
    gate.set()
    for _ in range(5):
        await asyncio.sleep(0)
    assert cache.stats.in_flight == 0
    assert await cache.get(key) == 5


async def test_distinct_keys_compute_independently():
    cache = ResultCache()

    async def make(value):
        return value

    assert await cache.get_or_compute(_key(cache, "NIFTY"), lambda: make(1)) == 1
    assert await cache.get_or_compute(_key(cache, "BANKNIFTY"), lambda: make(2)) == 2
    assert len(cache) == 2


# ---------------------------------------------------------------------------
# Invalidation
# ---------------------------------------------------------------------------


async def test_invalidate_symbol_drops_only_that_symbol():
    cache = ResultCache()
    await cache.set(_key(cache, "NIFTY"), 1)
    await cache.set(_key(cache, "NIFTY", {"b": 2}), 2)
    await cache.set(_key(cache, "BANKNIFTY"), 3)

    assert await cache.invalidate_symbol("nifty") == 2
    assert await cache.get(_key(cache, "NIFTY")) is None
    assert await cache.get(_key(cache, "BANKNIFTY")) == 3


async def test_invalidation_during_flight_discards_result():
    cache = ResultCache()
    key = _key(cache)
    gate = asyncio.Event()

    async def slow():
        await gate.wait()
        return "stale"

    task = asyncio.create_task(cache.get_or_compute(key, slow))
    await asyncio.sleep(0)
    await cache.invalidate_symbol("NIFTY")
    gate.set()

    assert await task == "stale"
    assert len(cache) == 0

    async def fresh():
        return "fresh"

    assert await cache.get_or_compute(key, fresh) == "fresh"


async def test_clear():
    cache = ResultCache()
    await cache.set(_key(cache), 1)
    await cache.clear()
    assert len(cache) == 0
    assert await cache.get(_key(cache)) is None


# ---------------------------------------------------------------------------
# TTL
# ---------------------------------------------------------------------------


async def test_entries_expire_after_ttl():
    clock = _Clock()
    cache = ResultCache(ttl_seconds=10, clock=clock)
    key = _key(cache)
    await cache.set(key, "v")

    clock.now = 10.0
    assert await cache.get(key) == "v"
    clock.now = 10.5
    assert await cache.get(key) is None
    assert cache.stats.expirations == 1


async def test_without_ttl_entries_persist():
    clock = _Clock()
    cache = ResultCache(clock=clock)
    await cache.set(_key(cache), "v")
    clock.now = 1e9
    assert await cache.get(_key(cache)) == "v"


@pytest.mark.parametrize("ttl", [0, -1])
def test_rejects_non_positive_ttl(ttl):
    with pytest.raises(ValueError):
        ResultCache(ttl_seconds=ttl)


def test_hit_rate_without_lookups():
    assert ResultCache().stats.hit_rate == 0.0
