"""Result cache for analysis bundles.

Keyed by a fingerprint of (symbol, timeframe, start/end date, parameters).
The parameter payload is serialized as canonical JSON (sorted keys, compact
separators) and hashed with SHA-256, so structurally equal filter sets
collide however their keys were ordered.

Concurrency: at most one computation per key is in flight.  Concurrent
callers of get_or_compute() for the same key await the first caller's
computation, which runs in its own task so that cancelling any caller
(the first included) never cancels the others.  Failures propagate to every
waiter and are not cached.

Invalidation: invalidate_symbol() drops every entry of one symbol and bumps
the symbol's generation, so a computation that started before the
invalidation does not write its (stale) result back.  Entries otherwise
live until evicted by the optional TTL or clear().
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheKey:
    symbol: str
    timeframe: str
    digest: str

    def __str__(self) -> str:
        return f"analysis:{self.timeframe}:{self.symbol}:{self.digest[:16]}"


@dataclass
class CacheEntry(Generic[T]):
    value: T
    stored_at: float

    def age_seconds(self, now: float) -> float:
        return now - self.stored_at


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    joins: int = 0
    stores: int = 0
    invalidations: int = 0
    expirations: int = 0
    entries: int = 0
    in_flight: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


@dataclass
class _InFlight:
    future: asyncio.Future
    generation: tuple[int, int]
    waiters: int = field(default=0)


def _consume(task: asyncio.Future) -> None:
    """Retrieve an abandoned computation's outcome so it is not reported as lost."""
    if not task.cancelled():
        task.exception()


def canonical_json(payload: Any) -> str:
    """Deterministic JSON: sorted keys, no whitespace, models dumped in JSON mode."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", by_alias=True)
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


class ResultCache:
    """In-process async cache with single-flight computation.

    Construct one per process and inject it into AnalysisService.

    Usage:
        cache = ResultCache(ttl_seconds=None)
        key = cache.fingerprint("NIFTY", "daily", start, end, request.cache_params())
        result = await cache.get_or_compute(key, lambda: compute(...))
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive or None")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._in_flight: dict[CacheKey, _InFlight] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0
        self._stats = CacheStats()
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------ #
    # Keys                                                                 #
    # ------------------------------------------------------------------ #

    @staticmethod
    def fingerprint(
        symbol: str,
        timeframe: str,
        start_date: date | None,
        end_date: date | None,
        params: BaseModel | Mapping[str, Any] | None = None,
    ) -> CacheKey:
        payload = {
            "symbol": symbol.upper(),
            "timeframe": timeframe,
            "startDate": start_date.isoformat() if start_date else None,
            "endDate": end_date.isoformat() if end_date else None,
            "params": params.model_dump(mode="json", by_alias=True)
            if isinstance(params, BaseModel)
            else (dict(params) if params is not None else None),
        }
        digest = hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()
        return CacheKey(symbol=symbol.upper(), timeframe=timeframe, digest=digest)

    # ------------------------------------------------------------------ #
    # Lookup / store                                                       #
    # ------------------------------------------------------------------ #

    def _generation(self, symbol: str) -> tuple[int, int]:
        return self._epoch, self._generations.get(symbol, 0)

    def _fresh(self, key: CacheKey) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._ttl is not None and entry.age_seconds(self._clock()) > self._ttl:
            del self._entries[key]
            self._stats.expirations += 1
            return None
        return entry

    async def get(self, key: CacheKey) -> Any | None:
        async with self._lock:
            entry = self._fresh(key)
            if entry is None:
                self._stats.misses += 1
                return None
            self._stats.hits += 1
            return entry.value

    async def set(self, key: CacheKey, value: Any) -> None:
        async with self._lock:
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock())
            self._stats.stores += 1

    async def get_or_compute(self, key: CacheKey, factory: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value or run ``factory`` exactly once per key.

        The computation runs in its own task.  Cancelling a caller, the
        first one included, abandons only that caller's wait: the others
        still receive the result, which is cached as usual.
        """
        async with self._lock:
            entry = self._fresh(key)
            if entry is not None:
                self._stats.hits += 1
                logger.debug("Cache hit for %s", key)
                return entry.value
            flight = self._in_flight.get(key)
            if flight is not None:
                flight.waiters += 1
                self._stats.joins += 1
                logger.debug("Joining in-flight computation for %s", key)
                owner = False
            else:
                self._stats.misses += 1
                flight = _InFlight(
                    future=asyncio.get_running_loop().create_future(),
                    generation=self._generation(key.symbol),
                )
                self._in_flight[key] = flight
                owner = True

        if not owner:
            return await asyncio.shield(flight.future)

        task = asyncio.ensure_future(self._compute(key, flight, factory))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done():
                logger.debug("Caller of %s cancelled; computation continues", key)
                task.add_done_callback(_consume)
            raise

    async def _compute(self, key: CacheKey, flight: _InFlight, factory: Callable[[], Awaitable[T]]) -> T:
        try:
            value = await factory()
        except BaseException as exc:
            async with self._lock:
                if self._in_flight.get(key) is flight:
                    del self._in_flight[key]
            if flight.waiters and not isinstance(exc, asyncio.CancelledError):
                flight.future.set_exception(exc)
            else:
                flight.future.cancel()
            raise

        async with self._lock:
            if self._in_flight.get(key) is flight:
                del self._in_flight[key]
            if self._generation(key.symbol) == flight.generation:
                self._entries[key] = CacheEntry(value=value, stored_at=self._clock())
                self._stats.stores += 1
            else:
                logger.debug("Discarding result for %s computed before invalidation", key)
        flight.future.set_result(value)
        return value

    # ------------------------------------------------------------------ #
    # Invalidation                                                         #
    # ------------------------------------------------------------------ #

    async def invalidate_symbol(self, symbol: str) -> int:
        """Drop every entry for ``symbol``; returns the number removed."""
        symbol = symbol.upper()
        async with self._lock:
            doomed = [k for k in self._entries if k.symbol == symbol]
            for key in doomed:
                del self._entries[key]
            for key in [k for k in self._in_flight if k.symbol == symbol]:
                del self._in_flight[key]
            self._generations[symbol] = self._generations.get(symbol, 0) + 1
            self._stats.invalidations += len(doomed)
        logger.info("Invalidated %d cached result(s) for %s", len(doomed), symbol)
        return len(doomed)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
            self._in_flight.clear()
            self._epoch += 1

    @property
    def stats(self) -> CacheStats:
        snapshot = CacheStats(**{k: v for k, v in vars(self._stats).items()})
        snapshot.entries = len(self._entries)
        snapshot.in_flight = len(self._in_flight)
        return snapshot

    def __len__(self) -> int:
        return len(self._entries)
