"""Analysis service: the engine's single entry point.

Data flow for one symbol:

  repository rows -> ReturnCalculator -> PeriodBucketer.annotate
      -> PeriodBucketer.period_frame -> FilterEngine.apply
      -> StatisticsEngine (or EventWindowAnalyzer / ScenarioService)
      -> result model -> ResultCache -> caller

Repository access for one service instance is serialized (one AsyncSession
must not be used concurrently); the CPU-bound pipeline runs in a worker
thread, so several symbols of one request progress concurrently.  Every
symbol is cached independently.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, TypeVar

import pandas as pd
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from seasonality.domain.errors import NotFoundError, ValidationError
from seasonality.domain.models.analysis import (
    AggregateRequest,
    AggregateResult,
    AnalysisMeta,
    AnalysisRequest,
    AnalysisResult,
    PeriodAggregate,
    SuperimposedRequest,
    SuperimposedResult,
)
from seasonality.domain.models.catalogs import ExpiryCalendar
from seasonality.domain.models.enums import PeriodType, Timeframe, Weekday, WeekType
from seasonality.domain.models.events import (
    EventAnalysisRequest,
    EventAnalysisResult,
    EventComparison,
)
from seasonality.domain.models.market_data import PriceBar
from seasonality.domain.models.scenarios import ScenarioRequest, ScenarioResult
from seasonality.domain.repositories.calendars import CalendarRepository
from seasonality.domain.repositories.prices import PriceRepository
from seasonality.domain.repositories.special_days import SpecialDayRepository
from seasonality.domain.services.bucketing import PeriodBucketer
from seasonality.domain.services.cache import ResultCache
from seasonality.domain.services.calendars import generate_expiry_calendar
from seasonality.domain.services.events import EventWindowAnalyzer
from seasonality.domain.services.filtering import FilterContext, FilterEngine
from seasonality.domain.services.frames import opt_float, opt_int, to_date
from seasonality.domain.services.returns import ReturnCalculator
from seasonality.domain.services.scenarios import ScenarioService
from seasonality.domain.services.statistics import StatisticsEngine

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)
ResultT = TypeVar("ResultT")


def coerce_request(model: type[RequestT], request: RequestT | Mapping[str, Any]) -> RequestT:
    """Accept a model instance or a raw (camelCase or snake_case) mapping."""
    if isinstance(request, model):
        return request
    try:
        return model.model_validate(request)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid {model.__name__}: {exc.error_count()} error(s)",
            errors=exc.errors(include_url=False),
        ) from exc


@dataclass
class _Prepared:
    """Loaded and annotated daily series for one symbol."""

    annotated: pd.DataFrame
    calendar: ExpiryCalendar | None
    context: FilterContext
    week_type: WeekType
    invalid_records: int


class AnalysisService:
    """Seasonality analyses over repository-backed price series.

    All collaborators are injected; the pure engines default to fresh
    instances.  Pass one process-wide ResultCache to share results between
    requests.
    """

    def __init__(
        self,
        prices: PriceRepository,
        special_days: SpecialDayRepository,
        calendars: CalendarRepository,
        cache: ResultCache | None = None,
        *,
        default_country: str = "INDIA",
        event_buffer_days: int = 60,
        event_min_occurrences: int = 3,
        returns: ReturnCalculator | None = None,
        bucketer: PeriodBucketer | None = None,
        filters: FilterEngine | None = None,
        statistics: StatisticsEngine | None = None,
        events: EventWindowAnalyzer | None = None,
        scenarios: ScenarioService | None = None,
    ) -> None:
        self._prices = prices
        self._special_days = special_days
        self._calendars = calendars
        self._cache = cache
        self._default_country = default_country.upper()
        self._event_buffer = timedelta(days=event_buffer_days)
        self._event_min_occurrences = event_min_occurrences
        self._returns = returns or ReturnCalculator()
        self._bucketer = bucketer or PeriodBucketer()
        self._filters = filters or FilterEngine()
        self._stats = statistics or StatisticsEngine()
        self._events = events or EventWindowAnalyzer(self._stats)
        self._scenarios = scenarios or ScenarioService(self._stats)
        self._io_lock = asyncio.Lock()

    # ------------------------------------------------------------------ #
    # Timeframe analyses                                                   #
    # ------------------------------------------------------------------ #

    async def analyze(
        self,
        timeframe: Timeframe | str,
        request: AnalysisRequest | Mapping[str, Any],
    ) -> dict[str, AnalysisResult]:
        """Run one timeframe analysis for every requested symbol."""
        try:
            frame_kind = Timeframe(timeframe)
        except ValueError as exc:
            raise ValidationError(f"Unknown timeframe: {timeframe!r}") from exc
        req = coerce_request(AnalysisRequest, request)
        return await self._per_symbol(
            req,
            frame_kind.value,
            lambda symbol: self._timeframe_result(symbol, frame_kind, req),
        )

    async def daily_analysis(self, request: AnalysisRequest | Mapping[str, Any]) -> dict[str, AnalysisResult]:
        return await self.analyze(Timeframe.DAILY, request)

    async def weekly_analysis(self, request: AnalysisRequest | Mapping[str, Any]) -> dict[str, AnalysisResult]:
        return await self.analyze(Timeframe.WEEKLY, request)

    async def monthly_analysis(self, request: AnalysisRequest | Mapping[str, Any]) -> dict[str, AnalysisResult]:
        return await self.analyze(Timeframe.MONTHLY, request)

    async def yearly_analysis(self, request: AnalysisRequest | Mapping[str, Any]) -> dict[str, AnalysisResult]:
        return await self.analyze(Timeframe.YEARLY, request)

    async def _timeframe_result(
        self, symbol: str, timeframe: Timeframe, req: AnalysisRequest
    ) -> AnalysisResult:
        prepared = await self._prepare(symbol, req, timeframe)
        return await asyncio.to_thread(self._build_timeframe_result, symbol, timeframe, req, prepared)

    def _build_timeframe_result(
        self,
        symbol: str,
        timeframe: Timeframe,
        req: AnalysisRequest,
        prepared: _Prepared,
    ) -> AnalysisResult:
        periods = self._period_frame(prepared, timeframe, req)
        filtered = self._filters.apply(periods, req.filters, timeframe, prepared.context)
        series = self._stats.with_series_columns(filtered)
        data = self._period_aggregates(series, timeframe)
        table = self._returns.to_records(series, symbol) if timeframe == Timeframe.DAILY else data
        logger.info(
            "%s %s analysis: %d of %d rows after filters",
            symbol,
            timeframe.value,
            len(filtered),
            len(periods),
        )
        return AnalysisResult(
            symbol=symbol,
            timeframe=timeframe,
            data=data,
            statistics=self._stats.compute(filtered, timeframe),
            chart_data=self._stats.chart_points(series),
            table_data=table,
            meta=self._meta(symbol, timeframe, req, prepared, len(periods), len(filtered)),
        )

    # ------------------------------------------------------------------ #
    # Daily aggregate / superimposed / scenario                            #
    # ------------------------------------------------------------------ #

    async def daily_aggregate_analysis(
        self, request: AggregateRequest | Mapping[str, Any]
    ) -> dict[str, AggregateResult]:
        """Group filtered daily returns by a calendar key and reduce each group."""
        req = coerce_request(AggregateRequest, request)

        async def compute(symbol: str) -> AggregateResult:
            prepared = await self._prepare(symbol, req, Timeframe.DAILY)
            return await asyncio.to_thread(self._build_aggregate_result, symbol, req, prepared)

        return await self._per_symbol(req, "daily_aggregate", compute)

    def _build_aggregate_result(
        self, symbol: str, req: AggregateRequest, prepared: _Prepared
    ) -> AggregateResult:
        periods = self._period_frame(prepared, Timeframe.DAILY, req)
        filtered = self._filters.apply(periods, req.filters, Timeframe.DAILY, prepared.context)
        return AggregateResult(
            symbol=symbol,
            aggregate_field=req.aggregate_field,
            aggregate_type=req.aggregate_type,
            rows=self._stats.grouped_aggregate(filtered, req.aggregate_field, req.aggregate_type),
            statistics=self._stats.compute(filtered, Timeframe.DAILY),
            meta=self._meta(symbol, Timeframe.DAILY, req, prepared, len(periods), len(filtered)),
        )

    async def superimposed_analysis(
        self, request: SuperimposedRequest | Mapping[str, Any]
    ) -> dict[str, SuperimposedResult]:
        """Average return per key (e.g. trading day of year), compounded along the key.

        With election_cycles set, only years belonging to those cycles are used.
        """
        req = coerce_request(SuperimposedRequest, request)

        async def compute(symbol: str) -> SuperimposedResult:
            prepared = await self._prepare(symbol, req, req.timeframe)
            cycle_years: frozenset[int] | None = None
            if req.election_cycles:
                country = (req.election_country or self._default_country).upper()
                async with self._io_lock:
                    elections = await self._calendars.get_election_calendar(country)
                cycle_years = elections.years_for(*req.election_cycles)
                if not cycle_years:
                    logger.warning("No %s election years stored for %s", country, symbol)
            return await asyncio.to_thread(
                self._build_superimposed_result, symbol, req, prepared, cycle_years
            )

        return await self._per_symbol(req, f"superimposed_{req.timeframe.value}", compute)

    def _build_superimposed_result(
        self,
        symbol: str,
        req: SuperimposedRequest,
        prepared: _Prepared,
        cycle_years: frozenset[int] | None,
    ) -> SuperimposedResult:
        periods = self._period_frame(prepared, req.timeframe, req)
        filtered = self._filters.apply(periods, req.filters, req.timeframe, prepared.context)
        if cycle_years is not None:
            filtered = filtered[filtered["year"].isin(cycle_years)]
        years = sorted({int(y) for y in filtered["year"]}) if not filtered.empty else []
        return SuperimposedResult(
            symbol=symbol,
            timeframe=req.timeframe,
            group_by=req.group_by,
            election_cycles=req.election_cycles,
            years=years,
            points=self._stats.superimposed(filtered, req.group_by),
            statistics=self._stats.compute(filtered, req.timeframe),
            meta=self._meta(symbol, req.timeframe, req, prepared, len(periods), len(filtered)),
        )

    async def scenario_analysis(
        self, request: ScenarioRequest | Mapping[str, Any]
    ) -> dict[str, ScenarioResult]:
        """Historic trending days and trending streaks over filtered daily rows."""
        req = coerce_request(ScenarioRequest, request)

        async def compute(symbol: str) -> ScenarioResult:
            prepared = await self._prepare(symbol, req, Timeframe.DAILY)
            return await asyncio.to_thread(self._build_scenario_result, symbol, req, prepared)

        return await self._per_symbol(req, "scenario", compute)

    def _build_scenario_result(
        self, symbol: str, req: ScenarioRequest, prepared: _Prepared
    ) -> ScenarioResult:
        periods = self._period_frame(prepared, Timeframe.DAILY, req)
        filtered = self._filters.apply(periods, req.filters, Timeframe.DAILY, prepared.context)
        return ScenarioResult(
            symbol=symbol,
            historic_trend=self._scenarios.historic_trend(
                filtered, req.trend_direction, req.consecutive_days, req.day_range
            ),
            trending_streaks=self._scenarios.trending_streaks(
                filtered, req.streak_min_length, req.streak_comparison, req.streak_threshold
            ),
            meta=self._meta(symbol, Timeframe.DAILY, req, prepared, len(periods), len(filtered)),
        )

    # ------------------------------------------------------------------ #
    # Event studies                                                        #
    # ------------------------------------------------------------------ #

    async def event_analysis(
        self, request: EventAnalysisRequest | Mapping[str, Any]
    ) -> EventAnalysisResult:
        """Event study around catalog dates.

        Too few complete occurrences is reported on the result (status
        INSUFFICIENT_DATA), never raised.
        """
        req = coerce_request(EventAnalysisRequest, request)

        async def compute() -> EventAnalysisResult:
            daily, events = await self._load_event_inputs(req, buffered=True)
            return await asyncio.to_thread(
                self._events.analyze,
                daily,
                events,
                req.symbol,
                req.start_date,
                req.end_date,
                req.window,
                req.trade,
                req.min_occurrences or self._event_min_occurrences,
                req.exit_day,
            )

        return await self._cached(req.symbol, "event", req.start_date, req.end_date, req, compute)

    async def compare_events(
        self, request: EventAnalysisRequest | Mapping[str, Any]
    ) -> EventComparison:
        """Daily returns on event dates against all other days of the range."""
        req = coerce_request(EventAnalysisRequest, request)

        async def compute() -> EventComparison:
            daily, events = await self._load_event_inputs(req, buffered=False)
            return await asyncio.to_thread(
                self._events.compare, daily, [e.day_date for e in events], req.symbol
            )

        return await self._cached(req.symbol, "event_compare", req.start_date, req.end_date, req, compute)

    async def _load_event_inputs(self, req: EventAnalysisRequest, buffered: bool):
        pad = self._event_buffer if buffered else timedelta(0)
        async with self._io_lock:
            bars = await self._prices.get_prices(req.symbol, req.start_date - pad, req.end_date + pad)
            if not bars:
                raise NotFoundError(f"No price data for {req.symbol} around the requested range", symbol=req.symbol)
            events = await self._special_days.find(
                names=req.event_names or None,
                categories=req.event_categories or None,
                country=req.country,
                start=req.start_date,
                end=req.end_date,
            )
        return self._returns.compute(bars), events

    # ------------------------------------------------------------------ #
    # Ingestion / invalidation                                             #
    # ------------------------------------------------------------------ #

    async def ingest_prices(self, bars: list[PriceBar]) -> int:
        """Upsert bars, then drop cached results for every affected symbol."""
        async with self._io_lock:
            written = await self._prices.bulk_insert(bars)
        for symbol in sorted({b.symbol for b in bars}):
            await self.invalidate_symbol(symbol)
        return written

    async def invalidate_symbol(self, symbol: str) -> int:
        if self._cache is None:
            return 0
        return await self._cache.invalidate_symbol(symbol)

    # ------------------------------------------------------------------ #
    # Shared plumbing                                                      #
    # ------------------------------------------------------------------ #

    async def _per_symbol(
        self,
        req: AnalysisRequest,
        namespace: str,
        compute: Callable[[str], Awaitable[ResultT]],
    ) -> dict[str, ResultT]:
        results = await asyncio.gather(
            *(
                self._cached(
                    symbol,
                    namespace,
                    req.start_date,
                    req.end_date,
                    req.cache_params(),
                    lambda symbol=symbol: compute(symbol),
                )
                for symbol in req.symbols
            )
        )
        return dict(zip(req.symbols, results))

    async def _cached(
        self,
        symbol: str,
        namespace: str,
        start: date | None,
        end: date | None,
        params: BaseModel | Mapping[str, Any],
        factory: Callable[[], Awaitable[ResultT]],
    ) -> ResultT:
        if self._cache is None:
            return await factory()
        key = ResultCache.fingerprint(symbol, namespace, start, end, params)
        return await self._cache.get_or_compute(key, factory)

    async def _prepare(self, symbol: str, req: AnalysisRequest, timeframe: Timeframe) -> _Prepared:
        week_type = req.week_type if timeframe == Timeframe.WEEKLY else req.filters.week_filters.week_type
        needs_expiry = (
            week_type == WeekType.EXPIRY
            or req.month_type == PeriodType.EXPIRY
            or req.year_type == PeriodType.EXPIRY
        )
        # trading ordinals rank a day within its whole year, not the query window
        load_from = date(req.start_date.year, 1, 1) if req.start_date else None
        async with self._io_lock:
            bars = await self._prices.get_prices(symbol, load_from, req.end_date)
            if not any(req.start_date is None or b.bar_date >= req.start_date for b in bars):
                raise NotFoundError(f"No price data for {symbol} in the requested range", symbol=symbol)
            calendar = (
                await self._calendars.get_expiry_calendar(req.start_date, req.end_date)
                if needs_expiry
                else None
            )
            context = await self._filter_context(req)

        frame = self._returns.compute(bars, req.start_date, req.end_date)
        if calendar is not None and calendar.is_empty:
            calendar = self._generated_calendar(symbol, frame)
        history = pd.Series(pd.to_datetime(sorted({b.bar_date for b in bars})))
        annotated = await asyncio.to_thread(
            self._bucketer.annotate,
            frame,
            week_type,
            req.month_type,
            req.year_type,
            calendar,
            req.return_basis,
            history,
        )
        return _Prepared(
            annotated=annotated,
            calendar=calendar,
            context=context,
            week_type=week_type,
            invalid_records=int(frame.attrs.get("invalid_records", 0)),
        )

    @staticmethod
    def _generated_calendar(symbol: str, frame: pd.DataFrame) -> ExpiryCalendar:
        first = to_date(frame["date"].iloc[0])
        last = to_date(frame["date"].iloc[-1])
        logger.warning(
            "No expiry schedule stored for %s to %s; using the generated Thursday calendar for %s",
            first,
            last,
            symbol,
        )
        return generate_expiry_calendar(first, last)

    async def _filter_context(self, req: AnalysisRequest) -> FilterContext:
        special_dates: frozenset[date] = frozenset()
        election_years: frozenset[int] = frozenset()
        filters = req.filters
        if filters.needs_special_days:
            days = await self._special_days.find(
                names=filters.special_days_filters.selected_days,
                country=filters.special_days_filters.country,
                start=req.start_date,
                end=req.end_date,
            )
            special_dates = frozenset(d.day_date for d in days)
        if filters.needs_election_years:
            elections = await self._calendars.get_election_calendar(self._default_country)
            election_years = elections.election_years
        return FilterContext(special_dates=special_dates, election_years=election_years)

    def _period_frame(self, prepared: _Prepared, timeframe: Timeframe, req: AnalysisRequest) -> pd.DataFrame:
        return self._bucketer.period_frame(
            prepared.annotated,
            timeframe,
            prepared.week_type,
            req.month_type,
            req.year_type,
            prepared.calendar,
            req.return_basis,
        )

    def _meta(
        self,
        symbol: str,
        timeframe: Timeframe,
        req: AnalysisRequest,
        prepared: _Prepared,
        total: int,
        filtered: int,
    ) -> AnalysisMeta:
        return AnalysisMeta(
            symbol=symbol,
            timeframe=timeframe,
            start_date=req.start_date,
            end_date=req.end_date,
            total_records=total,
            filtered_records=filtered,
            invalid_records=prepared.invalid_records,
            filters_applied=[
                p.name for p in self._filters.predicates(req.filters, timeframe, prepared.context)
            ],
            week_type=prepared.week_type,
            month_type=req.month_type,
            year_type=req.year_type,
            return_basis=req.return_basis,
        )

    @staticmethod
    def _period_aggregates(series: pd.DataFrame, timeframe: Timeframe) -> list[PeriodAggregate]:
        return [
            PeriodAggregate(
                period_key=row.period_key,
                timeframe=timeframe,
                anchor_date=to_date(row.anchor_date),
                start_date=to_date(row.start_date),
                end_date=to_date(row.end_date),
                open=float(row.open),
                high=float(row.high),
                low=float(row.low),
                close=float(row.close),
                volume=int(row.volume),
                return_points=opt_float(row.return_points),
                return_percentage=opt_float(row.return_percentage),
                member_count=int(row.member_count),
                year=int(row.year),
                month_number=int(row.month_number),
                week_number_monthly=opt_int(row.week_number_monthly),
                week_number_yearly=opt_int(row.week_number_yearly),
                weekday=Weekday(row.weekday),
                cumulative_return=opt_float(row.cumulative_return),
                z_score=opt_float(row.z_score),
            )
            for row in series.itertuples(index=False)
        ]
