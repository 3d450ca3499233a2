"""Event-window analyzer (event study over a daily series).

Pipeline for one symbol:
  1. Anchor every event date on the trading calendar (relative day 0).
     NEXT_TRADING_DAY uses the first trading day on or after the date;
     EXACT requires the date itself to be a trading day.
  2. Cut the window [-days_before, +days_after] in trading days.  Windows
     truncated by the series edge are kept; each relative-day average only
     uses the occurrences that have data at that offset.
  3. Trade each occurrence: buy at the entry price (T<offset> open or
     close), sell at the close of T+exit_day.  Occurrences without an entry
     day are dropped; occurrences without an exit day keep their curve but
     contribute nothing to trade metrics.
  4. Summarise the trades (win rate, profit factor, Sharpe, Sortino,
     drawdown).  Fewer tradable occurrences than min_occurrences yields an
     INSUFFICIENT_DATA result with an advisory instead of metrics.

References: MacKinlay (1997) "Event Studies in Economics and Finance".
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from datetime import date

import numpy as np
import pandas as pd

from seasonality.domain.models.catalogs import SpecialDay
from seasonality.domain.models.enums import AnchorPolicy, PriceField, ResultStatus
from seasonality.domain.models.events import (
    AverageCurvePoint,
    EquityPoint,
    EventAnalysisResult,
    EventComparison,
    EventExtreme,
    EventMetrics,
    EventOccurrence,
    EventSummary,
    EventWindowConfig,
    InsufficientDataAdvisory,
    RelativeDayPoint,
    SegmentedStats,
    SegmentStats,
    TradeConfig,
)
from seasonality.domain.services.frames import opt_float, to_date
from seasonality.domain.services.statistics import StatisticsEngine

logger = logging.getLogger(__name__)

NOT_A_TRADING_DAY = "Event day is not a trading day"
AFTER_SERIES_END = "Event date after the last trading day"
DUPLICATE_ANCHOR = "Duplicate anchor day"
MISSING_ENTRY = "Missing entry day"
MISSING_EXIT = "Missing exit day"
INVALID_ENTRY = "Non-positive entry price"


class EventWindowAnalyzer:
    def __init__(self, statistics: StatisticsEngine | None = None) -> None:
        self._stats = statistics or StatisticsEngine()

    def analyze(
        self,
        daily: pd.DataFrame,
        events: Iterable[SpecialDay],
        symbol: str,
        start_date: date,
        end_date: date,
        window: EventWindowConfig | None = None,
        trade: TradeConfig | None = None,
        min_occurrences: int = 3,
        exit_day: int | None = None,
    ) -> EventAnalysisResult:
        """Run the event study for one symbol.

        Args:
            daily: ReturnCalculator frame covering the event range plus a buffer.
            events: Catalog rows already restricted to the requested names,
                categories, country and date range.
            exit_day: Override for the trade exit offset; defaults to
                trade.exit_day, then window.days_after.
        """
        window = window or EventWindowConfig()
        trade = trade or TradeConfig()
        if exit_day is None:
            exit_day = trade.exit_day if trade.exit_day is not None else window.days_after

        catalog = sorted(events, key=lambda e: (e.day_date, e.name))
        reasons: Counter[str] = Counter()
        occurrences = self._occurrences(daily, catalog, window, trade, exit_day, reasons)
        tradable = [o for o in occurrences if o.is_tradable]

        summary = EventSummary(
            total_events_found=len(catalog),
            valid_events=len(occurrences),
            tradable_events=len(tradable),
            excluded_events=len(catalog) - len(tradable),
            exclusion_reasons=dict(reasons),
            start_date=start_date,
            end_date=end_date,
        )
        average_curve = self._average_curve(occurrences, window)
        segmented = self._segmented(occurrences)

        if len(tradable) < min_occurrences:
            message = (
                f"Found {len(tradable)} complete event occurrences; "
                f"at least {min_occurrences} required"
            )
            logger.info("Event analysis for %s: %s", symbol, message)
            return EventAnalysisResult(
                symbol=symbol,
                status=ResultStatus.INSUFFICIENT_DATA,
                advisory=InsufficientDataAdvisory(
                    reason_code="INSUFFICIENT_OCCURRENCES",
                    found=len(tradable),
                    required=min_occurrences,
                    message=message,
                ),
                summary=summary,
                average_curve=average_curve,
                segmented_stats=segmented,
                occurrences=occurrences,
            )

        return EventAnalysisResult(
            symbol=symbol,
            summary=summary,
            average_curve=average_curve,
            segmented_stats=segmented,
            occurrences=occurrences,
            metrics=self._metrics(tradable),
            equity_curve=self._equity_curve(tradable),
        )

    # ------------------------------------------------------------------ #
    # Occurrence extraction                                                #
    # ------------------------------------------------------------------ #

    def _occurrences(
        self,
        daily: pd.DataFrame,
        catalog: list[SpecialDay],
        window: EventWindowConfig,
        trade: TradeConfig,
        exit_day: int,
        reasons: Counter[str],
    ) -> list[EventOccurrence]:
        if daily.empty:
            if catalog:
                reasons[AFTER_SERIES_END] += len(catalog)
            return []

        dates = daily["date"].to_numpy()
        opens = daily["open"].to_numpy(dtype=float)
        highs = daily["high"].to_numpy(dtype=float)
        lows = daily["low"].to_numpy(dtype=float)
        closes = daily["close"].to_numpy(dtype=float)
        returns = daily["return_percentage"].to_numpy(dtype=float)
        z_scores = self._stats.z_scores(returns)
        entry_prices = opens if trade.entry_field == PriceField.OPEN else closes
        n = len(dates)

        seen: set[int] = set()
        result: list[EventOccurrence] = []
        for event in catalog:
            target = pd.Timestamp(event.day_date).to_datetime64()
            anchor = int(np.searchsorted(dates, target, side="left"))
            if window.anchor_policy == AnchorPolicy.EXACT:
                if anchor >= n or dates[anchor] != target:
                    reasons[NOT_A_TRADING_DAY] += 1
                    continue
            elif anchor >= n:
                reasons[AFTER_SERIES_END] += 1
                continue
            if anchor in seen:
                reasons[DUPLICATE_ANCHOR] += 1
                continue

            entry = anchor + trade.entry_offset
            if not 0 <= entry < n:
                reasons[MISSING_ENTRY] += 1
                continue
            entry_price = float(entry_prices[entry])
            if entry_price <= 0:
                reasons[INVALID_ENTRY] += 1
                continue
            seen.add(anchor)

            lo = max(0, anchor - window.days_before)
            hi = min(n - 1, anchor + window.days_after)
            curve = [
                RelativeDayPoint(
                    relative_day=i - anchor,
                    day_date=to_date(dates[i]),
                    close=float(closes[i]),
                    return_percentage=opt_float(returns[i]),
                    cumulative_return=(closes[i] / entry_price - 1.0) * 100.0,
                )
                for i in range(lo, hi + 1)
            ]

            trade_fields: dict = {}
            exit_index = anchor + exit_day
            if exit_index < n:
                exit_price = float(closes[exit_index])
                holding = slice(entry, exit_index + 1)
                trade_fields = {
                    "exit_date": to_date(dates[exit_index]),
                    "exit_price": exit_price,
                    "return_points": exit_price - entry_price,
                    "return_percent": (exit_price - entry_price) / entry_price * 100.0,
                    "holding_days": exit_day - trade.entry_offset,
                    "mfe": (float(highs[holding].max()) - entry_price) / entry_price * 100.0,
                    "mae": (float(lows[holding].min()) - entry_price) / entry_price * 100.0,
                }
            else:
                reasons[MISSING_EXIT] += 1

            result.append(
                EventOccurrence(
                    name=event.name,
                    category=event.category,
                    event_date=event.day_date,
                    anchor_date=to_date(dates[anchor]),
                    entry_date=to_date(dates[entry]),
                    entry_price=entry_price,
                    event_day_return=opt_float(returns[anchor]),
                    event_day_z_score=opt_float(z_scores[anchor]),
                    relative_day_curve=curve,
                    **trade_fields,
                )
            )
        return result

    # ------------------------------------------------------------------ #
    # Aggregation                                                          #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _average_curve(
        occurrences: list[EventOccurrence], window: EventWindowConfig
    ) -> list[AverageCurvePoint]:
        daily: dict[int, list[float]] = {}
        cumulative: dict[int, list[float]] = {}
        for occurrence in occurrences:
            for point in occurrence.relative_day_curve:
                if point.return_percentage is not None:
                    daily.setdefault(point.relative_day, []).append(point.return_percentage)
                if point.cumulative_return is not None:
                    cumulative.setdefault(point.relative_day, []).append(point.cumulative_return)

        curve: list[AverageCurvePoint] = []
        for day in range(-window.days_before, window.days_after + 1):
            values = np.array(daily.get(day, []), dtype=float)
            if values.size == 0:
                continue
            cum = cumulative.get(day)
            curve.append(
                AverageCurvePoint(
                    relative_day=day,
                    avg_return=float(values.mean()),
                    median_return=float(np.median(values)),
                    std_dev=float(values.std()),
                    min_return=float(values.min()),
                    max_return=float(values.max()),
                    avg_cumulative_return=float(np.mean(cum)) if cum else None,
                    count=int(values.size),
                    is_event_day=day == 0,
                )
            )
        return curve

    @staticmethod
    def segment_stats(label: str, values: Iterable[float]) -> SegmentStats:
        data = np.asarray([v for v in values if v is not None and not np.isnan(v)], dtype=float)
        if data.size == 0:
            return SegmentStats(label=label)
        pos, neg = int((data > 0).sum()), int((data < 0).sum())
        return SegmentStats(
            label=label,
            count=int(data.size),
            avg_return=float(data.mean()),
            median_return=float(np.median(data)),
            std_dev=float(data.std()),
            win_rate=pos / (pos + neg) * 100.0 if pos + neg else 0.0,
        )

    def _segmented(self, occurrences: list[EventOccurrence]) -> SegmentedStats:
        pre: list[float] = []
        on: list[float] = []
        post: list[float] = []
        for occurrence in occurrences:
            for point in occurrence.relative_day_curve:
                if point.return_percentage is None:
                    continue
                bucket = pre if point.relative_day < 0 else on if point.relative_day == 0 else post
                bucket.append(point.return_percentage)
        return SegmentedStats(
            pre_event=self.segment_stats("Pre-Event", pre),
            event_day=self.segment_stats("Event Day", on),
            post_event=self.segment_stats("Post-Event", post),
        )

    def _metrics(self, tradable: list[EventOccurrence]) -> EventMetrics:
        r = np.array([o.return_percent for o in tradable], dtype=float)
        wins, losses = int((r > 0).sum()), int((r < 0).sum())
        std = float(r.std())
        mean = float(r.mean())
        gross_gain = float(r[r > 0].sum())
        gross_loss = float(-r[r < 0].sum())
        downside = float(np.sqrt(np.mean(np.minimum(r, 0.0) ** 2)))
        best, worst = int(np.argmax(r)), int(np.argmin(r))
        return EventMetrics(
            total_events=int(r.size),
            winning_events=wins,
            losing_events=losses,
            flat_events=int(r.size) - wins - losses,
            win_rate=wins / (wins + losses) * 100.0 if wins + losses else 0.0,
            avg_return=mean,
            median_return=float(np.median(r)),
            std_dev=std,
            total_return=self._stats.cumulative_return(r),
            profit_factor=gross_gain / gross_loss if gross_loss > 0 else None,
            sharpe_ratio=mean / std if std > 0 else 0.0,
            sortino_ratio=mean / downside if downside > 0 else 0.0,
            max_drawdown=self._stats.max_drawdown(r),
            best_event=EventExtreme(event_date=tradable[best].event_date, return_percent=float(r[best])),
            worst_event=EventExtreme(event_date=tradable[worst].event_date, return_percent=float(r[worst])),
        )

    @staticmethod
    def _equity_curve(tradable: list[EventOccurrence], initial: float = 100.0) -> list[EquityPoint]:
        equity = initial
        curve = [EquityPoint(equity=equity)]
        for occurrence in tradable:
            equity *= 1.0 + occurrence.return_percent / 100.0
            curve.append(
                EquityPoint(
                    event_date=occurrence.event_date,
                    event_name=occurrence.name,
                    equity=equity,
                    return_percent=occurrence.return_percent,
                )
            )
        return curve

    # ------------------------------------------------------------------ #
    # Event days vs the rest                                               #
    # ------------------------------------------------------------------ #

    def compare(self, daily: pd.DataFrame, event_dates: Iterable[date], symbol: str) -> EventComparison:
        """Daily return profile on event dates against all other trading days."""
        tagged = pd.to_datetime(sorted(set(event_dates)))
        if daily.empty:
            on_event = pd.Series(dtype=bool)
            returns = pd.Series(dtype=float)
        else:
            on_event = daily["date"].dt.normalize().isin(tagged)
            returns = daily["return_percentage"]
        event_stats = self.segment_stats("Event Days", returns[on_event].tolist())
        other_stats = self.segment_stats("Non-Event Days", returns[~on_event].tolist())
        return EventComparison(
            symbol=symbol,
            event_days=event_stats,
            non_event_days=other_stats,
            avg_return_difference=event_stats.avg_return - other_stats.avg_return,
            win_rate_difference=event_stats.win_rate - other_stats.win_rate,
        )
