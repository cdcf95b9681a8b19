"""
Trading Engine
Periodic driver of the signal pipeline:
snapshot -> features -> regime -> signal -> persistence.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Tuple, TypeVar
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from es_signals.config import Settings, settings
from es_signals.domain.analytics.order_flow import OrderFlow, summarize_trades
from es_signals.domain.models import FeatureVector, GexRegime, MarketSnapshot, RegimeState, SignalRecord
from es_signals.domain.services.feature_builder import build_features
from es_signals.domain.services.feature_telemetry import build_feature_telemetry, is_sampling_minute
from es_signals.domain.services.regime_classifier import classify_regime
from es_signals.domain.services.signal_generator import generate_signal, should_persist
from es_signals.domain.state.price_history import PriceHistoryBuffer
from es_signals.infrastructure.market_data.types import MarketDataSource, SignalStore
from es_signals.utils.time import in_window, parse_hhmm

logger = logging.getLogger(__name__)

T = TypeVar("T")

ITERATION_JOB_ID = "trading_iteration"
_NO_ORDER_FLOW = OrderFlow(0.0, 0.0, 0.0)


class IterationOutcome(str, Enum):
    COMPLETED = "completed"
    OUTSIDE_HOURS = "outside_hours"
    NO_PRICE = "no_price"
    BUSY = "busy"
    FAILED = "failed"


@dataclass(frozen=True)
class EngineConfig:
    trading_start: time = time(15, 30)
    trading_end: time = time(22, 0)
    timezone: str = "Europe/Berlin"
    iteration_interval_ms: int = 60_000
    min_confidence: float = 0.65
    price_history_capacity: int = 100
    regime_history_capacity: int = 100
    collaborator_timeout_seconds: float = 10.0
    telemetry_sample_minutes: int = 10
    order_flow_window_minutes: int = 5

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "EngineConfig":
        return cls(
            trading_start=parse_hhmm(source.TRADING_START),
            trading_end=parse_hhmm(source.TRADING_END),
            timezone=source.TRADING_TIMEZONE,
            iteration_interval_ms=source.ITERATION_INTERVAL_MS,
            min_confidence=source.MIN_CONFIDENCE_THRESHOLD,
            price_history_capacity=source.PRICE_HISTORY_CAPACITY,
            collaborator_timeout_seconds=source.COLLABORATOR_TIMEOUT_SECONDS,
            telemetry_sample_minutes=source.TELEMETRY_SAMPLE_MINUTES,
            order_flow_window_minutes=source.ORDER_FLOW_WINDOW_MINUTES,
        )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def trading_window(self) -> Tuple[time, time]:
        return self.trading_start, self.trading_end

    @property
    def order_flow_window(self) -> timedelta:
        return timedelta(minutes=self.order_flow_window_minutes)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TradingEngine:
    """
    Owns the price buffer, the current regime and the run state.

    Iterations never overlap: the scheduler job runs with max_instances=1 and
    every entry point goes through a non-reentrant lock that skips instead of
    queueing.
    """

    def __init__(
        self,
        market_data: MarketDataSource,
        store: SignalStore,
        config: Optional[EngineConfig] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._market_data = market_data
        self._store = store
        self.config = config or EngineConfig()
        self._clock = clock
        self._tz = self.config.tz

        self._running = False
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._generation = 0
        self._lock = asyncio.Lock()

        self._price_history = PriceHistoryBuffer(self.config.price_history_capacity)
        self._regime: Optional[RegimeState] = None
        self._regime_history: Deque[Tuple[datetime, RegimeState]] = deque(
            maxlen=self.config.regime_history_capacity
        )
        self._last_snapshot: Optional[MarketSnapshot] = None
        self._last_signal: Optional[SignalRecord] = None
        self._last_iteration_at: Optional[datetime] = None
        self._last_outcome: Optional[IterationOutcome] = None

        self._iterations = 0
        self._errors = 0
        self._signals_persisted = 0

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            logger.info("Trading engine already running")
            return
        self._running = True
        self._generation += 1
        generation = self._generation
        logger.info(
            "Starting trading engine (interval=%sms, hours=%s-%s %s)",
            self.config.iteration_interval_ms,
            self.config.trading_start.strftime("%H:%M"),
            self.config.trading_end.strftime("%H:%M"),
            self.config.timezone,
        )

        await self.run_iteration()
        if not self._running or generation != self._generation or self._scheduler is not None:
            # stopped or restarted while the first iteration ran
            return

        self._scheduler = AsyncIOScheduler(timezone=self.config.timezone)
        self._scheduler.add_job(
            self._scheduled_iteration,
            IntervalTrigger(seconds=self.config.iteration_interval_ms / 1000),
            id=ITERATION_JOB_ID,
            name="Trading Iteration",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None and scheduler.running:
            scheduler.shutdown(wait=False)
        logger.info("Trading engine stopped")

    # ------------------------------------------------------------------
    # ITERATION
    # ------------------------------------------------------------------

    def in_trading_hours(self, now: Optional[datetime] = None) -> bool:
        local_now = (now or self._clock()).astimezone(self._tz)
        return in_window(local_now, self.config.trading_window)

    async def run_iteration(self) -> IterationOutcome:
        if self._lock.locked():
            logger.info("Iteration already in progress; skipping")
            return IterationOutcome.BUSY
        async with self._lock:
            outcome = await self._iterate()
        self._last_outcome = outcome
        return outcome

    async def _scheduled_iteration(self) -> None:
        if not self._running:
            return
        await self.run_iteration()

    async def force_iteration(self) -> IterationOutcome:
        """Run one iteration now, regardless of the schedule."""
        return await self.run_iteration()

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self.config.collaborator_timeout_seconds)

    async def _iterate(self) -> IterationOutcome:
        now = self._clock()
        local_now = now.astimezone(self._tz)
        self._last_iteration_at = now

        if not in_window(local_now, self.config.trading_window):
            logger.info("Outside trading hours (%s %s); skipping", local_now.strftime("%H:%M"), self.config.timezone)
            return IterationOutcome.OUTSIDE_HOURS

        self._iterations += 1
        try:
            snapshot = await self._collect_snapshot(now)
            if snapshot is None:
                logger.info("No futures price available; skipping iteration")
                return IterationOutcome.NO_PRICE

            self._price_history.append(now, snapshot.price)
            previous = self._regime
            features = build_features(
                snapshot,
                self._price_history.prices(),
                previous.duration if previous else 0,
            )
            regime = classify_regime(features, snapshot, previous)
            self._regime = regime
            self._regime_history.append((now, regime))

            signal = generate_signal(features, regime, snapshot)
            self._last_snapshot = snapshot
            self._last_signal = signal

            await self._persist(snapshot, features, regime, signal, local_now)
        except Exception:
            self._errors += 1
            logger.exception("Trading iteration failed")
            return IterationOutcome.FAILED

        logger.info(
            "Iteration: price=%.2f regime=%s(%.2f, %d) signal=%s(%.2f)",
            snapshot.price,
            regime.regime.value,
            regime.confidence,
            regime.duration,
            signal.signal_type.value,
            signal.confidence,
        )
        return IterationOutcome.COMPLETED

    async def _collect_snapshot(self, now: datetime) -> Optional[MarketSnapshot]:
        price = await self._call(self._market_data.get_latest_price())
        if price is None or price <= 0:
            return None

        vix = await self._call(self._market_data.get_volatility_index_snapshot())
        gex = await self._call(self._market_data.get_gamma_exposure_snapshot())
        flow = await self._collect_order_flow()

        return MarketSnapshot(
            timestamp=now,
            price=price,
            vix=vix.level if vix else None,
            vix_change_pct=vix.change_percent if vix else 0.0,
            gex=gex.total if gex else None,
            gex_regime=gex.regime if gex else GexRegime.NEUTRAL,
            order_flow_imbalance=flow.imbalance,
            cumulative_delta=flow.cumulative_delta,
            volume=flow.volume,
        )

    async def _collect_order_flow(self) -> OrderFlow:
        """Tick trades are optional; any failure degrades to zero flow."""
        try:
            trades = await self._call(self._market_data.get_recent_trades(self.config.order_flow_window))
        except Exception as exc:
            logger.warning("Order flow unavailable: %s", exc)
            return _NO_ORDER_FLOW
        if not trades:
            return _NO_ORDER_FLOW
        return summarize_trades(trades)

    async def _persist(
        self,
        snapshot: MarketSnapshot,
        features: FeatureVector,
        regime: RegimeState,
        signal: SignalRecord,
        local_now: datetime,
    ) -> None:
        await self._call(self._store.persist_regime(regime, snapshot.vix, snapshot.gex, snapshot.timestamp))

        if should_persist(signal, self.config.min_confidence):
            await self._call(self._store.persist_signal(signal))
            self._signals_persisted += 1
        else:
            logger.debug(
                "Signal not stored: %s confidence=%.2f",
                signal.signal_type.value,
                signal.confidence,
            )

        if is_sampling_minute(local_now, self.config.telemetry_sample_minutes):
            await self._call(
                self._store.persist_feature_telemetry(build_feature_telemetry(features), snapshot.timestamp)
            )

    # ------------------------------------------------------------------
    # STATE
    # ------------------------------------------------------------------

    @property
    def current_regime(self) -> Optional[RegimeState]:
        return self._regime

    @property
    def last_signal(self) -> Optional[SignalRecord]:
        return self._last_signal

    @property
    def last_snapshot(self) -> Optional[MarketSnapshot]:
        return self._last_snapshot

    @property
    def price_history(self) -> PriceHistoryBuffer:
        return self._price_history

    def regime_history(self, limit: Optional[int] = None) -> List[Tuple[datetime, RegimeState]]:
        """Oldest first."""
        items = list(self._regime_history)
        return items[-limit:] if limit else items

    def get_status(self) -> Dict[str, Any]:
        regime = self._regime
        return {
            "running": self._running,
            "in_trading_hours": self.in_trading_hours(),
            "iteration_in_progress": self._lock.locked(),
            "interval_ms": self.config.iteration_interval_ms,
            "last_iteration_at": self._last_iteration_at,
            "last_outcome": self._last_outcome.value if self._last_outcome else None,
            "last_snapshot": asdict(self._last_snapshot) if self._last_snapshot else None,
            "current_regime": asdict(regime) if regime else None,
            "price_history_length": len(self._price_history),
            "iterations": self._iterations,
            "errors": self._errors,
            "signals_persisted": self._signals_persisted,
        }
