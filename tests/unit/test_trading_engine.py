import asyncio
from datetime import datetime, time, timezone

import pytest

from es_signals.config import Settings
from es_signals.domain.models import GammaExposureSnapshot, GexRegime, Regime, SignalType, Trade, VolatilitySnapshot
from es_signals.runtime.trading_engine import (
    ITERATION_JOB_ID,
    EngineConfig,
    IterationOutcome,
    TradingEngine,
)
from tests.fakes import FakeMarketData, FakeStore, FixedClock


class SlowMarketData(FakeMarketData):
    def __init__(self, delay: float, **kwargs):
        super().__init__(**kwargs)
        self.delay = delay

    async def get_latest_price(self):
        await asyncio.sleep(self.delay)
        return await super().get_latest_price()


def make_engine(market_data, store, clock, **config) -> TradingEngine:
    return TradingEngine(market_data, store, EngineConfig(**config), clock=clock)


@pytest.mark.asyncio
async def test_iteration_completes(market_data, store, clock):
    engine = make_engine(market_data, store, clock)

    outcome = await engine.run_iteration()

    assert outcome == IterationOutcome.COMPLETED
    assert len(engine.price_history) == 1
    assert engine.current_regime.duration == 1
    assert len(store.regimes) == 1
    regime, vix_level, gex_level = store.regimes[0]
    assert regime == engine.current_regime
    assert (vix_level, gex_level) == (20.0, 0.0)
    assert engine.last_snapshot.timestamp == clock.now


@pytest.mark.asyncio
async def test_null_price_aborts_without_state_change(store, clock):
    market_data = FakeMarketData(prices=[5000.0, None])
    engine = make_engine(market_data, store, clock)

    assert await engine.run_iteration() == IterationOutcome.COMPLETED
    regime_before = engine.current_regime
    prices_before = engine.price_history.prices()

    clock.advance()
    assert await engine.run_iteration() == IterationOutcome.NO_PRICE

    assert engine.current_regime is regime_before
    assert engine.price_history.prices() == prices_before
    assert len(store.regimes) == 1


@pytest.mark.asyncio
async def test_outside_trading_hours_collects_nothing(market_data, store):
    # 08:00 Europe/Berlin
    clock = FixedClock(datetime(2026, 6, 10, 6, 0, tzinfo=timezone.utc))
    engine = make_engine(market_data, store, clock)

    assert await engine.run_iteration() == IterationOutcome.OUTSIDE_HOURS
    assert market_data.calls == 0
    assert engine.current_regime is None
    assert store.regimes == []


@pytest.mark.asyncio
async def test_trading_window_bounds(market_data, store):
    # 15:30 Berlin is inside, 22:00 Berlin is outside
    opening = FixedClock(datetime(2026, 6, 10, 13, 30, tzinfo=timezone.utc))
    closing = FixedClock(datetime(2026, 6, 10, 20, 0, tzinfo=timezone.utc))

    assert make_engine(market_data, store, opening).in_trading_hours() is True
    assert make_engine(market_data, store, closing).in_trading_hours() is False


@pytest.mark.asyncio
async def test_collaborator_failure_is_contained(market_data, store, clock):
    engine = make_engine(market_data, store, clock)
    market_data.fail_with = RuntimeError("feed down")

    assert await engine.run_iteration() == IterationOutcome.FAILED
    assert engine.get_status()["errors"] == 1

    market_data.fail_with = None
    clock.advance()
    assert await engine.run_iteration() == IterationOutcome.COMPLETED


@pytest.mark.asyncio
async def test_store_failure_is_contained(market_data, store, clock):
    engine = make_engine(market_data, store, clock)
    store.fail_on_regime = RuntimeError("db down")

    assert await engine.run_iteration() == IterationOutcome.FAILED
    assert engine.get_status()["last_outcome"] == "failed"


@pytest.mark.asyncio
async def test_collaborator_timeout(store, clock):
    engine = make_engine(SlowMarketData(delay=1.0), store, clock, collaborator_timeout_seconds=0.01)

    assert await engine.run_iteration() == IterationOutcome.FAILED
    assert engine.price_history.prices() == []


@pytest.mark.asyncio
async def test_order_flow_failure_degrades_to_zero(market_data, store, clock):
    market_data.trades_error = RuntimeError("no ticks")
    engine = make_engine(market_data, store, clock)

    assert await engine.run_iteration() == IterationOutcome.COMPLETED
    assert engine.last_snapshot.order_flow_imbalance == 0.0
    assert engine.last_snapshot.volume == 0.0


@pytest.mark.asyncio
async def test_trades_feed_order_flow(store, clock):
    market_data = FakeMarketData(trades=[Trade(5000.0, 3, "B"), Trade(5000.0, 1, "S")])
    engine = make_engine(market_data, store, clock)

    await engine.run_iteration()

    assert engine.last_snapshot.order_flow_imbalance == pytest.approx(0.5)
    assert engine.last_snapshot.cumulative_delta == 2
    assert engine.last_snapshot.volume == 4


@pytest.mark.asyncio
async def test_hold_signal_is_not_persisted(market_data, store, clock):
    engine = make_engine(market_data, store, clock)

    await engine.run_iteration()

    assert engine.last_signal.signal_type == SignalType.HOLD
    assert store.signals == []


@pytest.mark.asyncio
async def test_confident_signal_is_persisted(store, clock):
    market_data = FakeMarketData(
        vix=VolatilitySnapshot(level=30.0, change_percent=-5.0),
        gex=GammaExposureSnapshot(total=-250.0, regime=GexRegime.NEGATIVE),
        trades=[Trade(5000.0, 10, "B")],
    )
    engine = make_engine(market_data, store, clock)

    await engine.run_iteration()

    assert engine.current_regime.regime == Regime.HIGH_VOLATILITY
    assert len(store.signals) == 1
    stored = store.signals[0]
    assert stored.signal_type == SignalType.BUY
    assert stored.confidence >= 0.65
    assert stored.entry_price == 5000.0
    assert stored.features is not None
    assert engine.get_status()["signals_persisted"] == 1


@pytest.mark.asyncio
async def test_min_confidence_is_configurable(store, clock):
    market_data = FakeMarketData(
        vix=VolatilitySnapshot(level=30.0, change_percent=-5.0),
        trades=[Trade(5000.0, 10, "B")],
    )
    engine = make_engine(market_data, store, clock, min_confidence=0.99)

    await engine.run_iteration()

    assert engine.last_signal.signal_type == SignalType.BUY
    assert store.signals == []


@pytest.mark.asyncio
async def test_telemetry_every_ten_minutes(market_data, store):
    # 16:09 Berlin, then 16:10
    clock = FixedClock(datetime(2026, 6, 10, 14, 9, tzinfo=timezone.utc))
    engine = make_engine(market_data, store, clock)

    await engine.run_iteration()
    assert store.telemetry == []

    clock.advance()
    await engine.run_iteration()
    assert len(store.telemetry) == 1
    assert len(store.telemetry[0]) == 14


@pytest.mark.asyncio
async def test_consecutive_regimes_accumulate_duration(market_data, store, clock):
    engine = make_engine(market_data, store, clock)

    durations = []
    confidences = []
    for _ in range(5):
        await engine.run_iteration()
        durations.append(engine.current_regime.duration)
        confidences.append(engine.current_regime.confidence)
        clock.advance()

    assert durations == [1, 2, 3, 4, 5]
    assert confidences == sorted(confidences)
    assert [state.duration for _, state in engine.regime_history()] == [1, 2, 3, 4, 5]
    assert len(engine.regime_history(limit=2)) == 2


@pytest.mark.asyncio
async def test_price_history_is_bounded(store, clock):
    market_data = FakeMarketData(prices=[5000.0 + i for i in range(6)])
    engine = make_engine(market_data, store, clock, price_history_capacity=3)

    for _ in range(6):
        await engine.run_iteration()
        clock.advance()

    assert engine.price_history.prices() == [5003.0, 5004.0, 5005.0]


@pytest.mark.asyncio
async def test_overlapping_iteration_is_skipped(store, clock):
    engine = make_engine(SlowMarketData(delay=0.05), store, clock)

    first, second = await asyncio.gather(engine.run_iteration(), engine.run_iteration())

    assert first == IterationOutcome.COMPLETED
    assert second == IterationOutcome.BUSY
    assert len(store.regimes) == 1


@pytest.mark.asyncio
async def test_start_is_idempotent_and_stop_cancels_schedule(market_data, store, clock):
    engine = make_engine(market_data, store, clock)

    await engine.start()
    await engine.start()

    assert engine.is_running is True
    assert market_data.calls == 1
    scheduler = engine._scheduler
    assert scheduler.get_job(ITERATION_JOB_ID) is not None

    await engine.stop()
    await asyncio.sleep(0)
    assert engine.is_running is False
    assert engine._scheduler is None
    assert scheduler.running is False

    await engine.stop()
    assert engine.is_running is False


@pytest.mark.asyncio
async def test_scheduled_ticks_run_iterations_until_stopped(market_data, store, clock):
    engine = make_engine(market_data, store, clock, iteration_interval_ms=50)

    await engine.start()
    await asyncio.sleep(0.3)
    assert market_data.calls >= 3

    await engine.stop()
    await asyncio.sleep(0)
    calls_after_stop = market_data.calls
    await asyncio.sleep(0.3)

    assert market_data.calls == calls_after_stop


@pytest.mark.asyncio
async def test_restart_during_first_iteration_keeps_one_schedule(store, clock):
    market_data = SlowMarketData(delay=0.1)
    engine = make_engine(market_data, store, clock, iteration_interval_ms=50)

    first = asyncio.create_task(engine.start())
    await asyncio.sleep(0.02)
    await engine.stop()
    second = asyncio.create_task(engine.start())
    await asyncio.gather(first, second)

    assert engine.is_running is True
    scheduler = engine._scheduler
    assert scheduler.get_job(ITERATION_JOB_ID) is not None

    await engine.stop()
    await asyncio.sleep(0)
    assert scheduler.running is False

    # let an iteration already in flight finish
    await asyncio.sleep(0.15)
    calls_after_stop = market_data.calls
    await asyncio.sleep(0.3)

    assert market_data.calls == calls_after_stop
    assert engine.is_running is False


@pytest.mark.asyncio
async def test_get_status(market_data, store, clock):
    engine = make_engine(market_data, store, clock)
    await engine.force_iteration()

    status = engine.get_status()
    assert status["running"] is False
    assert status["in_trading_hours"] is True
    assert status["price_history_length"] == 1
    assert status["iterations"] == 1
    assert status["last_outcome"] == "completed"
    assert status["current_regime"]["regime"] == Regime.MEAN_REVERSION
    assert status["last_snapshot"]["price"] == 5000.0


def test_engine_config_from_settings():
    source = Settings(
        TRADING_START="09:00",
        TRADING_END="17:30",
        TRADING_TIMEZONE="America/Chicago",
        ITERATION_INTERVAL_MS=30_000,
        MIN_CONFIDENCE_THRESHOLD=0.7,
    )
    config = EngineConfig.from_settings(source)

    assert config.trading_window == (time(9, 0), time(17, 30))
    assert config.timezone == "America/Chicago"
    assert config.iteration_interval_ms == 30_000
    assert config.min_confidence == 0.7
