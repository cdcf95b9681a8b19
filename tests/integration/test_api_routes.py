from datetime import datetime, timedelta, timezone

import pytest

from es_signals.domain.models import (
    FeatureCategory,
    FeatureTelemetry,
    Regime,
    RegimeState,
    SignalRecord,
    SignalType,
)
from es_signals.infrastructure.db.repositories.feature_importance_repository import (
    FeatureImportanceRepository,
)
from es_signals.infrastructure.db.repositories.regime_repository import RegimeRepository
from es_signals.infrastructure.db.repositories.signal_repository import TradingSignalRepository
from es_signals.infrastructure.market_data.databento_provider import DatabentoProvider
from es_signals.infrastructure.market_data.market_context import MarketContextService
from es_signals.infrastructure.market_data.yfinance_provider import VIXData
from es_signals.runtime.trading_engine import EngineConfig, TradingEngine

T0 = datetime(2026, 6, 10, 14, 0, tzinfo=timezone.utc)


class StubYahoo:
    proxy_symbol = "SPY"

    def __init__(self, proxy=None, vix=None):
        self.proxy = proxy
        self.vix = vix
        self.history_periods = []

    async def get_proxy_price(self):
        return self.proxy

    async def get_vix(self):
        return self.vix

    async def get_vix_term_structure(self):
        return None

    async def get_proxy_history(self, period):
        self.history_periods.append(period)
        return None


def make_signal(minutes: int, signal_type: SignalType, confidence: float) -> SignalRecord:
    return SignalRecord(
        timestamp=T0 + timedelta(minutes=minutes),
        signal_type=signal_type,
        confidence=confidence,
        regime=Regime.TREND_UP,
        suggested_tp=10,
        suggested_sl=5,
        entry_price=5000.0,
        reasoning=("Bullish order flow",),
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health_without_engine(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "engine": "stopped"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_engine_routes_unavailable_without_engine(client):
    assert (await client.get("/api/v1/engine/status")).status_code == 503
    assert (await client.post("/api/v1/engine/iterate")).status_code == 503
    assert (await client.get("/api/v1/market/vix")).status_code == 503


@pytest.mark.asyncio
@pytest.mark.integration
async def test_engine_iterate_and_status(app, client, market_data, store, clock):
    engine = TradingEngine(market_data, store, EngineConfig(), clock=clock)
    app.state.trading_engine = engine

    resp = await client.post("/api/v1/engine/iterate")
    assert resp.status_code == 200
    body = resp.json()
    assert body["outcome"] == "completed"
    assert body["status"]["price_history_length"] == 1
    assert body["status"]["running"] is False

    status = (await client.get("/api/v1/engine/status")).json()
    assert status["iterations"] == 1
    assert status["current_regime"]["duration"] == 1
    assert status["last_outcome"] == "completed"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_engine_start_and_stop(app, client, market_data, store, clock):
    engine = TradingEngine(market_data, store, EngineConfig(iteration_interval_ms=3_600_000), clock=clock)
    app.state.trading_engine = engine

    resp = await client.post("/api/v1/engine/start")
    assert resp.json() == {"running": True}
    assert (await client.get("/health")).json()["engine"] == "running"
    assert market_data.calls == 1

    resp = await client.post("/api/v1/engine/stop")
    assert resp.json() == {"running": False}
    assert engine.is_running is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_latest_signal_404_then_found(client, db_session):
    assert (await client.get("/api/v1/signals/latest")).status_code == 404

    repo = TradingSignalRepository(db_session)
    await repo.create(make_signal(0, SignalType.BUY, 0.7))
    await repo.create(make_signal(5, SignalType.STRONG_SELL, 0.92))
    await db_session.commit()

    resp = await client.get("/api/v1/signals/latest")
    assert resp.status_code == 200
    body = resp.json()
    assert body["signal_type"] == "strong_sell"
    assert body["confidence"] == pytest.approx(0.92)
    assert body["reasoning"] == ["Bullish order flow"]
    assert body["features"] is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_signals_filters(client, db_session):
    repo = TradingSignalRepository(db_session)
    for minutes, kind, conf in [(0, SignalType.BUY, 0.7), (1, SignalType.SELL, 0.8), (2, SignalType.BUY, 0.9)]:
        await repo.create(make_signal(minutes, kind, conf))
    await db_session.commit()

    assert len((await client.get("/api/v1/signals")).json()) == 3

    buys = (await client.get("/api/v1/signals", params={"signal_type": "buy"})).json()
    assert [s["confidence"] for s in buys] == pytest.approx([0.9, 0.7])

    confident = (await client.get("/api/v1/signals", params={"min_confidence": 0.75})).json()
    assert {s["signal_type"] for s in confident} == {"buy", "sell"}

    page = (await client.get("/api/v1/signals", params={"limit": 1, "offset": 2})).json()
    assert page[0]["confidence"] == pytest.approx(0.7)

    assert (await client.get("/api/v1/signals", params={"limit": 0})).status_code == 422
    assert (await client.get("/api/v1/signals", params={"signal_type": "maybe"})).status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_regime_current_from_database(client, db_session):
    assert (await client.get("/api/v1/regime/current")).status_code == 404

    repo = RegimeRepository(db_session)
    await repo.create(RegimeState(Regime.LOW_VOLATILITY, 0.55, 1), vix_level=17.0, timestamp=T0)
    await repo.create(RegimeState(Regime.LOW_VOLATILITY, 0.55, 2), vix_level=17.5, timestamp=T0 + timedelta(minutes=1))
    await db_session.commit()

    current = (await client.get("/api/v1/regime/current")).json()
    assert current["regime"] == "low_volatility"
    assert current["duration"] == 2
    assert current["vix_level"] == pytest.approx(17.5)

    history = (await client.get("/api/v1/regime/history", params={"limit": 10})).json()
    assert [h["duration"] for h in history] == [2, 1]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_regime_current_prefers_live_engine(app, client, market_data, store, clock):
    engine = TradingEngine(market_data, store, EngineConfig(), clock=clock)
    await engine.run_iteration()
    app.state.trading_engine = engine

    current = (await client.get("/api/v1/regime/current")).json()
    assert current["regime"] == engine.current_regime.regime.value
    assert current["vix_level"] == 20.0
    assert set(current["transition_probabilities"]) == {r.value for r in Regime}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_feature_importance_route(client, db_session):
    assert (await client.get("/api/v1/features/importance")).json() == []

    await FeatureImportanceRepository(db_session).create_many(
        [
            FeatureTelemetry("rsi14", 0.3, FeatureCategory.TECHNICAL),
            FeatureTelemetry("gex_level", 1.5, FeatureCategory.OPTIONS),
        ],
        timestamp=T0,
    )
    await db_session.commit()

    rows = (await client.get("/api/v1/features/importance")).json()
    assert [r["feature_name"] for r in rows] == ["gex_level", "rsi14"]
    assert rows[0]["category"] == "options"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_market_routes(app, client):
    vix = VIXData(
        current=18.0,
        change=-0.5,
        change_percent=-2.7,
        high=18.9,
        low=17.6,
        open=18.4,
        previous_close=18.5,
        timestamp=0.0,
    )
    app.state.market_context = MarketContextService(
        futures=DatabentoProvider(api_key=None),
        yahoo=StubYahoo(proxy=None, vix=vix),
    )

    symbol = (await client.get("/api/v1/market/futures/symbol")).json()
    assert symbol["configured"] is False
    assert symbol["dataset"] == "GLBX.MDP3"
    assert symbol["symbol"].startswith("ES")

    assert (await client.get("/api/v1/market/vix")).json()["current"] == 18.0
    assert (await client.get("/api/v1/market/vix-term-structure")).status_code == 503
    assert (await client.get("/api/v1/market/gex")).status_code == 503

    context = (await client.get("/api/v1/market/context")).json()
    assert context["gex"] is None
    assert context["market_regime"] == "neutral"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_proxy_history_route_validates_period(app, client):
    yahoo = StubYahoo()
    app.state.market_context = MarketContextService(futures=DatabentoProvider(api_key=None), yahoo=yahoo)

    assert (await client.get("/api/v1/market/proxy/history", params={"period": "10y"})).status_code == 422
    assert (await client.get("/api/v1/market/proxy/history", params={"period": "5d"})).status_code == 503
    assert yahoo.history_periods == ["5d"]
