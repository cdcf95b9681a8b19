"""Wiring of the engine and its collaborators from settings."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from es_signals.config import Settings, settings
from es_signals.infrastructure.db.signal_store import DatabaseSignalStore
from es_signals.infrastructure.market_data.databento_provider import DatabentoProvider
from es_signals.infrastructure.market_data.gamma_exposure import GammaExposureCalculator
from es_signals.infrastructure.market_data.market_context import MarketContextService
from es_signals.infrastructure.market_data.yfinance_provider import YFinanceProvider
from es_signals.runtime.trading_engine import EngineConfig, TradingEngine


def build_market_context(source: Settings = settings) -> MarketContextService:
    return MarketContextService(
        futures=DatabentoProvider(
            api_key=source.DATABENTO_API_KEY,
            base_url=source.DATABENTO_BASE_URL,
            dataset=source.DATABENTO_DATASET,
        ),
        yahoo=YFinanceProvider(
            vix_symbol=source.VIX_SYMBOL,
            vix_proxy_symbol=source.VIX_PROXY_SYMBOL,
            proxy_symbol=source.PROXY_SYMBOL,
            cache_ttl_seconds=source.MARKET_DATA_CACHE_TTL_SECONDS,
        ),
        gex_calculator=GammaExposureCalculator(),
        proxy_multiplier=source.PROXY_PRICE_MULTIPLIER,
    )


def build_trading_engine(
    market_context: MarketContextService,
    session_factory: async_sessionmaker[AsyncSession],
    source: Settings = settings,
) -> TradingEngine:
    return TradingEngine(
        market_data=market_context,
        store=DatabaseSignalStore(session_factory),
        config=EngineConfig.from_settings(source),
    )
