"""
FastAPI Main Application
Signal engine lifecycle plus the read/control API for the dashboard.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from es_signals.api.routes import engine as engine_routes
from es_signals.api.routes import features, health, market, regime, signals
from es_signals.config import settings
from es_signals.core.logging import setup_logging
from es_signals.infrastructure.db.database import async_session_factory, close_db, init_db
from es_signals.runtime.bootstrap import build_market_context, build_trading_engine

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    logger.info("Starting ES signal engine (env=%s)", settings.APP_ENV)

    await init_db()

    market_context = build_market_context(settings)
    if not market_context.futures.is_configured():
        logger.warning("DATABENTO_API_KEY not set; using %s proxy prices", settings.PROXY_SYMBOL)
    trading_engine = build_trading_engine(market_context, async_session_factory, settings)
    app.state.market_context = market_context
    app.state.trading_engine = trading_engine

    if settings.ENGINE_AUTOSTART:
        await trading_engine.start()
    else:
        logger.info("Engine autostart disabled; use POST /api/v1/engine/start")

    yield

    await trading_engine.stop()
    await close_db()
    logger.info("ES signal engine shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title="ES Signal Engine",
        description="Regime-aware trading signals for ES futures",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(engine_routes.router, prefix="/api/v1/engine", tags=["Engine"])
    app.include_router(signals.router, prefix="/api/v1/signals", tags=["Signals"])
    app.include_router(regime.router, prefix="/api/v1/regime", tags=["Regime"])
    app.include_router(features.router, prefix="/api/v1/features", tags=["Features"])
    app.include_router(market.router, prefix="/api/v1/market", tags=["Market Data"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "es_signals.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
