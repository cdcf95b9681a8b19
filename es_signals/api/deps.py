"""Request-scoped access to the objects created in the app lifespan."""

from fastapi import HTTPException, Request

from es_signals.infrastructure.market_data.market_context import MarketContextService
from es_signals.runtime.trading_engine import TradingEngine


def get_engine(request: Request) -> TradingEngine:
    engine = getattr(request.app.state, "trading_engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Trading engine not initialized")
    return engine


def get_market_context(request: Request) -> MarketContextService:
    service = getattr(request.app.state, "market_context", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Market data not initialized")
    return service
