"""
Market data routes - volatility index, gamma exposure and overall context.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query

from es_signals.api.deps import get_market_context
from es_signals.infrastructure.market_data.market_context import MarketContextService

router = APIRouter()


@router.get("/vix")
async def vix(service: MarketContextService = Depends(get_market_context)):
    data = await service.yahoo.get_vix()
    if data is None:
        raise HTTPException(status_code=503, detail="VIX data unavailable")
    return asdict(data)


@router.get("/vix-term-structure")
async def vix_term_structure(service: MarketContextService = Depends(get_market_context)):
    data = await service.yahoo.get_vix_term_structure()
    if data is None:
        raise HTTPException(status_code=503, detail="VIX term structure unavailable")
    return asdict(data)


@router.get("/gex")
async def gamma_exposure(service: MarketContextService = Depends(get_market_context)):
    data = await service.get_gamma_exposure()
    if data is None:
        raise HTTPException(status_code=503, detail="Gamma exposure unavailable")
    return asdict(data)


@router.get("/proxy/history")
async def proxy_history(
    period: str = Query("1mo", pattern="^(5d|1mo|3mo|6mo|1y)$"),
    service: MarketContextService = Depends(get_market_context),
):
    data = await service.yahoo.get_proxy_history(period)
    if data is None:
        raise HTTPException(status_code=503, detail="Proxy history unavailable")
    return asdict(data)


@router.get("/context")
async def market_context(service: MarketContextService = Depends(get_market_context)):
    return asdict(await service.get_market_context())


@router.get("/futures/symbol")
async def futures_symbol(service: MarketContextService = Depends(get_market_context)):
    return {
        "symbol": service.futures.current_symbol(),
        "dataset": service.futures.dataset,
        "configured": service.futures.is_configured(),
    }
