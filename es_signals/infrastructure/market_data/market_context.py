"""
Market context service - the engine's market-data collaborator.

Futures price chain: Databento front-month -> SPY proxy x multiplier.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from es_signals.domain.models import GammaExposureSnapshot, GexRegime, Trade, VolatilitySnapshot
from es_signals.infrastructure.market_data.databento_provider import DatabentoProvider
from es_signals.infrastructure.market_data.gamma_exposure import GammaExposureCalculator, GEXData
from es_signals.infrastructure.market_data.yfinance_provider import (
    VIXData,
    VIXTermStructure,
    YFinanceProvider,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketContext:
    vix: Optional[VIXData]
    vix_term_structure: Optional[VIXTermStructure]
    gex: Optional[GEXData]
    proxy_price: Optional[float]
    market_regime: str


def describe_market_regime(vix: Optional[VIXData], gex: Optional[GEXData]) -> str:
    if vix is None or gex is None:
        return "neutral"
    if vix.current > 25 and gex.regime == GexRegime.NEGATIVE:
        return "high_volatility_trending"
    if vix.current > 25 and gex.regime == GexRegime.POSITIVE:
        return "high_volatility_mean_reverting"
    if vix.current < 15 and gex.regime == GexRegime.POSITIVE:
        return "low_volatility_grinding"
    if vix.current < 15 and gex.regime == GexRegime.NEGATIVE:
        return "low_volatility_breakout_risk"
    return "normal"


class MarketContextService:
    def __init__(
        self,
        futures: DatabentoProvider,
        yahoo: YFinanceProvider,
        gex_calculator: Optional[GammaExposureCalculator] = None,
        proxy_multiplier: float = 10.0,
    ):
        self.futures = futures
        self.yahoo = yahoo
        self.gex_calculator = gex_calculator or GammaExposureCalculator()
        self.proxy_multiplier = proxy_multiplier
        self.last_price_source: Optional[str] = None

    async def get_latest_price(self) -> Optional[float]:
        if self.futures.is_configured():
            try:
                price = await self.futures.get_latest_price()
            except Exception as exc:
                logger.warning("Futures price unavailable, falling back to proxy: %s", exc)
                price = None
            if price:
                self.last_price_source = "databento"
                return price

        proxy = await self.yahoo.get_proxy_price()
        if not proxy:
            self.last_price_source = None
            return None
        self.last_price_source = f"{self.yahoo.proxy_symbol.lower()}_proxy"
        return proxy * self.proxy_multiplier

    async def get_volatility_index_snapshot(self) -> Optional[VolatilitySnapshot]:
        vix = await self.yahoo.get_vix()
        if vix is None:
            return None
        return VolatilitySnapshot(level=vix.current, change_percent=vix.change_percent)

    async def get_gamma_exposure(self) -> Optional[GEXData]:
        spot = await self.yahoo.get_proxy_price()
        if not spot:
            return None
        return self.gex_calculator.calculate(spot)

    async def get_gamma_exposure_snapshot(self) -> Optional[GammaExposureSnapshot]:
        gex = await self.get_gamma_exposure()
        return gex.to_snapshot() if gex else None

    async def get_recent_trades(self, window: timedelta) -> List[Trade]:
        if not self.futures.is_configured():
            return []
        end = datetime.now(timezone.utc)
        return await self.futures.get_trades(end - window, end)

    async def get_market_context(self) -> MarketContext:
        vix, term_structure, gex, proxy_price = await asyncio.gather(
            self.yahoo.get_vix(),
            self.yahoo.get_vix_term_structure(),
            self.get_gamma_exposure(),
            self.yahoo.get_proxy_price(),
        )
        return MarketContext(
            vix=vix,
            vix_term_structure=term_structure,
            gex=gex,
            proxy_price=proxy_price,
            market_regime=describe_market_regime(vix, gex),
        )
