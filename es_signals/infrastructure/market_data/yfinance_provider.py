"""
YFinance Market Data Provider
Volatility index, VIX term-structure proxy and equity-index proxy prices.
Async-safe via thread offloading.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import yfinance as yf

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VIXData:
    current: float
    change: float
    change_percent: float
    high: float
    low: float
    open: float
    previous_close: float
    timestamp: float


@dataclass(frozen=True)
class VIXTermStructure:
    spot: float
    front: float
    second: float
    contango: bool
    spread: float


@dataclass(frozen=True)
class PriceHistory:
    timestamps: List[float]
    prices: List[float]
    volumes: List[float]


class YFinanceProvider:
    """
    Yahoo Finance data provider for VIX and the SPY proxy
    """

    def __init__(
        self,
        vix_symbol: str = "^VIX",
        vix_proxy_symbol: str = "VXX",
        proxy_symbol: str = "SPY",
        cache_ttl_seconds: int = 30,
    ):
        self.vix_symbol = vix_symbol
        self.vix_proxy_symbol = vix_proxy_symbol
        self.proxy_symbol = proxy_symbol
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cache: Dict[str, tuple[float, object]] = {}

    # ------------------------------------------------------------------
    # INTERNAL HELPERS
    # ------------------------------------------------------------------

    async def _history(self, ticker: yf.Ticker, **kwargs):
        """
        Async-safe wrapper around yfinance history()
        """
        return await asyncio.to_thread(ticker.history, **kwargs)

    async def _history_with_retry(self, ticker: yf.Ticker, retries: int = 2, **kwargs):
        """
        Retry wrapper around history() to handle transient failures.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(retries + 1):
            try:
                return await self._history(ticker, **kwargs)
            except Exception as exc:
                last_exc = exc
                if attempt < retries:
                    await asyncio.sleep(0.4 * (2 ** attempt) + random.random() * 0.2)
        raise last_exc  # type: ignore[misc]

    def _cache_get(self, key: str) -> Optional[object]:
        cached = self._cache.get(key)
        if not cached:
            return None
        ts, value = cached
        if time.time() - ts > self.cache_ttl_seconds:
            return None
        return value

    def _cache_set(self, key: str, value: object) -> None:
        self._cache[key] = (time.time(), value)

    async def _last_close(self, symbol: str, period: str, interval: str) -> Optional[float]:
        cache_key = f"last_close:{symbol}:{period}:{interval}"
        cached = self._cache_get(cache_key)
        if cached is not None:
            return cached  # type: ignore[return-value]
        try:
            hist = await self._history_with_retry(yf.Ticker(symbol), period=period, interval=interval)
        except Exception as exc:
            logger.error(f"Error fetching {symbol} price: {exc}")
            return None
        if hist.empty or "Close" not in hist:
            logger.warning(f"No price data for {symbol}")
            return None
        close = float(hist["Close"].dropna().iloc[-1])
        if close <= 0:
            return None
        self._cache_set(cache_key, close)
        return close

    # ------------------------------------------------------------------
    # VOLATILITY INDEX
    # ------------------------------------------------------------------

    async def get_vix(self) -> Optional[VIXData]:
        cache_key = f"vix:{self.vix_symbol}"
        cached = self._cache_get(cache_key)
        if cached is not None:
            return cached  # type: ignore[return-value]
        try:
            hist = await self._history_with_retry(yf.Ticker(self.vix_symbol), period="5d", interval="1d")
        except Exception as exc:
            logger.error(f"Error fetching VIX data: {exc}")
            return None
        closes = hist["Close"].dropna() if not hist.empty and "Close" in hist else None
        if closes is None or closes.empty:
            logger.warning("No VIX data returned")
            return None

        last = hist.iloc[-1]
        current = float(closes.iloc[-1])
        previous_close = float(closes.iloc[-2]) if len(closes) > 1 else current
        change = current - previous_close
        data = VIXData(
            current=current,
            change=change,
            change_percent=change / (previous_close or 1) * 100,
            high=float(last.get("High", current)),
            low=float(last.get("Low", current)),
            open=float(last.get("Open", current)),
            previous_close=previous_close,
            timestamp=time.time(),
        )
        self._cache_set(cache_key, data)
        return data

    async def get_vix_term_structure(self) -> Optional[VIXTermStructure]:
        """
        Approximate the curve from the short-term VIX futures ETN against spot.
        """
        vix = await self.get_vix()
        if vix is None or vix.current <= 0:
            return None
        etn_price = await self._last_close(self.vix_proxy_symbol, period="1d", interval="1d")
        spread = (etn_price / vix.current - 1) * 100 if etn_price else 0.0
        return VIXTermStructure(
            spot=vix.current,
            front=vix.current * (1 + spread / 100),
            second=vix.current * (1 + spread / 100 * 1.5),
            contango=spread > 0,
            spread=spread,
        )

    # ------------------------------------------------------------------
    # EQUITY INDEX PROXY
    # ------------------------------------------------------------------

    async def get_proxy_price(self) -> Optional[float]:
        return await self._last_close(self.proxy_symbol, period="1d", interval="1m")

    async def get_proxy_history(self, period: str = "1mo") -> Optional[PriceHistory]:
        try:
            hist = await self._history_with_retry(yf.Ticker(self.proxy_symbol), period=period, interval="1d")
        except Exception as exc:
            logger.error(f"Error fetching {self.proxy_symbol} history: {exc}")
            return None
        if hist.empty:
            return None
        return PriceHistory(
            timestamps=[ts.timestamp() for ts in hist.index],
            prices=[float(v) for v in hist["Close"].tolist()],
            volumes=[float(v) for v in hist.get("Volume", hist["Close"] * 0).tolist()],
        )
