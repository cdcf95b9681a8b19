"""
Databento Market Data Provider
CME Globex (GLBX.MDP3) bars, trades and top-of-book quotes for ES futures.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from es_signals.domain.models import Trade

logger = logging.getLogger(__name__)

_BAR_SCHEMAS = {
    "1m": "ohlcv-1m",
    "1h": "ohlcv-1h",
    "1d": "ohlcv-1d",
}

# Quarterly contract months: (last month of the cycle, month code)
_CONTRACT_CYCLE = ((3, "H"), (6, "M"), (9, "U"), (12, "Z"))
_ROLL_DAY = 15


class DatabentoError(RuntimeError):
    pass


@dataclass(frozen=True)
class Bar:
    ts_event: int
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class Quote:
    ts_event: int
    bid_px: float
    ask_px: float
    bid_sz: float
    ask_sz: float


def front_month_symbol(today: date, root: str = "ES") -> str:
    """
    Front-month quarterly contract, rolling on the 15th of the expiry month.
    Uses CME raw symbology (single-digit year, e.g. ESZ6).
    """
    year = today.year
    for month, code in _CONTRACT_CYCLE:
        if today.month < month or (today.month == month and today.day < _ROLL_DAY):
            return f"{root}{code}{year % 10}"
    return f"{root}H{(year + 1) % 10}"


def _ts_event(record: Dict[str, Any]) -> int:
    header = record.get("hd") or {}
    raw = record.get("ts_event", header.get("ts_event", 0))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def _parse_records(text: str) -> List[Dict[str, Any]]:
    """Databento JSON encoding is newline-delimited; tolerate a plain array too."""
    body = text.strip()
    if not body:
        return []
    if body.startswith("["):
        return list(json.loads(body))
    return [json.loads(line) for line in body.splitlines() if line.strip()]


class DatabentoProvider:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://hist.databento.com/v0",
        dataset: str = "GLBX.MDP3",
        timeout: float = 15.0,
    ):
        self.api_key = (api_key or "").strip() or None
        self.base_url = base_url.rstrip("/")
        self.dataset = dataset
        self.timeout = timeout

    def is_configured(self) -> bool:
        return self.api_key is not None

    def current_symbol(self, today: Optional[date] = None) -> str:
        return front_month_symbol(today or datetime.now(timezone.utc).date())

    async def _request(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> str:
        if not self.api_key:
            raise DatabentoError("Databento API key not configured")
        url = f"{self.base_url}{endpoint}"
        async with httpx.AsyncClient(timeout=self.timeout, auth=(self.api_key, "")) as client:
            response = await client.get(url, params=params)
        if response.status_code != 200:
            raise DatabentoError(
                f"Databento API error: {response.status_code} {(response.text or '')[:200]}"
            )
        return response.text

    async def _get_range(self, schema: str, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        params = {
            "dataset": self.dataset,
            "symbols": self.current_symbol(end.date()),
            "stype_in": "raw_symbol",
            "schema": schema,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "encoding": "json",
            "pretty_px": "true",
        }
        text = await self._request("/timeseries.get_range", params)
        return _parse_records(text)

    # ------------------------------------------------------------------
    # BARS / TRADES / QUOTES
    # ------------------------------------------------------------------

    async def get_bars(self, start: datetime, end: datetime, interval: str = "1m") -> List[Bar]:
        schema = _BAR_SCHEMAS.get(interval)
        if schema is None:
            raise ValueError(f"Unsupported bar interval: {interval}")
        try:
            records = await self._get_range(schema, start, end)
        except (DatabentoError, httpx.HTTPError, ValueError) as exc:
            logger.warning("Databento bars fetch failed: %s", exc)
            return []
        bars: List[Bar] = []
        for r in records:
            try:
                bars.append(
                    Bar(
                        ts_event=_ts_event(r),
                        open=float(r["open"]),
                        high=float(r["high"]),
                        low=float(r["low"]),
                        close=float(r["close"]),
                        volume=float(r.get("volume", 0)),
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue
        return bars

    async def get_trades(self, start: datetime, end: datetime) -> List[Trade]:
        try:
            records = await self._get_range("trades", start, end)
        except (DatabentoError, httpx.HTTPError, ValueError) as exc:
            logger.warning("Databento trades fetch failed: %s", exc)
            return []
        trades: List[Trade] = []
        for r in records:
            try:
                trades.append(Trade(price=float(r["price"]), size=float(r["size"]), side=str(r.get("side", "N"))))
            except (KeyError, TypeError, ValueError):
                continue
        return trades

    async def get_quotes(self, start: datetime, end: datetime) -> List[Quote]:
        try:
            records = await self._get_range("bbo-1s", start, end)
        except (DatabentoError, httpx.HTTPError, ValueError) as exc:
            logger.warning("Databento quotes fetch failed: %s", exc)
            return []
        quotes: List[Quote] = []
        for r in records:
            level = (r.get("levels") or [r])[0]
            try:
                quotes.append(
                    Quote(
                        ts_event=_ts_event(r),
                        bid_px=float(level["bid_px"]),
                        ask_px=float(level["ask_px"]),
                        bid_sz=float(level.get("bid_sz", 0)),
                        ask_sz=float(level.get("ask_sz", 0)),
                    )
                )
            except (KeyError, TypeError, ValueError):
                continue
        return quotes

    async def get_latest_price(self) -> Optional[float]:
        """Close of the most recent 1-minute bar within the last hour."""
        now = datetime.now(timezone.utc)
        bars = await self.get_bars(now - timedelta(hours=1), now, "1m")
        if not bars:
            return None
        close = bars[-1].close
        return close if close > 0 else None
