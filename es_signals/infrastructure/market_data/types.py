"""
Collaborator protocols consumed by the trading engine.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Protocol, Sequence

from es_signals.domain.models import (
    FeatureTelemetry,
    GammaExposureSnapshot,
    RegimeState,
    SignalRecord,
    Trade,
    VolatilitySnapshot,
)


class MarketDataSource(Protocol):
    async def get_latest_price(self) -> Optional[float]:
        ...

    async def get_volatility_index_snapshot(self) -> Optional[VolatilitySnapshot]:
        ...

    async def get_gamma_exposure_snapshot(self) -> Optional[GammaExposureSnapshot]:
        ...

    async def get_recent_trades(self, window: timedelta) -> List[Trade]:
        ...


class SignalStore(Protocol):
    async def persist_regime(
        self,
        regime: RegimeState,
        vix_level: Optional[float],
        gex_level: Optional[float],
        timestamp: Optional[datetime] = None,
    ) -> None:
        ...

    async def persist_signal(self, signal: SignalRecord) -> None:
        ...

    async def persist_feature_telemetry(
        self,
        rows: Sequence[FeatureTelemetry],
        timestamp: Optional[datetime] = None,
    ) -> None:
        ...
