"""
Database-backed signal store used by the trading engine.
One session and one commit per write.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from es_signals.domain.models import FeatureTelemetry, RegimeState, SignalRecord
from es_signals.infrastructure.db.repositories.feature_importance_repository import (
    FeatureImportanceRepository,
)
from es_signals.infrastructure.db.repositories.regime_repository import RegimeRepository
from es_signals.infrastructure.db.repositories.signal_repository import TradingSignalRepository

logger = logging.getLogger(__name__)


class DatabaseSignalStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def persist_regime(
        self,
        regime: RegimeState,
        vix_level: Optional[float],
        gex_level: Optional[float],
        timestamp: Optional[datetime] = None,
    ) -> None:
        async with self._session_factory() as session:
            await RegimeRepository(session).create(
                regime, vix_level=vix_level, gex_level=gex_level, timestamp=timestamp
            )
            await session.commit()

    async def persist_signal(self, signal: SignalRecord) -> None:
        async with self._session_factory() as session:
            signal_id = await TradingSignalRepository(session).create(signal)
            await session.commit()
        logger.info(
            "Signal stored id=%s type=%s confidence=%.2f",
            signal_id,
            signal.signal_type.value,
            signal.confidence,
        )

    async def persist_feature_telemetry(
        self,
        rows: Sequence[FeatureTelemetry],
        timestamp: Optional[datetime] = None,
    ) -> None:
        if not rows:
            return
        async with self._session_factory() as session:
            await FeatureImportanceRepository(session).create_many(rows, timestamp=timestamp)
            await session.commit()
