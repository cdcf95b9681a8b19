"""
Trading Signal Repository
Persisted actionable signals
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from es_signals.domain.models import SignalRecord, SignalType
from es_signals.infrastructure.db.models import TradingSignalModel
from es_signals.utils.time import to_utc_naive


class TradingSignalRepository:
    """Repository for trading signals"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, signal: SignalRecord) -> int:
        model = TradingSignalModel(
            timestamp=to_utc_naive(signal.timestamp),
            signal_type=signal.signal_type.value,
            confidence=round(signal.confidence, 4),
            regime=signal.regime.value,
            suggested_tp=signal.suggested_tp,
            suggested_sl=signal.suggested_sl,
            entry_price=signal.entry_price,
            features=signal.features.as_dict() if signal.features else None,
            reasoning=list(signal.reasoning),
            executed=signal.executed,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def get_latest(self) -> Optional[TradingSignalModel]:
        result = await self.session.execute(
            select(TradingSignalModel)
            .order_by(TradingSignalModel.timestamp.desc(), TradingSignalModel.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def list(
        self,
        limit: int = 50,
        offset: int = 0,
        signal_type: Optional[SignalType] = None,
        min_confidence: Optional[float] = None,
    ) -> List[TradingSignalModel]:
        """
        Signals newest first, optionally filtered by type and confidence floor.
        """
        stmt = select(TradingSignalModel)
        if signal_type is not None:
            stmt = stmt.where(TradingSignalModel.signal_type == signal_type.value)
        if min_confidence is not None:
            stmt = stmt.where(TradingSignalModel.confidence >= min_confidence)
        stmt = (
            stmt.order_by(TradingSignalModel.timestamp.desc(), TradingSignalModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
