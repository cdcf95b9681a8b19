"""
Regime History Repository
Insert and read regime classifications
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from es_signals.domain.models import RegimeState
from es_signals.infrastructure.db.models import RegimeHistoryModel
from es_signals.utils.time import now_utc_naive, to_utc_naive


class RegimeRepository:
    """Repository for regime history"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        regime: RegimeState,
        vix_level: Optional[float] = None,
        gex_level: Optional[float] = None,
        timestamp: Optional[datetime] = None,
    ) -> int:
        model = RegimeHistoryModel(
            timestamp=to_utc_naive(timestamp) if timestamp else now_utc_naive(),
            regime=regime.regime.value,
            confidence=round(regime.confidence, 4),
            duration=regime.duration,
            vix_level=vix_level,
            gex_level=gex_level,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def get_latest(self) -> Optional[RegimeHistoryModel]:
        result = await self.session.execute(
            select(RegimeHistoryModel)
            .order_by(RegimeHistoryModel.timestamp.desc(), RegimeHistoryModel.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_history(self, limit: int = 100) -> List[RegimeHistoryModel]:
        """Most recent first."""
        result = await self.session.execute(
            select(RegimeHistoryModel)
            .order_by(RegimeHistoryModel.timestamp.desc(), RegimeHistoryModel.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
