"""
Feature Importance Repository
"""

from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from es_signals.domain.models import FeatureTelemetry
from es_signals.infrastructure.db.models import FeatureImportanceModel
from es_signals.utils.time import now_utc_naive, to_utc_naive


class FeatureImportanceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_many(
        self,
        rows: Sequence[FeatureTelemetry],
        timestamp: Optional[datetime] = None,
    ) -> int:
        """Insert one batch sharing a timestamp; returns the row count."""
        ts = to_utc_naive(timestamp) if timestamp else now_utc_naive()
        self.session.add_all(
            [
                FeatureImportanceModel(
                    timestamp=ts,
                    feature_name=row.name,
                    importance=round(row.value, 6),
                    category=row.category.value,
                    model_type=row.model_type,
                )
                for row in rows
            ]
        )
        await self.session.flush()
        return len(rows)

    async def get_latest_batch(self) -> List[FeatureImportanceModel]:
        """Rows of the most recent batch, highest importance first."""
        latest_ts = (
            await self.session.execute(select(func.max(FeatureImportanceModel.timestamp)))
        ).scalar()
        if latest_ts is None:
            return []
        result = await self.session.execute(
            select(FeatureImportanceModel)
            .where(FeatureImportanceModel.timestamp == latest_ts)
            .order_by(FeatureImportanceModel.importance.desc())
        )
        return list(result.scalars().all())
