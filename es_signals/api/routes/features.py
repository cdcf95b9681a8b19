from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from es_signals.infrastructure.db.database import get_db
from es_signals.infrastructure.db.repositories.feature_importance_repository import (
    FeatureImportanceRepository,
)

router = APIRouter()


class FeatureImportanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    feature_name: str
    importance: float
    category: Optional[str] = None
    model_type: str


@router.get("/importance", response_model=List[FeatureImportanceResponse])
async def feature_importance(db: AsyncSession = Depends(get_db)):
    """Most recent telemetry batch, highest importance first."""
    return await FeatureImportanceRepository(db).get_latest_batch()
