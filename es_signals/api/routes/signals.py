"""
Signal routes - persisted actionable signals.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from es_signals.domain.models import SignalType
from es_signals.infrastructure.db.database import get_db
from es_signals.infrastructure.db.repositories.signal_repository import TradingSignalRepository

router = APIRouter()


class SignalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: datetime
    signal_type: SignalType
    confidence: float
    regime: str
    suggested_tp: int
    suggested_sl: int
    entry_price: float
    executed: bool
    reasoning: Optional[List[str]] = None
    features: Optional[Dict[str, Any]] = None


@router.get("/latest", response_model=SignalResponse)
async def latest_signal(db: AsyncSession = Depends(get_db)):
    signal = await TradingSignalRepository(db).get_latest()
    if signal is None:
        raise HTTPException(status_code=404, detail="No signals stored yet")
    return signal


@router.get("", response_model=List[SignalResponse])
async def list_signals(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    signal_type: Optional[SignalType] = None,
    min_confidence: Optional[float] = Query(None, ge=0, le=1),
    db: AsyncSession = Depends(get_db),
):
    return await TradingSignalRepository(db).list(
        limit=limit,
        offset=offset,
        signal_type=signal_type,
        min_confidence=min_confidence,
    )
