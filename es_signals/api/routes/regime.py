"""
Regime routes - live regime from the engine, history from the database.
"""

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from es_signals.infrastructure.db.database import get_db
from es_signals.infrastructure.db.repositories.regime_repository import RegimeRepository

router = APIRouter()


class RegimeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: Optional[datetime] = None
    regime: str
    confidence: float
    duration: int
    vix_level: Optional[float] = None
    gex_level: Optional[float] = None
    transition_probabilities: Optional[Dict[str, float]] = None


@router.get("/current", response_model=RegimeResponse)
async def current_regime(request: Request, db: AsyncSession = Depends(get_db)):
    engine = getattr(request.app.state, "trading_engine", None)
    if engine is not None and engine.current_regime is not None:
        timestamp, state = engine.regime_history(limit=1)[-1]
        snapshot = engine.last_snapshot
        return RegimeResponse(
            timestamp=timestamp,
            regime=state.regime.value,
            confidence=state.confidence,
            duration=state.duration,
            vix_level=snapshot.vix if snapshot else None,
            gex_level=snapshot.gex if snapshot else None,
            transition_probabilities=state.transition_probabilities,
        )

    stored = await RegimeRepository(db).get_latest()
    if stored is None:
        raise HTTPException(status_code=404, detail="No regime classified yet")
    return stored


@router.get("/history", response_model=List[RegimeResponse])
async def regime_history(
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    return await RegimeRepository(db).get_history(limit=limit)
