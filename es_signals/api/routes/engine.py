"""
Engine control routes - status, start/stop and manual iteration.
"""

import logging

from fastapi import APIRouter, Depends

from es_signals.api.deps import get_engine
from es_signals.runtime.trading_engine import TradingEngine

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/status")
async def engine_status(engine: TradingEngine = Depends(get_engine)):
    return engine.get_status()


@router.post("/start")
async def start_engine(engine: TradingEngine = Depends(get_engine)):
    await engine.start()
    return {"running": engine.is_running}


@router.post("/stop")
async def stop_engine(engine: TradingEngine = Depends(get_engine)):
    await engine.stop()
    return {"running": engine.is_running}


@router.post("/iterate")
async def force_iteration(engine: TradingEngine = Depends(get_engine)):
    """Run one iteration immediately, outside the schedule."""
    outcome = await engine.force_iteration()
    logger.info("Manual iteration finished: %s", outcome.value)
    return {"outcome": outcome.value, "status": engine.get_status()}
