from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    engine = getattr(request.app.state, "trading_engine", None)
    return {
        "status": "ok",
        "engine": "running" if engine and engine.is_running else "stopped",
    }
