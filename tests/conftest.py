from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from es_signals.api.routes import engine as engine_routes
from es_signals.api.routes import features, health, market, regime, signals
from es_signals.infrastructure.db import models  # noqa: F401
from es_signals.infrastructure.db.database import Base, get_db
from tests.fakes import FakeMarketData, FakeStore, FixedClock


@pytest.fixture()
def market_data() -> FakeMarketData:
    return FakeMarketData()


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def clock() -> FixedClock:
    # 16:01 Europe/Berlin (CEST, UTC+2), inside the default 15:30-22:00 window
    return FixedClock(datetime(2026, 6, 10, 14, 1, tzinfo=timezone.utc))


@pytest.fixture()
async def db_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        future=True,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def app(db_session) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router)
    app.include_router(engine_routes.router, prefix="/api/v1/engine")
    app.include_router(signals.router, prefix="/api/v1/signals")
    app.include_router(regime.router, prefix="/api/v1/regime")
    app.include_router(features.router, prefix="/api/v1/features")
    app.include_router(market.router, prefix="/api/v1/market")

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.state.trading_engine = None
    app.state.market_context = None
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
