"""Service test fixtures — async DB + FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - The live ledger registry is emptied before and after each test

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
    - db_manager patched so the readiness probe sees the test engine
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

import crowdsale.models  # noqa: F401
from crowdsale.db.base import Base
from crowdsale.infrastructure.database import get_db, DatabaseSessionManager
import crowdsale.infrastructure.database as db_module
from crowdsale.main import app
from crowdsale.services import crowdsale_service


@pytest.fixture(autouse=True)
def clear_registry():
    crowdsale_service._ledgers.clear()
    crowdsale_service._locks.clear()
    yield
    crowdsale_service._ledgers.clear()
    crowdsale_service._locks.clear()


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def sale_params() -> dict:
    """Crowdsale with unit price 100 and objective 1000, opening in an hour."""
    start = datetime.now(timezone.utc) + timedelta(hours=1)
    return {
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(days=7)).isoformat(),
        "unit_price": 100,
        "funding_objective": 1000,
    }


@pytest.fixture
async def sale_id(client, sale_params) -> str:
    res = await client.post(
        "/api/v1/crowdsales", json=sale_params, headers={"X-Caller-Id": "owner"},
    )
    assert res.status_code == 201
    return res.json()["id"]
