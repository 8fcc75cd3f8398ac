import os

# Must be set before src.common.config builds its Settings
os.environ.setdefault("DATABASE_URL", "memory://")
os.environ.setdefault("RATE_LIMIT_DEFAULT", "10000/minute")
os.environ.setdefault("LOG_LEVEL", "debug")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine

from src.modules.leaderboard.leaderboard_service import LeaderboardService
from src.modules.scores.stores.memory_store import InMemoryScoreStore
from src.modules.scores.stores.sql_store import SqlScoreStore


@pytest.fixture
def memory_store() -> InMemoryScoreStore:
    return InMemoryScoreStore()


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'scores.db'}")
    store = SqlScoreStore(engine)
    await store.create_schema()
    yield store
    await store.close()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request, tmp_path):
    """Every ScoreStore implementation, for contract tests."""
    if request.param == "memory":
        yield InMemoryScoreStore()
        return
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'contract.db'}")
    sql = SqlScoreStore(engine)
    await sql.create_schema()
    yield sql
    await sql.close()


@pytest.fixture
def service(memory_store) -> LeaderboardService:
    return LeaderboardService(memory_store, backoff_seconds=0)


@pytest.fixture
def client():
    from src.main import app

    # Entering the context runs the lifespan, which builds a fresh in-memory store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
