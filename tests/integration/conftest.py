"""Shared fixtures for integration tests.

Provides real store implementations over test doubles:
- fakeredis (in-memory Redis emulation, one server per test)
- SQLite file database via aiosqlite (tables created and dropped per test)
"""

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio

from sessionlayer.infrastructure.persistence.database import Database
from sessionlayer.infrastructure.session_store.database_store import DatabaseSessionStore
from sessionlayer.infrastructure.session_store.redis_store import RedisSessionStore


class WallClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest_asyncio.fixture
async def fakeredis_client():
    """Fresh fakeredis client on its own server (no state shared between tests)."""
    client = fakeredis.aioredis.FakeRedis(
        server=fakeredis.FakeServer(), decode_responses=True
    )
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def redis_store(fakeredis_client):
    """RedisSessionStore over fakeredis."""
    return RedisSessionStore(fakeredis_client, pool_retry_backoff=0.001)


@pytest.fixture
def wall_clock():
    return WallClock()


@pytest_asyncio.fixture
async def test_database(tmp_path):
    """SQLite database with the session tables created."""
    db = Database(database_url=f"sqlite+aiosqlite:///{tmp_path}/sessions.db")
    await db.create_all()
    yield db
    await db.drop_all()
    await db.close()


@pytest_asyncio.fixture
async def database_store(test_database, wall_clock):
    """DatabaseSessionStore over SQLite with a controllable clock."""
    return DatabaseSessionStore(test_database, clock=wall_clock, pool_retry_backoff=0.001)
