"""End-to-end session lifecycle over the Redis and database stores.

Runs the same request flows against each backend so the manager's
guarantees do not depend on which store is configured.
"""

from unittest.mock import Mock

import pytest
import pytest_asyncio

from sessionlayer.application.session_config import SessionManagerConfig
from sessionlayer.application.session_manager import SessionManager
from sessionlayer.application.session_stats import SessionStats
from sessionlayer.core.result import Failure, Success
from sessionlayer.domain.enums import MergePolicy, SessionState
from sessionlayer.domain.value_objects import ClientInfo

CLIENT = ClientInfo(ip_address="198.51.100.23", user_agent="integration-test")


@pytest_asyncio.fixture(params=["redis", "database"])
async def store(request, redis_store, database_store):
    """Each test runs once per networked backend."""
    return redis_store if request.param == "redis" else database_store


def make_manager(store, **overrides) -> SessionManager:
    return SessionManager(
        store=store, logger=Mock(), config=SessionManagerConfig(**overrides)
    )


@pytest.mark.integration
class TestSessionLifecycle:
    @pytest.mark.asyncio
    async def test_create_load_update(self, store):
        manager = make_manager(store)

        async with manager.request(None, CLIENT) as first:
            await first.set("cart", ["A"])
        async with manager.request(first.session_id, CLIENT) as second:
            await second.set("cart", ["A", "B"])
        async with manager.request(first.session_id, CLIENT) as third:
            cart = third.get("cart")

        assert first.history[-2] is SessionState.SAVED
        assert second.record.version == 2
        assert cart == ["A", "B"]
        assert third.history[-2] is SessionState.UNCHANGED

    @pytest.mark.asyncio
    async def test_reject_conflict(self, store):
        manager = make_manager(store, merge_policy=MergePolicy.REJECT)
        async with manager.request(None, CLIENT) as seed:
            await seed.set("n", 0)

        first = await manager.load_or_create(seed.session_id, CLIENT)
        second = await manager.load_or_create(seed.session_id, CLIENT)
        first.set("a", 1)
        second.set("b", 2)
        await manager.finalize(first)
        result = await manager.finalize(second)

        assert isinstance(result, Failure)
        loaded = await manager.load_or_create(seed.session_id, CLIENT)
        assert loaded.data == {"n": 0, "a": 1}

    @pytest.mark.asyncio
    async def test_reapply_delta_merges(self, store):
        manager = make_manager(store, merge_policy=MergePolicy.REAPPLY_DELTA)
        async with manager.request(None, CLIENT) as seed:
            await seed.set("n", 0)

        first = await manager.load_or_create(seed.session_id, CLIENT)
        second = await manager.load_or_create(seed.session_id, CLIENT)
        first.set("a", 1)
        second.set("b", 2)
        await manager.finalize(first)
        result = await manager.finalize(second)

        assert isinstance(result, Success)
        loaded = await manager.load_or_create(seed.session_id, CLIENT)
        assert loaded.data == {"n": 0, "a": 1, "b": 2}
        assert loaded.version == 3

    @pytest.mark.asyncio
    async def test_login_rotates_id(self, store):
        manager = make_manager(store)
        async with manager.request(None, CLIENT) as anonymous:
            await anonymous.set("cart", ["A"])

        async with manager.request(anonymous.session_id, CLIENT) as login:
            login.record.set_user_id("user-1")
            login.record.set_privilege_level(1)

        assert login.session_id != anonymous.session_id
        assert isinstance(await store.load(anonymous.session_id), Failure)
        async with manager.request(login.session_id, CLIENT) as after:
            pass
        assert after.record.user_id == "user-1"
        assert after.record.get("cart") == ["A"]

    @pytest.mark.asyncio
    async def test_logout(self, store):
        manager = make_manager(store)
        async with manager.request(None, CLIENT) as session:
            await session.set("a", 1)

        async with manager.request(session.session_id, CLIENT) as logout:
            await logout.destroy()

        async with manager.request(session.session_id, CLIENT) as later:
            pass
        assert later.history[1] is SessionState.NEW

    @pytest.mark.asyncio
    async def test_stats_count(self, store):
        manager = make_manager(store)
        for _ in range(4):
            async with manager.request(None, CLIENT) as session:
                await session.set("a", 1)
        async with manager.request(None, CLIENT):
            pass

        result = await SessionStats(store, Mock(), scan_batch_size=2).count_active()

        assert result.value.approximate_count == 4
