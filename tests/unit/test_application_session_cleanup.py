"""Unit tests for SessionCleanup and its container factory.

Tests cover:
- Expired entries purged by the background loop (no manual call)
- Failed purges logged; the loop keeps running
- Start/stop idempotence and context-manager use
- Factory returns None for Redis or a disabled interval
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from sessionlayer.application.session_cleanup import SessionCleanup
from sessionlayer.core.config import Settings
from sessionlayer.core.container import create_session_cleanup
from sessionlayer.core.enums import ErrorCode
from sessionlayer.core.result import Failure, Success
from sessionlayer.domain.entities import SessionRecord
from sessionlayer.domain.errors import BackendUnavailableError
from sessionlayer.infrastructure.session_store.redis_store import RedisSessionStore


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Poll until predicate() is true or fail after timeout seconds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


@pytest.mark.unit
class TestSessionCleanupLoop:
    """Background purge."""

    @pytest.mark.asyncio
    async def test_expired_entries_disappear_without_manual_call(
        self, memory_store, clock, mock_logger
    ):
        # Arrange - one short-lived and one long-lived session
        await memory_store.save("s" * 43, SessionRecord(id="s" * 43), 10, 0)
        await memory_store.save("l" * 43, SessionRecord(id="l" * 43), 1000, 0)
        clock.advance(60)
        cleanup = SessionCleanup(memory_store, mock_logger, interval=0.01)

        # Act
        async with cleanup:
            await wait_until(lambda: len(memory_store._entries) == 1)

        # Assert
        assert "session:" + "l" * 43 in memory_store._entries
        mock_logger.info.assert_any_call("session_cleanup_completed", removed=1)
        assert cleanup.running is False

    @pytest.mark.asyncio
    async def test_failed_purge_is_logged_and_loop_continues(self, mock_logger):
        store = MagicMock()
        store.cleanup_expired = AsyncMock(
            return_value=Failure(
                error=BackendUnavailableError(
                    code=ErrorCode.SESSION_STORE_UNAVAILABLE,
                    message="gone",
                    backend="database",
                    operation="cleanup_expired",
                )
            )
        )
        cleanup = SessionCleanup(store, mock_logger, interval=0.01)

        cleanup.start()
        await wait_until(lambda: store.cleanup_expired.await_count >= 2)
        await cleanup.stop()

        mock_logger.warning.assert_any_call(
            "session_cleanup_failed",
            error_code=ErrorCode.SESSION_STORE_UNAVAILABLE.value,
            backend="database",
        )

    @pytest.mark.asyncio
    async def test_run_once_returns_store_result(self, memory_store, mock_logger):
        cleanup = SessionCleanup(memory_store, mock_logger)

        result = await cleanup.run_once()

        assert result == Success(value=0)
        mock_logger.info.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_task_and_stop_is_idempotent(
        self, memory_store, mock_logger
    ):
        cleanup = SessionCleanup(memory_store, mock_logger, interval=60)

        cleanup.start()
        first_task = cleanup._task
        cleanup.start()

        assert cleanup._task is first_task
        assert cleanup.running is True
        await cleanup.stop()
        await cleanup.stop()
        assert cleanup.running is False

    def test_interval_must_be_positive(self, memory_store, mock_logger):
        with pytest.raises(ValueError, match="interval must be positive"):
            SessionCleanup(memory_store, mock_logger, interval=0)


@pytest.mark.unit
class TestCreateSessionCleanup:
    """Container factory."""

    def test_memory_store_gets_cleanup(self, memory_store, mock_logger):
        cleanup = create_session_cleanup(
            memory_store, Settings(cleanup_interval=timedelta(seconds=30)), mock_logger
        )

        assert isinstance(cleanup, SessionCleanup)
        assert cleanup._interval == 30

    def test_redis_store_needs_no_cleanup(self, mock_logger):
        store = RedisSessionStore(MagicMock())

        assert create_session_cleanup(store, Settings(), mock_logger) is None

    def test_disabled_interval(self, memory_store, mock_logger):
        assert (
            create_session_cleanup(memory_store, Settings(cleanup_interval=None), mock_logger)
            is None
        )

    def test_non_positive_interval_rejected(self):
        with pytest.raises(ValueError, match="cleanup_interval must be positive"):
            Settings(cleanup_interval=timedelta(0))
