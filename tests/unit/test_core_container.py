"""Unit tests for container factories.

Tests cover:
- Logger singleton and renderer selection by ENVIRONMENT
- Store selection by STORAGE_TYPE
- Manager and stats wiring from settings

Architecture:
- Settings passed explicitly (no environment leakage)
- Redis and database factories patched where a live backend would be needed
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from redis.asyncio import Redis

from sessionlayer.application.session_manager import SessionManager
from sessionlayer.application.session_stats import SessionStats
from sessionlayer.core.config import Settings
from sessionlayer.core.container import (
    create_redis_client,
    create_session_manager,
    create_session_stats,
    create_session_store,
    get_logger,
)
from sessionlayer.core.enums import Environment
from sessionlayer.domain.enums import MergePolicy
from sessionlayer.infrastructure.session_store.database_store import DatabaseSessionStore
from sessionlayer.infrastructure.session_store.memory_store import MemorySessionStore
from sessionlayer.infrastructure.session_store.redis_store import RedisSessionStore


@pytest.mark.unit
class TestGetLogger:
    """get_logger() container function."""

    def test_json_outside_development(self):
        with patch("sessionlayer.core.container.infrastructure.get_settings") as mock_settings:
            mock_settings.return_value = Settings(environment=Environment.PRODUCTION)
            get_logger.cache_clear()

            with patch(
                "sessionlayer.infrastructure.logging.console_adapter.ConsoleAdapter"
            ) as mock_console:
                mock_console.return_value = MagicMock()

                logger = get_logger()

                mock_console.assert_called_once_with(use_json=True, level="INFO")
                assert logger is mock_console.return_value
        get_logger.cache_clear()

    def test_console_in_development(self):
        with patch("sessionlayer.core.container.infrastructure.get_settings") as mock_settings:
            mock_settings.return_value = Settings(environment=Environment.DEVELOPMENT)
            get_logger.cache_clear()

            with patch(
                "sessionlayer.infrastructure.logging.console_adapter.ConsoleAdapter"
            ) as mock_console:
                get_logger()

                assert mock_console.call_args.kwargs["use_json"] is False
        get_logger.cache_clear()

    def test_singleton(self):
        get_logger.cache_clear()

        assert get_logger() is get_logger()
        get_logger.cache_clear()


@pytest.mark.unit
class TestCreateSessionStore:
    """Backend selection."""

    def test_memory(self):
        store = create_session_store(Settings(storage_type="memory"))

        assert isinstance(store, MemorySessionStore)

    def test_redis(self):
        with patch(
            "sessionlayer.core.container.sessions.create_redis_client"
        ) as mock_client:
            store = create_session_store(Settings(storage_type="redis"))

        assert isinstance(store, RedisSessionStore)
        mock_client.assert_called_once()

    def test_database(self):
        with patch("sessionlayer.core.container.sessions.create_database") as mock_db:
            store = create_session_store(
                Settings(storage_type="database", session_key_prefix="app:")
            )

        assert isinstance(store, DatabaseSessionStore)
        mock_db.assert_called_once()

    def test_unsupported(self):
        settings = Settings.model_construct(storage_type="memcached")

        with pytest.raises(ValueError, match="Unsupported STORAGE_TYPE"):
            create_session_store(settings)

    def test_redis_client_uses_blocking_pool(self):
        settings = Settings(
            redis_url="redis://cache:6379/1",
            pool_size=4,
            connection_timeout=timedelta(seconds=3),
        )

        client = create_redis_client(settings)

        assert isinstance(client, Redis)
        pool = client.connection_pool
        assert pool.max_connections == 4
        assert pool.timeout == 3


@pytest.mark.unit
class TestCreateManagerAndStats:
    def test_manager_uses_settings_policy(self, mock_logger):
        settings = Settings(merge_policy=MergePolicy.REAPPLY_DELTA, max_conflict_retries=2)

        manager = create_session_manager(settings=settings, logger=mock_logger)

        assert isinstance(manager, SessionManager)
        assert isinstance(manager.store, MemorySessionStore)
        assert manager.config.merge_policy is MergePolicy.REAPPLY_DELTA
        assert manager.config.max_conflict_retries == 2

    def test_manager_accepts_explicit_store(self, memory_store, mock_logger):
        manager = create_session_manager(
            store=memory_store, settings=Settings(), logger=mock_logger
        )

        assert manager.store is memory_store

    def test_managers_are_not_shared(self, mock_logger):
        settings = Settings()

        first = create_session_manager(settings=settings, logger=mock_logger)
        second = create_session_manager(settings=settings, logger=mock_logger)

        assert first is not second

    def test_stats(self, memory_store, mock_logger):
        stats = create_session_stats(memory_store, Settings(), mock_logger)

        assert isinstance(stats, SessionStats)
