"""Pytest configuration and shared fixtures.

Provides:
1. Marker registration (unit, integration)
2. Automatic asyncio marking of coroutine tests
3. A controllable clock shared by the manager and the memory store
4. Mock logger, memory store and manager factories
"""

import inspect
from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest

from sessionlayer.application.session_config import SessionManagerConfig
from sessionlayer.application.session_manager import SessionManager
from sessionlayer.domain.value_objects import ClientInfo
from sessionlayer.infrastructure.session_store.memory_store import MemorySessionStore

CHROME_UA = "Mozilla/5.0 (X11; Linux x86_64) Chrome/126.0"
FIREFOX_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:127.0) Firefox/127.0"


# Pytest markers for different test types
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests with mocked dependencies")
    config.addinivalue_line(
        "markers", "integration: Integration tests against fakeredis or SQLite"
    )
    config.addinivalue_line("markers", "asyncio: Async test that requires event loop")


def pytest_collection_modifyitems(config, items):
    """Automatically add asyncio marker to async test functions."""
    for item in items:
        function = getattr(item, "function", None)
        if function is not None and inspect.iscoroutinefunction(function):
            item.add_marker(pytest.mark.asyncio)


class FakeClock:
    """Wall and monotonic clock that only moves when told to.

    Usage:
        clock = FakeClock()
        store = MemorySessionStore(clock=clock.monotonic)
        manager = SessionManager(..., clock=clock.now, monotonic=clock.monotonic)
        clock.advance(60)
    """

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)):
        self._start = start
        self.elapsed = 0.0

    def advance(self, seconds: float) -> None:
        self.elapsed += seconds

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self.elapsed)

    def monotonic(self) -> float:
        return 10_000.0 + self.elapsed


@pytest.fixture
def clock():
    """Provide a fresh FakeClock."""
    return FakeClock()


@pytest.fixture
def mock_logger():
    """Provide a mock logger for testing.

    Usage:
        def test_something(mock_logger):
            manager = SessionManager(store=store, logger=mock_logger)
            mock_logger.warning.assert_called_once()
    """
    logger = Mock()
    logger.info = Mock()
    logger.debug = Mock()
    logger.error = Mock()
    logger.warning = Mock()
    logger.critical = Mock()
    return logger


@pytest.fixture
def memory_store(clock):
    """Provide a memory store driven by the fake clock."""
    return MemorySessionStore(clock=clock.monotonic)


@pytest.fixture
def client():
    """Client on a home network with Chrome."""
    return ClientInfo(ip_address="203.0.113.10", user_agent=CHROME_UA)


@pytest.fixture
def make_manager(memory_store, mock_logger, clock):
    """Factory for SessionManager instances sharing the fixture store and clock.

    Usage:
        def test_something(make_manager):
            manager = make_manager(merge_policy=MergePolicy.REAPPLY_DELTA)
    """

    def factory(store=None, **config_overrides) -> SessionManager:
        return SessionManager(
            store=store or memory_store,
            logger=mock_logger,
            config=SessionManagerConfig(**config_overrides),
            clock=clock.now,
            monotonic=clock.monotonic,
        )

    return factory
