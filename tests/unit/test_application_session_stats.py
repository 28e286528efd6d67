"""Unit tests for SessionStats.count_active()."""

from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from sessionlayer.application.session_stats import SessionStats
from sessionlayer.core.enums import ErrorCode
from sessionlayer.core.result import Failure, Success
from sessionlayer.domain.errors import BackendUnavailableError
from sessionlayer.domain.protocols import ScanCount


@pytest.mark.unit
class TestSessionStats:
    @pytest.mark.asyncio
    async def test_counts_live_sessions(self, make_manager, memory_store, clock):
        # Arrange - three stored sessions, one of them expired
        manager = make_manager()
        for _ in range(3):
            record = manager.new_session()
            record.set("a", 1)
            await manager.finalize(record)
        short = manager.new_session()
        short.set("a", 1)
        await memory_store.save(short.id, short, 10, 0)
        clock.advance(60)
        stats_logger = Mock()
        stats = SessionStats(memory_store, stats_logger, scan_batch_size=2)

        # Act
        result = await stats.count_active()

        # Assert
        assert isinstance(result, Success)
        assert result.value.approximate_count == 3
        assert result.value.prefix == "session:"
        assert result.value.batches == 2
        assert result.value.is_approximate is True
        stats_logger.info.assert_called_once()
        assert stats_logger.info.call_args.args[0] == "session_count_completed"

    @pytest.mark.asyncio
    async def test_reports_duration_from_timer(self, mock_logger):
        store = AsyncMock()
        store.scan_count.return_value = Success(
            value=ScanCount(prefix="app:", approximate_count=5, batches=1)
        )
        timer = Mock(side_effect=[10.0, 10.25])
        stats = SessionStats(store, mock_logger, timer=timer)

        result = await stats.count_active("app:", batch_size=50)

        assert result.value.scan_duration == timedelta(milliseconds=250)
        store.scan_count.assert_awaited_once_with(key_prefix="app:", batch_size=50)

    @pytest.mark.asyncio
    async def test_default_batch_size(self, mock_logger):
        store = AsyncMock()
        store.scan_count.return_value = Success(
            value=ScanCount(prefix="session:", approximate_count=0, batches=1)
        )
        stats = SessionStats(store, mock_logger, scan_batch_size=250)

        await stats.count_active()

        store.scan_count.assert_awaited_once_with(key_prefix=None, batch_size=250)

    @pytest.mark.asyncio
    async def test_store_failure_is_returned(self, mock_logger):
        error = BackendUnavailableError(
            code=ErrorCode.SESSION_STORE_UNAVAILABLE,
            message="down",
            backend="redis",
            operation="scan_count",
        )
        store = AsyncMock()
        store.scan_count.return_value = Failure(error=error)
        stats = SessionStats(store, mock_logger)

        result = await stats.count_active()

        assert result == Failure(error=error)
        mock_logger.warning.assert_called_once_with(
            "session_count_failed",
            error_code="session_store_unavailable",
            backend="redis",
        )

    def test_rejects_non_positive_batch(self, mock_logger):
        with pytest.raises(ValueError):
            SessionStats(AsyncMock(), mock_logger, scan_batch_size=0)
