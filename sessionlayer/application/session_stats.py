"""Session statistics.

Counts live sessions by scanning the store in bounded batches. The count
is approximate: keys expire and appear while the scan runs, and Redis SCAN
may return a key twice.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from sessionlayer.core.result import Failure, Result, Success
from sessionlayer.domain.errors import SessionStoreError
from sessionlayer.domain.protocols import LoggerProtocol, SessionStoreProtocol


@dataclass(frozen=True, slots=True, kw_only=True)
class SessionCountReport:
    """Outcome of count_active().

    Attributes:
        prefix: Key prefix that was counted.
        approximate_count: Live sessions seen.
        scan_duration: Wall time the scan took.
        batches: Round trips made.
        is_approximate: Always True (eventually consistent).
    """

    prefix: str
    approximate_count: int
    scan_duration: timedelta
    batches: int = 0
    is_approximate: bool = True


class SessionStats:
    """Read-only reporting over a session store."""

    def __init__(
        self,
        store: SessionStoreProtocol,
        logger: LoggerProtocol,
        *,
        scan_batch_size: int = 1000,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Initialize stats.

        Args:
            store: Storage backend to scan.
            logger: Structured logger.
            scan_batch_size: Default keys per round trip.
            timer: High-resolution timer (injected in tests).

        Raises:
            ValueError: If scan_batch_size is not positive.
        """
        if scan_batch_size < 1:
            raise ValueError("scan_batch_size must be positive")
        self._store = store
        self._logger = logger
        self._scan_batch_size = scan_batch_size
        self._timer = timer

    async def count_active(
        self,
        key_prefix: str | None = None,
        batch_size: int | None = None,
    ) -> Result[SessionCountReport, SessionStoreError]:
        """Count live sessions under a prefix.

        Args:
            key_prefix: Prefix to count (store default when None).
            batch_size: Keys per round trip (configured default when None).

        Returns:
            Success(SessionCountReport) or the store's Failure.
        """
        started = self._timer()
        result = await self._store.scan_count(
            key_prefix=key_prefix, batch_size=batch_size or self._scan_batch_size
        )
        duration = timedelta(seconds=self._timer() - started)

        match result:
            case Success(value=scan):
                self._logger.info(
                    "session_count_completed",
                    prefix=scan.prefix,
                    approximate_count=scan.approximate_count,
                    batches=scan.batches,
                    duration_ms=round(duration.total_seconds() * 1000, 3),
                )
                return Success(
                    value=SessionCountReport(
                        prefix=scan.prefix,
                        approximate_count=scan.approximate_count,
                        scan_duration=duration,
                        batches=scan.batches,
                    )
                )
            case Failure(error=err):
                self._logger.warning(
                    "session_count_failed",
                    error_code=err.code.value,
                    backend=err.backend,
                )
                return Failure(error=err)
