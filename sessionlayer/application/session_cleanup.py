"""Periodic purge of expired sessions.

The memory store only drops an expired entry when its key is written again,
and the database store keeps expired rows until they are deleted. A
long-running process therefore runs one SessionCleanup next to its manager:

    cleanup = create_session_cleanup(store)
    if cleanup is not None:
        cleanup.start()
    ...
    await cleanup.stop()

A failed purge is logged and retried on the next tick; it never stops the
loop.
"""

import asyncio

from sessionlayer.core.result import Failure, Result, Success
from sessionlayer.domain.errors import SessionStoreError
from sessionlayer.domain.protocols import ExpiredSessionPurger, LoggerProtocol


class SessionCleanup:
    """Background task calling ``cleanup_expired()`` every interval."""

    def __init__(
        self,
        store: ExpiredSessionPurger,
        logger: LoggerProtocol,
        *,
        interval: float = 300.0,
    ) -> None:
        """Initialize the purge loop (not started).

        Args:
            store: Store to purge.
            logger: Structured logger.
            interval: Seconds between purges.

        Raises:
            ValueError: If interval is not positive.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._store = store
        self._logger = logger
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Whether the background task is alive."""
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Result[int, SessionStoreError]:
        """Purge now and log the result."""
        result = await self._store.cleanup_expired()
        match result:
            case Success(value=removed):
                if removed:
                    self._logger.info("session_cleanup_completed", removed=removed)
            case Failure(error=err):
                self._logger.warning(
                    "session_cleanup_failed",
                    error_code=err.code.value,
                    backend=err.backend,
                )
        return result

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.run_once()

    def start(self) -> None:
        """Start the loop on the running event loop (no-op if running)."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="session-cleanup")
        self._logger.debug("session_cleanup_started", interval_seconds=self._interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._logger.debug("session_cleanup_stopped")

    async def __aenter__(self) -> "SessionCleanup":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
