"""LoggerProtocol definition for structured logging.

The session layer logs through this port so the host application decides
the backend. Implementations MUST emit structured records (message plus
key-value context).

Security:
    - NEVER log session payloads or full session ids
    - Use truncate_session_id() for ids; log storage keys only for corruption

Usage:
    from sessionlayer.core.container import get_logger
    from sessionlayer.domain.protocols import LoggerProtocol

    logger: LoggerProtocol = get_logger()
    logger.info("session_saved", session_id=truncate_session_id(sid), version=3)

    request_logger = logger.bind(request_id=request_id)
"""

from __future__ import annotations

from typing import Any, Protocol


def truncate_session_id(session_id: str | None, keep: int = 8) -> str | None:
    """Shorten a session id for logs (enough to correlate, not to replay)."""
    if session_id is None:
        return None
    if len(session_id) <= keep:
        return session_id
    return f"{session_id[:keep]}..."


class LoggerProtocol(Protocol):
    """Protocol for structured logging adapters.

    Five levels (DEBUG, INFO, WARNING, ERROR, CRITICAL) plus context binding.
    """

    def debug(self, message: str, /, **context: Any) -> None:
        """Log a debug-level message."""
        ...

    def info(self, message: str, /, **context: Any) -> None:
        """Log an info-level message."""
        ...

    def warning(self, message: str, /, **context: Any) -> None:
        """Log a warning-level message (degraded store, lost session)."""
        ...

    def error(
        self, message: str, /, *, error: Exception | None = None, **context: Any
    ) -> None:
        """Log an error-level message.

        Args:
            message: Event name or short message (avoid f-strings; use context).
            error: Optional exception; adapters add error_type and error_message.
            **context: Structured key-value context fields.
        """
        ...

    def critical(
        self, message: str, /, *, error: Exception | None = None, **context: Any
    ) -> None:
        """Log a critical-level message."""
        ...

    def bind(self, **context: Any) -> LoggerProtocol:
        """Return a new logger with context included in every call.

        The original logger is unchanged.
        """
        ...

    def with_context(self, **context: Any) -> LoggerProtocol:
        """Alias for bind()."""
        ...
