"""Domain protocols (ports)."""

from sessionlayer.domain.protocols.logger_protocol import (
    LoggerProtocol,
    truncate_session_id,
)
from sessionlayer.domain.protocols.session_store_protocol import (
    ExpiredSessionPurger,
    LoadedSession,
    ScanCount,
    SessionStoreProtocol,
)

__all__ = [
    "ExpiredSessionPurger",
    "LoadedSession",
    "LoggerProtocol",
    "ScanCount",
    "SessionStoreProtocol",
    "truncate_session_id",
]
