"""Domain errors package.

Usage:
    from sessionlayer.domain.errors import SessionStoreError, VersionConflictError
"""

from sessionlayer.domain.errors.session_error import (
    SessionConflictError,
    SessionInvalidatedError,
)
from sessionlayer.domain.errors.session_store_error import (
    BackendUnavailableError,
    CorruptedSessionError,
    ResourceExhaustedError,
    SessionNotFoundError,
    SessionStoreError,
    StoreTimeoutError,
    VersionConflictError,
)

__all__ = [
    # Store errors
    "SessionStoreError",
    "SessionNotFoundError",
    "CorruptedSessionError",
    "VersionConflictError",
    "StoreTimeoutError",
    "BackendUnavailableError",
    "ResourceExhaustedError",
    # Manager errors
    "SessionConflictError",
    "SessionInvalidatedError",
]
