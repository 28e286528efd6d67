"""Machine-readable error codes.

Error codes follow ENTITY_ACTION_REASON naming convention.
Used with Result types for railway-oriented programming.

Categories:
- Store errors (SESSION_STORE_*, SESSION_NOT_FOUND, SESSION_CORRUPTED)
- Concurrency errors (SESSION_VERSION_CONFLICT, SESSION_CONFLICT)
- Security errors (SESSION_INVALIDATED)
- Validation errors (VALIDATION_FAILED)
"""

from enum import Enum


class ErrorCode(Enum):
    """Machine-readable error codes."""

    # Validation errors
    VALIDATION_FAILED = "validation_failed"

    # Store errors
    SESSION_NOT_FOUND = "session_not_found"
    SESSION_CORRUPTED = "session_corrupted"
    SESSION_STORE_TIMEOUT = "session_store_timeout"
    SESSION_STORE_UNAVAILABLE = "session_store_unavailable"
    SESSION_STORE_EXHAUSTED = "session_store_exhausted"

    # Concurrency errors
    SESSION_VERSION_CONFLICT = "session_version_conflict"
    SESSION_CONFLICT = "session_conflict"

    # Security errors
    SESSION_INVALIDATED = "session_invalidated"
