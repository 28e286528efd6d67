"""Session store error types.

Returned (inside Failure) by every SessionStoreProtocol implementation.
The manager decides per error class whether to fall back to a new session,
retry, or surface the failure; see SessionManager for the policy.

Usage:
    from sessionlayer.domain.errors import VersionConflictError
    from sessionlayer.core.enums import ErrorCode
    from sessionlayer.core.result import Failure

    return Failure(VersionConflictError(
        code=ErrorCode.SESSION_VERSION_CONFLICT,
        message="Stored version changed since load",
        key="session:abc",
        backend="redis",
        operation="save",
        expected_version=3,
        actual_version=4,
    ))
"""

from dataclasses import dataclass
from typing import Literal

from sessionlayer.core.errors import DomainError


@dataclass(frozen=True, slots=True, kw_only=True)
class SessionStoreError(DomainError):
    """Base class for storage backend failures.

    Attributes:
        code: ErrorCode enum (SESSION_*).
        message: Human-readable message. Never contains payload bytes.
        details: Additional context.
        key: Storage key involved, if any.
        backend: Backend name ("memory", "redis", "database").
        operation: Store operation ("load", "save", "refresh_ttl", ...).
    """

    key: str | None = None
    backend: str | None = None
    operation: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class SessionNotFoundError(SessionStoreError):
    """Key absent or expired. Never surfaced to the application."""

    pass


@dataclass(frozen=True, slots=True, kw_only=True)
class CorruptedSessionError(SessionStoreError):
    """Stored payload could not be decoded."""

    pass


@dataclass(frozen=True, slots=True, kw_only=True)
class VersionConflictError(SessionStoreError):
    """Optimistic-concurrency check failed.

    Attributes:
        expected_version: Version the writer loaded.
        actual_version: Version found in the store (None if unknown or absent).
    """

    expected_version: int = 0
    actual_version: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class StoreTimeoutError(SessionStoreError):
    """A bounded wait expired.

    Attributes:
        phase: "connection" when acquiring a pooled connection timed out,
            "command" when the backend did not answer in time.
    """

    phase: Literal["connection", "command"] = "command"


@dataclass(frozen=True, slots=True, kw_only=True)
class BackendUnavailableError(SessionStoreError):
    """Connection refused or broken."""

    pass


@dataclass(frozen=True, slots=True, kw_only=True)
class ResourceExhaustedError(SessionStoreError):
    """Bounded connection pool had no free connection."""

    pass
