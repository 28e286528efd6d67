"""Session store protocol (port).

Infrastructure implements this with an in-process dict, Redis or a
relational database. The manager depends on nothing else, so swapping
backends is a composition-root change.

Contract:
    - load() is a pure read: it never changes TTL or version
    - save() is atomic: either payload, version and TTL all change, or none do
    - expected_version == 0 means "the key must not exist"
    - refresh_ttl() never rewrites payload bytes nor bumps the version
    - Every call is bounded by a connection timeout and a command timeout
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from sessionlayer.core.result import Result
from sessionlayer.domain.entities import SessionRecord
from sessionlayer.domain.errors import SessionStoreError


@dataclass(frozen=True, slots=True)
class LoadedSession:
    """Result of a store load.

    Attributes:
        record: Decoded record; its version is the stored version.
        ttl_remaining: Seconds until the key expires (None if no expiry).
    """

    record: SessionRecord
    ttl_remaining: float | None


@dataclass(frozen=True, slots=True)
class ScanCount:
    """Result of a cursor-driven key count.

    Attributes:
        prefix: Key prefix that was counted.
        approximate_count: Keys seen. Approximate: keys may expire or appear mid-scan.
        batches: Number of bounded batches the scan took.
    """

    prefix: str
    approximate_count: int
    batches: int


class SessionStoreProtocol(Protocol):
    """Storage backend for session records.

    Example:
        >>> class MyStore:
        ...     backend_name = "mine"
        ...     async def load(self, session_id: str) -> Result[LoadedSession, SessionStoreError]:
        ...         ...
    """

    backend_name: str

    async def load(self, session_id: str) -> Result[LoadedSession, SessionStoreError]:
        """Fetch a record and its remaining TTL.

        Args:
            session_id: Session identifier (without key prefix).

        Returns:
            Success(LoadedSession) if present.
            Failure(SessionNotFoundError) if absent or expired.
            Failure(CorruptedSessionError) if the payload cannot be decoded.
            Failure(StoreTimeoutError | BackendUnavailableError |
            ResourceExhaustedError) on backend trouble.
        """
        ...

    async def save(
        self,
        session_id: str,
        record: SessionRecord,
        ttl_seconds: int,
        expected_version: int,
    ) -> Result[int, SessionStoreError]:
        """Write payload, bump version and set TTL atomically.

        Args:
            session_id: Session identifier.
            record: Record to persist (transient fields are ignored).
            ttl_seconds: Expiry to set, in whole seconds (>= 1).
            expected_version: Version the writer loaded (0 for a new session).

        Returns:
            Success(new_version) on success.
            Failure(VersionConflictError) if the stored version differs.
        """
        ...

    async def refresh_ttl(
        self, session_id: str, ttl_seconds: int
    ) -> Result[bool, SessionStoreError]:
        """Extend expiry without touching payload or version.

        Returns:
            Success(True) if extended, Success(False) if the key is gone.
        """
        ...

    async def delete(self, session_id: str) -> Result[None, SessionStoreError]:
        """Remove a record. Deleting an absent key succeeds."""
        ...

    async def scan_count(
        self,
        key_prefix: str | None = None,
        batch_size: int | None = None,
    ) -> Result[ScanCount, SessionStoreError]:
        """Count keys under a prefix in bounded batches.

        Yields to the event loop between batches and never holds one
        connection for the whole scan.

        Args:
            key_prefix: Prefix to count (defaults to the store's own prefix).
            batch_size: Keys per batch (defaults to the store's configuration).
        """
        ...

    async def close(self) -> None:
        """Release pooled connections."""
        ...


@runtime_checkable
class ExpiredSessionPurger(Protocol):
    """Store whose expired entries stay behind until purged.

    The memory and database stores implement this; Redis evicts expired
    keys on its own.
    """

    async def cleanup_expired(self) -> Result[int, SessionStoreError]:
        """Delete expired entries.

        Returns:
            Success(number of entries removed).
        """
        ...
