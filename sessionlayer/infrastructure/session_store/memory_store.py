"""In-process session store.

Single-process deployments and tests. Holds encoded payloads (never live
records) so it behaves like the networked stores: a handler mutating a
record cannot change what is stored until save() runs.

Concurrency:
- Reads are lock-free (a dict lookup never suspends)
- Writes take a per-key asyncio.Lock; there is no global mutex
- Lock acquisition is bounded by the connection timeout

Expiry is evaluated lazily against an injectable monotonic clock;
cleanup_expired() purges dead entries in bulk.
"""

import asyncio
import time
import weakref
from collections.abc import Callable
from dataclasses import dataclass

from sessionlayer.core.enums import ErrorCode
from sessionlayer.core.result import Failure, Result, Success
from sessionlayer.domain.entities import SessionRecord
from sessionlayer.domain.errors import (
    SessionNotFoundError,
    SessionStoreError,
    StoreTimeoutError,
    VersionConflictError,
)
from sessionlayer.domain.protocols import LoadedSession, ScanCount
from sessionlayer.infrastructure.session_store.codec import decode_record, encode_record


@dataclass(frozen=True, slots=True)
class _Entry:
    version: int
    payload: str
    expires_at: float


class MemorySessionStore:
    """Dict-backed implementation of SessionStoreProtocol.

    Note: Does NOT inherit from SessionStoreProtocol (structural typing).

    Attributes:
        backend_name: "memory".
    """

    backend_name = "memory"

    def __init__(
        self,
        *,
        key_prefix: str = "session:",
        connection_timeout: float = 2.0,
        scan_batch_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            key_prefix: Prefix prepended to every session id.
            connection_timeout: Max seconds to wait for a key's write lock.
            scan_batch_size: Default keys per scan batch.
            clock: Monotonic clock in seconds (injected in tests).
        """
        self._prefix = key_prefix
        self._connection_timeout = connection_timeout
        self._scan_batch_size = scan_batch_size
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    def _live(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None or entry.expires_at <= self._clock():
            return None
        return entry

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def _lock_timeout(self, key: str, operation: str) -> Failure[SessionStoreError]:
        return Failure(
            error=StoreTimeoutError(
                code=ErrorCode.SESSION_STORE_TIMEOUT,
                message="Timed out waiting for session write lock",
                key=key,
                backend=self.backend_name,
                operation=operation,
                phase="connection",
            )
        )

    async def load(self, session_id: str) -> Result[LoadedSession, SessionStoreError]:
        """Fetch a record and its remaining TTL (pure read)."""
        key = self._key(session_id)
        entry = self._live(key)
        if entry is None:
            return Failure(
                error=SessionNotFoundError(
                    code=ErrorCode.SESSION_NOT_FOUND,
                    message="Session not found",
                    key=key,
                    backend=self.backend_name,
                    operation="load",
                )
            )

        ttl_remaining = max(entry.expires_at - self._clock(), 0.0)
        match decode_record(
            session_id, entry.payload, entry.version, key=key, backend=self.backend_name
        ):
            case Success(value=record):
                return Success(
                    value=LoadedSession(record=record, ttl_remaining=ttl_remaining)
                )
            case Failure(error=err):
                return Failure(error=err)

    async def save(
        self,
        session_id: str,
        record: SessionRecord,
        ttl_seconds: int,
        expected_version: int,
    ) -> Result[int, SessionStoreError]:
        """Write payload, bump version and set TTL under the key's lock."""
        key = self._key(session_id)
        payload = encode_record(record)
        lock = self._lock_for(key)
        try:
            async with asyncio.timeout(self._connection_timeout):
                await lock.acquire()
        except TimeoutError:
            return self._lock_timeout(key, "save")

        try:
            stored = self._entries.get(key)
            live = self._live(key)
            current_version = live.version if live is not None else 0
            if current_version != expected_version:
                return Failure(
                    error=VersionConflictError(
                        code=ErrorCode.SESSION_VERSION_CONFLICT,
                        message="Stored session version changed since load",
                        key=key,
                        backend=self.backend_name,
                        operation="save",
                        expected_version=expected_version,
                        actual_version=current_version,
                    )
                )
            # Versions keep increasing even across expiry of the previous entry.
            new_version = (stored.version if stored is not None else 0) + 1
            self._entries[key] = _Entry(
                version=new_version,
                payload=payload,
                expires_at=self._clock() + ttl_seconds,
            )
            return Success(value=new_version)
        finally:
            lock.release()

    async def refresh_ttl(
        self, session_id: str, ttl_seconds: int
    ) -> Result[bool, SessionStoreError]:
        """Extend expiry; payload and version are carried over untouched."""
        key = self._key(session_id)
        lock = self._lock_for(key)
        try:
            async with asyncio.timeout(self._connection_timeout):
                await lock.acquire()
        except TimeoutError:
            return self._lock_timeout(key, "refresh_ttl")

        try:
            live = self._live(key)
            if live is None:
                return Success(value=False)
            self._entries[key] = _Entry(
                version=live.version,
                payload=live.payload,
                expires_at=self._clock() + ttl_seconds,
            )
            return Success(value=True)
        finally:
            lock.release()

    async def delete(self, session_id: str) -> Result[None, SessionStoreError]:
        """Remove a record (absent keys are fine)."""
        key = self._key(session_id)
        lock = self._lock_for(key)
        try:
            async with asyncio.timeout(self._connection_timeout):
                await lock.acquire()
        except TimeoutError:
            return self._lock_timeout(key, "delete")

        try:
            self._entries.pop(key, None)
            return Success(value=None)
        finally:
            lock.release()

    async def scan_count(
        self,
        key_prefix: str | None = None,
        batch_size: int | None = None,
    ) -> Result[ScanCount, SessionStoreError]:
        """Count live keys under a prefix, yielding between batches."""
        prefix = self._prefix if key_prefix is None else key_prefix
        size = batch_size or self._scan_batch_size
        keys = list(self._entries)
        count = 0
        batches = 0
        for start in range(0, len(keys), size):
            now = self._clock()
            for key in keys[start : start + size]:
                entry = self._entries.get(key)
                if entry is not None and key.startswith(prefix) and entry.expires_at > now:
                    count += 1
            batches += 1
            await asyncio.sleep(0)
        return Success(
            value=ScanCount(prefix=prefix, approximate_count=count, batches=batches)
        )

    async def cleanup_expired(self) -> Result[int, SessionStoreError]:
        """Purge expired entries whose key is not being written.

        Returns:
            Success(number of entries removed).
        """
        now = self._clock()
        removed = 0
        for key, entry in list(self._entries.items()):
            lock = self._locks.get(key)
            if entry.expires_at <= now and (lock is None or not lock.locked()):
                del self._entries[key]
                removed += 1
        return Success(value=removed)

    async def close(self) -> None:
        """Drop all entries."""
        self._entries.clear()
