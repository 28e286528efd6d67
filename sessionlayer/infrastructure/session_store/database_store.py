"""Relational session store implementing SessionStoreProtocol.

Uses the session_records table (see persistence.models.session_record).

Operations:
- load: SELECT version, payload, expires_at WHERE key AND expires_at > now
- save (expected_version 0): purge a dead row, INSERT version 1
  (IntegrityError -> another writer created it first -> version conflict)
- save (expected_version n): UPDATE ... WHERE key AND version = n AND
  expires_at > now; rowcount 0 -> version conflict
- refresh_ttl: UPDATE expires_at only
- scan_count: keyset pagination over the primary key, one short
  transaction (and pooled connection) per batch

Error mapping:
- sqlalchemy.exc.TimeoutError (pool checkout) -> ResourceExhaustedError
- asyncio deadline -> StoreTimeoutError(phase="command")
- OperationalError / InterfaceError / other SQLAlchemyError
  -> BackendUnavailableError
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from sessionlayer.core.enums import ErrorCode
from sessionlayer.core.result import Failure, Result, Success
from sessionlayer.domain.entities import SessionRecord
from sessionlayer.domain.errors import (
    BackendUnavailableError,
    ResourceExhaustedError,
    SessionNotFoundError,
    SessionStoreError,
    StoreTimeoutError,
    VersionConflictError,
)
from sessionlayer.domain.protocols import LoadedSession, ScanCount
from sessionlayer.infrastructure.persistence.database import Database
from sessionlayer.infrastructure.persistence.models import SessionRecordModel
from sessionlayer.infrastructure.session_store.codec import decode_record, encode_record
from sessionlayer.infrastructure.session_store.retry import retry_when_exhausted


class DatabaseSessionStore:
    """SQLAlchemy implementation of SessionStoreProtocol.

    Note: Does NOT inherit from SessionStoreProtocol (structural typing).

    Attributes:
        backend_name: "database".
    """

    backend_name = "database"

    def __init__(
        self,
        database: Database,
        *,
        key_prefix: str = "session:",
        connection_timeout: float = 2.0,
        command_timeout: float = 1.0,
        pool_retry_attempts: int = 3,
        pool_retry_backoff: float = 0.05,
        scan_batch_size: int = 1000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store.

        Args:
            database: Database with engine and session factory.
            key_prefix: Prefix prepended to every session id.
            connection_timeout: Seconds to wait for a pooled connection
                (configured on the engine; also part of the deadline here).
            command_timeout: Seconds a store operation may run once connected.
            pool_retry_attempts: Attempts while the pool is exhausted.
            pool_retry_backoff: Initial backoff between those attempts.
            scan_batch_size: Default rows per counting batch.
            clock: Wall clock in epoch seconds (injected in tests).
        """
        self._db = database
        self._prefix = key_prefix
        self._connection_timeout = connection_timeout
        self._command_timeout = command_timeout
        self._retry_attempts = pool_retry_attempts
        self._retry_backoff = pool_retry_backoff
        self._scan_batch_size = scan_batch_size
        self._clock = clock

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    async def _execute[T](
        self,
        operation: str,
        key: str | None,
        call: Callable[[], Awaitable[Result[T, SessionStoreError]]],
    ) -> Result[T, SessionStoreError]:
        """Run one store operation with a deadline, error mapping and pool retry."""

        async def attempt() -> Result[T, SessionStoreError]:
            try:
                async with asyncio.timeout(
                    self._connection_timeout + self._command_timeout
                ):
                    return await call()
            except PoolTimeoutError:
                return Failure(
                    error=ResourceExhaustedError(
                        code=ErrorCode.SESSION_STORE_EXHAUSTED,
                        message="Database connection pool exhausted",
                        key=key,
                        backend=self.backend_name,
                        operation=operation,
                    )
                )
            except TimeoutError:
                return Failure(
                    error=StoreTimeoutError(
                        code=ErrorCode.SESSION_STORE_TIMEOUT,
                        message=f"Database {operation} exceeded its deadline",
                        key=key,
                        backend=self.backend_name,
                        operation=operation,
                        phase="command",
                    )
                )
            except SQLAlchemyError as e:
                return Failure(
                    error=BackendUnavailableError(
                        code=ErrorCode.SESSION_STORE_UNAVAILABLE,
                        message=f"Database {operation} failed",
                        key=key,
                        backend=self.backend_name,
                        operation=operation,
                        details={"error_type": type(e).__name__},
                    )
                )

        return await retry_when_exhausted(
            attempt,
            attempts=self._retry_attempts,
            initial_delay=self._retry_backoff,
        )

    def _conflict(
        self, key: str, expected_version: int, actual_version: int | None
    ) -> Failure[SessionStoreError]:
        return Failure(
            error=VersionConflictError(
                code=ErrorCode.SESSION_VERSION_CONFLICT,
                message="Stored session version changed since load",
                key=key,
                backend=self.backend_name,
                operation="save",
                expected_version=expected_version,
                actual_version=actual_version,
            )
        )

    # =========================================================================
    # SessionStoreProtocol
    # =========================================================================

    async def load(self, session_id: str) -> Result[LoadedSession, SessionStoreError]:
        """Fetch a live row and its remaining TTL (pure read)."""
        key = self._key(session_id)

        async def call() -> Result[LoadedSession, SessionStoreError]:
            now = self._clock()
            async with self._db.get_session() as session:
                row = (
                    await session.execute(
                        select(
                            SessionRecordModel.version,
                            SessionRecordModel.payload,
                            SessionRecordModel.expires_at,
                        ).where(
                            SessionRecordModel.key == key,
                            SessionRecordModel.expires_at > now,
                        )
                    )
                ).one_or_none()

            if row is None:
                return Failure(
                    error=SessionNotFoundError(
                        code=ErrorCode.SESSION_NOT_FOUND,
                        message="Session not found",
                        key=key,
                        backend=self.backend_name,
                        operation="load",
                    )
                )

            match decode_record(
                session_id, row.payload, row.version, key=key, backend=self.backend_name
            ):
                case Success(value=record):
                    return Success(
                        value=LoadedSession(
                            record=record,
                            ttl_remaining=max(row.expires_at - now, 0.0),
                        )
                    )
                case Failure(error=err):
                    return Failure(error=err)

        return await self._execute("load", key, call)

    async def save(
        self,
        session_id: str,
        record: SessionRecord,
        ttl_seconds: int,
        expected_version: int,
    ) -> Result[int, SessionStoreError]:
        """Insert (version 0) or conditionally update (version n)."""
        key = self._key(session_id)
        payload = encode_record(record)

        async def create() -> Result[int, SessionStoreError]:
            now = self._clock()
            try:
                async with self._db.get_session() as session:
                    await session.execute(
                        delete(SessionRecordModel).where(
                            SessionRecordModel.key == key,
                            SessionRecordModel.expires_at <= now,
                        )
                    )
                    await session.execute(
                        insert(SessionRecordModel).values(
                            key=key,
                            version=1,
                            payload=payload,
                            expires_at=now + ttl_seconds,
                        )
                    )
            except IntegrityError:
                return self._conflict(key, expected_version, None)
            return Success(value=1)

        async def compare_and_set() -> Result[int, SessionStoreError]:
            now = self._clock()
            new_version = expected_version + 1
            async with self._db.get_session() as session:
                result = await session.execute(
                    update(SessionRecordModel)
                    .where(
                        SessionRecordModel.key == key,
                        SessionRecordModel.version == expected_version,
                        SessionRecordModel.expires_at > now,
                    )
                    .values(
                        version=new_version,
                        payload=payload,
                        expires_at=now + ttl_seconds,
                    )
                )
                if result.rowcount == 1:
                    return Success(value=new_version)
                actual = await session.scalar(
                    select(SessionRecordModel.version).where(
                        SessionRecordModel.key == key,
                        SessionRecordModel.expires_at > now,
                    )
                )
            return self._conflict(key, expected_version, actual if actual is not None else 0)

        return await self._execute(
            "save", key, create if expected_version == 0 else compare_and_set
        )

    async def refresh_ttl(
        self, session_id: str, ttl_seconds: int
    ) -> Result[bool, SessionStoreError]:
        """Move expires_at forward; payload and version are not touched."""
        key = self._key(session_id)

        async def call() -> Result[bool, SessionStoreError]:
            now = self._clock()
            async with self._db.get_session() as session:
                result = await session.execute(
                    update(SessionRecordModel)
                    .where(
                        SessionRecordModel.key == key,
                        SessionRecordModel.expires_at > now,
                    )
                    .values(expires_at=now + ttl_seconds)
                )
            return Success(value=result.rowcount > 0)

        return await self._execute("refresh_ttl", key, call)

    async def delete(self, session_id: str) -> Result[None, SessionStoreError]:
        """Delete the row (absent rows are fine)."""
        key = self._key(session_id)

        async def call() -> Result[None, SessionStoreError]:
            async with self._db.get_session() as session:
                await session.execute(
                    delete(SessionRecordModel).where(SessionRecordModel.key == key)
                )
            return Success(value=None)

        return await self._execute("delete", key, call)

    async def scan_count(
        self,
        key_prefix: str | None = None,
        batch_size: int | None = None,
    ) -> Result[ScanCount, SessionStoreError]:
        """Count live rows under a prefix with keyset pagination."""
        prefix = self._prefix if key_prefix is None else key_prefix
        size = batch_size or self._scan_batch_size
        count = 0
        batches = 0
        last_key: str | None = None

        while True:

            async def call(after: str | None = last_key) -> Result[list[str], SessionStoreError]:
                stmt = (
                    select(SessionRecordModel.key)
                    .where(
                        SessionRecordModel.key.startswith(prefix, autoescape=True),
                        SessionRecordModel.expires_at > self._clock(),
                    )
                    .order_by(SessionRecordModel.key)
                    .limit(size)
                )
                if after is not None:
                    stmt = stmt.where(SessionRecordModel.key > after)
                async with self._db.get_session() as session:
                    keys = list((await session.scalars(stmt)).all())
                return Success(value=keys)

            match await self._execute("scan_count", None, call):
                case Success(value=keys):
                    count += len(keys)
                    batches += 1
                case Failure(error=err):
                    return Failure(error=err)

            if len(keys) < size:
                break
            last_key = keys[-1]
            await asyncio.sleep(0)

        return Success(
            value=ScanCount(prefix=prefix, approximate_count=count, batches=batches)
        )

    async def cleanup_expired(self) -> Result[int, SessionStoreError]:
        """Delete dead rows.

        Returns:
            Success(number of rows removed).
        """

        async def call() -> Result[int, SessionStoreError]:
            async with self._db.get_session() as session:
                result = await session.execute(
                    delete(SessionRecordModel).where(
                        SessionRecordModel.expires_at <= self._clock()
                    )
                )
            return Success(value=result.rowcount)

        return await self._execute("cleanup_expired", None, call)

    async def close(self) -> None:
        """Dispose of the engine's pool."""
        await self._db.close()
