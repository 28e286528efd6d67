"""Redis session store implementing SessionStoreProtocol.

Layout:
    <prefix><session_id>  ->  HASH {version, payload}  + key expiry

Operations:
- load: MULTI { HGETALL, PTTL }  (pure read, TTL untouched)
- save: WATCH key; HGET version; compare; MULTI { DEL, HSET, EXPIRE }; EXEC
  (a concurrent write aborts EXEC with WatchError -> version conflict)
- refresh_ttl: EXPIRE (payload and version untouched)
- scan_count: SCAN MATCH <escaped prefix>* COUNT <batch>, one round trip
  per batch, each on a freshly checked-out pooled connection

Error mapping:
- BlockingConnectionPool wait expired ("No connection available")
  -> ResourceExhaustedError (retried with bounded backoff)
- redis TimeoutError -> StoreTimeoutError (phase from the failing step)
- other ConnectionError / RedisError -> BackendUnavailableError
- asyncio timeout backstop -> StoreTimeoutError(phase="command")
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, WatchError
from redis.exceptions import TimeoutError as RedisTimeoutError

from sessionlayer.core.enums import ErrorCode
from sessionlayer.core.result import Failure, Result, Success
from sessionlayer.domain.entities import SessionRecord
from sessionlayer.domain.errors import (
    BackendUnavailableError,
    CorruptedSessionError,
    ResourceExhaustedError,
    SessionNotFoundError,
    SessionStoreError,
    StoreTimeoutError,
    VersionConflictError,
)
from sessionlayer.domain.protocols import LoadedSession, ScanCount
from sessionlayer.infrastructure.session_store.codec import decode_record, encode_record
from sessionlayer.infrastructure.session_store.retry import retry_when_exhausted

VERSION_FIELD = "version"
PAYLOAD_FIELD = "payload"
POOL_EXHAUSTED_MESSAGE = "No connection available"

_GLOB_SPECIAL = frozenset("*?[]\\")


def escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters so a prefix matches literally."""
    return "".join(f"\\{char}" if char in _GLOB_SPECIAL else char for char in value)


def _as_text(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


class RedisSessionStore:
    """Redis implementation of SessionStoreProtocol.

    Note: Does NOT inherit from SessionStoreProtocol (structural typing).

    The client is expected to sit on a BlockingConnectionPool whose timeout
    is the connection timeout and whose socket_timeout is the command
    timeout (see core.container.create_redis_client). The store adds an
    asyncio backstop of both timeouts combined around every call.

    Attributes:
        backend_name: "redis".
    """

    backend_name = "redis"

    def __init__(
        self,
        redis_client: Redis,
        *,
        key_prefix: str = "session:",
        connection_timeout: float = 2.0,
        command_timeout: float = 1.0,
        pool_retry_attempts: int = 3,
        pool_retry_backoff: float = 0.05,
        scan_batch_size: int = 1000,
    ) -> None:
        """Initialize the store.

        Args:
            redis_client: Async Redis client instance.
            key_prefix: Prefix prepended to every session id.
            connection_timeout: Seconds to wait for a pooled connection.
            command_timeout: Seconds to wait for a command reply.
            pool_retry_attempts: Attempts while the pool is exhausted.
            pool_retry_backoff: Initial backoff between those attempts.
            scan_batch_size: Default SCAN COUNT hint.
        """
        self._redis = redis_client
        self._prefix = key_prefix
        self._connection_timeout = connection_timeout
        self._command_timeout = command_timeout
        self._retry_attempts = pool_retry_attempts
        self._retry_backoff = pool_retry_backoff
        self._scan_batch_size = scan_batch_size

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    async def _execute[T](
        self,
        operation: str,
        key: str | None,
        call: Callable[[], Awaitable[Result[T, SessionStoreError]]],
    ) -> Result[T, SessionStoreError]:
        """Run one store operation with timeouts, error mapping and pool retry."""

        async def attempt() -> Result[T, SessionStoreError]:
            try:
                async with asyncio.timeout(
                    self._connection_timeout + self._command_timeout
                ):
                    return await call()
            except RedisTimeoutError as e:
                phase = "connection" if "connect" in str(e).lower() else "command"
                return Failure(
                    error=StoreTimeoutError(
                        code=ErrorCode.SESSION_STORE_TIMEOUT,
                        message=f"Redis {operation} timed out",
                        key=key,
                        backend=self.backend_name,
                        operation=operation,
                        phase=phase,
                    )
                )
            except TimeoutError:
                return Failure(
                    error=StoreTimeoutError(
                        code=ErrorCode.SESSION_STORE_TIMEOUT,
                        message=f"Redis {operation} exceeded its deadline",
                        key=key,
                        backend=self.backend_name,
                        operation=operation,
                        phase="command",
                    )
                )
            except RedisConnectionError as e:
                if POOL_EXHAUSTED_MESSAGE in str(e):
                    return Failure(
                        error=ResourceExhaustedError(
                            code=ErrorCode.SESSION_STORE_EXHAUSTED,
                            message="Redis connection pool exhausted",
                            key=key,
                            backend=self.backend_name,
                            operation=operation,
                        )
                    )
                return self._unavailable(operation, key, e)
            except RedisError as e:
                return self._unavailable(operation, key, e)

        return await retry_when_exhausted(
            attempt,
            attempts=self._retry_attempts,
            initial_delay=self._retry_backoff,
        )

    def _unavailable(
        self, operation: str, key: str | None, exc: RedisError
    ) -> Failure[SessionStoreError]:
        return Failure(
            error=BackendUnavailableError(
                code=ErrorCode.SESSION_STORE_UNAVAILABLE,
                message=f"Redis {operation} failed",
                key=key,
                backend=self.backend_name,
                operation=operation,
                details={"error_type": type(exc).__name__, "error": str(exc)},
            )
        )

    def _corrupted(self, key: str, operation: str, message: str) -> Failure[SessionStoreError]:
        return Failure(
            error=CorruptedSessionError(
                code=ErrorCode.SESSION_CORRUPTED,
                message=message,
                key=key,
                backend=self.backend_name,
                operation=operation,
            )
        )

    # =========================================================================
    # SessionStoreProtocol
    # =========================================================================

    async def load(self, session_id: str) -> Result[LoadedSession, SessionStoreError]:
        """Fetch a record and its remaining TTL in one transaction."""
        key = self._key(session_id)

        async def call() -> Result[LoadedSession, SessionStoreError]:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.hgetall(key)
                pipe.pttl(key)
                fields, pttl = await pipe.execute()

            if not fields:
                return Failure(
                    error=SessionNotFoundError(
                        code=ErrorCode.SESSION_NOT_FOUND,
                        message="Session not found",
                        key=key,
                        backend=self.backend_name,
                        operation="load",
                    )
                )

            fields = {_as_text(k): v for k, v in fields.items()}
            raw_version = fields.get(VERSION_FIELD)
            payload = fields.get(PAYLOAD_FIELD)
            if raw_version is None or payload is None:
                return self._corrupted(key, "load", "Session hash is missing fields")
            try:
                version = int(_as_text(raw_version))
            except ValueError:
                return self._corrupted(key, "load", "Session version is not an integer")

            ttl_remaining = pttl / 1000 if pttl is not None and pttl >= 0 else None
            match decode_record(
                session_id, payload, version, key=key, backend=self.backend_name
            ):
                case Success(value=record):
                    return Success(
                        value=LoadedSession(record=record, ttl_remaining=ttl_remaining)
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
        """Compare-and-set the record under WATCH."""
        key = self._key(session_id)
        payload = encode_record(record)

        def conflict(actual: int | None) -> Failure[SessionStoreError]:
            return Failure(
                error=VersionConflictError(
                    code=ErrorCode.SESSION_VERSION_CONFLICT,
                    message="Stored session version changed since load",
                    key=key,
                    backend=self.backend_name,
                    operation="save",
                    expected_version=expected_version,
                    actual_version=actual,
                )
            )

        async def call() -> Result[int, SessionStoreError]:
            async with self._redis.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(key)
                    raw_version = await pipe.hget(key, VERSION_FIELD)
                    try:
                        current = int(_as_text(raw_version)) if raw_version is not None else 0
                    except ValueError:
                        return self._corrupted(key, "save", "Session version is not an integer")
                    if current != expected_version:
                        return conflict(current)

                    new_version = current + 1
                    pipe.multi()
                    pipe.delete(key)
                    pipe.hset(
                        key,
                        mapping={VERSION_FIELD: str(new_version), PAYLOAD_FIELD: payload},
                    )
                    pipe.expire(key, ttl_seconds)
                    await pipe.execute()
                except WatchError:
                    return conflict(None)
            return Success(value=new_version)

        return await self._execute("save", key, call)

    async def refresh_ttl(
        self, session_id: str, ttl_seconds: int
    ) -> Result[bool, SessionStoreError]:
        """EXPIRE only; False when the key is already gone."""
        key = self._key(session_id)

        async def call() -> Result[bool, SessionStoreError]:
            refreshed = await self._redis.expire(key, ttl_seconds)
            return Success(value=bool(refreshed))

        return await self._execute("refresh_ttl", key, call)

    async def delete(self, session_id: str) -> Result[None, SessionStoreError]:
        """DEL the key (absent keys are fine)."""
        key = self._key(session_id)

        async def call() -> Result[None, SessionStoreError]:
            await self._redis.delete(key)
            return Success(value=None)

        return await self._execute("delete", key, call)

    async def scan_count(
        self,
        key_prefix: str | None = None,
        batch_size: int | None = None,
    ) -> Result[ScanCount, SessionStoreError]:
        """Count keys with cursor-driven SCAN, yielding between batches.

        SCAN may report a key more than once; the count is approximate.
        """
        prefix = self._prefix if key_prefix is None else key_prefix
        size = batch_size or self._scan_batch_size
        pattern = f"{escape_glob(prefix)}*"
        count = 0
        batches = 0
        cursor = 0

        while True:
            # One bounded round trip per batch; the pool connection is
            # released between batches.
            async def call(
                cursor: int = cursor,
            ) -> Result[tuple[int, list[Any]], SessionStoreError]:
                next_cursor, keys = await self._redis.scan(
                    cursor=cursor, match=pattern, count=size
                )
                return Success(value=(int(next_cursor), list(keys)))

            match await self._execute("scan_count", None, call):
                case Success(value=(next_cursor, keys)):
                    count += len(keys)
                    batches += 1
                    cursor = next_cursor
                case Failure(error=err):
                    return Failure(error=err)

            if cursor == 0:
                break
            await asyncio.sleep(0)

        return Success(
            value=ScanCount(prefix=prefix, approximate_count=count, batches=batches)
        )

    async def close(self) -> None:
        """Close the client and its connection pool."""
        await self._redis.aclose()
