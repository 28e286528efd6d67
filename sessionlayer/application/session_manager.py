"""Session manager: request-scoped orchestration of session records.

Flow per request:
1. load_or_create(): resolve the client token to a record, or start a new one
   - absent/malformed token, not found, corrupted, past absolute lifetime,
     strict fingerprint mismatch -> new anonymous session
   - timeout / unavailable / exhausted store -> new session + warning
2. Handler mutates the record; persist() saves now (IMMEDIATE) or defers
3. finalize(): exactly once
   - rotation pending -> regenerate id (save new, delete old)
   - dirty -> save_session() with optimistic concurrency
   - clean, TTL fraction below threshold -> refresh_ttl() only
   - otherwise -> no backend call

Conflicts:
- MergePolicy.REJECT surfaces SessionConflictError immediately
- MergePolicy.REAPPLY_DELTA reloads, replays this request's delta on the
  fresh record and retries (bounded by max_conflict_retries)

Architecture:
- Application layer ONLY imports from domain and core
- Store and logger are injected via protocols
"""

import re
import secrets
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

from sessionlayer.application.fingerprint_validator import FingerprintValidator
from sessionlayer.application.request_session import RequestSession
from sessionlayer.application.session_config import SessionManagerConfig
from sessionlayer.core.enums import ErrorCode
from sessionlayer.core.result import Failure, Result, Success
from sessionlayer.domain.entities import SessionRecord
from sessionlayer.domain.enums import (
    FingerprintOutcome,
    MergePolicy,
    SaveStrategy,
    SessionState,
)
from sessionlayer.domain.errors import (
    CorruptedSessionError,
    SessionConflictError,
    SessionInvalidatedError,
    SessionNotFoundError,
    SessionStoreError,
    VersionConflictError,
)
from sessionlayer.domain.protocols import (
    LoggerProtocol,
    SessionStoreProtocol,
    truncate_session_id,
)
from sessionlayer.domain.value_objects import ClientInfo, copy_session_value

TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{22,256}$")


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True, kw_only=True)
class PersistOutcome:
    """What a persist/finalize call did.

    Attributes:
        state: SAVED, TTL_REFRESHED, UNCHANGED, or ACTIVE (save deferred or
            failed without losing the request).
        session_id: Id the client should hold after this call (changes on
            rotation).
        warning: Non-fatal store failure; the response is still delivered.
        session_lost: The stored record vanished (expired) or can no longer
            be extended (absolute lifetime reached).
        rotated: Replacement record when finalize regenerated the id.
    """

    state: SessionState
    session_id: str
    warning: SessionStoreError | None = None
    session_lost: bool = False
    rotated: SessionRecord | None = None


class SessionManager:
    """Loads, persists and finalizes session records.

    One explicit instance per application, built at startup (see
    core.container.create_session_manager) and passed to request handling.

    Example:
        >>> manager = SessionManager(store=store, logger=logger)
        >>> async with manager.request(token, ClientInfo(ip_address=ip)) as session:
        ...     await session.set("cart", ["sku-1"])
        >>> session.outcome
        Success(value=PersistOutcome(state=<SessionState.SAVED: 'saved'>, ...))
    """

    def __init__(
        self,
        store: SessionStoreProtocol,
        logger: LoggerProtocol,
        config: SessionManagerConfig | None = None,
        *,
        validator: FingerprintValidator | None = None,
        id_generator: Callable[[int], str] = secrets.token_urlsafe,
        clock: Callable[[], datetime] = _utcnow,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize session manager.

        Args:
            store: Storage backend.
            logger: Structured logger.
            config: Policy configuration (defaults when omitted).
            validator: Fingerprint validator (built from config when omitted).
            id_generator: Produces a URL-safe id from a byte count.
            clock: Wall clock for timestamps and absolute expiry.
            monotonic: Monotonic clock for TTL bookkeeping.
        """
        self._store = store
        self._logger = logger
        self._config = config or SessionManagerConfig()
        self._validator = validator or FingerprintValidator(
            ipv4_prefix_length=self._config.ipv4_prefix_length,
            ipv6_prefix_length=self._config.ipv6_prefix_length,
        )
        self._id_generator = id_generator
        self._clock = clock
        self._monotonic = monotonic

    @property
    def config(self) -> SessionManagerConfig:
        """Active configuration."""
        return self._config

    @property
    def store(self) -> SessionStoreProtocol:
        """Storage backend."""
        return self._store

    # =========================================================================
    # Creation / loading
    # =========================================================================

    @staticmethod
    def is_well_formed_token(token: str | None) -> bool:
        """Check a client token looks like an id this layer issued."""
        return token is not None and TOKEN_PATTERN.fullmatch(token) is not None

    def new_session(
        self,
        client: ClientInfo | None = None,
        *,
        origin: SessionState = SessionState.NEW,
    ) -> SessionRecord:
        """Create a fresh anonymous record (not yet stored, version 0)."""
        now = self._clock()
        absolute_timeout = self._config.absolute_timeout
        record = SessionRecord(
            id=self._id_generator(self._config.session_id_bytes),
            fingerprint=self._validator.compute(client or ClientInfo()),
            created_at=now,
            last_accessed_at=now,
            absolute_expires_at=now + absolute_timeout if absolute_timeout else None,
            origin=origin,
        )
        self._logger.debug(
            "session_created",
            session_id=truncate_session_id(record.id),
            origin=origin.value,
        )
        return record

    async def load(
        self, token: str, client: ClientInfo | None = None
    ) -> Result[SessionRecord, SessionStoreError | SessionInvalidatedError]:
        """Load a stored session and apply the fingerprint policy.

        Args:
            token: Session id presented by the client.
            client: Observed client metadata.

        Returns:
            Success(SessionRecord) with origin VALID, touched, TTL observed.
            Failure(SessionNotFoundError) if absent or past absolute lifetime.
            Failure(SessionInvalidatedError) on strict fingerprint mismatch
            (stored record untouched).
            Failure(SessionStoreError) for any other store failure.
        """
        loaded_result = await self._store.load(token)
        observed_at = self._monotonic()
        if isinstance(loaded_result, Failure):
            return Failure(error=loaded_result.error)

        loaded = loaded_result.value
        record = loaded.record
        now = self._clock()
        if record.is_past_absolute_expiry(now):
            return Failure(
                error=SessionNotFoundError(
                    code=ErrorCode.SESSION_NOT_FOUND,
                    message="Session exceeded its absolute lifetime",
                    backend=self._store.backend_name,
                    operation="load",
                )
            )

        observed = self._validator.compute(client or ClientInfo())
        outcome = self._validator.validate(
            record.fingerprint, observed, self._config.fingerprint_mode
        )
        if outcome is not FingerprintOutcome.MATCH and record.fingerprint is not None:
            components = self._validator.mismatched_components(
                record.fingerprint, observed
            )
            if outcome is FingerprintOutcome.MISMATCH_INVALIDATED:
                self._logger.warning(
                    "session_invalidated",
                    session_id=truncate_session_id(token),
                    mismatched=components,
                    security_event=True,
                )
                return Failure(
                    error=SessionInvalidatedError(
                        code=ErrorCode.SESSION_INVALIDATED,
                        message="Client fingerprint does not match session",
                        session_id=token,
                        details={"mismatched": components},
                    )
                )
            self._logger.warning(
                "session_fingerprint_mismatch",
                session_id=truncate_session_id(token),
                mismatched=components,
                security_event=True,
            )

        record.origin = SessionState.VALID
        record.observe_ttl(loaded.ttl_remaining, observed_at)
        record.touch(now)
        return Success(value=record)

    async def resolve(
        self, token: str | None, client: ClientInfo | None = None
    ) -> tuple[SessionRecord, SessionStoreError | None]:
        """load_or_create() that also reports a degraded store.

        Returns:
            The record, and the store error that forced a new session when
            the backend timed out, was unavailable or was exhausted.
        """
        if token is None:
            return self.new_session(client), None
        if not self.is_well_formed_token(token):
            self._logger.debug("session_token_malformed", token_length=len(token))
            return self.new_session(client), None

        match await self.load(token, client):
            case Success(value=record):
                self._logger.debug(
                    "session_loaded",
                    session_id=truncate_session_id(record.id),
                    version=record.version,
                    ttl_remaining=record.ttl_remaining,
                )
                return record, None
            case Failure(error=SessionNotFoundError()):
                self._logger.debug(
                    "session_not_found", session_id=truncate_session_id(token)
                )
                return self.new_session(client), None
            case Failure(error=CorruptedSessionError(key=key)):
                self._logger.warning("session_corrupted", key=key)
                return self.new_session(client), None
            case Failure(error=SessionInvalidatedError()):
                return self.new_session(client, origin=SessionState.INVALIDATED), None
            case Failure(error=SessionStoreError() as err):
                self._logger.warning(
                    "session_store_degraded",
                    session_id=truncate_session_id(token),
                    error_code=err.code.value,
                    backend=err.backend,
                    operation=err.operation,
                )
                return self.new_session(client), err
            case _:
                return self.new_session(client), None

    async def load_or_create(
        self, token: str | None, client: ClientInfo | None = None
    ) -> SessionRecord:
        """Resolve a client token to a record, never failing.

        Args:
            token: Session id from the transport, or None.
            client: Observed client metadata.

        Returns:
            The stored record (origin VALID) or a new one (origin NEW, or
            INVALIDATED after a strict fingerprint mismatch).
        """
        record, _ = await self.resolve(token, client)
        return record

    # =========================================================================
    # Persistence
    # =========================================================================

    def ttl_for(self, record: SessionRecord) -> int:
        """Seconds of TTL to write: the idle timeout, clamped to absolute expiry."""
        ttl = self._config.default_ttl_seconds
        if record.absolute_expires_at is not None:
            remaining = (record.absolute_expires_at - self._clock()).total_seconds()
            ttl = min(ttl, int(remaining))
        return ttl

    def needs_ttl_refresh(self, record: SessionRecord) -> bool:
        """Whether the stored TTL has dropped below the refresh threshold."""
        if record.ttl_remaining is None or record.ttl_observed_at is None:
            return False
        elapsed = self._monotonic() - record.ttl_observed_at
        remaining = max(record.ttl_remaining - elapsed, 0.0)
        fraction = remaining / self._config.default_ttl.total_seconds()
        return fraction < self._config.ttl_refresh_threshold and self.ttl_for(record) > remaining

    def _lost(self, record: SessionRecord, reason: str) -> Success[PersistOutcome]:
        self._logger.warning(
            "session_lost", session_id=truncate_session_id(record.id), reason=reason
        )
        return Success(
            value=PersistOutcome(
                state=SessionState.UNCHANGED, session_id=record.id, session_lost=True
            )
        )

    def _degraded(
        self, record: SessionRecord, err: SessionStoreError
    ) -> Success[PersistOutcome]:
        self._logger.warning(
            "session_persist_failed",
            session_id=truncate_session_id(record.id),
            error_code=err.code.value,
            backend=err.backend,
            operation=err.operation,
        )
        return Success(
            value=PersistOutcome(
                state=SessionState.ACTIVE, session_id=record.id, warning=err
            )
        )

    async def persist(
        self, record: SessionRecord, save_strategy: SaveStrategy | None = None
    ) -> Result[PersistOutcome, SessionConflictError]:
        """Apply the save strategy after a mutation.

        Args:
            record: Record that was just mutated.
            save_strategy: Per-call override of the configured strategy.

        Returns:
            Success(SAVED) when saved now, Success(ACTIVE) when deferred to
            finalize(), Failure(SessionConflictError) on a surfaced conflict.
        """
        strategy = save_strategy or self._config.save_strategy
        if record.destroyed or not record.dirty or strategy is SaveStrategy.END_OF_REQUEST:
            return Success(
                value=PersistOutcome(state=SessionState.ACTIVE, session_id=record.id)
            )
        return await self.save_session(record)

    async def save_session(
        self, record: SessionRecord
    ) -> Result[PersistOutcome, SessionConflictError]:
        """Save with optimistic concurrency and the configured merge policy.

        On success the record's version is updated and it is marked clean.
        On a store failure the record stays dirty and the outcome carries
        the warning.
        If the stored record expired during the request the outcome reports
        session_lost instead of a conflict.
        """
        ttl = self.ttl_for(record)
        if ttl < 1:
            return self._lost(record, "absolute_timeout")

        max_attempts = 1
        if self._config.merge_policy is MergePolicy.REAPPLY_DELTA:
            max_attempts += self._config.max_conflict_retries

        attempts = 0
        while True:
            attempts += 1
            match await self._store.save(record.id, record, ttl, record.version):
                case Success(value=new_version):
                    record.version = new_version
                    record.mark_clean()
                    record.observe_ttl(float(ttl), self._monotonic())
                    self._logger.info(
                        "session_saved",
                        session_id=truncate_session_id(record.id),
                        version=new_version,
                        attempts=attempts,
                    )
                    return Success(
                        value=PersistOutcome(state=SessionState.SAVED, session_id=record.id)
                    )
                case Failure(error=VersionConflictError() as conflict):
                    self._logger.warning(
                        "session_version_conflict",
                        session_id=truncate_session_id(record.id),
                        expected_version=conflict.expected_version,
                        actual_version=conflict.actual_version,
                        attempt=attempts,
                        merge_policy=self._config.merge_policy.value,
                    )
                    # An expired key reads as version 0 (unknown after a WATCH
                    # abort); the reload below tells it apart from a writer.
                    key_may_be_gone = record.version > 0 and not conflict.actual_version
                    if attempts >= max_attempts and not key_may_be_gone:
                        return self._conflict(record, attempts, conflict)
                case Failure(error=err):
                    return self._degraded(record, err)

            match await self._store.load(record.id):
                case Failure(error=SessionNotFoundError()):
                    return self._lost(record, "expired")
                case Success() if attempts >= max_attempts:
                    return self._conflict(record, attempts, conflict)
                case Success(value=loaded):
                    # REAPPLY_DELTA: rebase on the concurrent writer's record.
                    record.rebase_onto(loaded.record)
                case Failure(error=err):
                    return self._degraded(record, err)

    def _conflict(
        self, record: SessionRecord, attempts: int, cause: SessionStoreError
    ) -> Failure[SessionConflictError]:
        return Failure(
            error=SessionConflictError(
                code=ErrorCode.SESSION_CONFLICT,
                message="Session was modified concurrently",
                session_id=record.id,
                attempts=attempts,
                cause=cause,
            )
        )

    async def finalize(
        self, record: SessionRecord
    ) -> Result[PersistOutcome, SessionConflictError]:
        """End-of-request persistence (runs at most once per record).

        Returns:
            Success(SAVED) after a write, Success(TTL_REFRESHED) after an
            expiry-only refresh, Success(UNCHANGED) when no backend call was
            needed (or the session was lost), Success(ACTIVE) with a warning
            when the store failed, Failure(SessionConflictError) on a
            surfaced conflict.
        """
        if record.finalized or record.destroyed:
            return Success(
                value=PersistOutcome(state=SessionState.UNCHANGED, session_id=record.id)
            )
        record.finalized = True

        if record.requires_rotation and self._config.rotate_on_privilege_change:
            match await self.regenerate(record):
                case Success(value=rotated):
                    rotated.finalized = True
                    return Success(
                        value=PersistOutcome(
                            state=SessionState.SAVED,
                            session_id=rotated.id,
                            rotated=rotated,
                        )
                    )
                case Failure(error=SessionConflictError() as conflict):
                    return Failure(error=conflict)
                case Failure(error=SessionNotFoundError()):
                    return self._lost(record, "absolute_timeout")
                case Failure(error=err):
                    return self._degraded(record, err)

        if record.dirty:
            return await self.save_session(record)

        # Never-mutated new sessions are not written.
        if record.version == 0:
            return Success(
                value=PersistOutcome(state=SessionState.UNCHANGED, session_id=record.id)
            )

        if not self.needs_ttl_refresh(record):
            return Success(
                value=PersistOutcome(state=SessionState.UNCHANGED, session_id=record.id)
            )

        ttl = self.ttl_for(record)
        if ttl < 1:
            return self._lost(record, "absolute_timeout")

        match await self._store.refresh_ttl(record.id, ttl):
            case Success(value=True):
                record.observe_ttl(float(ttl), self._monotonic())
                self._logger.debug(
                    "session_ttl_refreshed",
                    session_id=truncate_session_id(record.id),
                    ttl_seconds=ttl,
                )
                return Success(
                    value=PersistOutcome(
                        state=SessionState.TTL_REFRESHED, session_id=record.id
                    )
                )
            case Success(value=False):
                return self._lost(record, "expired")
            case Failure(error=err):
                return self._degraded(record, err)
            case _:
                return Success(
                    value=PersistOutcome(state=SessionState.UNCHANGED, session_id=record.id)
                )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def regenerate(
        self, record: SessionRecord
    ) -> Result[SessionRecord, SessionStoreError | SessionConflictError]:
        """Move the session to a new id (session fixation protection).

        The new record is saved as version 0 first; the old key is deleted
        afterwards (a failed delete only leaves it to expire). The old
        record is marked destroyed so finalizing it is a no-op.

        Returns:
            Success(new record), clean and stored.
            Failure(SessionConflictError) if the new id already exists.
            Failure(SessionNotFoundError) if the absolute lifetime is used up
            (nothing is written).
            Failure(SessionStoreError) if the save failed.
        """
        now = self._clock()
        rotated = SessionRecord(
            id=self._id_generator(self._config.session_id_bytes),
            data={k: copy_session_value(v) for k, v in record.data.items()},
            flash={k: copy_session_value(v) for k, v in record.flash.items()},
            fingerprint=record.fingerprint,
            created_at=record.created_at,
            last_accessed_at=now,
            absolute_expires_at=record.absolute_expires_at,
            privilege_level=record.privilege_level,
            origin=record.origin,
        )
        ttl = self.ttl_for(rotated)
        if ttl < 1:
            return Failure(
                error=SessionNotFoundError(
                    code=ErrorCode.SESSION_NOT_FOUND,
                    message="Session exceeded its absolute lifetime",
                    backend=self._store.backend_name,
                    operation="save",
                )
            )

        match await self._store.save(rotated.id, rotated, ttl, 0):
            case Success(value=version):
                rotated.version = version
                rotated.observe_ttl(float(ttl), self._monotonic())
            case Failure(error=VersionConflictError() as conflict):
                return self._conflict(rotated, 1, conflict)
            case Failure(error=err):
                return Failure(error=err)

        if record.version > 0:
            deleted = await self._store.delete(record.id)
            if isinstance(deleted, Failure):
                self._logger.warning(
                    "session_delete_failed",
                    session_id=truncate_session_id(record.id),
                    error_code=deleted.error.code.value,
                )

        record.destroyed = True
        record.mark_clean()
        self._logger.info(
            "session_regenerated",
            old_session_id=truncate_session_id(record.id),
            session_id=truncate_session_id(rotated.id),
            privilege_level=rotated.privilege_level,
        )
        return Success(value=rotated)

    async def destroy(self, record: SessionRecord) -> Result[None, SessionStoreError]:
        """Delete the session (logout). Finalize becomes a no-op."""
        if record.version > 0:
            deleted = await self._store.delete(record.id)
            if isinstance(deleted, Failure):
                return Failure(error=deleted.error)
        record.destroyed = True
        record.mark_clean()
        self._logger.info("session_destroyed", session_id=truncate_session_id(record.id))
        return Success(value=None)

    @asynccontextmanager
    async def request(
        self, token: str | None, client: ClientInfo | None = None
    ) -> AsyncIterator[RequestSession]:
        """Scope a session to one request.

        Loads (or creates) the record on entry and finalizes it when the
        block exits normally; the result lands in ``session.outcome``. If
        the block raises, nothing is persisted and the exception propagates.
        """
        session = RequestSession(manager=self, token=token)
        await session.open(client)
        yield session
        await session.finalize()
