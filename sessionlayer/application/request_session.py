"""Request-scoped session handle.

Drives one request through the session state machine:

    NO_TOKEN | LOADING -> VALID | INVALIDATED | NEW -> ACTIVE
        -> SAVED | TTL_REFRESHED | UNCHANGED -> DONE

Backend calls happen only at load, at IMMEDIATE-strategy mutations, and at
finalize. ``history`` records every state the request passed through.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sessionlayer.core.result import Result, Success
from sessionlayer.domain.entities import SessionRecord
from sessionlayer.domain.enums import SaveStrategy, SessionState
from sessionlayer.domain.errors import (
    SessionConflictError,
    SessionStoreError,
)
from sessionlayer.domain.value_objects import ClientInfo, SessionValue

if TYPE_CHECKING:
    from sessionlayer.application.session_manager import PersistOutcome, SessionManager


class RequestSession:
    """One request's view of its session.

    Reads go straight to the record; mutations go through the manager's
    save strategy. Obtain one from SessionManager.request().

    Attributes:
        state: Current state.
        history: States visited, in order.
        load_warning: Store failure that forced a new session, if any.
        outcome: finalize() result once the request is done.
    """

    def __init__(self, *, manager: SessionManager, token: str | None) -> None:
        self._manager = manager
        self._token = token
        self._record: SessionRecord | None = None
        self.state = SessionState.NO_TOKEN if token is None else SessionState.LOADING
        self.history: list[SessionState] = [self.state]
        self.load_warning: SessionStoreError | None = None
        self.outcome: Result[PersistOutcome, SessionConflictError] | None = None

    def _transition(self, state: SessionState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def record(self) -> SessionRecord:
        """The live record (raises if the session was never opened)."""
        if self._record is None:
            raise RuntimeError("RequestSession used before open()")
        return self._record

    @property
    def session_id(self) -> str:
        """Id the transport should send back to the client."""
        return self.record.id

    async def open(self, client: ClientInfo | None = None) -> SessionRecord:
        """Load or create the record and enter ACTIVE."""
        record, warning = await self._manager.resolve(self._token, client)
        self._record = record
        self.load_warning = warning
        self._transition(record.origin)
        self._transition(SessionState.ACTIVE)
        return record

    # =========================================================================
    # Reads (never dirty)
    # =========================================================================

    def get(self, key: str, default: Any = None) -> SessionValue | Any:
        """Read a data value."""
        return self.record.get(key, default)

    def has(self, key: str) -> bool:
        """Check whether a data key exists."""
        return self.record.has(key)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def set(
        self, key: str, value: Any, *, save_strategy: SaveStrategy | None = None
    ) -> Result[PersistOutcome, SessionConflictError]:
        """Upsert a data value, then apply the save strategy."""
        self.record.set(key, value)
        return await self._manager.persist(self.record, save_strategy)

    async def remove(
        self, key: str, *, save_strategy: SaveStrategy | None = None
    ) -> Result[PersistOutcome, SessionConflictError]:
        """Remove a data value, then apply the save strategy."""
        self.record.remove(key)
        return await self._manager.persist(self.record, save_strategy)

    async def flash_set(
        self, key: str, value: Any, *, save_strategy: SaveStrategy | None = None
    ) -> Result[PersistOutcome, SessionConflictError]:
        """Store a one-shot value, then apply the save strategy."""
        self.record.flash_set(key, value)
        return await self._manager.persist(self.record, save_strategy)

    async def flash_take(
        self, key: str, *, save_strategy: SaveStrategy | None = None
    ) -> SessionValue | None:
        """Consume a flash value, then apply the save strategy.

        Taking an absent key changes nothing and makes no backend call. A
        conflict from an immediate save leaves the record dirty, so
        finalize() reports it.
        """
        if key not in self.record.flash:
            return None
        value = self.record.flash_take(key)
        await self._manager.persist(self.record, save_strategy)
        return value

    async def clear(
        self, *, save_strategy: SaveStrategy | None = None
    ) -> Result[PersistOutcome, SessionConflictError]:
        """Drop all values but keep the id, then apply the save strategy."""
        self.record.clear()
        return await self._manager.persist(self.record, save_strategy)

    async def persist(
        self, *, save_strategy: SaveStrategy | None = None
    ) -> Result[PersistOutcome, SessionConflictError]:
        """Apply the save strategy to pending changes."""
        return await self._manager.persist(self.record, save_strategy)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def regenerate(
        self,
    ) -> Result[SessionRecord, SessionStoreError | SessionConflictError]:
        """Move to a new session id now (e.g. right after login)."""
        result = await self._manager.regenerate(self.record)
        if isinstance(result, Success):
            self._record = result.value
        return result

    async def destroy(self) -> Result[None, SessionStoreError]:
        """Delete the session (logout)."""
        return await self._manager.destroy(self.record)

    async def finalize(self) -> Result[PersistOutcome, SessionConflictError]:
        """Run end-of-request persistence once and enter DONE."""
        if self.outcome is not None:
            return self.outcome

        result = await self._manager.finalize(self.record)
        self.outcome = result
        if isinstance(result, Success):
            if result.value.rotated is not None:
                self._record = result.value.rotated
            if result.value.state is not SessionState.ACTIVE:
                self._transition(result.value.state)
        self._transition(SessionState.DONE)
        return result
