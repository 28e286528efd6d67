"""Session record domain entity.

Pure data with dirty tracking, no backend dependencies.

The record is mutated exclusively through its accessor methods. Mutators
set ``dirty`` and log the change in a per-request delta; reads (``get``,
``touch``, a ``flash_take`` of an absent key) never do. The delta is what the
manager replays on top of a freshly loaded record when a save loses an
optimistic-concurrency race and the deployment opted into merging.

Persisted fields: id, data, flash, fingerprint, created_at,
last_accessed_at, absolute_expires_at, privilege_level.
``version`` travels next to the payload (the store owns it). Everything
else is transient, request-local state.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sessionlayer.domain.enums import SessionState
from sessionlayer.domain.value_objects import (
    Fingerprint,
    SessionValue,
    copy_session_value,
    ensure_session_value,
)

USER_ID_KEY = "user_id"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class SessionDelta:
    """Keys changed by the current request.

    Attributes:
        data_set: Data keys written (last value wins).
        data_removed: Data keys removed.
        flash_set: Flash keys written.
        flash_removed: Flash keys consumed or removed.
        cleared: Whether clear() ran (replayed before the key-level changes).
        privilege_level: New privilege level, if changed.
    """

    data_set: dict[str, SessionValue] = field(default_factory=dict)
    data_removed: set[str] = field(default_factory=set)
    flash_set: dict[str, SessionValue] = field(default_factory=dict)
    flash_removed: set[str] = field(default_factory=set)
    cleared: bool = False
    privilege_level: int | None = None

    def is_empty(self) -> bool:
        """Check whether the request changed anything."""
        return not (
            self.data_set
            or self.data_removed
            or self.flash_set
            or self.flash_removed
            or self.cleared
            or self.privilege_level is not None
        )

    def apply(
        self, data: dict[str, SessionValue], flash: dict[str, SessionValue]
    ) -> None:
        """Replay the changes onto another record's maps (in place)."""
        if self.cleared:
            data.clear()
            flash.clear()
        for key in self.data_removed:
            data.pop(key, None)
        for key, value in self.data_set.items():
            data[key] = copy_session_value(value)
        for key in self.flash_removed:
            flash.pop(key, None)
        for key, value in self.flash_set.items():
            flash[key] = copy_session_value(value)


@dataclass(slots=True, kw_only=True)
class SessionRecord:
    """Server-side state attached to an opaque client token.

    Business Rules:
        - id is immutable for the record's lifetime (rotation creates a new record)
        - Reads never mark the record dirty
        - remove/flash_take/clear mark dirty only when something was removed
        - touch() updates last_accessed_at but never marks dirty
        - Raising privilege_level flags the record for id rotation

    Attributes:
        id: Opaque, cryptographically random token.
        data: Application-visible state.
        flash: One-shot values, consumed on read.
        fingerprint: Client fingerprint captured at creation.
        created_at: Creation timestamp (UTC).
        last_accessed_at: Last access timestamp (UTC).
        absolute_expires_at: Hard lifetime cap, if configured.
        privilege_level: Current privilege level (0 = anonymous).
        version: Store version this record was loaded at (0 = never stored).

        Transient:
            dirty: Unsaved mutations exist.
            origin: How the record entered the request (NEW / VALID / INVALIDATED).
            ttl_remaining: Seconds of TTL left when last observed from the store.
            ttl_observed_at: Monotonic instant ttl_remaining was observed.
            requires_rotation: Id should be regenerated before persisting.
            destroyed: Record was deleted (logout); finalize must not resurrect it.
            finalized: finalize() already ran for this request.

    Example:
        >>> record = SessionRecord(id="abc")
        >>> record.get("cart") is None
        True
        >>> record.dirty
        False
        >>> record.set("cart", ["sku-1"])
        >>> record.dirty
        True
    """

    id: str
    data: dict[str, SessionValue] = field(default_factory=dict)
    flash: dict[str, SessionValue] = field(default_factory=dict)
    fingerprint: Fingerprint | None = None
    created_at: datetime = field(default_factory=_utcnow)
    last_accessed_at: datetime = field(default_factory=_utcnow)
    absolute_expires_at: datetime | None = None
    privilege_level: int = 0
    version: int = 0

    # Transient (never serialized)
    dirty: bool = field(default=False, compare=False)
    origin: SessionState = field(default=SessionState.NEW, compare=False)
    ttl_remaining: float | None = field(default=None, compare=False)
    ttl_observed_at: float | None = field(default=None, compare=False)
    requires_rotation: bool = field(default=False, compare=False)
    destroyed: bool = field(default=False, compare=False)
    finalized: bool = field(default=False, compare=False)
    _delta: SessionDelta = field(
        default_factory=SessionDelta, compare=False, repr=False
    )

    # =========================================================================
    # Data
    # =========================================================================

    def get(self, key: str, default: Any = None) -> SessionValue | Any:
        """Read a data value (copy). Never marks dirty."""
        if key not in self.data:
            return default
        return copy_session_value(self.data[key])

    def has(self, key: str) -> bool:
        """Check whether a data key exists."""
        return key in self.data

    def keys(self) -> list[str]:
        """List data keys."""
        return list(self.data)

    def set(self, key: str, value: Any) -> None:
        """Upsert a data value and mark dirty.

        Raises:
            TypeError: If value is not a SessionValue.
            ValueError: If value contains a non-finite float.
        """
        stored = ensure_session_value(value)
        self.data[key] = stored
        self._delta.data_set[key] = copy_session_value(stored)
        self._delta.data_removed.discard(key)
        self.dirty = True

    def remove(self, key: str) -> SessionValue | None:
        """Remove a data value. Marks dirty only if the key existed.

        Returns:
            The removed value, or None if the key was absent.
        """
        if key not in self.data:
            return None
        removed = self.data.pop(key)
        self._delta.data_set.pop(key, None)
        self._delta.data_removed.add(key)
        self.dirty = True
        return removed

    def clear(self) -> None:
        """Drop all data and flash values but keep the session id.

        Marks dirty only if something was removed.
        """
        if not self.data and not self.flash:
            return
        self.data.clear()
        self.flash.clear()
        self._delta.data_set.clear()
        self._delta.data_removed.clear()
        self._delta.flash_set.clear()
        self._delta.flash_removed.clear()
        self._delta.cleared = True
        self.dirty = True

    @property
    def is_empty(self) -> bool:
        """True when neither data nor flash holds anything."""
        return not self.data and not self.flash

    # =========================================================================
    # Flash
    # =========================================================================

    def flash_set(self, key: str, value: Any) -> None:
        """Store a one-shot value and mark dirty."""
        stored = ensure_session_value(value)
        self.flash[key] = stored
        self._delta.flash_set[key] = copy_session_value(stored)
        self._delta.flash_removed.discard(key)
        self.dirty = True

    def flash_take(self, key: str) -> SessionValue | None:
        """Consume a flash value.

        Marks dirty only if the key existed; reading an absent key is a no-op.
        """
        if key not in self.flash:
            return None
        value = self.flash.pop(key)
        self._delta.flash_set.pop(key, None)
        self._delta.flash_removed.add(key)
        self.dirty = True
        return value

    def flash_take_all(self) -> dict[str, SessionValue]:
        """Consume every flash value (e.g. when rendering a page)."""
        taken = {key: self.flash_take(key) for key in list(self.flash)}
        return taken  # type: ignore[return-value]

    # =========================================================================
    # Access / identity
    # =========================================================================

    def touch(self, now: datetime | None = None) -> None:
        """Record an access. Does NOT mark dirty."""
        self.last_accessed_at = now or _utcnow()

    def set_privilege_level(self, level: int) -> None:
        """Change privilege level; raising it flags the record for id rotation."""
        if level == self.privilege_level:
            return
        if level > self.privilege_level:
            self.requires_rotation = True
        self.privilege_level = level
        self._delta.privilege_level = level
        self.dirty = True

    def set_user_id(self, user_id: str | int) -> None:
        """Attach an authenticated user to the session."""
        self.set(USER_ID_KEY, user_id)

    @property
    def user_id(self) -> str | int | None:
        """Authenticated user id, if any."""
        value = self.data.get(USER_ID_KEY)
        return value if isinstance(value, (str, int)) else None

    @property
    def is_authenticated(self) -> bool:
        """True when a user id is attached."""
        return self.user_id is not None

    def is_past_absolute_expiry(self, now: datetime | None = None) -> bool:
        """Check the hard lifetime cap."""
        if self.absolute_expires_at is None:
            return False
        return (now or _utcnow()) >= self.absolute_expires_at

    # =========================================================================
    # Persistence bookkeeping (used by the manager)
    # =========================================================================

    @property
    def delta(self) -> SessionDelta:
        """Changes made by the current request."""
        return self._delta

    def mark_clean(self) -> None:
        """Clear the dirty flag and delta after a successful save."""
        self.dirty = False
        self._delta = SessionDelta()

    def observe_ttl(self, ttl_remaining: float | None, observed_at: float) -> None:
        """Remember how much TTL the store reported, and when."""
        self.ttl_remaining = ttl_remaining
        self.ttl_observed_at = observed_at

    def rebase_onto(self, fresh: "SessionRecord") -> None:
        """Adopt a freshly loaded record's state and replay this request's delta.

        Used after a version conflict: keys this request did not touch take the
        concurrent writer's values; keys it did touch keep this request's values.

        Raises:
            ValueError: If fresh belongs to another session.
        """
        if fresh.id != self.id:
            raise ValueError("Cannot rebase onto a different session")
        data = dict(fresh.data)
        flash = dict(fresh.flash)
        self._delta.apply(data, flash)
        self.data = data
        self.flash = flash
        self.version = fresh.version
        if self._delta.privilege_level is None:
            self.privilege_level = fresh.privilege_level
        self.dirty = True
