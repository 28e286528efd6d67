"""Per-request session lifecycle states.

State Machine:
    NO_TOKEN → LOADING → {VALID, INVALIDATED, NEW} → ACTIVE
        → {SAVED, TTL_REFRESHED, UNCHANGED} → DONE

    - NO_TOKEN: Request carried no usable token
    - LOADING: Store lookup in flight
    - VALID: Stored session loaded and accepted
    - INVALIDATED: Stored session rejected (strict fingerprint mismatch)
    - NEW: Fresh anonymous session issued
    - ACTIVE: Handler is running against the in-memory record
    - SAVED: Payload written at finalize
    - TTL_REFRESHED: Only the expiry was extended at finalize
    - UNCHANGED: No backend call at finalize
    - DONE: Request finished

Suspension points only happen in LOADING and while finalizing.
"""

from enum import Enum


class SessionState(str, Enum):
    """Per-request session lifecycle states."""

    NO_TOKEN = "no_token"
    LOADING = "loading"
    VALID = "valid"
    INVALIDATED = "invalidated"
    NEW = "new"
    ACTIVE = "active"
    SAVED = "saved"
    TTL_REFRESHED = "ttl_refreshed"
    UNCHANGED = "unchanged"
    DONE = "done"
