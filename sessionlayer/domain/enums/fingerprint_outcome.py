"""Result of comparing a stored fingerprint with the observed one."""

from enum import Enum


class FingerprintOutcome(str, Enum):
    """Fingerprint comparison outcome."""

    MATCH = "match"
    MISMATCH_LOGGED = "mismatch_logged"
    MISMATCH_INVALIDATED = "mismatch_invalidated"
