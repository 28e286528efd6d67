"""Session manager error types.

Unlike store errors these describe outcomes at the session level: a
client whose fingerprint failed strict validation, or a save that kept
losing optimistic-concurrency races.
"""

from dataclasses import dataclass

from sessionlayer.core.errors import DomainError
from sessionlayer.domain.errors.session_store_error import SessionStoreError


@dataclass(frozen=True, slots=True, kw_only=True)
class SessionInvalidatedError(DomainError):
    """Stored session rejected by strict fingerprint validation.

    The stored record is left untouched; the caller receives a new session.

    Attributes:
        session_id: Id of the rejected session (log truncated).
    """

    session_id: str


@dataclass(frozen=True, slots=True, kw_only=True)
class SessionConflictError(DomainError):
    """Save could not be applied after the configured conflict handling.

    Surfaced to the caller, which decides whether to retry the request.

    Attributes:
        session_id: Session whose save failed.
        attempts: Save attempts made (1 + retries).
        cause: Last store error seen.
    """

    session_id: str
    attempts: int = 1
    cause: SessionStoreError | None = None
