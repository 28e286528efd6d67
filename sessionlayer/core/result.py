"""Result types for railway-oriented programming.

Store operations and manager calls return a Result instead of raising, so every
failure mode (not found, version conflict, timeout, ...) is an explicit value
the caller has to match on.

Usage:
    result = await store.load(session_id)

    match result:
        case Success(value=loaded):
            record = loaded.record
        case Failure(error=SessionNotFoundError()):
            record = new_record()
        case Failure(error=err):
            logger.warning("session_store_degraded", error_code=err.code.value)
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type


@dataclass(frozen=True, slots=True, kw_only=True)
class Success(Generic[T]):
    """Represents a successful operation result.

    Attributes:
        value: The successful result value.
    """

    value: T


@dataclass(frozen=True, slots=True, kw_only=True)
class Failure(Generic[E]):
    """Represents a failed operation result.

    Attributes:
        error: The error that occurred.
    """

    error: E


# Type alias for Result union
type Result[T, E] = Success[T] | Failure[E]
