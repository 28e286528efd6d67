"""Domain entities."""

from sessionlayer.domain.entities.session_record import (
    USER_ID_KEY,
    SessionDelta,
    SessionRecord,
)

__all__ = ["SessionDelta", "SessionRecord", "USER_ID_KEY"]
