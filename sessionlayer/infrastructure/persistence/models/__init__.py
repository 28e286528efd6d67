"""Database models.

Import every model here so BaseModel.metadata (and Alembic autogenerate)
sees the full schema.
"""

from sessionlayer.infrastructure.persistence.models.session_record import (
    SessionRecordModel,
)

__all__ = ["SessionRecordModel"]
