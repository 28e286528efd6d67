"""Session record table.

One row per live (or not yet purged) session:

    key         <prefix><session_id>, primary key
    version     optimistic-concurrency counter, bumped on every save
    payload     encoded SessionRecord (codec JSON)
    expires_at  absolute expiry as epoch seconds; rows at or past it are dead

Expiry is a plain column so refresh_ttl is a single-column UPDATE that never
rewrites payload. Dead rows are invisible to every read and removed by
cleanup_expired() or overwritten by the next version-0 save.
"""

from sqlalchemy import Double, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sessionlayer.infrastructure.persistence.base import BaseMutableModel


class SessionRecordModel(BaseMutableModel):
    """Database model for stored sessions.

    Fields:
        key: Storage key (prefix + session id).
        version: Stored version (>= 1).
        payload: Encoded record.
        expires_at: Expiry, epoch seconds (UTC).
        created_at: Row creation (from BaseModel).
        updated_at: Last write or TTL refresh (from TimestampMixin).

    Indexes:
        - ix_session_records_expires_at: cleanup of expired rows
    """

    __tablename__ = "session_records"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[float] = mapped_column(Double, nullable=False)

    __table_args__ = (Index("ix_session_records_expires_at", "expires_at"),)

    def __repr__(self) -> str:
        """Return repr without payload."""
        return f"<SessionRecordModel(key={self.key!r}, version={self.version})>"
