"""Session record codec.

The one place records are turned into bytes and back. Every store keeps the
encoded payload (never the live object), so all three backends share the
same on-disk format and the same corruption semantics.

Format (JSON, pydantic-validated):
    {
        "format_version": 1,
        "id": "...",
        "data": {...},
        "flash": {...},
        "fingerprint": {"ip_prefix": "...", "user_agent_hash": "..."} | null,
        "created_at": "2024-01-01T00:00:00Z",
        "last_accessed_at": "...",
        "absolute_expires_at": "..." | null,
        "privilege_level": 0
    }

The version counter is stored next to the payload by each backend, never
inside it, so a TTL refresh cannot change payload bytes.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, JsonValue, ValidationError

from sessionlayer.core.enums import ErrorCode
from sessionlayer.core.result import Failure, Result, Success
from sessionlayer.domain.entities import SessionRecord
from sessionlayer.domain.enums import SessionState
from sessionlayer.domain.errors import CorruptedSessionError
from sessionlayer.domain.value_objects import Fingerprint, copy_session_value

PAYLOAD_FORMAT_VERSION = 1


class FingerprintPayload(BaseModel):
    """Serialized Fingerprint."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    ip_prefix: str
    user_agent_hash: str


class SessionPayload(BaseModel):
    """Serialized SessionRecord (persisted fields only)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    format_version: int = PAYLOAD_FORMAT_VERSION
    id: str
    data: dict[str, JsonValue]
    flash: dict[str, JsonValue]
    fingerprint: FingerprintPayload | None = None
    created_at: datetime
    last_accessed_at: datetime
    absolute_expires_at: datetime | None = None
    privilege_level: int = 0


def encode_record(record: SessionRecord) -> str:
    """Serialize the persisted fields of a record.

    Args:
        record: Record to encode.

    Returns:
        JSON text.
    """
    fingerprint = (
        FingerprintPayload(**record.fingerprint.to_dict())
        if record.fingerprint is not None
        else None
    )
    payload = SessionPayload(
        id=record.id,
        data=record.data,
        flash=record.flash,
        fingerprint=fingerprint,
        created_at=record.created_at,
        last_accessed_at=record.last_accessed_at,
        absolute_expires_at=record.absolute_expires_at,
        privilege_level=record.privilege_level,
    )
    return payload.model_dump_json()


def decode_record(
    session_id: str,
    payload: str | bytes,
    version: int,
    *,
    key: str | None = None,
    backend: str | None = None,
) -> Result[SessionRecord, CorruptedSessionError]:
    """Deserialize a stored payload.

    Args:
        session_id: Id the payload was stored under.
        payload: JSON text or bytes.
        version: Version stored next to the payload.
        key: Storage key (for the error, never the payload).
        backend: Backend name (for the error).

    Returns:
        Success(SessionRecord) with origin VALID and dirty False.
        Failure(CorruptedSessionError) if the payload is unreadable, has an
        unknown format version, or belongs to another id.
    """

    def corrupted(message: str) -> Failure[CorruptedSessionError]:
        return Failure(
            error=CorruptedSessionError(
                code=ErrorCode.SESSION_CORRUPTED,
                message=message,
                key=key,
                backend=backend,
                operation="load",
            )
        )

    try:
        decoded = SessionPayload.model_validate_json(payload)
    except ValidationError as e:
        return corrupted(f"Session payload failed validation ({e.error_count()} errors)")

    if decoded.format_version != PAYLOAD_FORMAT_VERSION:
        return corrupted(f"Unsupported payload format {decoded.format_version}")
    if decoded.id != session_id:
        return corrupted("Session payload id does not match its key")

    fingerprint = (
        Fingerprint(
            ip_prefix=decoded.fingerprint.ip_prefix,
            user_agent_hash=decoded.fingerprint.user_agent_hash,
        )
        if decoded.fingerprint is not None
        else None
    )
    record = SessionRecord(
        id=decoded.id,
        data={k: copy_session_value(v) for k, v in decoded.data.items()},  # type: ignore[arg-type]
        flash={k: copy_session_value(v) for k, v in decoded.flash.items()},  # type: ignore[arg-type]
        fingerprint=fingerprint,
        created_at=decoded.created_at,
        last_accessed_at=decoded.last_accessed_at,
        absolute_expires_at=decoded.absolute_expires_at,
        privilege_level=decoded.privilege_level,
        version=version,
        origin=SessionState.VALID,
    )
    return Success(value=record)
