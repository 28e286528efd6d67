"""Session store implementations (SessionStoreProtocol adapters)."""

from sessionlayer.infrastructure.session_store.codec import decode_record, encode_record
from sessionlayer.infrastructure.session_store.database_store import DatabaseSessionStore
from sessionlayer.infrastructure.session_store.memory_store import MemorySessionStore
from sessionlayer.infrastructure.session_store.redis_store import RedisSessionStore

__all__ = [
    "DatabaseSessionStore",
    "MemorySessionStore",
    "RedisSessionStore",
    "decode_record",
    "encode_record",
]
