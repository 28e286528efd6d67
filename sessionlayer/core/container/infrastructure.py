"""Infrastructure dependency factories.

Application-scoped singletons and builders for core infrastructure:
- Logging (structlog console adapter)
- Redis client (blocking, bounded connection pool)
- Database (SQLAlchemy async engine)
"""

from functools import lru_cache
from typing import TYPE_CHECKING

from sessionlayer.core.config import Settings, get_settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from sessionlayer.domain.protocols import LoggerProtocol
    from sessionlayer.infrastructure.persistence.database import Database


@lru_cache()
def get_logger() -> "LoggerProtocol":
    """Return the application-scoped logger singleton.

    Adapter selection is centralized here (composition root):
    - development: ConsoleAdapter (human-readable)
    - testing/ci/production: ConsoleAdapter (JSON)

    Returns:
        LoggerProtocol: Logger instance implementing the protocol.
    """
    from sessionlayer.infrastructure.logging.console_adapter import ConsoleAdapter

    settings = get_settings()
    return ConsoleAdapter(
        use_json=not settings.is_development,
        level=settings.log_level,
    )


def create_redis_client(settings: Settings | None = None) -> "Redis":
    """Build a Redis client on a bounded, blocking connection pool.

    The pool's timeout is the connection-acquisition timeout; socket
    timeouts bound connecting and each command.

    Args:
        settings: Settings to use (cached settings when None).

    Returns:
        Async Redis client (decode_responses=True).
    """
    from redis.asyncio import BlockingConnectionPool, Redis

    settings = settings or get_settings()
    connection_timeout = settings.connection_timeout.total_seconds()
    pool = BlockingConnectionPool.from_url(
        settings.redis_url,
        max_connections=settings.pool_size,
        timeout=connection_timeout,
        socket_connect_timeout=connection_timeout,
        socket_timeout=settings.command_timeout.total_seconds(),
        decode_responses=True,
        socket_keepalive=True,
    )
    return Redis(connection_pool=pool)


def create_database(settings: Settings | None = None) -> "Database":
    """Build the database manager for the relational store.

    Args:
        settings: Settings to use (cached settings when None).

    Returns:
        Database with a pool sized from settings.
    """
    from sessionlayer.infrastructure.persistence.database import Database

    settings = settings or get_settings()
    return Database(
        database_url=settings.database_url,
        echo=settings.db_echo,
        pool_size=settings.pool_size,
        pool_timeout=settings.connection_timeout.total_seconds(),
        command_timeout=settings.command_timeout.total_seconds(),
    )
