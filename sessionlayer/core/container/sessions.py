"""Session layer factories.

The manager is an explicit object: build it once at startup with
create_session_manager() and hand it to request handling. Nothing here
caches a manager or store globally.
"""

from typing import TYPE_CHECKING

from sessionlayer.core.config import Settings, get_settings
from sessionlayer.core.container.infrastructure import (
    create_database,
    create_redis_client,
    get_logger,
)

if TYPE_CHECKING:
    from sessionlayer.application.session_cleanup import SessionCleanup
    from sessionlayer.application.session_manager import SessionManager
    from sessionlayer.application.session_stats import SessionStats
    from sessionlayer.domain.protocols import LoggerProtocol, SessionStoreProtocol


def create_session_store(settings: Settings | None = None) -> "SessionStoreProtocol":
    """Build the configured session store.

    Container owns backend selection (STORAGE_TYPE):
        - 'memory': MemorySessionStore (single process)
        - 'redis': RedisSessionStore
        - 'database': DatabaseSessionStore

    Raises:
        ValueError: If storage_type is unsupported.
    """
    settings = settings or get_settings()
    connection_timeout = settings.connection_timeout.total_seconds()
    command_timeout = settings.command_timeout.total_seconds()

    if settings.storage_type == "memory":
        from sessionlayer.infrastructure.session_store.memory_store import (
            MemorySessionStore,
        )

        return MemorySessionStore(
            key_prefix=settings.session_key_prefix,
            connection_timeout=connection_timeout,
            scan_batch_size=settings.scan_batch_size,
        )

    elif settings.storage_type == "redis":
        from sessionlayer.infrastructure.session_store.redis_store import (
            RedisSessionStore,
        )

        return RedisSessionStore(
            create_redis_client(settings),
            key_prefix=settings.session_key_prefix,
            connection_timeout=connection_timeout,
            command_timeout=command_timeout,
            pool_retry_attempts=settings.pool_retry_attempts,
            pool_retry_backoff=settings.pool_retry_backoff.total_seconds(),
            scan_batch_size=settings.scan_batch_size,
        )

    elif settings.storage_type == "database":
        from sessionlayer.infrastructure.session_store.database_store import (
            DatabaseSessionStore,
        )

        return DatabaseSessionStore(
            create_database(settings),
            key_prefix=settings.session_key_prefix,
            connection_timeout=connection_timeout,
            command_timeout=command_timeout,
            pool_retry_attempts=settings.pool_retry_attempts,
            pool_retry_backoff=settings.pool_retry_backoff.total_seconds(),
            scan_batch_size=settings.scan_batch_size,
        )

    else:
        raise ValueError(
            f"Unsupported STORAGE_TYPE: {settings.storage_type}. "
            "Supported: 'memory', 'redis', 'database'"
        )


def create_session_manager(
    store: "SessionStoreProtocol | None" = None,
    settings: Settings | None = None,
    logger: "LoggerProtocol | None" = None,
) -> "SessionManager":
    """Build a session manager from settings.

    Args:
        store: Store to use (built from settings when None).
        settings: Settings to use (cached settings when None).
        logger: Logger to use (application logger when None).

    Returns:
        SessionManager wired with store, config and logger.
    """
    from sessionlayer.application.session_manager import SessionManager

    settings = settings or get_settings()
    return SessionManager(
        store=store or create_session_store(settings),
        logger=logger or get_logger(),
        config=settings.to_manager_config(),
    )


def create_session_stats(
    store: "SessionStoreProtocol",
    settings: Settings | None = None,
    logger: "LoggerProtocol | None" = None,
) -> "SessionStats":
    """Build session stats over an existing store."""
    from sessionlayer.application.session_stats import SessionStats

    settings = settings or get_settings()
    return SessionStats(
        store=store,
        logger=logger or get_logger(),
        scan_batch_size=settings.scan_batch_size,
    )


def create_session_cleanup(
    store: "SessionStoreProtocol",
    settings: Settings | None = None,
    logger: "LoggerProtocol | None" = None,
) -> "SessionCleanup | None":
    """Build the periodic purge for a store that needs one.

    Returns:
        An unstarted SessionCleanup, or None when the store expires keys
        on its own (Redis) or CLEANUP_INTERVAL is unset.
    """
    from sessionlayer.application.session_cleanup import SessionCleanup
    from sessionlayer.domain.protocols import ExpiredSessionPurger

    settings = settings or get_settings()
    if settings.cleanup_interval is None or not isinstance(store, ExpiredSessionPurger):
        return None
    return SessionCleanup(
        store,
        logger or get_logger(),
        interval=settings.cleanup_interval.total_seconds(),
    )
