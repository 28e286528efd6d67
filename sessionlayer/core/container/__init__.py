"""Container module - centralized dependency construction.

Organized by concern:
- infrastructure: logger, Redis client, database
- sessions: session store, manager, stats, expired-session cleanup

    from sessionlayer.core.container import create_session_manager
"""

from sessionlayer.core.container.infrastructure import (
    create_database,
    create_redis_client,
    get_logger,
)
from sessionlayer.core.container.sessions import (
    create_session_cleanup,
    create_session_manager,
    create_session_stats,
    create_session_store,
)
from sessionlayer.core.config import get_settings

__all__ = [
    "create_database",
    "create_redis_client",
    "create_session_cleanup",
    "create_session_manager",
    "create_session_stats",
    "create_session_store",
    "get_logger",
    "get_settings",
]
