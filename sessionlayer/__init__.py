"""Session consistency layer.

Gives stateless request/response cycles a continuous client identity backed by
a shared key-value store (in-process, Redis, or a relational table).

Key Features:
    - Optimistic versioning instead of distributed locks
    - TTL refresh without payload rewrites
    - Dirty tracking so read-only requests never write
    - IP-prefix + user-agent fingerprinting (off / soft / strict)
    - Non-blocking approximate session counting

Usage:
    ```python
    from sessionlayer.core.container import create_session_manager
    from sessionlayer.domain.value_objects import ClientInfo

    manager = create_session_manager()

    async with manager.request(token, ClientInfo(ip_address=ip, user_agent=ua)) as scope:
        await scope.set("cart", ["sku-1"])
    # scope.outcome holds the persistence result, scope.session_id the token to send
    ```
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
