"""Session save strategies.

Usage:
    from sessionlayer.domain.enums import SaveStrategy

    await manager.persist(record, SaveStrategy.IMMEDIATE)
"""

from enum import Enum


class SaveStrategy(str, Enum):
    """When a dirty session is written to the store.

    Configured globally (Settings.save_strategy) and overridable per
    mutation call.
    """

    IMMEDIATE = "immediate"
    """Persist as soon as the mutation happens."""

    END_OF_REQUEST = "end_of_request"
    """Persist once, when the request is finalized."""
