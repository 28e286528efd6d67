"""Version conflict resolution policies.

Field-level merging is domain-specific, so the safe default surfaces the
conflict and lets the application decide. Re-applying the request's delta is
an explicit per-deployment opt-in.
"""

from enum import Enum


class MergePolicy(str, Enum):
    """What the manager does when a save hits a version conflict."""

    REJECT = "reject"
    """Surface SessionConflictError to the caller for application-level retry."""

    REAPPLY_DELTA = "reapply_delta"
    """Reload the stored record, replay only the keys this request changed, retry (bounded)."""
