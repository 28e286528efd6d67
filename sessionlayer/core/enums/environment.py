"""Runtime environment types.

Used by Settings and the composition root to pick the log renderer:
- DEVELOPMENT: human-readable console logs
- TESTING / CI: JSON logs for machine parsing
- PRODUCTION: JSON logs
"""

from enum import Enum


class Environment(str, Enum):
    """Runtime environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    CI = "ci"
    PRODUCTION = "production"
