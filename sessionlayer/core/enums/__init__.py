"""Core enums package.

Exports all core-level enums for convenient importing.

Usage:
    from sessionlayer.core.enums import ErrorCode, Environment
"""

from sessionlayer.core.enums.environment import Environment
from sessionlayer.core.enums.error_code import ErrorCode

__all__ = ["ErrorCode", "Environment"]
