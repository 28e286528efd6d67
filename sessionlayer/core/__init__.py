"""Core shared kernel.

Foundational utilities used across all layers:
- Result types for railway-oriented programming
- Base error class and error codes
- Settings and the composition root (imported explicitly, not re-exported)

Only ``core.config`` (domain enums) and the composition root in
``core.container`` reach into other layers.
"""

from sessionlayer.core.enums import Environment, ErrorCode
from sessionlayer.core.errors import DomainError
from sessionlayer.core.result import Failure, Result, Success

__all__ = [
    "DomainError",
    "Environment",
    "ErrorCode",
    "Failure",
    "Result",
    "Success",
]
