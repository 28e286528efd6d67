"""Core errors package.

Usage:
    from sessionlayer.core.errors import DomainError
"""

from sessionlayer.core.errors.domain_error import DomainError

__all__ = ["DomainError"]
