"""Fingerprint validation modes.

Usage:
    from sessionlayer.domain.enums import FingerprintMode

    if mode is FingerprintMode.STRICT:
        ...
"""

from enum import Enum


class FingerprintMode(str, Enum):
    """How a fingerprint mismatch on load is treated.

    String Enum:
        Inherits from str so values load directly from environment variables.
    """

    OFF = "off"
    """No comparison at all."""

    SOFT = "soft"
    """Mismatch is logged as a security event; the session is kept (NAT/mobile churn)."""

    STRICT = "strict"
    """Mismatch discards the session and issues a fresh anonymous one."""
