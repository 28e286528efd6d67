"""Observed client metadata handed over by the transport layer."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True, kw_only=True)
class ClientInfo:
    """What the transport layer observed about the current request.

    Attributes:
        ip_address: Client address as resolved by the transport layer
            (forwarded-header handling is the transport's job).
        user_agent: Raw User-Agent header, if any.
    """

    ip_address: str | None = None
    user_agent: str | None = None
