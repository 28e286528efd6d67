"""Client identity fingerprint value object."""

from dataclasses import dataclass

UNKNOWN_IP_PREFIX = "unknown"


@dataclass(frozen=True, slots=True)
class Fingerprint:
    """Low-entropy summary of client identity.

    Stored with the session at creation and compared on every load to
    detect probable session theft. Cannot identify a user on its own: the
    address is truncated to its network prefix and the user agent is hashed.

    Attributes:
        ip_prefix: Network prefix in CIDR notation (e.g. "10.0.0.0/24"),
            or "unknown" when no parseable address was available.
        user_agent_hash: SHA-256 hex digest of the raw user-agent string.
    """

    ip_prefix: str
    user_agent_hash: str

    def to_dict(self) -> dict[str, str]:
        """Serialize for storage."""
        return {"ip_prefix": self.ip_prefix, "user_agent_hash": self.user_agent_hash}
