"""Client fingerprinting for session hijacking detection.

A fingerprint is captured when a session is created and compared on
every later load. A mismatch means the token is probably being replayed
from another network or browser.

Fingerprint Components:
- IP network prefix (true bit-level truncation: IPv4 /24, IPv6 /64 by default)
- SHA-256 of the raw User-Agent header

Security:
- Not reversible (UA hashed, address truncated)
- Cannot identify a user, only detect a change of network or browser
- Missing or unparseable addresses collapse to "unknown"

Prefix lengths are tunables: a /24 tolerates DHCP churn within one
network, a /16 tolerates mobile carriers hopping between subnets.
"""

import hashlib
import ipaddress

from sessionlayer.domain.enums import FingerprintMode, FingerprintOutcome
from sessionlayer.domain.value_objects import (
    UNKNOWN_IP_PREFIX,
    ClientInfo,
    Fingerprint,
)


class FingerprintValidator:
    """Computes and compares client fingerprints.

    Example:
        >>> validator = FingerprintValidator()
        >>> validator.ip_prefix("10.0.1.5")
        '10.0.1.0/24'
        >>> validator.ip_prefix("2001:db8:abcd:12:1:2:3:4")
        '2001:db8:abcd:12::/64'
    """

    def __init__(self, *, ipv4_prefix_length: int = 24, ipv6_prefix_length: int = 64) -> None:
        """Initialize with prefix lengths.

        Raises:
            ValueError: If a prefix length is outside its address family's range.
        """
        if not 0 <= ipv4_prefix_length <= 32:
            raise ValueError("ipv4_prefix_length must be between 0 and 32")
        if not 0 <= ipv6_prefix_length <= 128:
            raise ValueError("ipv6_prefix_length must be between 0 and 128")
        self._ipv4_prefix_length = ipv4_prefix_length
        self._ipv6_prefix_length = ipv6_prefix_length

    def ip_prefix(self, ip_address: str | None) -> str:
        """Truncate an address to its network prefix in CIDR notation.

        IPv4-mapped IPv6 addresses (::ffff:a.b.c.d) are treated as IPv4 so
        dual-stack listeners produce the same prefix for the same client.
        """
        if not ip_address:
            return UNKNOWN_IP_PREFIX
        try:
            address = ipaddress.ip_address(ip_address.strip())
        except ValueError:
            return UNKNOWN_IP_PREFIX

        if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
            address = address.ipv4_mapped

        if isinstance(address, ipaddress.IPv4Address):
            length = self._ipv4_prefix_length
        else:
            length = self._ipv6_prefix_length
        network = ipaddress.ip_network(f"{address}/{length}", strict=False)
        return str(network)

    @staticmethod
    def user_agent_hash(user_agent: str | None) -> str:
        """SHA-256 hex digest of the raw user agent (empty string if absent)."""
        return hashlib.sha256((user_agent or "").encode("utf-8")).hexdigest()

    def compute(self, client: ClientInfo) -> Fingerprint:
        """Build the fingerprint for the current request."""
        return Fingerprint(
            ip_prefix=self.ip_prefix(client.ip_address),
            user_agent_hash=self.user_agent_hash(client.user_agent),
        )

    def validate(
        self,
        stored: Fingerprint | None,
        observed: Fingerprint,
        mode: FingerprintMode,
    ) -> FingerprintOutcome:
        """Compare a stored fingerprint with the observed one.

        Args:
            stored: Fingerprint captured at creation (None for legacy records).
            observed: Fingerprint of the current request.
            mode: OFF ignores differences, SOFT reports them, STRICT rejects.

        Returns:
            MATCH, MISMATCH_LOGGED (soft) or MISMATCH_INVALIDATED (strict).
        """
        if mode is FingerprintMode.OFF or stored is None or stored == observed:
            return FingerprintOutcome.MATCH
        if mode is FingerprintMode.SOFT:
            return FingerprintOutcome.MISMATCH_LOGGED
        return FingerprintOutcome.MISMATCH_INVALIDATED

    @staticmethod
    def mismatched_components(stored: Fingerprint, observed: Fingerprint) -> list[str]:
        """Names of the fingerprint parts that differ (for security logs)."""
        components = []
        if stored.ip_prefix != observed.ip_prefix:
            components.append("ip_prefix")
        if stored.user_agent_hash != observed.user_agent_hash:
            components.append("user_agent_hash")
        return components
