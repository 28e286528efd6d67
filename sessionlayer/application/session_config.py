"""Session manager configuration.

Plain dataclass consumed by SessionManager. Built from pydantic Settings by
Settings.to_manager_config() in production and constructed directly in
tests. Validation happens once, at construction.
"""

from dataclasses import dataclass
from datetime import timedelta

from sessionlayer.domain.enums import FingerprintMode, MergePolicy, SaveStrategy

MIN_SESSION_ID_BYTES = 16


@dataclass(frozen=True, slots=True, kw_only=True)
class SessionManagerConfig:
    """Policy knobs for the session manager.

    Attributes:
        default_ttl: Idle timeout written on save and refresh.
        absolute_timeout: Hard lifetime cap from creation (None disables it).
        ttl_refresh_threshold: Refresh TTL when the remaining fraction drops
            below this value (0-1).
        fingerprint_mode: OFF, SOFT (log mismatch) or STRICT (invalidate).
        save_strategy: Default persist strategy for mutations.
        merge_policy: What to do when a save loses a version race.
        max_conflict_retries: Extra save attempts under REAPPLY_DELTA.
        scan_batch_size: Keys per batch for stats scans.
        session_id_bytes: Random bytes per session id (>= 16).
        ipv4_prefix_length: IPv4 fingerprint network prefix.
        ipv6_prefix_length: IPv6 fingerprint network prefix.
        rotate_on_privilege_change: Regenerate the id when privilege rises.

    Raises:
        ValueError: If any value is out of range.
    """

    default_ttl: timedelta = timedelta(minutes=15)
    absolute_timeout: timedelta | None = timedelta(hours=8)
    ttl_refresh_threshold: float = 0.5
    fingerprint_mode: FingerprintMode = FingerprintMode.SOFT
    save_strategy: SaveStrategy = SaveStrategy.END_OF_REQUEST
    merge_policy: MergePolicy = MergePolicy.REJECT
    max_conflict_retries: int = 1
    scan_batch_size: int = 1000
    session_id_bytes: int = 32
    ipv4_prefix_length: int = 24
    ipv6_prefix_length: int = 64
    rotate_on_privilege_change: bool = True

    def __post_init__(self) -> None:
        if self.default_ttl < timedelta(seconds=1):
            raise ValueError("default_ttl must be at least one second")
        if self.absolute_timeout is not None and self.absolute_timeout <= timedelta(0):
            raise ValueError("absolute_timeout must be positive")
        if not 0.0 <= self.ttl_refresh_threshold <= 1.0:
            raise ValueError("ttl_refresh_threshold must be between 0 and 1")
        if self.max_conflict_retries < 0:
            raise ValueError("max_conflict_retries must not be negative")
        if self.scan_batch_size < 1:
            raise ValueError("scan_batch_size must be positive")
        if self.session_id_bytes < MIN_SESSION_ID_BYTES:
            raise ValueError(
                f"session_id_bytes must be at least {MIN_SESSION_ID_BYTES}"
            )
        if not 0 <= self.ipv4_prefix_length <= 32:
            raise ValueError("ipv4_prefix_length must be between 0 and 32")
        if not 0 <= self.ipv6_prefix_length <= 128:
            raise ValueError("ipv6_prefix_length must be between 0 and 128")

    @property
    def default_ttl_seconds(self) -> int:
        """Idle timeout in whole seconds (what stores accept)."""
        return int(self.default_ttl.total_seconds())
