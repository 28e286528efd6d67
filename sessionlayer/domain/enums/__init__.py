"""Domain enums.

Available Enums:
    - FingerprintMode: off / soft / strict hijacking detection
    - FingerprintOutcome: result of a fingerprint comparison
    - MergePolicy: version conflict resolution
    - SaveStrategy: immediate vs end-of-request persistence
    - SessionState: per-request lifecycle states
"""

from sessionlayer.domain.enums.fingerprint_mode import FingerprintMode
from sessionlayer.domain.enums.fingerprint_outcome import FingerprintOutcome
from sessionlayer.domain.enums.merge_policy import MergePolicy
from sessionlayer.domain.enums.save_strategy import SaveStrategy
from sessionlayer.domain.enums.session_state import SessionState

__all__ = [
    "FingerprintMode",
    "FingerprintOutcome",
    "MergePolicy",
    "SaveStrategy",
    "SessionState",
]
