"""Application layer: fingerprint policy, session manager, stats."""

from sessionlayer.application.fingerprint_validator import FingerprintValidator
from sessionlayer.application.request_session import RequestSession
from sessionlayer.application.session_config import SessionManagerConfig
from sessionlayer.application.session_manager import PersistOutcome, SessionManager
from sessionlayer.application.session_stats import SessionCountReport, SessionStats

__all__ = [
    "FingerprintValidator",
    "PersistOutcome",
    "RequestSession",
    "SessionCountReport",
    "SessionManager",
    "SessionManagerConfig",
    "SessionStats",
]
