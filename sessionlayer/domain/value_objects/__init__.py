"""Domain value objects."""

from sessionlayer.domain.value_objects.client_info import ClientInfo
from sessionlayer.domain.value_objects.fingerprint import UNKNOWN_IP_PREFIX, Fingerprint
from sessionlayer.domain.value_objects.session_value import (
    SessionValue,
    copy_session_value,
    ensure_session_value,
)

__all__ = [
    "ClientInfo",
    "Fingerprint",
    "SessionValue",
    "UNKNOWN_IP_PREFIX",
    "copy_session_value",
    "ensure_session_value",
]
