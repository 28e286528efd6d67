"""Tagged JSON variant used for session data and flash values.

Session values are restricted to what survives a JSON round trip unchanged:
null, booleans, integers, finite floats, strings, lists and string-keyed
objects. Values are validated and copied when written, so a handler can
never hold a reference into the record's internal state.
"""

import math
from typing import Any

type SessionValue = (
    None | bool | int | float | str | list[SessionValue] | dict[str, SessionValue]
)


def ensure_session_value(value: Any, *, path: str = "$") -> SessionValue:
    """Validate a value and return a detached copy.

    Tuples are converted to lists (JSON has no tuple type).

    Args:
        value: Candidate value.
        path: Location used in error messages (for nested values).

    Returns:
        A deep copy of value made only of SessionValue variants.

    Raises:
        TypeError: If the value (or a nested value) has an unsupported type
            or a dict has a non-string key.
        ValueError: If a float is NaN or infinite.

    Example:
        >>> ensure_session_value({"items": ("a", "b")})
        {'items': ['a', 'b']}
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Session value at {path} must be a finite number")
        return value
    if isinstance(value, (list, tuple)):
        return [
            ensure_session_value(item, path=f"{path}[{index}]")
            for index, item in enumerate(value)
        ]
    if isinstance(value, dict):
        copied: dict[str, SessionValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(
                    f"Session value at {path} has non-string key {key!r}"
                )
            copied[key] = ensure_session_value(item, path=f"{path}.{key}")
        return copied
    raise TypeError(
        f"Unsupported session value type at {path}: {type(value).__name__}"
    )


def copy_session_value(value: SessionValue) -> SessionValue:
    """Return a detached copy of an already-validated value."""
    if isinstance(value, list):
        return [copy_session_value(item) for item in value]
    if isinstance(value, dict):
        return {key: copy_session_value(item) for key, item in value.items()}
    return value
