"""Helpers shared by the ``from_dict`` constructors."""

from typing import Mapping, Optional

_TRUE_STRINGS = {"1", "true", "yes", "y", "on"}


def first_present(data: Mapping[str, object], *keys: str, default: object = None) -> object:
    """Return the value of the first key present with a non-None value.

    Records arrive either in snake_case or in the camelCase used by the
    booking-source and accounting integrations, so lookups try both.
    """
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def parse_bool(value: object, default: bool = False) -> bool:
    """Interpret database and JSON truthiness (1, "1", "true", True)."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_STRINGS


def optional_int(value: object) -> Optional[int]:
    """Convert an id to int, keeping None and blank strings as None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return int(value)  # type: ignore[arg-type]
