"""Helpers for raw submitted values."""

import math
from typing import Any


class _Missing:
    """Sentinel for a field with no entry in the value set"""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def is_absent(value: Any) -> bool:
    return value is MISSING or value is None or value == ""


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def coerce_number(value: Any) -> Any:
    """Numeric strings become int/float; anything else is returned unchanged"""
    if not isinstance(value, str):
        return value
    text = value.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return value
    return number if math.isfinite(number) else value
