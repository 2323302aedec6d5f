"""Coercion of loosely typed caller-supplied values.

Clients send flags as JSON booleans, numbers, or strings (``"true"``,
``"1"``, ``"yes"``). Every flag is parsed through ``truthy`` so that the
accepted set is the same everywhere.
"""

import re
from typing import Any

TRUTHY_LITERALS = frozenset({"true", "1", "yes", "y", "t", "on"})

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kmgt]?i?b?)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {
    "": 1,
    "b": 1,
    "k": 1024,
    "kb": 1024,
    "kib": 1024,
    "m": 1024**2,
    "mb": 1024**2,
    "mib": 1024**2,
    "g": 1024**3,
    "gb": 1024**3,
    "gib": 1024**3,
    "t": 1024**4,
    "tb": 1024**4,
    "tib": 1024**4,
}


def truthy(value: Any) -> bool:
    """Return True if value is one of the accepted "true" literals.

    Accepted: the bool ``True``, the integer ``1``, and the strings in
    ``TRUTHY_LITERALS`` (case-insensitive, surrounding whitespace ignored).
    Anything else, including None, is False.

    Args:
        value: The raw flag value

    Returns:
        The coerced boolean
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_LITERALS
    return False


def parse_size(value: str | int) -> int:
    """Parse a human readable byte size such as ``"25MB"`` into bytes.

    Units are binary (1KB = 1024 bytes).

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Size must not be negative, got {value}")
        return value

    match = _SIZE_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Invalid size: {value!r}")

    number, unit = match.groups()
    multiplier = _SIZE_UNITS.get((unit or "").lower())
    if multiplier is None:
        raise ValueError(f"Invalid size unit in {value!r}")
    return int(float(number) * multiplier)
