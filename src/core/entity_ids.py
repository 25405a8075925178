"""Integer id coercion shared by indexing and templating."""

from __future__ import annotations

import re

_INTEGER_TEXT = re.compile(r"^[+-]?\d+$")


def parse_int_like(value: object) -> int | None:
    """Return the integer a scalar is or textually represents.

    Booleans are never ids. Floats count when integral. Strings must be
    plain base-10 integers, surrounding whitespace allowed.

    Args:
        value: Candidate scalar.

    Returns:
        Parsed integer, or None when the value is not integer-like.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER_TEXT.match(value.strip()):
        return int(value.strip())
    return None
