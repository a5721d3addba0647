"""Utility functions for BlogDB.

This module provides helpers for Unix timestamps, identifier generation,
lenient coercion of pagination input, and LIKE-pattern escaping.
"""

import time
import uuid
from collections.abc import Iterable
from typing import Any


def unix_now() -> int:
    """Get current time as whole Unix seconds.

    Example:
        >>> isinstance(unix_now(), int)
        True
    """
    return int(time.time())


def new_uid() -> str:
    """Generate a new opaque identifier (UUID4 string)."""
    return str(uuid.uuid4())


# Largest value a SQLite INTEGER (and a PostgreSQL BIGINT) can hold
MAX_SQL_INTEGER = 2**63 - 1


def coerce_positive_int(value: Any, default: int) -> int:
    """Parse a positive integer, falling back to ``default``.

    Accepts ints, whole-number floats (``2.0``) and numeric strings
    (``"3"``, ``"3.0"``). Anything else (None, non-numeric text, fractions,
    zero, negatives, booleans) yields the default.

    Example:
        >>> coerce_positive_int("3", 1)
        3
        >>> coerce_positive_int(2.0, 1)
        2
        >>> coerce_positive_int("abc", 1)
        1
        >>> coerce_positive_int(-2, 10)
        10
    """
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, int):
        parsed = value
    else:
        text = str(value).strip()
        try:
            parsed = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return default
            if not number.is_integer():
                return default
            parsed = int(number)
    return parsed if parsed >= 1 else default


def dedupe(items: Iterable[str]) -> list[str]:
    """Drop repeated items, keeping first-seen order.

    Example:
        >>> dedupe(["b", "a", "b"])
        ['b', 'a']
    """
    return list(dict.fromkeys(items))


LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so ``term`` matches literally.

    Example:
        >>> escape_like("100%_off")
        '100\\\\%\\\\_off'
    """
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
