"""Normalization helpers.

Centralizes numeric coercion at the adapter boundary: a value that is not a
finite number never becomes a reading.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any


def safe_float(value: Any) -> float | None:
    """Parse *value* as a finite float, or return ``None``.

    Booleans are rejected even though ``float(True)`` succeeds.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(result):
        return None
    return result


def numeric_fields(obj: Any) -> list[tuple[str, float]]:
    """Return ``(key, value)`` for every top-level scalar number in *obj*.

    Strings are not coerced: ``{"a": "1"}`` yields nothing, matching the
    JSON type of the field rather than its text.
    """
    if not isinstance(obj, Mapping):
        return []
    fields: list[tuple[str, float]] = []
    for key, value in obj.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        try:
            number = float(value)
        except OverflowError:
            # Integer literal too large for a float.
            continue
        if math.isfinite(number):
            fields.append((str(key), number))
    return fields


def shorten_for_log(text: str, *, max_length: int = 200) -> str:
    """Trim a raw input line so it can be attached to a log record."""
    text = text.rstrip("\r\n")
    if len(text) > max_length:
        return f"{text[:max_length]}…<truncated>"
    return text
