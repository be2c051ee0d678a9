"""Normalization helpers.

Centralizes defensive numeric parsing of rig payload values.
"""

from __future__ import annotations

import math
import re
from typing import Any

# Longest numeric prefix, the way a lenient float parser reads "75.2ppm".
_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def safe_float(value: Any) -> float | None:
    """Coerce *value* to a finite float, or ``None`` if it is not numeric.

    Booleans are rejected: a ``true`` where a reading belongs is a producer
    bug, not ``1.0``.
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
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return None


def parse_leading_float(text: str) -> float | None:
    """Parse the numeric prefix of *text* (``"150 idx"`` -> ``150.0``)."""
    match = _LEADING_NUMBER.match(text)
    if match is None:
        return None
    return safe_float(match.group(1))


def is_truthy_number(value: float | None) -> bool:
    """Return True for present, non-zero numbers."""
    return value is not None and value != 0
