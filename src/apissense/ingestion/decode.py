"""Payload decoding.

A broker message body is decoded by an ordered list of strategies. The
first strategy that succeeds wins; when none does, the caller receives a
:class:`DecodeFailure` instead of an exception.

Object decoding is always tried first. Topics whose consumer accepts a
bare scalar (the VOC family) additionally try, in order:

1. ``json_number`` - the body is a JSON number, or a JSON string that
   holds one (``150``, ``"150"``);
2. ``numeric_text`` - the numeric prefix of the raw text (``150 idx``).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from apissense._redact import redact_for_log
from apissense.exceptions import ApisSenseDecodeError
from apissense.ingestion.normalize import parse_leading_float, safe_float

_logger = logging.getLogger(__name__)

RawPayload = bytes | bytearray | str | int | float


@dataclass(frozen=True)
class Decoded:
    """Successful decode: a JSON object or a bare number."""

    topic: str
    value: dict[str, Any] | float
    strategy: str

    ok = True

    @property
    def is_object(self) -> bool:
        return isinstance(self.value, dict)


@dataclass(frozen=True)
class DecodeFailure:
    """Every strategy failed. Carried for diagnostics only."""

    topic: str
    raw: RawPayload
    reason: str

    ok = False


DecodeResult = Decoded | DecodeFailure
Strategy = Callable[[RawPayload], Any]


def _as_text(raw: RawPayload) -> str:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8", errors="replace")
    return str(raw)


def _load_json(raw: RawPayload) -> Any:
    try:
        return json.loads(_as_text(raw))
    except ValueError as exc:
        raise ApisSenseDecodeError(f"not JSON: {exc}") from exc
    except RecursionError as exc:
        raise ApisSenseDecodeError("JSON nested too deeply") from exc


def _json_object(raw: RawPayload) -> dict[str, Any]:
    if isinstance(raw, (int, float)):
        raise ApisSenseDecodeError("payload is a bare number")
    parsed = _load_json(raw)
    if not isinstance(parsed, dict):
        raise ApisSenseDecodeError(f"JSON is {type(parsed).__name__}, not an object")
    return parsed


def _json_number(raw: RawPayload) -> float:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        parsed: Any = raw
    else:
        parsed = _load_json(raw)
    if isinstance(parsed, bool):
        raise ApisSenseDecodeError("JSON boolean is not a reading")
    number: float | None = None
    if isinstance(parsed, (int, float)):
        number = safe_float(parsed)
    elif isinstance(parsed, str):
        number = parse_leading_float(parsed)
    if number is None:
        raise ApisSenseDecodeError(f"JSON {type(parsed).__name__} is not numeric")
    return number


def _numeric_text(raw: RawPayload) -> float:
    number = parse_leading_float(_as_text(raw))
    if number is None:
        raise ApisSenseDecodeError("text has no numeric prefix")
    return number


OBJECT_STRATEGIES: tuple[tuple[str, Strategy], ...] = (("json_object", _json_object),)
SCALAR_STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    *OBJECT_STRATEGIES,
    ("json_number", _json_number),
    ("numeric_text", _numeric_text),
)


def decode(topic: str, raw: RawPayload, *, expect_scalar: bool = False) -> DecodeResult:
    """Decode *raw* for *topic*. Never raises."""
    strategies = SCALAR_STRATEGIES if expect_scalar else OBJECT_STRATEGIES
    reasons: list[str] = []
    for name, strategy in strategies:
        try:
            value = strategy(raw)
        except ApisSenseDecodeError as exc:
            reasons.append(f"{name}: {exc}")
            continue
        except Exception as exc:
            reasons.append(f"{name}: {type(exc).__name__}: {exc}")
            continue
        return Decoded(topic=topic, value=value, strategy=name)

    failure = DecodeFailure(topic=topic, raw=raw, reason="; ".join(reasons))
    _logger.warning(
        "Undecodable payload on %s (%s): %s",
        topic,
        failure.reason,
        redact_for_log(raw),
    )
    return failure


def coerce_index(value: Any) -> float | None:
    """Read a VOC-style reading from an already-decoded value.

    Accepts ``{"index": n}``, a bare number, or a numeric string, in that
    order. Returns ``None`` when none applies.
    """
    if isinstance(value, dict):
        return coerce_index(value["index"]) if "index" in value else None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return safe_float(value)
    if isinstance(value, str):
        return parse_leading_float(value)
    return None
