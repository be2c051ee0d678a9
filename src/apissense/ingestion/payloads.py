"""Per-topic payload models.

Each model describes the latest payload convention of one rig topic. All
fields default to ``None``; a field is *present* when it is not ``None``,
so an explicit ``0`` is a reading and a missing key is not. Values that
cannot be coerced to the field type become ``None`` instead of failing the
whole payload.

Older producers used different key names for the same readings. Those are
accepted as deprecated aliases and logged once per model and key.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from apissense._constants import GRAMS_PER_KG
from apissense.ingestion.normalize import is_truthy_number, safe_bool, safe_float, safe_int

_logger = logging.getLogger(__name__)

_warned_aliases: set[tuple[str, str]] = set()


def _sub_object(value: Any) -> Any:
    return value if isinstance(value, dict) else None


Reading = Annotated[float | None, BeforeValidator(safe_float)]
Count = Annotated[int | None, BeforeValidator(safe_int)]
Flag = Annotated[bool | None, BeforeValidator(safe_bool)]


def _warn_deprecated(model: str, old_key: str, new_key: str) -> None:
    marker = (model, old_key)
    if marker in _warned_aliases:
        return
    _warned_aliases.add(marker)
    _logger.warning("%s: key %r is deprecated, publish %r instead", model, old_key, new_key)


class RigPayload(BaseModel):
    """Base for rig payload models."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {}
    """``{"deprecated_key": "canonical_key"}`` renames applied before validation."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _apply_key_aliases(cls, values: Any) -> Any:
        if not isinstance(values, dict) or not cls._KEY_ALIASES:
            return values
        working = dict(values)
        for old_key, new_key in cls._KEY_ALIASES.items():
            if old_key in working:
                _warn_deprecated(cls.__name__, old_key, new_key)
                if working.get(new_key) is None:
                    working[new_key] = working[old_key]
                del working[old_key]
        return working

    def present(self) -> dict[str, Any]:
        """Fields carried by the payload, keyed by field name."""
        return self.model_dump(exclude_none=True)


class SystemPayload(RigPayload):
    """``{"battery": 90, "charging": true, "sd1_used": 4, "sd1_total": 32, ...}``"""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    battery: Reading = None
    charging: Flag = None

    def volume(self, name: str) -> tuple[float, float] | None:
        """Return ``(used_gb, total_gb)`` for *name* if both are present and non-zero.

        A volume with a non-positive total or a negative used value is
        skipped so the rest of the message still applies.
        """
        extra = self.model_extra or {}
        used = safe_float(extra.get(f"{name}_used"))
        total = safe_float(extra.get(f"{name}_total"))
        if used is None or total is None or not (is_truthy_number(used) and is_truthy_number(total)):
            return None
        if total <= 0 or used < 0:
            _logger.warning("Ignoring out-of-range storage volume %s: used=%s total=%s", name, used, total)
            return None
        return used, total


class LoadCellPayload(RigPayload):
    """``{"weight": 15250}`` with the weight in grams.

    The first producers sent ``{"raw": 15.25, "tare": 0.25}`` in
    kilograms. ``raw`` is still read when ``weight`` is missing; ``tare``
    is ignored because the tare is owned by the dashboard.
    """

    weight: Reading = None
    raw: Reading = None

    @property
    def raw_kg(self) -> float | None:
        if self.weight is not None:
            return self.weight / GRAMS_PER_KG
        if self.raw is not None:
            _warn_deprecated(type(self).__name__, "raw", "weight")
            return self.raw
        return None


class BeeCountPayload(RigPayload):
    """``{"in": 10, "out": 5}``"""

    count_in: Count = Field(default=None, alias="in")
    count_out: Count = Field(default=None, alias="out")


class AtmospherePayload(RigPayload):
    """``{"co2": 600, "temperature": 34.5, "humidity": 60}``"""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {"temp": "temperature", "hum": "humidity"}

    co2: Reading = None
    temperature: Reading = None
    humidity: Reading = None


class ExternalClimatePayload(RigPayload):
    """``{"temperature": 28.5, "humidity": 45}``"""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {"temp": "temperature", "hum": "humidity"}

    temperature: Reading = None
    humidity: Reading = None


class ConsolidatedPayload(RigPayload):
    """``{"bees": {...}, "atmosphere": {...}, "voc": 400}`` on the ``all`` topic.

    ``voc`` may be an object with ``index``, a bare number or a numeric
    string. Scale sub-objects are parsed by nobody: weight on this topic
    is not trusted.
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {"scd41": "atmosphere"}
    INERT_KEYS: ClassVar[tuple[str, ...]] = ("loadcell", "loadcell1", "scale", "weight")

    bees: Annotated[BeeCountPayload | None, BeforeValidator(_sub_object)] = None
    atmosphere: Annotated[AtmospherePayload | None, BeforeValidator(_sub_object)] = None
    voc: Any = None
