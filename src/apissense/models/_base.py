"""Base model and shared field types for rig telemetry entities.

Every entity inherits from :class:`TelemetryModel` which provides:

* frozen instances, so a snapshot handed to a renderer never changes
  underneath it;
* :meth:`TelemetryModel.merged`, the only way the store produces the
  next value of an entity from a normalized patch.

Range invariants live on the field types below and are enforced on
every validation, including merges.
"""

from __future__ import annotations

from typing import Annotated, Any, Self

from pydantic import AfterValidator, BaseModel, ConfigDict


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp *value* into ``[lower, upper]``."""
    return max(lower, min(upper, value))


def _clamp_percent(value: float) -> float:
    return clamp(value, 0.0, 100.0)


def _non_negative_float(value: float) -> float:
    return 0.0 if value < 0 else value


def _non_negative_int(value: int) -> int:
    return 0 if value < 0 else value


Percent = Annotated[float, AfterValidator(_clamp_percent)]
"""Float clamped to ``[0, 100]``."""

NonNegativeFloat = Annotated[float, AfterValidator(_non_negative_float)]
"""Float floored at ``0``."""

NonNegativeCount = Annotated[int, AfterValidator(_non_negative_int)]
"""Integer counter floored at ``0``."""


class TelemetryModel(BaseModel):
    """Base for rig telemetry entities."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def merged(self, patch: dict[str, Any]) -> Self:
        """Return a validated copy with *patch* applied.

        Keys absent from *patch* keep their current value. Raises
        :class:`pydantic.ValidationError` when the result violates a
        field constraint.
        """
        if not patch:
            return self
        return type(self).model_validate({**self.model_dump(), **patch})
