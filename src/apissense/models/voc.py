"""Volatile organic compound (VOC) model and risk classification."""

from __future__ import annotations

import enum
from typing import Annotated

from pydantic import AfterValidator, model_validator

from apissense._constants import VOC_HIGH_ABOVE, VOC_INDEX_MAX, VOC_INDEX_MIN, VOC_MEDIUM_ABOVE
from apissense.models._base import TelemetryModel, clamp


class RiskTier(enum.StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


def classify_risk(index: float) -> RiskTier:
    """Map a VOC index to its risk tier.

    High above 300, Medium above 100, Low otherwise.
    """
    if index > VOC_HIGH_ABOVE:
        return RiskTier.HIGH
    if index > VOC_MEDIUM_ABOVE:
        return RiskTier.MEDIUM
    return RiskTier.LOW


def _clamp_index(value: float) -> float:
    return clamp(value, VOC_INDEX_MIN, VOC_INDEX_MAX)


VocIndex = Annotated[float, AfterValidator(_clamp_index)]


class VocReading(TelemetryModel):
    """VOC index with its derived risk tier.

    ``risk_tier`` is recomputed from ``index`` on every validation, so a
    caller-supplied tier is always overwritten.
    """

    index: VocIndex = 0.0
    risk_tier: RiskTier = RiskTier.LOW

    @model_validator(mode="after")
    def _derive_risk_tier(self) -> VocReading:
        object.__setattr__(self, "risk_tier", classify_risk(self.index))
        return self
