"""Telemetry state models."""

from apissense.models.climate import AtmosphereReading, ExternalClimate
from apissense.models.flow import FlowCounters
from apissense.models.scale import ScaleReading
from apissense.models.system import StorageVolume, SystemStatus
from apissense.models.voc import RiskTier, VocReading, classify_risk

__all__ = [
    "AtmosphereReading",
    "ExternalClimate",
    "FlowCounters",
    "RiskTier",
    "ScaleReading",
    "StorageVolume",
    "SystemStatus",
    "VocReading",
    "classify_risk",
]
