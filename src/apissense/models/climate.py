"""Internal atmosphere (CO2 sensor) and external climate models."""

from __future__ import annotations

from apissense.models._base import NonNegativeFloat, Percent, TelemetryModel


class AtmosphereReading(TelemetryModel):
    """In-hive CO2, temperature and relative humidity."""

    co2_ppm: NonNegativeFloat = 0.0
    temperature_c: float = 0.0
    humidity_pct: Percent = 0.0


class ExternalClimate(TelemetryModel):
    """Ambient temperature and relative humidity outside the hive."""

    temperature_c: float = 0.0
    humidity_pct: Percent = 0.0
