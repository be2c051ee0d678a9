"""Load-cell (hive scale) model."""

from __future__ import annotations

from apissense.models._base import TelemetryModel


class ScaleReading(TelemetryModel):
    """Raw scale weight and the tare captured by the user, in kilograms."""

    raw_kg: float = 0.0
    tare_kg: float = 0.0
    is_calibrating: bool = False

    @property
    def net_weight_kg(self) -> float:
        """Raw minus tare, never negative."""
        return max(0.0, self.raw_kg - self.tare_kg)
