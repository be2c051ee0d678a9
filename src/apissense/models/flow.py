"""Bee-traffic counter model."""

from __future__ import annotations

from apissense.models._base import NonNegativeCount, TelemetryModel


class FlowCounters(TelemetryModel):
    count_in: NonNegativeCount = 0
    count_out: NonNegativeCount = 0

    @property
    def net(self) -> int:
        """Bees in minus bees out; negative when more left than returned."""
        return self.count_in - self.count_out
