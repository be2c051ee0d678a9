"""Deterministic in-memory telemetry store.

This is the only component allowed to merge incoming state deltas.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from apissense.models import (
    AtmosphereReading,
    ExternalClimate,
    FlowCounters,
    ScaleReading,
    StorageVolume,
    SystemStatus,
    VocReading,
)
from apissense.models._base import TelemetryModel
from apissense.state.events import IngestionSource, StateDelta, StateSection

_logger = logging.getLogger(__name__)

# Session-start values for the well-known rig volumes.
_DEFAULT_VOLUMES: dict[str, tuple[float, float]] = {
    "sd1": (4.2, 32.0),
    "sd2": (12.8, 32.0),
}
_FALLBACK_VOLUME_TOTAL_GB = 32.0

_SECTION_ATTRS: dict[StateSection, str] = {
    StateSection.SYSTEM: "system",
    StateSection.SCALE: "scale",
    StateSection.FLOW: "flow",
    StateSection.ATMOSPHERE: "atmosphere",
    StateSection.EXTERNAL: "external",
    StateSection.VOC: "voc",
}


class TelemetrySnapshot(BaseModel):
    """Immutable view of every entity at one point in time."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    system: SystemStatus
    scale: ScaleReading
    flow: FlowCounters
    atmosphere: AtmosphereReading
    external: ExternalClimate
    voc: VocReading

    @property
    def net_weight_kg(self) -> float:
        return self.scale.net_weight_kg

    @property
    def net_flow(self) -> int:
        return self.flow.net

    def section(self, section: StateSection) -> TelemetryModel:
        model: TelemetryModel = getattr(self, _SECTION_ATTRS[section])
        return model


def default_snapshot(volume_names: Sequence[str] = ("sd1", "sd2")) -> TelemetrySnapshot:
    """Build the session-start state."""
    volumes = []
    for name in volume_names:
        used, total = _DEFAULT_VOLUMES.get(name, (0.0, _FALLBACK_VOLUME_TOTAL_GB))
        volumes.append(StorageVolume(name=name, used_gb=used, total_gb=total))
    return TelemetrySnapshot(
        system=SystemStatus(battery_percent=100.0, is_charging=False, storage_volumes=volumes),
        scale=ScaleReading(raw_kg=1.5, tare_kg=0.0, is_calibrating=False),
        flow=FlowCounters(count_in=450, count_out=412),
        atmosphere=AtmosphereReading(co2_ppm=650.0, temperature_c=34.2, humidity_pct=60.0),
        external=ExternalClimate(temperature_c=28.5, humidity_pct=45.0),
        voc=VocReading(index=150.0),
    )


Listener = Callable[[TelemetrySnapshot, StateDelta], None]


class TelemetryStore:
    """In-memory owner of the rig's telemetry entities.

    Deltas are applied all-or-nothing: every touched section is merged and
    validated first, and only then are the new values published together.
    Given the same sequence of deltas, the store produces the same
    snapshots.
    """

    def __init__(self, *, volume_names: Sequence[str] = ("sd1", "sd2")) -> None:
        self._volume_names = tuple(volume_names)
        self._lock = threading.RLock()
        self._state = default_snapshot(self._volume_names)
        self._listeners: list[Listener] = []

    @property
    def volume_names(self) -> tuple[str, ...]:
        return self._volume_names

    def snapshot(self) -> TelemetrySnapshot:
        """Return the current state. Snapshots are immutable."""
        with self._lock:
            return self._state

    def reset(self) -> None:
        """Reinitialize every entity to its session-start value.

        Listeners receive a ``DEFAULT`` delta covering every section.
        """
        with self._lock:
            state = default_snapshot(self._volume_names)
            self._state = state
        _logger.debug("Telemetry store reset to defaults")
        delta = StateDelta(
            source=IngestionSource.DEFAULT,
            patches={section: state.section(section).model_dump() for section in StateSection},
        )
        self._notify(state, delta)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for applied deltas; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def _remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _remove

    def _notify(self, snapshot: TelemetrySnapshot, delta: StateDelta) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot, delta)
            except Exception:
                _logger.warning("Telemetry listener %r failed", listener, exc_info=True)

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def apply(self, delta: StateDelta) -> bool:
        """Apply a normalized delta. Returns True if the state was updated."""
        if delta.is_empty:
            return False

        with self._lock:
            current = self._state
            updates: dict[str, Any] = {}
            try:
                for section, patch in delta.patches.items():
                    entity = current.section(section)
                    if section == StateSection.FLOW and delta.source == IngestionSource.MQTT:
                        self._log_counter_reset(current.flow, patch)
                    updates[_SECTION_ATTRS[section]] = entity.merged(patch)
            except ValidationError as exc:
                _logger.warning(
                    "Dropping delta from %s (topic=%s): %s",
                    delta.source,
                    delta.topic,
                    exc.errors(include_url=False),
                )
                return False

            state = current.model_copy(update=updates)
            self._state = state

        self._notify(state, delta)
        return True

    @staticmethod
    def _log_counter_reset(current: FlowCounters, patch: dict[str, Any]) -> None:
        # Counters only go down when the device was reset; accept and note it.
        for field, previous in (("count_in", current.count_in), ("count_out", current.count_out)):
            incoming = patch.get(field)
            if isinstance(incoming, int) and incoming < previous:
                _logger.info("Bee counter %s went from %s to %s; treating as device reset", field, previous, incoming)

    def _apply_fields(self, section: StateSection, source: IngestionSource, fields: dict[str, Any]) -> bool:
        return self.apply(StateDelta(source=source, patches={section: fields}))

    # ------------------------------------------------------------------
    # Per-entity updates
    # ------------------------------------------------------------------

    def update_system(self, *, source: IngestionSource = IngestionSource.COMMAND, **fields: Any) -> bool:
        return self._apply_fields(StateSection.SYSTEM, source, fields)

    def update_scale(self, *, source: IngestionSource = IngestionSource.COMMAND, **fields: Any) -> bool:
        return self._apply_fields(StateSection.SCALE, source, fields)

    def update_flow(self, *, source: IngestionSource = IngestionSource.COMMAND, **fields: Any) -> bool:
        return self._apply_fields(StateSection.FLOW, source, fields)

    def update_atmosphere(self, *, source: IngestionSource = IngestionSource.COMMAND, **fields: Any) -> bool:
        return self._apply_fields(StateSection.ATMOSPHERE, source, fields)

    def update_external(self, *, source: IngestionSource = IngestionSource.COMMAND, **fields: Any) -> bool:
        return self._apply_fields(StateSection.EXTERNAL, source, fields)

    def update_voc(self, *, source: IngestionSource = IngestionSource.COMMAND, **fields: Any) -> bool:
        return self._apply_fields(StateSection.VOC, source, fields)

    # ------------------------------------------------------------------
    # Local command effects
    # ------------------------------------------------------------------

    def capture_tare(self) -> float:
        """Use the current raw weight as the tare. Returns the captured tare."""
        with self._lock:
            tare = self._state.scale.raw_kg
            self.update_scale(tare_kg=tare)
        _logger.debug("Captured tare %.3f kg", tare)
        return tare

    def clear_tare(self) -> None:
        self.update_scale(tare_kg=0.0)

    def reset_flow(self) -> None:
        """Zero both bee counters."""
        self.update_flow(count_in=0, count_out=0)

    def set_calibrating(self, calibrating: bool) -> None:
        self.update_scale(is_calibrating=calibrating)
