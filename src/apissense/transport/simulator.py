"""Local random-walk simulator.

Stands in for the broker when no rig is reachable. Each tick nudges the
atmosphere, VOC index, scale and battery by a bounded random step and
writes the result straight into the store as one delta, so the renderer
sees the same kind of updates as in live mode.
"""

from __future__ import annotations

import logging
import random
import threading

from apissense._constants import COMMAND_SUFFIX, TOPIC_BEECOUNT, VOC_INDEX_MAX, VOC_INDEX_MIN, topic_for
from apissense.commands import DeviceCommand
from apissense.models._base import clamp
from apissense.state.events import IngestionSource, StateDelta, StateSection
from apissense.state.store import TelemetrySnapshot, TelemetryStore
from apissense.transport.base import (
    ConnectCallback,
    ErrorCallback,
    MessageCallback,
    TransportAdapter,
    TransportHandle,
)

_logger = logging.getLogger(__name__)

# Full width of each uniform step; the walk moves by (r - 0.5) * width.
CO2_STEP_PPM = 10.0
TEMPERATURE_STEP_C = 0.1
HUMIDITY_STEP_PCT = 0.5
VOC_STEP = 5.0
SCALE_NOISE_KG = 0.002
BATTERY_DRAIN_PERCENT = 0.1
BATTERY_DRAIN_CHANCE = 0.05


def simulate_step(snapshot: TelemetrySnapshot, rng: random.Random) -> StateDelta:
    """Compute one simulator tick from the current state."""

    def jitter(width: float) -> float:
        return (rng.random() - 0.5) * width

    atmosphere = snapshot.atmosphere
    patches: dict[StateSection, dict[str, float]] = {
        StateSection.ATMOSPHERE: {
            "co2_ppm": atmosphere.co2_ppm + jitter(CO2_STEP_PPM),
            "temperature_c": atmosphere.temperature_c + jitter(TEMPERATURE_STEP_C),
            "humidity_pct": atmosphere.humidity_pct + jitter(HUMIDITY_STEP_PCT),
        },
        StateSection.VOC: {
            "index": clamp(snapshot.voc.index + jitter(VOC_STEP), VOC_INDEX_MIN, VOC_INDEX_MAX),
        },
        StateSection.SCALE: {
            "raw_kg": snapshot.scale.raw_kg + jitter(SCALE_NOISE_KG),
        },
    }
    if rng.random() > 1.0 - BATTERY_DRAIN_CHANCE:
        patches[StateSection.SYSTEM] = {
            "battery_percent": max(0.0, snapshot.system.battery_percent - BATTERY_DRAIN_PERCENT),
        }
    return StateDelta(source=IngestionSource.SIMULATOR, patches=patches)


class SimulatorTransport(TransportAdapter):
    """Timer-driven producer writing simulated readings into *store*.

    ``publish`` loops device commands back locally: a ``RESET`` on the
    bee-count command topic zeroes the counters.
    """

    name = "simulator"

    def __init__(
        self,
        store: TelemetryStore,
        *,
        interval: float = 1.5,
        prefix: str = "apissense",
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._interval = interval
        self._rng = rng or random.Random()
        self._reset_topic = topic_for(prefix, TOPIC_BEECOUNT, COMMAND_SUFFIX)
        self._handle: TransportHandle | None = None
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        # Serializes ticks against stop() so no tick lands after stop returns.
        # Reentrant: a listener notified from a tick may stop the simulator.
        self._tick_lock = threading.RLock()

    @property
    def is_connected(self) -> bool:
        return self._handle is not None and self._handle.active

    def start(
        self,
        on_message: MessageCallback,
        on_connect: ConnectCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> TransportHandle:
        """Start ticking. *on_message* is unused: ticks bypass the router."""
        if self._handle is not None:
            self.stop(self._handle)

        handle = TransportHandle(self.name)
        stop_event = threading.Event()
        self._handle = handle
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._run,
            args=(handle, stop_event),
            name="apissense-simulator",
            daemon=True,
        )
        _logger.info("Simulator started (interval=%.2fs)", self._interval)
        self._thread.start()
        handle.guard(on_connect)()
        return handle

    def tick(self, handle: TransportHandle) -> bool:
        """Apply one simulated step if *handle* is still live."""
        with self._tick_lock:
            if not handle.active:
                return False
            delta = simulate_step(self._store.snapshot(), self._rng)
            return self._store.apply(delta)

    def _run(self, handle: TransportHandle, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval):
            try:
                self.tick(handle)
            except Exception:
                _logger.warning("Simulator tick failed", exc_info=True)

    def stop(self, handle: TransportHandle) -> None:
        with self._tick_lock:
            handle.deactivate()
        if handle is not self._handle:
            return
        self._stop_event.set()
        thread = self._thread
        self._thread = None
        self._handle = None
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        _logger.info("Simulator stopped")

    def publish(self, topic: str, payload: str | bytes) -> bool:
        if not self.is_connected:
            _logger.warning("Simulator not running; dropping publish to %s", topic)
            return False
        message = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
        if topic == self._reset_topic and message.strip().upper() == DeviceCommand.RESET:
            self._store.reset_flow()
            _logger.debug("Simulator handled %s locally", message)
        else:
            _logger.debug("Simulator ignoring command %s on %s", message, topic)
        return True
