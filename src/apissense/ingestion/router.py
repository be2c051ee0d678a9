"""Topic router.

Maps an incoming ``(topic, payload)`` pair to a :class:`StateDelta` and
applies it to the store. Topics are matched by exact string against a
binding table; each binding owns one reducer and nothing else, so bindings
can be added or replaced without touching unrelated topics.

Reducers are pure: they read the decoded payload and return per-section
patches containing only the fields the payload actually carries. The store
keeps every other field as it was.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from apissense._constants import (
    DEFAULT_TOPIC_PREFIX,
    TOPIC_ALL,
    TOPIC_ATMOSPHERE,
    TOPIC_BEECOUNT,
    TOPIC_EXTERNAL,
    TOPIC_LOADCELL,
    TOPIC_SYSTEM,
    TOPIC_VOC,
    topic_for,
)
from apissense._redact import redact_for_log
from apissense.ingestion.decode import Decoded, RawPayload, coerce_index, decode
from apissense.ingestion.payloads import (
    AtmospherePayload,
    BeeCountPayload,
    ConsolidatedPayload,
    ExternalClimatePayload,
    LoadCellPayload,
    SystemPayload,
)
from apissense.state.events import IngestionSource, StateDelta, StateSection
from apissense.state.store import TelemetryStore

_logger = logging.getLogger(__name__)

Patches = dict[StateSection, dict[str, Any]]
Reducer = Callable[[Decoded], Patches]


@dataclass(frozen=True)
class TopicBinding:
    """One row of the routing table."""

    suffix: str
    reducer: Reducer
    expect_scalar: bool = False


# ------------------------------------------------------------------
# Reducers
# ------------------------------------------------------------------


def _object_value(decoded: Decoded) -> dict[str, Any]:
    return decoded.value if isinstance(decoded.value, dict) else {}


def reduce_system(decoded: Decoded, *, volume_names: Sequence[str]) -> Patches:
    payload = SystemPayload.model_validate(_object_value(decoded))
    patch: dict[str, Any] = {}
    if payload.battery is not None:
        patch["battery_percent"] = payload.battery
    if payload.charging is not None:
        patch["is_charging"] = payload.charging
    volumes = []
    for name in volume_names:
        reading = payload.volume(name)
        if reading is not None:
            used, total = reading
            volumes.append({"name": name, "used_gb": used, "total_gb": total})
    if volumes:
        patch["storage_volumes"] = volumes
    return {StateSection.SYSTEM: patch}


def reduce_load_cell(decoded: Decoded) -> Patches:
    payload = LoadCellPayload.model_validate(_object_value(decoded))
    raw_kg = payload.raw_kg
    if raw_kg is None:
        return {}
    return {StateSection.SCALE: {"raw_kg": raw_kg}}


def _flow_patch(payload: BeeCountPayload) -> dict[str, Any]:
    return payload.present()


def reduce_bee_count(decoded: Decoded) -> Patches:
    payload = BeeCountPayload.model_validate(_object_value(decoded))
    return {StateSection.FLOW: _flow_patch(payload)}


def _atmosphere_patch(payload: AtmospherePayload) -> dict[str, Any]:
    patch: dict[str, Any] = {}
    if payload.co2 is not None:
        patch["co2_ppm"] = payload.co2
    if payload.temperature is not None:
        patch["temperature_c"] = payload.temperature
    if payload.humidity is not None:
        patch["humidity_pct"] = payload.humidity
    return patch


def reduce_atmosphere(decoded: Decoded) -> Patches:
    payload = AtmospherePayload.model_validate(_object_value(decoded))
    return {StateSection.ATMOSPHERE: _atmosphere_patch(payload)}


def reduce_external_climate(decoded: Decoded) -> Patches:
    payload = ExternalClimatePayload.model_validate(_object_value(decoded))
    patch: dict[str, Any] = {}
    if payload.temperature is not None:
        patch["temperature_c"] = payload.temperature
    if payload.humidity is not None:
        patch["humidity_pct"] = payload.humidity
    return {StateSection.EXTERNAL: patch}


def reduce_voc(decoded: Decoded) -> Patches:
    index = coerce_index(decoded.value)
    if index is None:
        _logger.warning("Unknown VOC payload format on %s: %s", decoded.topic, redact_for_log(decoded.value))
        return {}
    return {StateSection.VOC: {"index": index}}


def reduce_consolidated(decoded: Decoded) -> Patches:
    raw = _object_value(decoded)
    payload = ConsolidatedPayload.model_validate(raw)
    patches: Patches = {}
    if payload.bees is not None:
        patches[StateSection.FLOW] = _flow_patch(payload.bees)
    if payload.atmosphere is not None:
        patches[StateSection.ATMOSPHERE] = _atmosphere_patch(payload.atmosphere)
    if payload.voc is not None:
        index = coerce_index(payload.voc)
        if index is None:
            _logger.warning("Unknown VOC format in %s: %s", decoded.topic, redact_for_log(payload.voc))
        else:
            patches[StateSection.VOC] = {"index": index}
    inert = [key for key in ConsolidatedPayload.INERT_KEYS if key in raw]
    if inert:
        _logger.debug("Ignoring inert keys %s on %s", inert, decoded.topic)
    return patches


def default_bindings(volume_names: Sequence[str] = ("sd1", "sd2")) -> list[TopicBinding]:
    """Build the standard routing table for the beehive rig."""
    return [
        TopicBinding(TOPIC_SYSTEM, functools.partial(reduce_system, volume_names=tuple(volume_names))),
        TopicBinding(TOPIC_LOADCELL, reduce_load_cell),
        TopicBinding(TOPIC_BEECOUNT, reduce_bee_count),
        TopicBinding(TOPIC_ATMOSPHERE, reduce_atmosphere),
        TopicBinding(TOPIC_VOC, reduce_voc, expect_scalar=True),
        TopicBinding(TOPIC_EXTERNAL, reduce_external_climate),
        TopicBinding(TOPIC_ALL, reduce_consolidated),
    ]


# ------------------------------------------------------------------
# Router
# ------------------------------------------------------------------


class TopicRouter:
    """Dispatch rig messages to reducers and apply the result to a store."""

    def __init__(
        self,
        store: TelemetryStore,
        *,
        prefix: str = DEFAULT_TOPIC_PREFIX,
        bindings: Iterable[TopicBinding] | None = None,
    ) -> None:
        self._store = store
        self._prefix = prefix
        self._bindings: dict[str, TopicBinding] = {}
        for binding in bindings if bindings is not None else default_bindings(store.volume_names):
            self.register(binding)

    @property
    def topics(self) -> list[str]:
        return sorted(self._bindings)

    def register(self, binding: TopicBinding) -> None:
        """Add or replace the binding for ``<prefix>/<binding.suffix>``."""
        self._bindings[topic_for(self._prefix, binding.suffix)] = binding

    def unregister(self, suffix: str) -> None:
        self._bindings.pop(topic_for(self._prefix, suffix), None)

    def binding_for(self, topic: str) -> TopicBinding | None:
        return self._bindings.get(topic)

    def route(self, topic: str, decoded: Decoded) -> StateDelta | None:
        """Map a decoded payload to a delta. ``None`` for unroutable topics."""
        binding = self._bindings.get(topic)
        if binding is None:
            _logger.debug("No binding for topic %s", topic)
            return None
        patches = binding.reducer(decoded)
        return StateDelta(
            source=IngestionSource.MQTT,
            topic=topic,
            patches=patches,
            raw=decoded.value,
        )

    def handle_message(self, topic: str, raw: RawPayload) -> bool:
        """Decode, route and apply one message. Returns True if state changed.

        Never raises: the dashboard keeps its last-known values instead.
        """
        binding = self._bindings.get(topic)
        if binding is None:
            _logger.debug("Ignoring message on unrouted topic %s", topic)
            return False

        try:
            decoded = decode(topic, raw, expect_scalar=binding.expect_scalar)
            if not isinstance(decoded, Decoded):
                return False
            delta = self.route(topic, decoded)
            if delta is None or delta.is_empty:
                _logger.debug("Message on %s carried no known fields", topic)
                return False
            _logger.debug("Routing %s -> %s", topic, sorted(delta.sections))
            return self._store.apply(delta)
        except Exception:
            _logger.warning("Failed to route message on %s", topic, exc_info=True)
            return False
