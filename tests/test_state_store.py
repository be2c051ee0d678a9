from __future__ import annotations

import logging
from datetime import datetime

import pytest

from apissense.models import RiskTier
from apissense.state.events import IngestionSource, StateDelta, StateSection
from apissense.state.store import TelemetrySnapshot, TelemetryStore, default_snapshot


def test_defaults() -> None:
    snapshot = TelemetryStore().snapshot()

    assert snapshot.system.battery_percent == 100
    assert [v.name for v in snapshot.system.storage_volumes] == ["sd1", "sd2"]
    assert snapshot.scale.raw_kg == 1.5
    assert snapshot.flow.count_in == 450
    assert snapshot.net_flow == 38
    assert snapshot.atmosphere.co2_ppm == 650
    assert snapshot.external.temperature_c == 28.5
    assert snapshot.voc.risk_tier == RiskTier.MEDIUM


def test_unknown_volume_names_get_placeholder_defaults() -> None:
    snapshot = default_snapshot(("logs",))
    volume = snapshot.system.volume("logs")
    assert volume is not None
    assert volume.used_gb == 0
    assert volume.total_gb > 0


def test_empty_delta_is_noop(store: TelemetryStore) -> None:
    before = store.snapshot()
    assert store.apply(StateDelta(source=IngestionSource.MQTT, patches={StateSection.FLOW: {}})) is False
    assert store.snapshot() is before


def test_delta_is_all_or_nothing(store: TelemetryStore, caplog: pytest.LogCaptureFixture) -> None:
    before = store.snapshot()
    delta = StateDelta(
        source=IngestionSource.MQTT,
        topic="apissense/all",
        patches={
            StateSection.FLOW: {"count_in": 1},
            StateSection.SYSTEM: {"storage_volumes": [{"name": "sd1", "total_gb": 0}]},
        },
    )

    with caplog.at_level(logging.WARNING, logger="apissense.state.store"):
        assert store.apply(delta) is False

    assert store.snapshot() == before
    assert "apissense/all" in caplog.text


def test_snapshot_is_not_changed_by_later_updates(store: TelemetryStore) -> None:
    first = store.snapshot()
    store.update_voc(index=480)
    assert first.voc.index == 150
    assert store.snapshot().voc.index == 480


def test_per_entity_updates(store: TelemetryStore) -> None:
    store.update_system(battery_percent=42.0, is_charging=True)
    store.update_scale(raw_kg=20.0)
    store.update_flow(count_out=10)
    store.update_atmosphere(co2_ppm=1200)
    store.update_external(humidity_pct=12)
    store.update_voc(index=301)

    snapshot = store.snapshot()
    assert snapshot.system.battery_percent == 42.0
    assert snapshot.system.is_charging is True
    assert snapshot.scale.raw_kg == 20.0
    assert snapshot.flow.count_out == 10
    assert snapshot.flow.count_in == 450
    assert snapshot.atmosphere.co2_ppm == 1200
    assert snapshot.external.humidity_pct == 12
    assert snapshot.voc.risk_tier == RiskTier.HIGH


def test_capture_and_clear_tare(store: TelemetryStore) -> None:
    store.update_scale(raw_kg=3.0)
    store.capture_tare()
    assert store.snapshot().net_weight_kg == 0

    store.update_scale(raw_kg=2.0)
    assert store.snapshot().net_weight_kg == 0

    store.clear_tare()
    assert store.snapshot().net_weight_kg == 2.0


def test_reset_flow_and_calibrating(store: TelemetryStore) -> None:
    store.reset_flow()
    store.set_calibrating(True)

    snapshot = store.snapshot()
    assert (snapshot.flow.count_in, snapshot.flow.count_out) == (0, 0)
    assert snapshot.scale.is_calibrating is True


def test_reset_restores_defaults(store: TelemetryStore) -> None:
    store.update_voc(index=499)
    store.reset_flow()
    store.reset()
    assert store.snapshot() == default_snapshot()


def test_lower_counter_from_device_is_accepted(store: TelemetryStore, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="apissense.state.store"):
        store.apply(StateDelta(source=IngestionSource.MQTT, patches={StateSection.FLOW: {"count_in": 2}}))

    assert store.snapshot().flow.count_in == 2
    assert "device reset" in caplog.text


def test_listeners_receive_snapshot_and_delta(store: TelemetryStore) -> None:
    seen: list[tuple[TelemetrySnapshot, StateDelta]] = []
    remove = store.add_listener(lambda snapshot, delta: seen.append((snapshot, delta)))

    store.update_flow(count_in=451)
    assert len(seen) == 1
    snapshot, delta = seen[0]
    assert snapshot.flow.count_in == 451
    assert delta.sections == frozenset({StateSection.FLOW})
    assert delta.source == IngestionSource.COMMAND

    remove()
    store.update_flow(count_in=452)
    assert len(seen) == 1


def test_failing_listener_does_not_break_store(store: TelemetryStore) -> None:
    def broken(_snapshot: TelemetrySnapshot, _delta: StateDelta) -> None:
        raise RuntimeError("render failed")

    calls: list[int] = []
    store.add_listener(broken)
    store.add_listener(lambda snapshot, _delta: calls.append(snapshot.flow.count_in))

    assert store.update_flow(count_in=460) is True
    assert calls == [460]


def test_delta_observed_at_is_tz_aware() -> None:
    delta = StateDelta(source=IngestionSource.SIMULATOR, observed_at=datetime(2026, 1, 1))
    assert delta.observed_at.tzinfo is not None
    assert delta.is_empty


def test_reset_notifies_listeners_with_defaults(store: TelemetryStore) -> None:
    seen: list[StateDelta] = []
    store.update_flow(count_in=0)
    store.add_listener(lambda _snapshot, delta: seen.append(delta))

    store.reset()

    assert len(seen) == 1
    assert seen[0].source == IngestionSource.DEFAULT
    assert seen[0].sections == frozenset(StateSection)
    assert store.snapshot().flow.count_in == 450
