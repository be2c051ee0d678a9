from __future__ import annotations

import pytest

from apissense.commands import CommandChannel, DeviceCommand
from apissense.exceptions import ApisSenseCommandError
from apissense.state.store import TelemetryStore
from apissense.transport.base import TransportAdapter, TransportHandle


class _RecordingTransport(TransportAdapter):
    name = "recording"

    def __init__(self, *, connected: bool = True, accept: bool = True, explode: bool = False) -> None:
        self.connected = connected
        self.accept = accept
        self.explode = explode
        self.sent: list[tuple[str, str | bytes]] = []

    def start(self, on_message, on_connect=None, on_error=None) -> TransportHandle:  # pragma: no cover
        return TransportHandle(self.name)

    def stop(self, handle: TransportHandle) -> None:  # pragma: no cover
        handle.deactivate()

    def publish(self, topic: str, payload: str | bytes) -> bool:
        if self.explode:
            raise OSError("socket closed")
        self.sent.append((topic, payload))
        return self.accept

    @property
    def is_connected(self) -> bool:
        return self.connected


def test_tare_captures_locally_and_publishes(store: TelemetryStore) -> None:
    transport = _RecordingTransport()
    channel = CommandChannel(transport, store)
    store.update_scale(raw_kg=15.25)

    assert channel.tare() is True

    assert transport.sent == [("apissense/loadcell1/cmd", "TARE")]
    assert store.snapshot().scale.tare_kg == 15.25
    assert store.snapshot().net_weight_kg == 0


def test_reset_flow_publishes_reset_only(store: TelemetryStore) -> None:
    transport = _RecordingTransport()
    channel = CommandChannel(transport, store, prefix="hive7")

    assert channel.reset_flow() is True

    assert transport.sent == [("hive7/beecount/cmd", "RESET")]
    # The device publishes the zeroed counts itself.
    assert store.snapshot().flow.count_in == 450


def test_disconnected_transport_is_noop(store: TelemetryStore, caplog: pytest.LogCaptureFixture) -> None:
    transport = _RecordingTransport(connected=False)
    channel = CommandChannel(transport, store)

    assert channel.publish_command("apissense/beecount/cmd", "RESET") is False
    assert transport.sent == []
    assert "not connected" in caplog.text


def test_tare_still_captured_when_offline(store: TelemetryStore) -> None:
    channel = CommandChannel(_RecordingTransport(connected=False), store)
    store.update_scale(raw_kg=4.0)

    assert channel.tare() is False
    assert store.snapshot().scale.tare_kg == 4.0


def test_publish_errors_do_not_propagate(store: TelemetryStore) -> None:
    channel = CommandChannel(_RecordingTransport(explode=True), store)
    assert channel.publish_command("apissense/loadcell1/cmd", "TARE") is False


def test_rejected_publish_reports_false(store: TelemetryStore) -> None:
    transport = _RecordingTransport(accept=False)
    channel = CommandChannel(transport, store)
    assert channel.send("loadcell1", DeviceCommand.TARE) is False
    assert len(transport.sent) == 1


def test_device_command_parse() -> None:
    assert DeviceCommand.parse(" tare ") == DeviceCommand.TARE
    with pytest.raises(ApisSenseCommandError):
        DeviceCommand.parse("CALIBRATE")
