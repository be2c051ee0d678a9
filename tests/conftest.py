from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import paho.mqtt.client as mqtt
import pytest
from paho.mqtt.packettypes import PacketTypes
from paho.mqtt.reasoncodes import ReasonCode

from apissense.state.store import TelemetryStore


class FakeMessageInfo:
    def __init__(self, rc: int = 0, *, acknowledged: bool = True) -> None:
        self.rc = rc
        self.acknowledged = acknowledged
        self.waited = False

    def wait_for_publish(self, timeout: float | None = None) -> None:
        self.waited = True

    def is_published(self) -> bool:
        return self.acknowledged


class FakeMqttClient:
    """Stand-in for ``paho.mqtt.client.Client`` that never touches the network."""

    instances: list[FakeMqttClient] = []
    publish_acknowledged = True

    def __init__(self, callback_api_version: Any = None, client_id: str = "", **kwargs: Any) -> None:
        self.callback_api_version = callback_api_version
        self.client_id = client_id
        self.kwargs = kwargs
        self.ws_path: str | None = None
        self.credentials: tuple[str, str | None] | None = None
        self.reconnect_delay: tuple[int, int] | None = None
        self.connect_timeout: float | None = None
        self.connected_to: tuple[str, int, int] | None = None
        self.subscriptions: list[tuple[str, int]] = []
        self.published: list[tuple[str, Any, int]] = []
        self.publish_rc = 0
        self.loop_started = False
        self.loop_stopped = False
        self.disconnected = False
        FakeMqttClient.instances.append(self)

    def enable_logger(self, logger: Any = None) -> None:
        pass

    def ws_set_options(self, path: str = "/mqtt", headers: Any = None) -> None:
        self.ws_path = path

    def username_pw_set(self, username: str, password: str | None = None) -> None:
        self.credentials = (username, password)

    def reconnect_delay_set(self, min_delay: int = 1, max_delay: int = 120) -> None:
        self.reconnect_delay = (min_delay, max_delay)

    def connect_async(self, host: str, port: int = 1883, keepalive: int = 60) -> None:
        self.connected_to = (host, port, keepalive)

    def connect(self, host: str, port: int = 1883, keepalive: int = 60) -> int:
        self.connected_to = (host, port, keepalive)
        return 0

    def loop_start(self) -> None:
        self.loop_started = True

    def loop_stop(self) -> None:
        self.loop_stopped = True

    def disconnect(self) -> None:
        self.disconnected = True

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscriptions.append((topic, qos))

    def publish(self, topic: str, payload: Any = None, qos: int = 0, retain: bool = False) -> FakeMessageInfo:
        self.published.append((topic, payload, qos))
        return FakeMessageInfo(self.publish_rc, acknowledged=self.publish_acknowledged)

    # Helpers driving the registered callbacks the way paho's thread would.

    def fire_connect(self, rc: int = 0) -> None:
        self.on_connect(self, None, None, ReasonCode(PacketTypes.CONNACK, identifier=rc), None)

    def fire_disconnect(self, rc: int = 0) -> None:
        self.on_disconnect(self, None, None, ReasonCode(PacketTypes.DISCONNECT, identifier=rc), None)

    def fire_message(self, topic: str, payload: bytes) -> None:
        self.on_message(self, None, SimpleNamespace(topic=topic, payload=payload))


@pytest.fixture
def fake_mqtt(monkeypatch: pytest.MonkeyPatch) -> type[FakeMqttClient]:
    FakeMqttClient.instances.clear()
    monkeypatch.setattr(mqtt, "Client", FakeMqttClient)
    return FakeMqttClient


@pytest.fixture
def store() -> TelemetryStore:
    return TelemetryStore()
