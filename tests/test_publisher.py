from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from apissense._tools.publisher import build_test_messages, publish_test_data
from apissense.config import DashboardConfig
from apissense.exceptions import ApisSenseTransportError

if TYPE_CHECKING:
    from conftest import FakeMqttClient


def test_build_test_messages() -> None:
    messages = build_test_messages("hive7")
    assert [topic for topic, _ in messages] == ["hive7/system", "hive7/loadcell1"]
    assert json.loads(messages[0][1]) == {"battery": 25}
    assert json.loads(messages[1][1]) == {"weight": 15250}


def test_publish_test_data(fake_mqtt: type[FakeMqttClient]) -> None:
    sent = publish_test_data(DashboardConfig(broker_host="hive.local"))

    client = fake_mqtt.instances[-1]
    assert sent == ["apissense/system", "apissense/loadcell1"]
    assert client.connected_to == ("hive.local", 1883, 60)
    assert [qos for _, _, qos in client.published] == [1, 1]
    assert client.disconnected is True
    assert client.loop_stopped is True


def test_unreachable_broker_raises(fake_mqtt: type[FakeMqttClient], monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(self: FakeMqttClient, host: str, port: int = 1883, keepalive: int = 60) -> int:
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(fake_mqtt, "connect", refuse)

    with pytest.raises(ApisSenseTransportError, match="Cannot connect") as excinfo:
        publish_test_data(DashboardConfig(), port=1884)
    assert excinfo.value.endpoint == "localhost:1884"


def test_unacknowledged_publish_is_not_reported(
    fake_mqtt: type[FakeMqttClient], monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setattr(fake_mqtt, "publish_acknowledged", False)

    sent = publish_test_data(DashboardConfig(), timeout=0.1)

    assert sent == []
    assert len(fake_mqtt.instances[-1].published) == 2
    assert "not acknowledged" in caplog.text
