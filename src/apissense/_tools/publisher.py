"""One-shot test publisher.

Connects to the broker over plain TCP, publishes a low battery reading and a
load-cell weight, then disconnects. Used to check a dashboard end to end
without the rig.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import paho.mqtt.client as mqtt

from apissense._constants import TOPIC_LOADCELL, TOPIC_SYSTEM, topic_for
from apissense.config import DashboardConfig
from apissense.exceptions import ApisSenseTransportError

_logger = logging.getLogger(__name__)

TEST_MESSAGES: tuple[tuple[str, dict[str, Any]], ...] = (
    (TOPIC_SYSTEM, {"battery": 25}),
    (TOPIC_LOADCELL, {"weight": 15250}),
)


def build_test_messages(prefix: str) -> list[tuple[str, str]]:
    """Return ``(topic, json_payload)`` pairs for the canned messages."""
    return [(topic_for(prefix, suffix), json.dumps(payload)) for suffix, payload in TEST_MESSAGES]


def publish_test_data(config: DashboardConfig, *, port: int = 1883, timeout: float = 5.0) -> list[str]:
    """Publish the canned messages and disconnect. Returns the topics sent to.

    Raises :class:`ApisSenseTransportError` when the broker cannot be reached.
    """
    client = mqtt.Client(
        callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        client_id=f"{config.client_id}_publisher",
        protocol=mqtt.MQTTv311,
    )
    client.enable_logger(_logger)
    if config.username:
        client.username_pw_set(config.username, config.password)

    endpoint = f"{config.broker_host}:{port}"
    try:
        client.connect(config.broker_host, port, keepalive=config.keepalive)
    except OSError as exc:
        raise ApisSenseTransportError(f"Cannot connect: {exc}", endpoint=endpoint) from exc

    client.loop_start()
    sent: list[str] = []
    try:
        for topic, payload in build_test_messages(config.topic_prefix):
            info = client.publish(topic, payload, qos=1)
            info.wait_for_publish(timeout=timeout)
            if not info.is_published():
                _logger.warning("Publish to %s not acknowledged within %.1fs", topic, timeout)
                continue
            _logger.info("Sent to %s: %s", topic, payload)
            sent.append(topic)
    finally:
        client.disconnect()
        client.loop_stop()
    return sent
