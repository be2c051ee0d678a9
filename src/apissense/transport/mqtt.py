"""Broker transport on top of a threaded paho-mqtt client."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import paho.mqtt.client as mqtt

from apissense._constants import wildcard_for
from apissense._redact import redact_for_log
from apissense.config import DashboardConfig
from apissense.exceptions import ApisSenseTransportError
from apissense.transport.base import (
    ConnectCallback,
    ErrorCallback,
    MessageCallback,
    TransportAdapter,
    TransportHandle,
)


class MqttTransport(TransportAdapter):
    """One broker connection subscribed to the whole rig namespace.

    Messages are forwarded unfiltered. When an asyncio *loop* is given,
    every callback is hopped onto it with ``call_soon_threadsafe`` so the
    router runs on a single consumer thread; otherwise callbacks run on
    paho's network thread.

    Reconnects are left to paho: after a drop it retries with exponential
    backoff between ``reconnect_min_delay`` and ``reconnect_max_delay``,
    and the wildcard subscription is renewed on every successful connect.
    """

    name = "mqtt"

    def __init__(
        self,
        config: DashboardConfig,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._loop = loop
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._handle: TransportHandle | None = None
        self._connected = False
        self._topic = wildcard_for(config.topic_prefix)

    @property
    def endpoint(self) -> str:
        return f"{self._config.broker_host}:{self._config.broker_port}"

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._connected

    def _dispatch(self, callback: Any, *args: Any) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(callback, *args)
        else:
            callback(*args)

    def start(
        self,
        on_message: MessageCallback,
        on_connect: ConnectCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> TransportHandle:
        """Connect asynchronously and subscribe to ``<prefix>/#``."""
        if self._handle is not None:
            self.stop(self._handle)

        config = self._config
        handle = TransportHandle(self.name)
        deliver_message = handle.guard(on_message)
        deliver_connect = handle.guard(on_connect)
        deliver_error = handle.guard(on_error)

        self._logger.debug(
            "MQTT transport start requested endpoint=%s transport=%s topic=%s client_id=%s",
            self.endpoint,
            config.broker_transport,
            self._topic,
            config.client_id,
        )

        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=config.client_id,
            clean_session=True,
            protocol=mqtt.MQTTv311,
            transport=config.broker_transport,
        )
        client.enable_logger(self._logger)
        if config.broker_transport == "websockets":
            client.ws_set_options(path=config.websocket_path)
        if config.username:
            client.username_pw_set(config.username, config.password)
        client.connect_timeout = config.connect_timeout
        client.reconnect_delay_set(min_delay=config.reconnect_min_delay, max_delay=config.reconnect_max_delay)

        def on_connect_cb(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if not handle.active:
                return
            if reason_code.is_failure:
                self._logger.warning("MQTT connect refused by %s: %s", self.endpoint, reason_code)
                error = ApisSenseTransportError(
                    f"Broker refused connection: {reason_code}",
                    reason_code=reason_code.value,
                    endpoint=self.endpoint,
                )
                self._dispatch(deliver_error, error)
                return
            self._connected = True
            self._logger.info("MQTT connected to %s, subscribing %s", self.endpoint, self._topic)
            c.subscribe(self._topic, qos=0)
            self._dispatch(deliver_connect)

        def on_connect_fail_cb(_c: mqtt.Client, _userdata: Any) -> None:
            if not handle.active:
                return
            self._logger.warning("MQTT connection attempt to %s failed", self.endpoint)
            error = ApisSenseTransportError("Broker connection attempt failed", endpoint=self.endpoint)
            self._dispatch(deliver_error, error)

        def on_message_cb(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            if not handle.active:
                return
            self._logger.debug("Received PUBLISH topic=%s payload=%s", msg.topic, redact_for_log(msg.payload))
            self._dispatch(deliver_message, msg.topic, msg.payload)

        def on_disconnect_cb(
            _c: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            self._connected = False
            if not handle.active:
                return
            if not reason_code.is_failure:
                self._logger.debug("MQTT disconnected cleanly")
                return
            self._logger.warning("MQTT connection to %s lost: %s; reconnecting", self.endpoint, reason_code)
            error = ApisSenseTransportError(
                f"Broker connection lost: {reason_code}",
                reason_code=reason_code.value,
                endpoint=self.endpoint,
            )
            self._dispatch(deliver_error, error)

        client.on_connect = on_connect_cb
        client.on_connect_fail = on_connect_fail_cb
        client.on_message = on_message_cb
        client.on_disconnect = on_disconnect_cb

        self._client = client
        self._handle = handle
        self._connected = False

        try:
            client.connect_async(config.broker_host, config.broker_port, keepalive=config.keepalive)
        except (OSError, ValueError) as exc:
            self._logger.warning("MQTT connect to %s could not be scheduled: %s", self.endpoint, exc)
            deliver_error(ApisSenseTransportError(f"Cannot connect: {exc}", endpoint=self.endpoint))
        client.loop_start()
        self._logger.debug("MQTT network loop started")
        return handle

    def stop(self, handle: TransportHandle) -> None:
        """Deactivate *handle*, disconnect and join the network thread."""
        handle.deactivate()
        if handle is not self._handle:
            return

        client = self._client
        self._client = None
        self._handle = None
        was_connected = self._connected
        self._connected = False

        if client is None:
            return
        try:
            if was_connected:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def publish(self, topic: str, payload: str | bytes) -> bool:
        client = self._client
        if client is None or not self._connected:
            self._logger.warning("MQTT not connected; dropping publish to %s", topic)
            return False
        info = client.publish(topic, payload, qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._logger.warning("MQTT publish to %s rejected: %s", topic, mqtt.error_string(info.rc))
            return False
        self._logger.debug("Published %s -> %s", topic, redact_for_log(payload))
        return True
