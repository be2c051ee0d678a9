"""Outbound device commands.

Commands are plain-text tokens published to ``<prefix>/<device>/cmd``.
Delivery is fire-and-forget: nothing is acknowledged, correlated or retried.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

from apissense._constants import COMMAND_SUFFIX, DEFAULT_TOPIC_PREFIX, TOPIC_BEECOUNT, TOPIC_LOADCELL, topic_for
from apissense.exceptions import ApisSenseCommandError

if TYPE_CHECKING:
    from apissense.state.store import TelemetryStore
    from apissense.transport.base import TransportAdapter

_logger = logging.getLogger(__name__)


class DeviceCommand(enum.StrEnum):
    """Command words understood by the rig firmware."""

    TARE = "TARE"
    RESET = "RESET"

    @classmethod
    def parse(cls, value: str) -> DeviceCommand:
        try:
            return cls(value.strip().upper())
        except ValueError as exc:
            raise ApisSenseCommandError(f"Unknown device command {value!r}") from exc


class CommandChannel:
    """Publish user-triggered commands through the active transport."""

    def __init__(
        self,
        transport: TransportAdapter,
        store: TelemetryStore,
        *,
        prefix: str = DEFAULT_TOPIC_PREFIX,
    ) -> None:
        self._transport = transport
        self._store = store
        self._prefix = prefix

    def publish_command(self, topic: str, message: str) -> bool:
        """Send *message* to *topic*. Returns False when it could not be sent.

        Never raises and never blocks on the network.
        """
        if not self._transport.is_connected:
            _logger.warning("Transport %s not connected; command %s to %s not sent", self._transport.name, message, topic)
            return False
        try:
            sent = self._transport.publish(topic, message)
        except Exception:
            _logger.warning("Command %s to %s failed", message, topic, exc_info=True)
            return False
        if sent:
            _logger.info("Sent command %s to %s", message, topic)
        return sent

    def send(self, device: str, command: DeviceCommand) -> bool:
        return self.publish_command(topic_for(self._prefix, device, COMMAND_SUFFIX), command.value)

    def tare(self) -> bool:
        """Capture the current raw weight as tare and tell the load cell."""
        self._store.capture_tare()
        return self.send(TOPIC_LOADCELL, DeviceCommand.TARE)

    def reset_flow(self) -> bool:
        """Ask the bee counter to zero its counts."""
        return self.send(TOPIC_BEECOUNT, DeviceCommand.RESET)
