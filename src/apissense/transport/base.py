"""Transport adapter contract.

A transport supplies ``(topic, payload)`` messages to the router and
carries device commands back out. Exactly one adapter runs per session.
"""

from __future__ import annotations

import itertools
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from apissense.exceptions import ApisSenseTransportError

MessageCallback = Callable[[str, bytes], None]
ConnectCallback = Callable[[], None]
ErrorCallback = Callable[[ApisSenseTransportError], None]

_handle_ids = itertools.count(1)


class TransportHandle:
    """Liveness token for one ``start`` call.

    Adapters deliver callbacks through :meth:`guard`; once the handle is
    deactivated, late callbacks from a background thread are dropped.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.id = next(_handle_ids)
        self._active = threading.Event()
        self._active.set()

    def __repr__(self) -> str:
        return f"<TransportHandle {self.name}#{self.id} active={self.active}>"

    @property
    def active(self) -> bool:
        return self._active.is_set()

    def deactivate(self) -> None:
        self._active.clear()

    def guard(self, callback: Callable[..., Any] | None) -> Callable[..., None]:
        """Wrap *callback* so it becomes a no-op after deactivation."""

        def _guarded(*args: Any) -> None:
            if callback is None or not self._active.is_set():
                return
            callback(*args)

        return _guarded


class TransportAdapter(ABC):
    """Source of rig messages and sink for device commands."""

    name: str = "transport"

    @abstractmethod
    def start(
        self,
        on_message: MessageCallback,
        on_connect: ConnectCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> TransportHandle:
        """Begin producing messages. Must not block on the network."""

    @abstractmethod
    def stop(self, handle: TransportHandle) -> None:
        """Stop producing. No callback for *handle* fires after this returns."""

    @abstractmethod
    def publish(self, topic: str, payload: str | bytes) -> bool:
        """Fire-and-forget publish. Returns False when nothing was sent."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether :meth:`publish` can currently deliver."""
