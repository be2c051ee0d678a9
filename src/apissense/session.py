"""Dashboard session: one store, one router, one transport."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from types import TracebackType

from apissense.commands import CommandChannel
from apissense.config import DashboardConfig
from apissense.exceptions import ApisSenseTransportError
from apissense.ingestion.router import TopicRouter
from apissense.state.store import Listener, TelemetrySnapshot, TelemetryStore
from apissense.transport.base import TransportAdapter, TransportHandle
from apissense.transport.factory import create_transport

_logger = logging.getLogger(__name__)


class DashboardSession:
    """Wire the telemetry pipeline for one dashboard session.

    Usage::

        with DashboardSession(DashboardConfig.from_env()) as session:
            session.add_listener(render)
            ...
            session.tare()

    The data source (broker or simulator) is fixed by the config for the
    lifetime of the session.
    """

    def __init__(
        self,
        config: DashboardConfig,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        transport: TransportAdapter | None = None,
        on_error: Callable[[ApisSenseTransportError], None] | None = None,
    ) -> None:
        self._config = config
        self.store = TelemetryStore(volume_names=config.storage_volumes)
        self.router = TopicRouter(self.store, prefix=config.topic_prefix)
        self.transport = transport or create_transport(config, self.store, loop=loop)
        self.commands = CommandChannel(self.transport, self.store, prefix=config.topic_prefix)
        self._on_error = on_error
        self._handle: TransportHandle | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> DashboardSession:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()

    @property
    def config(self) -> DashboardConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._handle is not None and self._handle.active

    def start(self) -> None:
        if self.is_running:
            return
        _logger.info("Starting dashboard session (source=%s)", self._config.data_source)
        self._handle = self.transport.start(
            self.router.handle_message,
            on_connect=self._handle_connect,
            on_error=self._handle_error,
        )

    def stop(self) -> None:
        handle = self._handle
        self._handle = None
        if handle is None:
            return
        self.transport.stop(handle)
        _logger.info("Dashboard session stopped")

    def _handle_connect(self) -> None:
        _logger.debug("Transport %s ready", self.transport.name)

    def _handle_error(self, error: ApisSenseTransportError) -> None:
        # Transport errors never end the session; the display keeps its last values.
        _logger.debug("Transport error: %s", error)
        if self._on_error is not None:
            self._on_error(error)

    # ------------------------------------------------------------------
    # Renderer-facing API
    # ------------------------------------------------------------------

    def snapshot(self) -> TelemetrySnapshot:
        return self.store.snapshot()

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        return self.store.add_listener(listener)

    def tare(self) -> bool:
        return self.commands.tare()

    def reset_flow(self) -> bool:
        return self.commands.reset_flow()
