"""Transport factory."""

from __future__ import annotations

import asyncio
import logging
import random

from apissense.config import DashboardConfig
from apissense.state.store import TelemetryStore
from apissense.transport.base import TransportAdapter


def create_transport(
    config: DashboardConfig,
    store: TelemetryStore,
    *,
    loop: asyncio.AbstractEventLoop | None = None,
    logger: logging.Logger | None = None,
) -> TransportAdapter:
    """Create the transport selected by ``config.data_source``."""

    if config.use_simulator:
        from apissense.transport.simulator import SimulatorTransport

        rng = random.Random(config.simulator_seed) if config.simulator_seed is not None else None
        return SimulatorTransport(
            store,
            interval=config.simulator_interval,
            prefix=config.topic_prefix,
            rng=rng,
        )
    from apissense.transport.mqtt import MqttTransport

    return MqttTransport(config, loop=loop, logger=logger)
