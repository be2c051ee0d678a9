"""Client configuration for apissense."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from apissense._constants import DEFAULT_CLIENT_ID, DEFAULT_TOPIC_PREFIX
from apissense.exceptions import ApisSenseConfigError

DATA_SOURCE_MQTT = "mqtt"
DATA_SOURCE_SIMULATOR = "simulator"
_DATA_SOURCES = frozenset({DATA_SOURCE_MQTT, DATA_SOURCE_SIMULATOR})
_BROKER_TRANSPORTS = frozenset({"tcp", "websockets"})


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value)
    except ValueError as exc:
        raise ApisSenseConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class DashboardConfig:
    """Dashboard configuration.

    Parameters
    ----------
    broker_host : str
        MQTT broker host name.
    broker_port : int
        MQTT broker port. The default matches a broker exposing MQTT over
        websockets on ``8888``.
    broker_transport : str
        ``"websockets"`` or ``"tcp"``.
    websocket_path : str
        Request path used when ``broker_transport`` is ``"websockets"``.
    client_id : str
        MQTT client identifier.
    username, password : str or None
        Optional broker credentials, passed through unchanged.
    topic_prefix : str
        Namespace every rig topic lives under. The dashboard subscribes
        to ``<topic_prefix>/#``.
    keepalive : int
        MQTT keepalive in seconds.
    connect_timeout : float
        Seconds to wait for the broker CONNACK.
    reconnect_min_delay, reconnect_max_delay : int
        Bounds of the exponential reconnect backoff, in seconds.
    data_source : str
        ``"mqtt"`` for the live broker or ``"simulator"`` for the local
        random-walk simulator. Chosen once per session.
    simulator_interval : float
        Seconds between simulator ticks.
    simulator_seed : int or None
        Seed for the simulator random generator (``None`` = nondeterministic).
    storage_volumes : tuple[str, ...]
        Names of the storage volumes reported on the system topic, in
        display order. Each volume ``v`` is read from ``v_used``/``v_total``.
    """

    broker_host: str = "localhost"
    broker_port: int = 8888
    broker_transport: str = "websockets"
    websocket_path: str = "/"
    client_id: str = DEFAULT_CLIENT_ID
    username: str | None = None
    password: str | None = None
    topic_prefix: str = DEFAULT_TOPIC_PREFIX
    keepalive: int = 60
    connect_timeout: float = 4.0
    reconnect_min_delay: int = 1
    reconnect_max_delay: int = 30
    data_source: str = DATA_SOURCE_MQTT
    simulator_interval: float = 1.5
    simulator_seed: int | None = None
    storage_volumes: tuple[str, ...] = ("sd1", "sd2")

    def __post_init__(self) -> None:
        if self.data_source not in _DATA_SOURCES:
            raise ApisSenseConfigError(f"data_source must be one of {sorted(_DATA_SOURCES)}, got {self.data_source!r}")
        if self.broker_transport not in _BROKER_TRANSPORTS:
            raise ApisSenseConfigError(
                f"broker_transport must be one of {sorted(_BROKER_TRANSPORTS)}, got {self.broker_transport!r}"
            )
        if not 0 < self.broker_port < 65536:
            raise ApisSenseConfigError(f"broker_port out of range: {self.broker_port}")
        if self.simulator_interval <= 0:
            raise ApisSenseConfigError("simulator_interval must be positive")
        if self.reconnect_min_delay <= 0 or self.reconnect_max_delay < self.reconnect_min_delay:
            raise ApisSenseConfigError("reconnect delays must satisfy 0 < min <= max")
        if not self.topic_prefix.strip("/"):
            raise ApisSenseConfigError("topic_prefix must be non-empty")

    @property
    def use_simulator(self) -> bool:
        """Whether the session is fed by the local simulator."""
        return self.data_source == DATA_SOURCE_SIMULATOR

    @classmethod
    def from_env(cls, **overrides: Any) -> DashboardConfig:
        """Create configuration from environment variables.

        Reads optional ``APISSENSE_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        DashboardConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "APISSENSE_BROKER_HOST": "broker_host",
            "APISSENSE_BROKER_TRANSPORT": "broker_transport",
            "APISSENSE_WEBSOCKET_PATH": "websocket_path",
            "APISSENSE_CLIENT_ID": "client_id",
            "APISSENSE_USERNAME": "username",
            "APISSENSE_PASSWORD": "password",
            "APISSENSE_TOPIC_PREFIX": "topic_prefix",
            "APISSENSE_DATA_SOURCE": "data_source",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Numeric fields, handled separately
        _ENV_NUMERIC_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "APISSENSE_BROKER_PORT": ("broker_port", int),
            "APISSENSE_KEEPALIVE": ("keepalive", int),
            "APISSENSE_CONNECT_TIMEOUT": ("connect_timeout", float),
            "APISSENSE_RECONNECT_MIN_DELAY": ("reconnect_min_delay", int),
            "APISSENSE_RECONNECT_MAX_DELAY": ("reconnect_max_delay", int),
            "APISSENSE_SIMULATOR_INTERVAL": ("simulator_interval", float),
            "APISSENSE_SIMULATOR_SEED": ("simulator_seed", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, cast)

        # Legacy switch from the first dashboard builds.
        if "data_source" not in config_kwargs and "data_source" not in overrides:
            if _env_bool(env.get("APISSENSE_USE_MOCK"), False):
                config_kwargs["data_source"] = DATA_SOURCE_SIMULATOR

        volumes_env = env.get("APISSENSE_STORAGE_VOLUMES")
        if volumes_env is not None and "storage_volumes" not in overrides:
            config_kwargs["storage_volumes"] = tuple(part.strip() for part in volumes_env.split(",") if part.strip())

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
