"""apissense - telemetry state for a beehive monitoring rig."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("apissense")
except PackageNotFoundError:
    __version__ = "0+local"
from apissense.commands import CommandChannel, DeviceCommand
from apissense.config import DashboardConfig
from apissense.exceptions import (
    ApisSenseCommandError,
    ApisSenseConfigError,
    ApisSenseDecodeError,
    ApisSenseError,
    ApisSenseTransportError,
)
from apissense.ingestion.decode import Decoded, DecodeFailure, decode
from apissense.ingestion.router import TopicBinding, TopicRouter
from apissense.models import (
    AtmosphereReading,
    ExternalClimate,
    FlowCounters,
    RiskTier,
    ScaleReading,
    StorageVolume,
    SystemStatus,
    VocReading,
    classify_risk,
)
from apissense.session import DashboardSession
from apissense.state.events import IngestionSource, StateDelta, StateSection
from apissense.state.store import TelemetrySnapshot, TelemetryStore

__all__ = [
    "__version__",
    "ApisSenseCommandError",
    "ApisSenseConfigError",
    "ApisSenseDecodeError",
    "ApisSenseError",
    "ApisSenseTransportError",
    "AtmosphereReading",
    "CommandChannel",
    "DashboardConfig",
    "DashboardSession",
    "DecodeFailure",
    "Decoded",
    "DeviceCommand",
    "ExternalClimate",
    "FlowCounters",
    "IngestionSource",
    "RiskTier",
    "ScaleReading",
    "StateDelta",
    "StateSection",
    "StorageVolume",
    "SystemStatus",
    "TelemetrySnapshot",
    "TelemetryStore",
    "TopicBinding",
    "TopicRouter",
    "VocReading",
    "classify_risk",
    "decode",
]
