"""Normalized state deltas.

All ingestion paths (broker, simulator, local commands) convert their inputs
into a :class:`StateDelta`. Only the store is allowed to merge them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IngestionSource(StrEnum):
    MQTT = "mqtt"
    SIMULATOR = "simulator"
    COMMAND = "command"
    DEFAULT = "default"


class StateSection(StrEnum):
    SYSTEM = "system"
    SCALE = "scale"
    FLOW = "flow"
    ATMOSPHERE = "atmosphere"
    EXTERNAL = "external"
    VOC = "voc"


class StateDelta(BaseModel):
    """A normalized, all-or-nothing update to apply to the store."""

    model_config = ConfigDict(frozen=True)

    source: IngestionSource
    topic: str | None = Field(default=None, description="Topic the delta was routed from, if any")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    patches: dict[StateSection, dict[str, Any]] = Field(
        default_factory=dict,
        description="Per-section field patches; absent keys mean 'no update'",
    )
    raw: Any = Field(default=None, description="Decoded payload the delta was built from")

    @field_validator("patches")
    @classmethod
    def _drop_empty_patches(cls, value: dict[StateSection, dict[str, Any]]) -> dict[StateSection, dict[str, Any]]:
        return {section: patch for section, patch in value.items() if patch}

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def is_empty(self) -> bool:
        return not self.patches

    @property
    def sections(self) -> frozenset[StateSection]:
        return frozenset(self.patches)
