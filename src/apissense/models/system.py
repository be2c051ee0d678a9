"""System status model: battery and local storage volumes."""

from __future__ import annotations

from typing import Any, Self

from pydantic import Field, model_validator

from apissense.models._base import NonNegativeFloat, Percent, TelemetryModel


class StorageVolume(TelemetryModel):
    """One local storage volume (e.g. an SD card)."""

    name: str
    used_gb: NonNegativeFloat = 0.0
    total_gb: float = Field(gt=0)

    @model_validator(mode="after")
    def _cap_used(self) -> StorageVolume:
        if self.used_gb > self.total_gb:
            object.__setattr__(self, "used_gb", self.total_gb)
        return self

    @property
    def used_fraction(self) -> float:
        return self.used_gb / self.total_gb


class SystemStatus(TelemetryModel):
    battery_percent: Percent = 100.0
    is_charging: bool = False
    storage_volumes: list[StorageVolume] = Field(default_factory=list)

    def volume(self, name: str) -> StorageVolume | None:
        for candidate in self.storage_volumes:
            if candidate.name == name:
                return candidate
        return None

    def merged(self, patch: dict[str, Any]) -> Self:
        """Merge a patch, matching ``storage_volumes`` entries by name.

        Volume patches replace the same-named volume in place and keep
        display order; unknown names are appended.
        """
        if not patch:
            return self
        working = dict(patch)
        volume_patches = working.pop("storage_volumes", None)
        if volume_patches:
            volumes = [v.model_dump() for v in self.storage_volumes]
            index = {v["name"]: i for i, v in enumerate(volumes)}
            for incoming in volume_patches:
                name = incoming["name"]
                if name in index:
                    volumes[index[name]] = {**volumes[index[name]], **incoming}
                else:
                    index[name] = len(volumes)
                    volumes.append(dict(incoming))
            working["storage_volumes"] = volumes
        return super().merged(working)
