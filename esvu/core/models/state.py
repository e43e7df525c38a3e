"""
InstallationState — the root persisted model.

This single document records which engines the user wants kept up to
date and which slots are installed with which entry points.  It is
serialized to ``<home>/status.json`` and loaded once per run.

Slot keys:
    ``<engine id>``             the mutable "latest" slot
    ``<engine id>@<version>``   one pinned version

One engine may have a "latest" slot and any number of pinned slots at
the same time; each tracks its own entry points.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

LATEST = "latest"


def slot_key(engine_id: str, version: str = LATEST) -> str:
    """State key for an engine slot."""
    if version == LATEST:
        return engine_id
    return f"{engine_id}@{version}"


def split_slot_key(key: str) -> tuple[str, str]:
    """Inverse of ``slot_key``: ``"v8@1.2"`` → ``("v8", "1.2")``."""
    engine_id, sep, version = key.partition("@")
    return engine_id, (version if sep else LATEST)


class InstalledRecord(BaseModel):
    """One installed slot: its concrete version and registered entry points."""

    model_config = ConfigDict(populate_by_name=True)

    version: str
    bin_entries: list[str] = Field(default_factory=list, alias="binEntries")


class InstallationState(BaseModel):
    """Root state model — serialized to ``status.json``."""

    model_config = ConfigDict(populate_by_name=True)

    selected_engines: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("selectedEngines", "selected_engines", "engines"),
        serialization_alias="selectedEngines",
    )
    installed: dict[str, InstalledRecord] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _drop_placeholder_records(cls, data: Any) -> Any:
        # Older state files could hold a slot whose install never finished
        # ({"version": null}); such a slot is simply not installed.
        if isinstance(data, dict) and isinstance(data.get("installed"), dict):
            data = dict(data)
            data["installed"] = {
                key: rec
                for key, rec in data["installed"].items()
                if not isinstance(rec, dict) or rec.get("version")
            }
        return data

    # ── Records ──────────────────────────────────────────────────

    def get_record(self, key: str) -> InstalledRecord | None:
        return self.installed.get(key)

    def set_record(self, key: str, version: str, bin_entries: list[str]) -> InstalledRecord:
        record = InstalledRecord(version=version, bin_entries=list(bin_entries))
        self.installed[key] = record
        return record

    def remove_record(self, key: str) -> InstalledRecord | None:
        return self.installed.pop(key, None)

    def slots_for(self, engine_id: str) -> list[str]:
        """All slot keys belonging to ``engine_id`` ("latest" first)."""
        return sorted(
            (k for k in self.installed if split_slot_key(k)[0] == engine_id),
            key=lambda k: (k != engine_id, k),
        )

    # ── Selection ────────────────────────────────────────────────

    def select(self, engine_id: str) -> None:
        if engine_id not in self.selected_engines:
            self.selected_engines.append(engine_id)

    def deselect(self, engine_id: str) -> None:
        self.selected_engines = [e for e in self.selected_engines if e != engine_id]

    def to_json_dict(self) -> dict:
        """Serialized form with the on-disk camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
