"""Synchronizer settings loaded from YAML."""

from __future__ import annotations

from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from reportsync.schema.tree import ADDITIONAL_FIELDS_ID, ADDITIONAL_FIELDS_LABEL


class SyncSettings(BaseModel):
    """Tunables shared by the CLI, the API and the synchronizer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    items_per_page: int = Field(default=1, ge=1)
    additional_fields_id: str = Field(default=ADDITIONAL_FIELDS_ID, min_length=1)
    additional_fields_label: str = ADDITIONAL_FIELDS_LABEL


def load_settings(path: Path | None = None) -> SyncSettings:
    """Load and validate settings; defaults apply when no path is given."""

    if path is None:
        return SyncSettings()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Settings file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in settings file: {path}") from exc

    if raw is None:
        return SyncSettings()
    if not isinstance(raw, dict):
        raise ValueError(f"Settings file must contain a mapping: {path}")

    try:
        return SyncSettings.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings schema: {path}") from exc
