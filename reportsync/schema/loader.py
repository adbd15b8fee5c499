"""Schema loading utilities for YAML and JSON field definition trees."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from reportsync.schema.models import FieldDefinition
from reportsync.utils.errors import SchemaError

SCHEMA_SUFFIXES = (".yaml", ".yml", ".json")


def load_schema(path: Path) -> FieldDefinition:
    """Load and validate a schema tree from a YAML or JSON file."""

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SchemaError(f"Schema file not found: {path}", source=str(path)) from exc

    if path.suffix.lower() == ".json":
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SchemaError(f"Invalid JSON in schema file: {path}", source=str(path)) from exc
    else:
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SchemaError(f"Invalid YAML in schema file: {path}", source=str(path)) from exc

    return parse_schema(raw, source=str(path))


def parse_schema(raw: Any, *, source: str = "<inline>") -> FieldDefinition:
    """Validate an already-decoded schema mapping."""

    if not isinstance(raw, dict):
        raise SchemaError(f"Schema must contain a mapping: {source}", source=source)

    try:
        return FieldDefinition.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        detail = first.get("msg", "invalid schema")
        raise SchemaError(f"Invalid schema tree in {source}: {detail}", source=source) from exc
