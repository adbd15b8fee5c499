"""Directory-backed catalog of section schemas keyed by document category."""

from __future__ import annotations

from pathlib import Path

from reportsync.schema.loader import SCHEMA_SUFFIXES, load_schema
from reportsync.schema.models import FieldDefinition
from reportsync.utils.errors import SchemaError


class SchemaCatalog:
    """Resolve ``<category>.yaml|.yml|.json`` files under one directory."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._cache: dict[str, FieldDefinition] = {}

    def get(self, category: str) -> FieldDefinition:
        key = category.strip().lower()
        if key in self._cache:
            return self._cache[key]

        path = self._path_for(key)
        if path is None:
            raise SchemaError(f"Unknown schema category: {category}", source=str(self._directory))
        schema = load_schema(path)
        self._cache[key] = schema
        return schema

    def list_categories(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        return sorted(
            {
                path.stem.lower()
                for path in self._directory.iterdir()
                if path.is_file() and path.suffix.lower() in SCHEMA_SUFFIXES
            }
        )

    def _path_for(self, key: str) -> Path | None:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            return None
        for suffix in SCHEMA_SUFFIXES:
            candidate = self._directory / f"{key}{suffix}"
            if candidate.is_file():
                return candidate
        return None
