"""Directory-backed catalog of section templates grouped by category."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from reportsync.utils.errors import TemplateNotFoundError

TEMPLATE_SUFFIX = ".txt"
TEMPLATE_REF_PREFIX = "template:"


@dataclass(frozen=True)
class TemplateInfo:
    category: str
    name: str
    path: Path

    @property
    def reference(self) -> str:
        return f"{TEMPLATE_REF_PREFIX}{self.category}/{self.name}"


class TemplateCatalog:
    """Resolve ``<category>/<name>.txt`` files under one directory.

    Categories and names compare case-insensitively. Template text is read
    once per entry and cached with CRLF line endings normalized to LF.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._cache: dict[tuple[str, str], str] = {}

    def list_templates(self) -> list[TemplateInfo]:
        if not self._directory.is_dir():
            return []
        found: list[TemplateInfo] = []
        for category_dir in sorted(self._directory.iterdir()):
            if not category_dir.is_dir() or category_dir.name.startswith("."):
                continue
            for path in sorted(category_dir.iterdir()):
                if path.is_file() and path.suffix.lower() == TEMPLATE_SUFFIX:
                    found.append(
                        TemplateInfo(category=category_dir.name.lower(), name=path.stem, path=path)
                    )
        return found

    def list_categories(self) -> list[str]:
        return sorted({info.category for info in self.list_templates()})

    def by_category(self, category: str) -> list[TemplateInfo]:
        key = category.strip().lower()
        return [info for info in self.list_templates() if info.category == key]

    def search(self, term: str) -> list[TemplateInfo]:
        """Entries whose name or category contains ``term``."""

        needle = term.strip().lower()
        return [
            info
            for info in self.list_templates()
            if needle in info.name.lower() or needle in info.category
        ]

    def get(self, category: str, name: str) -> str:
        key = (category.strip().lower(), name.strip().lower())
        if key in self._cache:
            return self._cache[key]

        info = next(
            (entry for entry in self.by_category(key[0]) if entry.name.lower() == key[1]),
            None,
        )
        if info is None:
            raise TemplateNotFoundError(f"{category}/{name}")
        text = info.path.read_text(encoding="utf-8").replace("\r\n", "\n")
        self._cache[key] = text
        return text

    def resolve(self, reference: str) -> str:
        """Text of ``template:<category>/<name>``; the prefix may be left out."""

        raw = reference.strip()
        if raw.startswith(TEMPLATE_REF_PREFIX):
            raw = raw[len(TEMPLATE_REF_PREFIX) :]
        category, separator, name = raw.partition("/")
        if not separator or not category.strip() or not name.strip() or "/" in name:
            raise TemplateNotFoundError(reference)
        return self.get(category, name)
