"""Editor-surface contract consumed by the synchronizer."""

from __future__ import annotations

from typing import Protocol


class EditorSurface(Protocol):
    """Where regenerated section text is shown to the user."""

    def get_content(self, section_id: str) -> str:
        """Return the current text of ``section_id``."""

    def set_content(self, section_id: str, text: str) -> None:
        """Replace the text of ``section_id``."""


class InMemoryEditorSurface:
    """Dictionary-backed surface for the API, the CLI and tests."""

    def __init__(self, contents: dict[str, str] | None = None) -> None:
        self._contents: dict[str, str] = dict(contents or {})

    def get_content(self, section_id: str) -> str:
        return self._contents.get(section_id, "")

    def set_content(self, section_id: str, text: str) -> None:
        self._contents[section_id] = text

    def section_ids(self) -> list[str]:
        return sorted(self._contents)
