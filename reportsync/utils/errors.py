"""Custom exceptions for synchronizer core logic."""

from __future__ import annotations

from typing import Any


class SchemaError(ValueError):
    """Raised when a field definition tree is invalid or cannot be loaded."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class ItemNotFoundError(LookupError):
    """Raised when a field edit targets an item index outside the store."""

    def __init__(self, message: str, *, item_index: int, item_count: int) -> None:
        super().__init__(message)
        self.item_index = item_index
        self.item_count = item_count


class FieldValueError(ValueError):
    """Raised when raw form input cannot be coerced to the field's kind."""

    def __init__(self, message: str, *, field_id: str, raw_value: Any = None) -> None:
        super().__init__(message)
        self.field_id = field_id
        self.raw_value = raw_value


class SessionNotFoundError(LookupError):
    """Raised when a section synchronizer has not been loaded yet."""

    def __init__(self, section_id: str) -> None:
        super().__init__(f"Section not loaded: {section_id}")
        self.section_id = section_id


class TemplateNotFoundError(LookupError):
    """Raised when a template reference does not name a catalog entry."""

    def __init__(self, reference: str) -> None:
        super().__init__(f"Unknown template: {reference}")
        self.reference = reference
