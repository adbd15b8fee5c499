"""Commands accepted by the section synchronizer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from reportsync.schema.models import FieldDefinition
from reportsync.schema.values import FieldValue


@dataclass(frozen=True)
class LoadTemplate:
    """Replace the section state with a fresh template and schema."""

    text: str
    schema: FieldDefinition


@dataclass(frozen=True)
class EditField:
    item_index: int
    field_id: str
    value: FieldValue


@dataclass(frozen=True)
class SetCount:
    count: int


@dataclass(frozen=True)
class SetPage:
    page: int


@dataclass(frozen=True)
class Reimport:
    """Rebuild the state from the text currently on the editor surface."""


Command = Union[LoadTemplate, EditField, SetCount, SetPage, Reimport]
