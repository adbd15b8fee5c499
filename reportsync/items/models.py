"""Item store: the authoritative structured state of one repeated section."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field

from reportsync.schema.tree import split_indexed_id
from reportsync.schema.values import FieldValue


def indexed_key(field_id: str, line_number: int) -> str:
    return f"{field_id}_{line_number}"


def parse_indexed_key(key: str, field_ids: frozenset[str] | set[str]) -> tuple[str, int] | None:
    """Split ``<field>_<line>`` into its parts when ``<field>`` is a known base id.

    Keys that are themselves known field ids are base keys, even when they end
    in ``_<digits>``.
    """

    return split_indexed_id(key, field_ids)


@dataclass
class Item:
    """One repetition of the section, bound to one numbered template line.

    ``values`` holds base values. Indexed names are derived from
    ``line_number`` on read; an explicit indexed key only exists when a value
    was set under an indexed name.
    """

    line_number: int
    values: dict[str, FieldValue] = field(default_factory=dict)

    def indexed_view(self, field_ids: frozenset[str] | set[str]) -> dict[str, FieldValue]:
        """Base values plus their ``<field>_<line>`` mirrors for this item.

        Explicit indexed keys are listed as stored and get no mirror of their own.
        """

        view = dict(self.values)
        for key, value in self.values.items():
            if split_indexed_id(key, field_ids) is not None:
                continue
            view.setdefault(indexed_key(key, self.line_number), value)
        return view


@dataclass
class ItemStore:
    """Ordered items, the template skeleton, and the last regenerated text."""

    items: list[Item] = field(default_factory=list)
    skeleton: str = ""
    text: str = ""
    field_ids: frozenset[str] = frozenset()
    has_count_field: bool = False

    @property
    def count(self) -> int:
        return len(self.items)

    def item_for_line(self, line_number: int) -> Item | None:
        for item in self.items:
            if item.line_number == line_number:
                return item
        return None

    def snapshot(self) -> ItemStore:
        """Deep copy used as the working state of one command."""

        return copy.deepcopy(self)
