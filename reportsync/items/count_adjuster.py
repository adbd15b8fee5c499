"""Grow or shrink the repeated section, items and skeleton together."""

from __future__ import annotations

from dataclasses import dataclass

from reportsync.items.initializer import seed_values
from reportsync.items.models import Item, ItemStore, parse_indexed_key
from reportsync.schema.models import COUNT_FIELD_ID, FieldDefinition
from reportsync.schema.values import copy_value
from reportsync.templates.placeholder_parser import (
    LINE_NUMBER_RE,
    PLACEHOLDER_RE,
    find_model_line,
    line_number_of,
)
from reportsync.templates.regenerator import collapse_blank_lines, regenerate


@dataclass(frozen=True)
class CountChange:
    """Outcome of one count adjustment."""

    old_count: int
    new_count: int
    added: tuple[int, ...] = ()
    removed: tuple[int, ...] = ()

    @property
    def applied(self) -> bool:
        return self.old_count != self.new_count


def set_count(store: ItemStore, new_count: int, schema: FieldDefinition) -> CountChange:
    """Resize ``store`` to ``new_count`` items and regenerate its text.

    Counts below one are rejected and leave the store untouched.
    """

    old_count = store.count
    if new_count < 1 or new_count == old_count:
        return CountChange(old_count=old_count, new_count=old_count)

    if new_count > old_count:
        added = _grow(store, new_count, schema)
        change = CountChange(old_count=old_count, new_count=new_count, added=added)
    else:
        removed = _shrink(store, new_count)
        change = CountChange(old_count=old_count, new_count=new_count, removed=removed)

    store.text = regenerate(store.skeleton, store)
    return change


def renumber_line(model_line: str, line_number: int) -> str:
    """Copy ``model_line`` under a new line number, keeping its marker spacing."""

    match = LINE_NUMBER_RE.match(model_line)
    if match is None:
        return f"{line_number}: {model_line}"
    return f"{line_number}{model_line[match.end(1):]}"


def _grow(store: ItemStore, new_count: int, schema: FieldDefinition) -> tuple[int, ...]:
    seeds = seed_values(schema, store.field_ids)
    added = tuple(range(store.count + 1, new_count + 1))
    for line_number in added:
        store.items.append(
            Item(
                line_number=line_number,
                values={key: copy_value(value) for key, value in seeds.items()},
            )
        )

    lines = store.skeleton.split("\n")
    model_index = _choose_model_line(lines)
    if model_index is None:
        return added

    numbered = [index for index, line in enumerate(lines) if line_number_of(line) is not None]
    insert_at = (numbered[-1] if numbered else model_index) + 1
    new_lines = [renumber_line(lines[model_index], line_number) for line_number in added]
    lines[insert_at:insert_at] = new_lines
    store.skeleton = "\n".join(lines)
    return added


def _shrink(store: ItemStore, new_count: int) -> tuple[int, ...]:
    removed = tuple(item.line_number for item in store.items if item.line_number > new_count)
    removed_set = set(removed)
    store.items = [item for item in store.items if item.line_number <= new_count]

    for item in store.items:
        for key in list(item.values):
            parsed = parse_indexed_key(key, store.field_ids)
            if parsed is not None and parsed[1] in removed_set:
                del item.values[key]

    kept = [
        line
        for line in store.skeleton.split("\n")
        if (line_number_of(line) or 0) <= new_count
    ]
    store.skeleton = "\n".join(collapse_blank_lines(kept))
    return removed


def _choose_model_line(lines: list[str]) -> int | None:
    """Prefer a numbered line with placeholders, then any numbered line, then a placeholder line."""

    model_index = find_model_line(lines)
    if model_index is not None:
        return model_index
    for index, line in enumerate(lines):
        if line_number_of(line) is not None:
            return index
    for index, line in enumerate(lines):
        if any(match.group(1) != COUNT_FIELD_ID for match in PLACEHOLDER_RE.finditer(line)):
            return index
    return None
