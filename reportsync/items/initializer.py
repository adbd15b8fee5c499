"""Build an item store from template text and a schema."""

from __future__ import annotations

from collections.abc import Iterable

from reportsync.items.models import Item, ItemStore, parse_indexed_key
from reportsync.schema.models import COUNT_FIELD_ID, FieldDefinition
from reportsync.schema.tree import collect_default_values, flatten_schema, split_indexed_id
from reportsync.schema.values import FieldValue, copy_value
from reportsync.templates.placeholder_parser import (
    align_literal_lines,
    extract_literal_values,
    extract_numbered_lines,
    extract_placeholder_ids,
    has_count_field,
)
from reportsync.templates.regenerator import regenerate


def initialize_store(
    text: str, schema: FieldDefinition, *, skeleton: str | None = None
) -> ItemStore:
    """Create the item store for a freshly loaded (or re-imported) template.

    One item per line number up to the highest numbered line (at least one).
    Items start from schema defaults; literals written on numbered lines that
    mirror the model line are read into their item. Literal lines that render
    back byte for byte are turned into placeholder lines in the skeleton so
    later edits reach them.

    ``skeleton`` is the previous skeleton of a re-imported section. Its
    placeholder lines are used to read values back from rendered text; values
    on unnumbered lines belong to the first item, except ``<field>_<line>``
    placeholders, which belong to the item of that line unless its own
    numbered line says otherwise.
    """

    placeholder_ids = extract_placeholder_ids(text)
    if skeleton is not None:
        placeholder_ids |= extract_placeholder_ids(skeleton)
    numbered = extract_numbered_lines(text)
    item_count = max(numbered.max_line_number, 1)
    field_ids = _field_ids(schema, placeholder_ids)

    aligned = align_literal_lines(text, schema, skeleton=skeleton)
    literal_keys: set[str] = set()
    literals_by_line: dict[int, dict[str, FieldValue]] = {}
    for line in aligned:
        if line.line_number is None:
            literal_keys.update(line.values)
            for field_id, value in line.values.items():
                indexed = parse_indexed_key(field_id, field_ids)
                if indexed is None:
                    literals_by_line.setdefault(1, {}).setdefault(field_id, value)
                else:
                    literals_by_line.setdefault(indexed[1], {}).setdefault(indexed[0], value)
        else:
            literal_keys.update(f"{field_id}_{line.line_number}" for field_id in line.values)
            literals_by_line.setdefault(line.line_number, {}).update(line.values)

    extracted = extract_literal_values(text, schema, skeleton=skeleton)
    base_values = seed_values(schema, field_ids)
    base_values.update(
        {key: value for key, value in extracted.items() if key not in literal_keys}
    )

    items: list[Item] = []
    for line_number in range(1, item_count + 1):
        values = {key: copy_value(value) for key, value in base_values.items()}
        for field_id, value in literals_by_line.get(line_number, {}).items():
            values[field_id] = copy_value(value)
        items.append(Item(line_number=line_number, values=values))

    lines = text.split("\n")
    for line in aligned:
        if line.canonical is not None:
            lines[line.line_index] = line.canonical
    restored = "\n".join(lines)

    store = ItemStore(
        items=items,
        skeleton=restored,
        field_ids=field_ids,
        has_count_field=has_count_field(restored),
    )
    store.text = regenerate(restored, store)
    return store


def seed_values(schema: FieldDefinition, field_ids: Iterable[str]) -> dict[str, FieldValue]:
    """Schema defaults for a new item; ids unknown to the schema start as empty text."""

    values = collect_default_values(schema)
    for field_id in field_ids:
        values.setdefault(field_id, "")
    return values


def _field_ids(schema: FieldDefinition, placeholder_ids: set[str]) -> frozenset[str]:
    # <field>_<line> placeholders address an item of an existing field.
    ids = set(flatten_schema(schema)) - {COUNT_FIELD_ID}
    extra = {pid for pid in placeholder_ids if split_indexed_id(pid, ids) is None}
    return frozenset((ids | extra) - {COUNT_FIELD_ID})
