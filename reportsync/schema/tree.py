"""Schema tree helpers: flattening, defaults, filtering, foreign fields."""

from __future__ import annotations

import re
from collections.abc import Iterable

from reportsync.schema.models import COUNT_FIELD_ID, FieldDefinition, text_field
from reportsync.schema.values import FieldValue

ADDITIONAL_FIELDS_ID = "foreignFields"
ADDITIONAL_FIELDS_LABEL = "Additional Fields"

_INDEXED_ID_RE = re.compile(r"^(?P<base>.+)_(?P<line>\d+)$")


def flatten_schema(schema: FieldDefinition) -> dict[str, FieldDefinition]:
    """Map every leaf field id to its definition."""

    return {leaf.id: leaf for leaf in schema.iter_leaves()}


def collect_default_values(
    schema: FieldDefinition, *, count_field_id: str = COUNT_FIELD_ID
) -> dict[str, FieldValue]:
    """Typed defaults for every leaf except the count control."""

    return {
        leaf.id: leaf.typed_default()
        for leaf in schema.iter_leaves()
        if leaf.id != count_field_id
    }


def find_foreign_ids(
    schema: FieldDefinition,
    placeholder_ids: Iterable[str],
    *,
    count_field_id: str = COUNT_FIELD_ID,
) -> list[str]:
    """Return placeholder ids that the schema does not define, in stable order.

    ``<field>_<line>`` ids that point at a schema field, or at another foreign
    placeholder, address one item's value and are not fields of their own.
    """

    known = {node.id for node in schema.walk()}
    candidates = {
        pid for pid in placeholder_ids if pid != count_field_id and pid not in known
    }
    bases = (set(flatten_schema(schema)) | candidates) - {count_field_id}
    return sorted(pid for pid in candidates if split_indexed_id(pid, bases) is None)


def split_indexed_id(key: str, base_ids: Iterable[str]) -> tuple[str, int] | None:
    """Split ``<field>_<line>`` into its parts when ``<field>`` is one of ``base_ids``.

    Keys that are themselves base ids stay whole, even when they end in
    ``_<digits>``.
    """

    bases = base_ids if isinstance(base_ids, (set, frozenset)) else set(base_ids)
    if key in bases:
        return None
    match = _INDEXED_ID_RE.match(key)
    if match is None or match.group("base") not in bases:
        return None
    return match.group("base"), int(match.group("line"))


def with_additional_fields(
    schema: FieldDefinition,
    placeholder_ids: Iterable[str],
    *,
    count_field_id: str = COUNT_FIELD_ID,
    container_id: str = ADDITIONAL_FIELDS_ID,
    container_label: str = ADDITIONAL_FIELDS_LABEL,
) -> FieldDefinition:
    """Append a container of text fields for placeholders missing from the schema.

    Returns the schema unchanged when every placeholder is already defined. The
    container (and the wrapper around a leaf root) takes the first id not used
    by a schema node or a foreign placeholder.
    """

    foreign = find_foreign_ids(schema, placeholder_ids, count_field_id=count_field_id)
    if not foreign:
        return schema

    taken = {node.id for node in schema.walk()} | set(foreign)
    container = FieldDefinition(
        id=_free_id(container_id, taken),
        label=container_label,
        kind="container",
        layout="vertical",
        children=[text_field(field_id) for field_id in foreign],
    )
    if not schema.is_container:
        taken.add(container.id)
        return FieldDefinition(
            id=_free_id(f"{schema.id}Root", taken),
            kind="container",
            children=[schema, container],
        )
    return schema.model_copy(update={"children": [*schema.children, container]})


def _free_id(preferred: str, taken: set[str]) -> str:
    candidate = preferred
    suffix = 2
    while candidate in taken:
        candidate = f"{preferred}{suffix}"
        suffix += 1
    return candidate


def filter_count_field(
    schema: FieldDefinition, *, count_field_id: str = COUNT_FIELD_ID
) -> FieldDefinition:
    """Mark the count control excluded and drop it from every container."""

    if schema.id == count_field_id:
        return schema.model_copy(update={"excluded": True})
    if not schema.children:
        return schema

    children = [
        filter_count_field(child, count_field_id=count_field_id) for child in schema.children
    ]
    return schema.model_copy(
        update={"children": [child for child in children if not child.excluded]}
    )
