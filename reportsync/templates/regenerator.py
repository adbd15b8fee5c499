"""Pure text regeneration from a template skeleton and an item store."""

from __future__ import annotations

from reportsync.items.models import Item, ItemStore, indexed_key, parse_indexed_key
from reportsync.schema.models import COUNT_FIELD_ID
from reportsync.schema.values import FieldValue, render_inline
from reportsync.templates.placeholder_parser import PLACEHOLDER_RE, line_number_of


def regenerate(skeleton: str, store: ItemStore) -> str:
    """Render ``skeleton`` with the values held by ``store``.

    Numbered lines above ``store.count`` are dropped, numbered lines resolve
    placeholders against their own item (indexed value, then base value),
    other lines use base values. The single pass is repeated until the text
    stops changing, so the result is a fixed point and regenerating it again
    returns it unchanged.
    """

    text = skeleton
    while True:
        updated = _regenerate_once(text, store)
        if updated == text:
            return updated
        text = updated


def collapse_blank_lines(lines: list[str]) -> list[str]:
    """Keep only the first line of every run of blank lines."""

    collapsed: list[str] = []
    previous_blank = False
    for line in lines:
        blank = not line.strip()
        if blank and previous_blank:
            continue
        collapsed.append(line)
        previous_blank = blank
    return collapsed


def resolve_placeholder(
    field_id: str, line_number: int | None, store: ItemStore
) -> FieldValue | None:
    """Resolve one placeholder; None when no item holds a value for it."""

    if line_number is not None:
        item = store.item_for_line(line_number)
        if item is not None:
            scoped = _scoped_value(item, field_id)
            if scoped is not None:
                return scoped
    else:
        for item in store.items:
            if field_id in item.values:
                return item.values[field_id]

    parsed = parse_indexed_key(field_id, store.field_ids)
    if parsed is not None:
        base, target_line = parsed
        target = store.item_for_line(target_line)
        if target is not None:
            return target.values.get(base)
    return None


def _regenerate_once(text: str, store: ItemStore) -> str:
    count = store.count
    text = PLACEHOLDER_RE.sub(
        lambda match: str(count) if match.group(1) == COUNT_FIELD_ID else match.group(0), text
    )

    rendered: list[str] = []
    for line in text.split("\n"):
        number = line_number_of(line)
        if number is not None and number > count:
            continue
        rendered.append(
            PLACEHOLDER_RE.sub(
                lambda match: render_inline(resolve_placeholder(match.group(1), number, store)),
                line,
            )
        )

    return "\n".join(collapse_blank_lines(rendered))


def _scoped_value(item: Item, field_id: str) -> FieldValue | None:
    indexed = item.values.get(indexed_key(field_id, item.line_number))
    if indexed is not None:
        return indexed
    return item.values.get(field_id)
