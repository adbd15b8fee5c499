"""Apply a single field edit to one item and regenerate the section text."""

from __future__ import annotations

from reportsync.items.models import ItemStore, indexed_key, parse_indexed_key
from reportsync.schema.values import FieldValue, copy_value, values_equal
from reportsync.templates.regenerator import regenerate
from reportsync.utils.errors import ItemNotFoundError


def update_field(store: ItemStore, item_index: int, field_id: str, value: FieldValue) -> bool:
    """Set ``field_id`` on the item at ``item_index`` and regenerate ``store.text``.

    Only the target item changes. An indexed id that names the item's own
    line is written to its base id. Returns False when the value already
    equals the current one.
    """

    if not 0 <= item_index < store.count:
        raise ItemNotFoundError(
            f"No item at index {item_index}",
            item_index=item_index,
            item_count=store.count,
        )

    item = store.items[item_index]
    target = field_id
    parsed = parse_indexed_key(field_id, store.field_ids)
    if parsed is not None and parsed[1] == item.line_number:
        target = parsed[0]

    mirror = indexed_key(target, item.line_number)
    current = item.values.get(mirror, item.values.get(target))
    if values_equal(current, value):
        return False

    item.values[target] = copy_value(value)
    if mirror in item.values and mirror not in store.field_ids:
        item.values[mirror] = copy_value(value)

    store.text = regenerate(store.skeleton, store)
    return True
