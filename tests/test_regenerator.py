from __future__ import annotations

from reportsync.items.initializer import initialize_store
from reportsync.items.models import Item, ItemStore
from reportsync.schema.models import FieldDefinition
from reportsync.templates.regenerator import collapse_blank_lines, regenerate, resolve_placeholder


def _store(*items: Item, skeleton: str = "", field_ids: frozenset[str] = frozenset({"d"})):
    return ItemStore(items=list(items), skeleton=skeleton, field_ids=field_ids)


def test_numbered_lines_use_their_own_item() -> None:
    skeleton = "{{countField}}\n1: Diameter {{d}} mm\n2: Diameter {{d}} mm"
    store = _store(Item(1, {"d": 5}), Item(2, {"d": 0}), skeleton=skeleton)

    assert regenerate(skeleton, store) == "2\n1: Diameter 5 mm\n2: Diameter 0 mm"


def test_lines_numbered_above_count_are_dropped() -> None:
    skeleton = "1: {{d}}\n2: {{d}}\n3: {{d}}"
    store = _store(Item(1, {"d": 1}), Item(2, {"d": 2}))

    assert regenerate(skeleton, store) == "1: 1\n2: 2"


def test_explicit_indexed_value_wins_over_base_value() -> None:
    store = _store(Item(1, {"d": 1, "d_1": 9}))

    assert resolve_placeholder("d", 1, store) == 9


def test_indexed_placeholder_reads_the_named_line() -> None:
    store = _store(Item(1, {"d": 1}), Item(2, {"d": 2}))

    assert regenerate("1: {{d}} / {{d_2}}\n2: {{d}}", store) == "1: 1 / 2\n2: 2"


def test_unnumbered_line_takes_first_item_holding_the_field() -> None:
    store = _store(
        Item(1, {"d": 1}),
        Item(2, {"d": 2, "note": "second"}),
        field_ids=frozenset({"d", "note"}),
    )

    assert regenerate("Note: {{note}}, size {{d}}", store) == "Note: second, size 1"


def test_unresolved_placeholder_renders_empty() -> None:
    store = _store(Item(1, {}))

    assert regenerate("1: [{{missing}}]", store) == "1: []"


def test_values_render_per_kind() -> None:
    store = _store(
        Item(1, {"n": 5.0, "flag": True, "group": {"a": True, "b": False, "c": True}}),
        field_ids=frozenset({"n", "flag", "group"}),
    )

    assert regenerate("1: {{n}} {{flag}} {{group}}", store) == "1: 5 true a, c"


def test_values_cannot_split_lines_or_form_placeholders() -> None:
    store = _store(Item(1, {"note": "a\nb {{d}}"}), field_ids=frozenset({"note", "d"}))

    assert regenerate("1: {{note}}", store) == "1: a b ((d))"


def test_blank_line_runs_collapse_to_one() -> None:
    assert collapse_blank_lines(["a", "", " ", "", "b", ""]) == ["a", "", "b", ""]


def test_regenerate_is_idempotent_on_its_output() -> None:
    schema = FieldDefinition.model_validate(
        {
            "id": "root",
            "kind": "container",
            "children": [
                {"id": "d", "kind": "number"},
                {"id": "label", "kind": "text", "defaultValue": "7"},
            ],
        }
    )
    template = "{{label}} lesions\n{{countField}}\n\n\n1: {{d}} mm\n2: {{d}} mm\n5: orphan {{d}}"
    store = initialize_store(template, schema)

    once = regenerate(store.skeleton, store)
    assert regenerate(once, store) == once
    assert store.text == once
