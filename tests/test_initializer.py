from __future__ import annotations

from reportsync.items.count_adjuster import set_count
from reportsync.items.field_update import update_field
from reportsync.items.initializer import initialize_store, seed_values
from reportsync.schema.models import FieldDefinition


def _schema() -> FieldDefinition:
    return FieldDefinition.model_validate(
        {
            "id": "root",
            "kind": "container",
            "children": [
                {"id": "countField", "kind": "number"},
                {"id": "d", "kind": "number", "unit": "mm"},
                {"id": "site", "kind": "dropdown", "options": ["left", "right"]},
                {
                    "id": "shape",
                    "kind": "checkboxGroup",
                    "options": ["round", "oval"],
                    "defaultValue": {"round": True},
                },
            ],
        }
    )


def test_one_item_per_numbered_line() -> None:
    store = initialize_store("{{countField}}\n1: {{d}}\n2: {{d}}\n3: {{d}}", _schema())

    assert store.count == 3
    assert [item.line_number for item in store.items] == [1, 2, 3]
    assert store.has_count_field
    assert store.text == "3\n1: 0\n2: 0\n3: 0"


def test_template_without_numbered_lines_has_one_item() -> None:
    store = initialize_store("Impression: {{site}}", _schema())

    assert store.count == 1
    assert store.items[0].line_number == 1
    assert not store.has_count_field


def test_items_are_seeded_from_schema_defaults() -> None:
    store = initialize_store("1: {{d}} {{shape}} {{extra}}", _schema())

    values = store.items[0].values
    assert values["d"] == 0
    assert values["site"] == ""
    assert values["shape"] == {"round": True, "oval": False}
    assert values["extra"] == ""
    assert "countField" not in values
    assert store.field_ids == frozenset({"d", "site", "shape", "extra"})


def test_round_trip_reproduces_literal_lines() -> None:
    template = (
        "Lesions: {{countField}}\n"
        "1: {{site}} lobe, {{d}} mm\n"
        "2: right lobe, 12 mm\n"
        "3: left lobe, 4,5 mm\n"
        "4: not a finding"
    )

    store = initialize_store(template, _schema())

    assert store.count == 4
    assert store.text == (
        "Lesions: 4\n"
        "1:  lobe, 0 mm\n"
        "2: right lobe, 12 mm\n"
        "3: left lobe, 4,5 mm\n"
        "4: not a finding"
    )
    assert store.items[1].values["site"] == "right"
    assert store.items[1].values["d"] == 12
    assert store.items[2].values["d"] == 4.5
    assert store.skeleton.split("\n")[2] == "2: {{site}} lobe, {{d}} mm"
    assert store.skeleton.split("\n")[3] == "3: left lobe, 4,5 mm"


def test_literal_values_stay_with_their_own_item() -> None:
    store = initialize_store("1: {{d}} mm\n2: 7 mm", _schema())

    assert store.items[0].values["d"] == 0
    assert store.items[1].values["d"] == 7
    assert "d_2" not in store.items[0].values
    assert "d_2" not in store.items[1].values


def test_gaps_in_line_numbers_still_give_unique_items() -> None:
    store = initialize_store("1: {{d}}\n4: {{d}}", _schema())

    assert [item.line_number for item in store.items] == [1, 2, 3, 4]
    assert store.text == "1: 0\n4: 0"


def test_reimport_reads_values_back_through_skeleton() -> None:
    skeleton = "Lesions: {{countField}}\n1: {{site}} lobe, {{d}} mm"
    text = "Lesions: 2\n1: left lobe, 3 mm\n2: right lobe, 8 mm"

    store = initialize_store(text, _schema(), skeleton=skeleton)

    assert store.count == 2
    assert store.skeleton == (
        "Lesions: {{countField}}\n1: {{site}} lobe, {{d}} mm\n2: {{site}} lobe, {{d}} mm"
    )
    assert store.items[0].values["site"] == "left"
    assert store.items[1].values["d"] == 8
    assert store.text == text


def test_seed_values_fills_unknown_ids_with_empty_text() -> None:
    values = seed_values(_schema(), ["d", "other"])

    assert values["other"] == ""
    assert values["d"] == 0


SUMMARY_TEMPLATE = "1: Diameter {{d}} mm\n2: Diameter {{d}} mm\nLargest: {{d_2}}"


def test_indexed_placeholder_addresses_an_item_not_a_new_field() -> None:
    schema = _schema()
    store = initialize_store(SUMMARY_TEMPLATE, schema)

    assert store.field_ids == frozenset({"d", "site", "shape"})
    assert all("d_2" not in item.values for item in store.items)
    assert store.text == "1: Diameter 0 mm\n2: Diameter 0 mm\nLargest: 0"

    update_field(store, 1, "d", 9)
    assert store.text == "1: Diameter 0 mm\n2: Diameter 9 mm\nLargest: 9"

    update_field(store, 0, "d_2", 4)
    assert store.items[0].values["d_2"] == 4

    set_count(store, 1, schema)
    assert "d_2" not in store.items[0].values
    assert store.text == "1: Diameter 0 mm\nLargest: "


def test_reimported_summary_value_goes_to_the_named_item() -> None:
    store = initialize_store(
        "1: Diameter 0 mm\n2: see below\nLargest: 6", _schema(), skeleton=SUMMARY_TEMPLATE
    )

    assert store.items[1].values["d"] == 6
    assert "d_2" not in store.items[0].values
    assert store.text == "1: Diameter 0 mm\n2: see below\nLargest: 6"


def test_numbered_line_wins_over_a_conflicting_summary_line() -> None:
    store = initialize_store(
        "1: Diameter 0 mm\n2: Diameter 4 mm\nLargest: 6", _schema(), skeleton=SUMMARY_TEMPLATE
    )

    assert store.items[1].values["d"] == 4
    assert store.text.endswith("Largest: 4")


def test_indexed_view_mirrors_base_values_under_the_line_number() -> None:
    schema = FieldDefinition.model_validate(
        {
            "id": "root",
            "kind": "container",
            "children": [
                {"id": "countField", "kind": "number"},
                {"id": "d", "kind": "number"},
            ],
        }
    )
    store = initialize_store(
        "{{countField}}\n1: Diameter {{d}} mm\n2: Diameter {{d}} mm", schema
    )

    assert store.items[0].indexed_view(store.field_ids) == {"d": 0, "d_1": 0}
    assert store.items[1].indexed_view(store.field_ids) == {"d": 0, "d_2": 0}

    store.items[0].values["d_2"] = 3
    assert store.items[0].indexed_view(store.field_ids) == {"d": 0, "d_1": 0, "d_2": 3}
