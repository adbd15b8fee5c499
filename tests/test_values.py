from __future__ import annotations

import pytest

from reportsync.schema.values import (
    parse_boolean,
    parse_number,
    render_inline,
    render_value,
    value_kind,
    values_equal,
)


def test_values_equal_is_kind_aware() -> None:
    assert values_equal(5, 5.0)
    assert not values_equal(True, 1)
    assert not values_equal("5", 5)
    assert values_equal({"a": True}, {"a": True})
    assert values_equal(None, None)
    assert not values_equal(None, "")


def test_value_kind_checks_bool_before_int() -> None:
    assert value_kind(True) == "boolean"
    assert value_kind(0) == "number"
    assert value_kind({"a": False}) == "group"
    assert value_kind("x") == "text"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, ""),
        (3, "3"),
        (3.0, "3"),
        (2.25, "2.25"),
        (False, "false"),
        ({"a": True, "b": False, "c": True}, "a, c"),
        ({"a": False}, ""),
        ("text", "text"),
    ],
)
def test_render_value(value: object, expected: str) -> None:
    assert render_value(value) == expected  # type: ignore[arg-type]


def test_render_inline_neutralizes_line_breaks_and_braces() -> None:
    assert render_inline("a\r\nb {{x}}") == "a  b ((x))"


@pytest.mark.parametrize(
    ("text", "expected"),
    [("12", 12), (" -3 ", -3), ("4,5", 4.5), ("0.25", 0.25), ("1e3", None), ("", None)],
)
def test_parse_number(text: str, expected: object) -> None:
    assert parse_number(text) == expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [("Yes", True), ("ja", True), ("1", True), ("off", False), ("", False), ("maybe", None)],
)
def test_parse_boolean(text: str, expected: object) -> None:
    assert parse_boolean(text) is expected
