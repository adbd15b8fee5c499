"""Typed field values: equality, text rendering, and coercion."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any, Literal, Union

FieldValue = Union[str, int, float, bool, dict[str, bool]]
ValueKind = Literal["text", "number", "boolean", "group"]

_NUMBER_LITERAL_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")
_TRUE_TOKENS = {"true", "1", "yes", "on", "ja"}
_FALSE_TOKENS = {"false", "0", "no", "off", "nei", ""}


def value_kind(value: FieldValue) -> ValueKind:
    """Return the tag of a field value (bool is checked before int)."""

    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, Mapping):
        return "group"
    return "text"


def values_equal(left: FieldValue | None, right: FieldValue | None) -> bool:
    """Kind-aware equality: ``True != 1`` while ``5 == 5.0``."""

    if left is None or right is None:
        return left is right
    if value_kind(left) != value_kind(right):
        return False
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return dict(left) == dict(right)
    return left == right


def render_value(value: FieldValue | None) -> str:
    """Render a field value as template text."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Mapping):
        return ", ".join(str(option) for option, selected in value.items() if selected)
    return str(value)


def parse_number(text: str) -> int | float | None:
    """Parse a numeric literal, accepting a decimal comma."""

    match = _NUMBER_LITERAL_RE.fullmatch(text.strip())
    if match is None:
        return None
    normalized = match.group(0).replace(",", ".")
    if "." in normalized:
        return float(normalized)
    return int(normalized)


def parse_boolean(text: str) -> bool | None:
    token = text.strip().lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    return None


def parse_group(text: str, options: list[str]) -> dict[str, bool]:
    """Parse a comma-joined selection back into an option map."""

    selected = {part.strip() for part in text.split(",") if part.strip()}
    return {option: option in selected for option in options}


def copy_value(value: FieldValue) -> FieldValue:
    if isinstance(value, Mapping):
        return dict(value)
    return value


def coerce_number(raw: Any) -> int | float | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, str):
        return parse_number(raw)
    return None


_INLINE_TRANSLATION = str.maketrans({"{": "(", "}": ")", "\r": " ", "\n": " "})


def render_inline(value: FieldValue | None) -> str:
    """Render a value for substitution into a single template line.

    Line breaks become spaces and braces become parentheses so a substituted
    value can never split a line or form a new placeholder.
    """

    return render_value(value).translate(_INLINE_TRANSLATION)
