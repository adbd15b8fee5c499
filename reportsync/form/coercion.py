"""Coerce raw editor input to typed field values."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from reportsync.schema.models import FieldDefinition
from reportsync.schema.values import FieldValue, coerce_number, parse_boolean, parse_group
from reportsync.utils.errors import FieldValueError


def coerce_field_value(definition: FieldDefinition, raw: Any) -> FieldValue:
    """Convert form or CLI input to the value type of ``definition``.

    Raises:
        FieldValueError: when the input does not fit the field kind.
    """

    kind = definition.kind
    if kind == "container":
        raise _error(definition, raw, "containers hold no value")

    if kind == "number":
        if isinstance(raw, str) and not raw.strip():
            return 0
        number = coerce_number(raw)
        if number is None:
            raise _error(definition, raw, "expected a number")
        return number

    if kind == "checkbox":
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, int) and raw in (0, 1):
            return bool(raw)
        if isinstance(raw, str):
            parsed = parse_boolean(raw)
            if parsed is not None:
                return parsed
        raise _error(definition, raw, "expected a boolean")

    if kind == "checkboxGroup":
        return _coerce_group(definition, raw)

    if raw is None:
        text = ""
    elif isinstance(raw, (str, int, float)) and not isinstance(raw, bool):
        text = str(raw)
    else:
        raise _error(definition, raw, "expected text")

    if kind == "dropdown" and definition.options and text and text not in definition.options:
        raise _error(definition, raw, f"expected one of {definition.options}")
    return text


def _coerce_group(definition: FieldDefinition, raw: Any) -> dict[str, bool]:
    options = definition.options
    if isinstance(raw, str):
        selected = parse_group(raw, options)
        requested = {part.strip() for part in raw.split(",") if part.strip()}
        unknown = requested - set(options)
    elif isinstance(raw, Mapping):
        selected = {option: bool(raw.get(option, False)) for option in options}
        unknown = {str(key) for key in raw} - set(options)
    elif isinstance(raw, (list, tuple, set)):
        requested = {str(entry) for entry in raw}
        selected = {option: option in requested for option in options}
        unknown = requested - set(options)
    else:
        raise _error(definition, raw, "expected a selection")

    if unknown:
        raise _error(definition, raw, f"unknown options: {sorted(unknown)}")
    return selected


def _error(definition: FieldDefinition, raw: Any, reason: str) -> FieldValueError:
    return FieldValueError(
        f"Invalid value for field '{definition.id}' ({definition.kind}): {reason}",
        field_id=definition.id,
        raw_value=raw,
    )
