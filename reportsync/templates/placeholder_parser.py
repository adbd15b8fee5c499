"""Placeholder extraction for plain-text section templates.

Only well-formed ``{{ identifier }}`` tokens are placeholders. Unbalanced or
empty brace pairs are reported for diagnostics and otherwise left as text.
"""

from __future__ import annotations

import re

from reportsync.schema.models import COUNT_FIELD_ID, FieldDefinition
from reportsync.schema.tree import flatten_schema, split_indexed_id
from reportsync.schema.values import (
    FieldValue,
    parse_boolean,
    parse_group,
    parse_number,
    render_inline,
)
from reportsync.templates.models import (
    AlignedLine,
    NumberedLines,
    Occurrence,
    ParseResult,
    UnsupportedOccurrence,
)

PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")
LINE_NUMBER_RE = re.compile(r"^(\d+)\s*:")
_EMPTY_TOKEN_RE = re.compile(r"\{\{\s*\}\}")
_OPEN = "{{"
_CLOSE = "}}"


def parse_placeholders(text: str) -> ParseResult:
    """Parse placeholders line by line.

    Returns:
        ParseResult with distinct field ids in first-seen order, every token
        occurrence, and brace sequences that are not placeholders.
    """

    result = ParseResult()
    seen: set[str] = set()

    for line_index, line in enumerate(text.split("\n")):
        for match in PLACEHOLDER_RE.finditer(line):
            field_id = match.group(1)
            result.occurrences.append(
                Occurrence(
                    field_id=field_id,
                    line_index=line_index,
                    start=match.start(),
                    end=match.end(),
                )
            )
            if field_id not in seen:
                result.fields.append(field_id)
                seen.add(field_id)

        for match in _EMPTY_TOKEN_RE.finditer(line):
            result.unsupported.append(
                UnsupportedOccurrence(
                    kind="empty_token",
                    text=match.group(0),
                    line_index=line_index,
                    start=match.start(),
                    end=match.end(),
                )
            )

        for kind, start, end in _find_unbalanced_braces(line):
            result.unsupported.append(
                UnsupportedOccurrence(
                    kind=kind,
                    text=line[start:end],
                    line_index=line_index,
                    start=start,
                    end=end,
                )
            )

    return result


def extract_placeholder_ids(text: str) -> set[str]:
    """All distinct placeholder ids, the reserved count token included."""

    return {match.group(1) for match in PLACEHOLDER_RE.finditer(text)}


def has_count_field(text: str) -> bool:
    return COUNT_FIELD_ID in extract_placeholder_ids(text)


def line_number_of(line: str) -> int | None:
    match = LINE_NUMBER_RE.match(line)
    if match is None:
        return None
    return int(match.group(1))


def extract_numbered_lines(text: str) -> NumberedLines:
    numbers = sorted(
        number
        for number in (line_number_of(line) for line in text.split("\n"))
        if number is not None
    )
    return NumberedLines(
        line_numbers=tuple(numbers),
        max_line_number=numbers[-1] if numbers else 0,
    )


def find_model_line(lines: list[str]) -> int | None:
    """Index of the first numbered line carrying a non-reserved placeholder."""

    for index, line in enumerate(lines):
        if line_number_of(line) is None:
            continue
        if any(match.group(1) != COUNT_FIELD_ID for match in PLACEHOLDER_RE.finditer(line)):
            return index
    return None


def extract_literal_values(
    text: str, schema: FieldDefinition, *, skeleton: str | None = None
) -> dict[str, FieldValue]:
    """Seed values for every placeholder in ``text`` (and ``skeleton`` when given).

    Base ids map to the schema default typed per kind (unknown ids become empty
    text; ``<field>_<line>`` references to a schema field are not seeded).
    Literals found on numbered lines that mirror the model line are
    reported under ``<field>_<line number>``; literals restored on unnumbered
    template lines are reported under the base id.
    """

    fields = flatten_schema(schema)
    placeholder_ids = parse_placeholders(text).fields
    if skeleton is not None:
        placeholder_ids = placeholder_ids + parse_placeholders(skeleton).fields

    values: dict[str, FieldValue] = {}
    for field_id in placeholder_ids:
        if field_id == COUNT_FIELD_ID or field_id in values:
            continue
        if split_indexed_id(field_id, fields) is not None:
            continue
        definition = fields.get(field_id)
        values[field_id] = definition.typed_default() if definition is not None else ""

    for aligned in align_literal_lines(text, schema, skeleton=skeleton):
        for field_id, value in aligned.values.items():
            if aligned.line_number is None:
                values[field_id] = value
            else:
                values[f"{field_id}_{aligned.line_number}"] = value

    return values


def align_literal_lines(
    text: str, schema: FieldDefinition, *, skeleton: str | None = None
) -> list[AlignedLine]:
    """Read literal values from lines that have no placeholders of their own.

    Numbered lines are matched against the model line. When a previous
    ``skeleton`` is given the model line is taken from it, and its unnumbered
    placeholder lines are matched in order against the unnumbered lines of
    ``text`` so a rendered section can be read back into values.
    """

    lines = text.split("\n")
    reference = skeleton.split("\n") if skeleton is not None else lines
    fields = flatten_schema(schema)
    aligned: list[AlignedLine] = []

    model_index = find_model_line(reference)
    if model_index is not None:
        model_content = _content_after_marker(reference[model_index])
        pattern, group_fields = _build_line_pattern(model_content)
        for index, line in enumerate(lines):
            number = line_number_of(line)
            if number is None or PLACEHOLDER_RE.search(line):
                continue
            content = _content_after_marker(line)
            matched = _match_template(content, model_content, pattern, group_fields, fields)
            if matched is None or not matched[0]:
                continue
            values, exact = matched
            canonical = None
            if exact and COUNT_FIELD_ID not in group_fields.values():
                canonical = line[: len(line) - len(content)] + model_content
            aligned.append(
                AlignedLine(
                    line_index=index, line_number=number, values=values, canonical=canonical
                )
            )

    if skeleton is not None:
        aligned.extend(_align_unnumbered(lines, reference, fields))

    return sorted(aligned, key=lambda entry: entry.line_index)


def _align_unnumbered(
    lines: list[str], reference: list[str], fields: dict[str, FieldDefinition]
) -> list[AlignedLine]:
    # Greedy in-order walk: plain skeleton lines must reappear verbatim, template
    # lines must match their pattern. Text lines matching nothing are skipped.
    templates = [line for line in reference if line_number_of(line) is None and line.strip()]
    aligned: list[AlignedLine] = []
    cursor = 0
    for index, line in enumerate(lines):
        if line_number_of(line) is not None or not line.strip() or PLACEHOLDER_RE.search(line):
            continue
        for offset in range(cursor, len(templates)):
            template = templates[offset]
            if not PLACEHOLDER_RE.search(template):
                if template == line:
                    cursor = offset + 1
                    break
                continue
            pattern, group_fields = _build_line_pattern(template)
            matched = _match_template(line, template, pattern, group_fields, fields)
            if matched is None:
                continue
            values, exact = matched
            aligned.append(
                AlignedLine(
                    line_index=index,
                    line_number=None,
                    values=values,
                    canonical=template if exact else None,
                )
            )
            cursor = offset + 1
            break
    return aligned


def _match_template(
    content: str,
    template: str,
    pattern: re.Pattern[str],
    group_fields: dict[str, str],
    fields: dict[str, FieldDefinition],
) -> tuple[dict[str, FieldValue], bool] | None:
    """Values captured from ``content`` and whether re-rendering reproduces it exactly."""

    match = pattern.fullmatch(content)
    if match is None:
        return None

    values: dict[str, FieldValue] = {}
    for group_name, field_id in group_fields.items():
        captured = match.group(group_name)
        if field_id == COUNT_FIELD_ID:
            if not captured.strip().isdigit():
                return None
            continue
        if field_id in values:
            continue
        value = coerce_literal(_definition_for(field_id, fields), captured)
        if value is None:
            return None
        values[field_id] = value

    rendered: list[str] = []
    cursor = 0
    for position, token in enumerate(PLACEHOLDER_RE.finditer(template)):
        rendered.append(template[cursor : token.start()])
        if token.group(1) == COUNT_FIELD_ID:
            rendered.append(match.group(f"g{position}"))
        else:
            rendered.append(render_inline(values.get(token.group(1))))
        cursor = token.end()
    rendered.append(template[cursor:])
    return values, "".join(rendered) == content


def _definition_for(
    field_id: str, fields: dict[str, FieldDefinition]
) -> FieldDefinition | None:
    indexed = split_indexed_id(field_id, fields)
    return fields.get(indexed[0] if indexed is not None else field_id)


def coerce_literal(definition: FieldDefinition | None, literal: str) -> FieldValue | None:
    """Coerce literal text to the field's kind; None when it does not fit."""

    stripped = literal.strip()
    if definition is None or definition.kind in {"text", "dropdown"}:
        return stripped
    if definition.kind == "number":
        return parse_number(stripped)
    if definition.kind == "checkbox":
        return parse_boolean(stripped)
    if definition.kind == "checkboxGroup":
        return parse_group(stripped, definition.options)
    return None


def _content_after_marker(line: str) -> str:
    match = LINE_NUMBER_RE.match(line)
    if match is None:
        return line
    return line[match.end() :]


def _build_line_pattern(model_content: str) -> tuple[re.Pattern[str], dict[str, str]]:
    parts: list[str] = []
    group_fields: dict[str, str] = {}
    cursor = 0
    for position, match in enumerate(PLACEHOLDER_RE.finditer(model_content)):
        parts.append(re.escape(model_content[cursor : match.start()]))
        group_name = f"g{position}"
        group_fields[group_name] = match.group(1)
        parts.append(f"(?P<{group_name}>.*?)")
        cursor = match.end()
    parts.append(re.escape(model_content[cursor:]))
    return re.compile("".join(parts), re.DOTALL), group_fields


def _find_unbalanced_braces(line: str) -> list[tuple[str, int, int]]:
    """Classify brace pairs outside valid tokens: invalid ids, unclosed opens, stray closes."""

    issues: list[tuple[str, int, int]] = []
    masked = PLACEHOLDER_RE.sub(lambda match: " " * len(match.group(0)), line)
    masked = _EMPTY_TOKEN_RE.sub(lambda match: " " * len(match.group(0)), masked)

    open_positions: list[int] = []
    index = 0
    while index < len(masked):
        if masked.startswith(_OPEN, index):
            open_positions.append(index)
            index += len(_OPEN)
            continue
        if masked.startswith(_CLOSE, index):
            if open_positions:
                issues.append(("invalid_format", open_positions.pop(), index + len(_CLOSE)))
            else:
                issues.append(("stray_close", index, index + len(_CLOSE)))
            index += len(_CLOSE)
            continue
        index += 1

    for start in open_positions:
        issues.append(("unclosed_open", start, len(line)))

    return sorted(issues, key=lambda issue: issue[1])
