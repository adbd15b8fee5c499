"""Data models for placeholder parsing and literal-line alignment."""

from __future__ import annotations

from dataclasses import dataclass, field

from reportsync.schema.values import FieldValue


@dataclass(frozen=True)
class Occurrence:
    """A well-formed ``{{ identifier }}`` token."""

    field_id: str
    line_index: int
    start: int
    end: int


@dataclass(frozen=True)
class UnsupportedOccurrence:
    """A brace sequence that is left as literal text."""

    kind: str
    text: str
    line_index: int
    start: int
    end: int


@dataclass
class ParseResult:
    """Placeholder parsing output."""

    fields: list[str] = field(default_factory=list)
    occurrences: list[Occurrence] = field(default_factory=list)
    unsupported: list[UnsupportedOccurrence] = field(default_factory=list)


@dataclass(frozen=True)
class NumberedLines:
    """Line numbers found at line starts, sorted ascending."""

    line_numbers: tuple[int, ...] = ()
    max_line_number: int = 0


@dataclass(frozen=True)
class AlignedLine:
    """Literal values read from one line by matching it against a template line.

    ``canonical`` holds the model line renumbered for this line when rendering
    the captured values reproduces the original line exactly; otherwise None
    and the literal line stays as written.
    ``line_number`` is None for unnumbered lines restored from a skeleton.
    """

    line_index: int
    line_number: int | None
    values: dict[str, FieldValue]
    canonical: str | None
