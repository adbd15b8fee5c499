"""Form rendering contract: typed editor nodes and field-change emission."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from reportsync.form.coercion import coerce_field_value
from reportsync.form.visibility import VisibilityGraph
from reportsync.schema.models import FieldDefinition, FieldKind
from reportsync.schema.tree import filter_count_field, flatten_schema
from reportsync.schema.values import FieldValue
from reportsync.utils.errors import FieldValueError

ChangeHandler = Callable[[str, FieldValue], object]


class FormNode(BaseModel):
    """One rendered editor (leaf) or group (container)."""

    model_config = ConfigDict(extra="forbid")

    id: str
    label: str
    kind: FieldKind
    depth: int
    indent: int = 0
    value: FieldValue | None = None
    unit: str | None = None
    options: list[str] = Field(default_factory=list)
    help_text: str | None = None
    layout: str | None = None
    children: list[FormNode] = Field(default_factory=list)


class FormRenderer:
    """Render one item's values against a schema and emit typed changes.

    The count control is filtered out because the count has its own control.
    """

    def __init__(self, schema: FieldDefinition, on_change: ChangeHandler | None = None) -> None:
        self._schema = filter_count_field(schema)
        self._fields = flatten_schema(self._schema)
        self._visibility = VisibilityGraph.from_schema(self._schema)
        self._on_change = on_change

    @property
    def schema(self) -> FieldDefinition:
        return self._schema

    @property
    def visibility(self) -> VisibilityGraph:
        return self._visibility

    def render(self, values: Mapping[str, FieldValue]) -> FormNode | None:
        """Render the schema tree; None when the root itself is hidden."""

        return self._render_node(self._schema, values, depth=0)

    def change(self, field_id: str, raw: Any) -> FieldValue:
        """Coerce ``raw`` for ``field_id`` and hand ``(field_id, value)`` to the handler."""

        definition = self._fields.get(field_id)
        if definition is None:
            raise FieldValueError(f"Unknown field: {field_id}", field_id=field_id, raw_value=raw)
        value = coerce_field_value(definition, raw)
        if self._on_change is not None:
            self._on_change(field_id, value)
        return value

    def _render_node(
        self, node: FieldDefinition, values: Mapping[str, FieldValue], *, depth: int
    ) -> FormNode | None:
        if node.excluded or not self._visibility.is_visible(node.id, values):
            return None

        indent = depth if node.indented else 0
        if node.is_container:
            children: list[FormNode] = []
            for child in node.children:
                rendered = self._render_node(child, values, depth=depth + 1)
                if rendered is not None:
                    children.append(rendered)
            return FormNode(
                id=node.id,
                label=node.label or "",
                kind=node.kind,
                depth=depth,
                indent=indent,
                layout=node.layout,
                children=children,
            )

        value = values[node.id] if node.id in values else node.typed_default()
        return FormNode(
            id=node.id,
            label=node.display_label,
            kind=node.kind,
            depth=depth,
            indent=indent,
            value=value,
            unit=node.unit,
            options=list(node.options),
            help_text=node.help_text,
        )
