"""Field definition models for report section schemas."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from reportsync.schema.values import FieldValue, copy_value

FieldKind = Literal["container", "text", "number", "checkbox", "checkboxGroup", "dropdown"]

COUNT_FIELD_ID = "countField"


class FieldDefinition(BaseModel):
    """One node of a schema tree.

    Containers group children and hold no value of their own. Leaves describe
    a typed editor and the default used to seed new items.
    """

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(min_length=1)
    label: str | None = None
    kind: FieldKind = Field(validation_alias=AliasChoices("kind", "type"))
    default_value: FieldValue | None = None
    options: list[str] = Field(default_factory=list)
    unit: str | None = None
    conditional_on: str | None = None
    conditional_value: Any = None
    conditional_value_not: Any = Field(
        default=None,
        validation_alias=AliasChoices(
            "conditionalValueNot", "conditionalValue_not", "conditional_value_not"
        ),
    )
    indented: bool = Field(
        default=False, validation_alias=AliasChoices("indented", "isIndented")
    )
    children: list[FieldDefinition] = Field(default_factory=list)
    excluded: bool = False
    help_text: str | None = None
    layout: Literal["vertical", "horizontal"] | None = None

    @model_validator(mode="after")
    def _check_structure(self) -> FieldDefinition:
        if self.kind != "container" and self.children:
            raise ValueError(f"Field '{self.id}' of kind '{self.kind}' cannot have children")
        if self.kind == "container" and self.default_value is not None:
            raise ValueError(f"Container '{self.id}' cannot carry a default value")

        seen: set[str] = set()
        for node in self.walk():
            if node.id in seen:
                raise ValueError(f"Duplicate field id in schema tree: {node.id}")
            seen.add(node.id)
        return self

    @property
    def is_container(self) -> bool:
        return self.kind == "container"

    @property
    def display_label(self) -> str:
        return self.label or self.id

    def walk(self) -> Iterator[FieldDefinition]:
        """Yield this node and every descendant, depth first."""

        yield self
        for child in self.children:
            yield from child.walk()

    def iter_leaves(self) -> Iterator[FieldDefinition]:
        for node in self.walk():
            if not node.is_container:
                yield node

    def typed_default(self) -> FieldValue:
        """Return the seed value for a new item, typed per field kind."""

        if self.kind == "checkboxGroup":
            selected = self.default_value if isinstance(self.default_value, dict) else {}
            return {option: bool(selected.get(option, False)) for option in self.options}
        if self.default_value is not None:
            return copy_value(self.default_value)
        if self.kind == "number":
            return 0
        if self.kind == "checkbox":
            return False
        return ""


def text_field(field_id: str, label: str | None = None) -> FieldDefinition:
    """Build a text leaf with an empty default."""

    return FieldDefinition(id=field_id, label=label or field_id, kind="text", default_value="")
