"""Conditional visibility resolved through a precomputed dependency graph."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from reportsync.schema.models import FieldDefinition
from reportsync.schema.values import FieldValue, values_equal


@dataclass(frozen=True)
class Condition:
    """Show a field only when ``controller`` matches ``value`` and not ``value_not``."""

    controller: str
    value: Any = None
    value_not: Any = None

    def holds(self, values: Mapping[str, FieldValue]) -> bool:
        current = values.get(self.controller)
        if self.value is not None and not _matches(current, self.value):
            return False
        if self.value_not is not None and _matches(current, self.value_not):
            return False
        return True


class VisibilityGraph:
    """Field-to-dependents map and per-field conditions, built once per schema."""

    def __init__(self, conditions: Mapping[str, Condition]) -> None:
        self._conditions = dict(conditions)
        dependents: dict[str, list[str]] = {}
        for field_id, condition in self._conditions.items():
            dependents.setdefault(condition.controller, []).append(field_id)
        self._dependents = {key: sorted(value) for key, value in dependents.items()}

    @classmethod
    def from_schema(cls, schema: FieldDefinition) -> VisibilityGraph:
        conditions = {
            node.id: Condition(
                controller=node.conditional_on,
                value=node.conditional_value,
                value_not=node.conditional_value_not,
            )
            for node in schema.walk()
            if node.conditional_on
        }
        return cls(conditions)

    def condition_for(self, field_id: str) -> Condition | None:
        return self._conditions.get(field_id)

    def dependents_of(self, field_id: str) -> list[str]:
        """Fields whose visibility depends on ``field_id``."""

        return list(self._dependents.get(field_id, []))

    def is_visible(self, field_id: str, values: Mapping[str, FieldValue]) -> bool:
        condition = self._conditions.get(field_id)
        if condition is None:
            return True
        return condition.holds(values)


def _matches(current: FieldValue | None, expected: Any) -> bool:
    if isinstance(expected, (list, tuple)):
        return any(values_equal(current, option) for option in expected)
    return values_equal(current, expected)
