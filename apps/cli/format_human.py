"""Human-readable section summary rendering for CLI output."""

from __future__ import annotations

from collections import Counter
from typing import Any


def render_inspect_summary(payload: dict[str, Any]) -> str:
    """Render one-screen summary of an ``inspect`` payload."""

    lines: list[str] = []
    lines.append("section_summary:")
    lines.append(
        f"section={payload['section_id']} count={payload['count']} "
        f"count_field={'yes' if payload['has_count_field'] else 'no'}"
    )

    placeholders = payload["placeholders"]
    lines.append(f"placeholders: {', '.join(placeholders) if placeholders else 'none'}")

    numbered = payload["line_numbers"]
    lines.append(f"numbered_lines: {', '.join(str(n) for n in numbered) if numbered else 'none'}")

    foreign = payload["additional_fields"]
    if foreign:
        lines.append(f"additional_fields: {', '.join(foreign)}")

    unsupported_counter: Counter[str] = Counter(item["kind"] for item in payload["unsupported"])
    if unsupported_counter:
        top_items = sorted(unsupported_counter.items(), key=lambda item: (-item[1], item[0]))
        lines.append("unsupported: " + ", ".join(f"{kind}={count}" for kind, count in top_items))
    else:
        lines.append("unsupported: none")

    for item in payload["items"]:
        rendered = ", ".join(
            f"{field_id}={_short(value)}" for field_id, value in sorted(item["values"].items())
        )
        lines.append(f"item {item['line_number']}: {rendered or '-'}")

    return "\n".join(lines)


def _short(value: Any, limit: int = 24) -> str:
    if isinstance(value, dict):
        text = "|".join(option for option, selected in value.items() if selected)
    elif isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text
