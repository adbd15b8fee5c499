"""Utilities for docx XML operations.

All XML-level operations on docx content must be implemented here.
"""

from __future__ import annotations

from docx.text.paragraph import Paragraph


def remove_paragraph(paragraph: Paragraph) -> None:
    """Detach ``paragraph`` from its parent body element."""

    element = paragraph._p
    parent = element.getparent()
    if parent is not None:
        parent.remove(element)


def paragraph_style_name(paragraph: Paragraph) -> str | None:
    """Return the paragraph style name, or None when no style resolves."""

    style = paragraph.style
    if style is None:
        return None
    return style.name
