"""python-docx backed editor surface.

Each section is a heading paragraph whose text is the section id, followed by
one paragraph per line of section text up to the next section heading.
"""

from __future__ import annotations

from pathlib import Path

from docx import Document
from docx.document import Document as DocxDocument
from docx.text.paragraph import Paragraph

from reportsync.utils.docx_xml import paragraph_style_name, remove_paragraph


class DocxEditorSurface:
    """Write regenerated sections into a Word document."""

    def __init__(self, document: DocxDocument | None = None, *, heading_level: int = 2) -> None:
        self.document = document if document is not None else Document()
        self._heading_level = heading_level
        self._heading_style = f"Heading {heading_level}"

    @classmethod
    def open(cls, path: Path, *, heading_level: int = 2) -> DocxEditorSurface:
        return cls(Document(str(path)), heading_level=heading_level)

    def get_content(self, section_id: str) -> str:
        heading, body, _anchor = self._locate(section_id)
        if heading is None:
            return ""
        return "\n".join(paragraph.text for paragraph in body)

    def set_content(self, section_id: str, text: str) -> None:
        heading, body, anchor = self._locate(section_id)
        if heading is None:
            self.document.add_heading(section_id, level=self._heading_level)
            body, anchor = [], None

        for paragraph in body:
            remove_paragraph(paragraph)

        for line in text.split("\n"):
            if anchor is not None:
                anchor.insert_paragraph_before(line)
            else:
                self.document.add_paragraph(line)

    def section_ids(self) -> list[str]:
        return [
            paragraph.text
            for paragraph in self.document.paragraphs
            if self._is_section_heading(paragraph)
        ]

    def save(self, path: Path) -> None:
        self.document.save(str(path))

    def _locate(
        self, section_id: str
    ) -> tuple[Paragraph | None, list[Paragraph], Paragraph | None]:
        heading: Paragraph | None = None
        body: list[Paragraph] = []
        for paragraph in self.document.paragraphs:
            if self._is_section_heading(paragraph):
                if heading is not None:
                    return heading, body, paragraph
                if paragraph.text == section_id:
                    heading = paragraph
                continue
            if heading is not None:
                body.append(paragraph)
        return heading, body, None

    def _is_section_heading(self, paragraph: Paragraph) -> bool:
        return paragraph_style_name(paragraph) == self._heading_style
