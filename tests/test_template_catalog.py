from __future__ import annotations

from pathlib import Path

import pytest

from reportsync.templates.catalog import TemplateCatalog
from reportsync.utils.errors import TemplateNotFoundError


def _catalog(tmp_path: Path) -> TemplateCatalog:
    (tmp_path / "Thyroid").mkdir()
    (tmp_path / "Thyroid" / "nodules.txt").write_text(
        "{{countField}}\r\n1: Diameter {{d}} mm", encoding="utf-8"
    )
    (tmp_path / "Thyroid" / "notes.md").write_text("ignored", encoding="utf-8")
    (tmp_path / "liver").mkdir()
    (tmp_path / "liver" / "cysts.txt").write_text("1: Cyst {{d}} mm", encoding="utf-8")
    (tmp_path / ".cache").mkdir()
    (tmp_path / ".cache" / "old.txt").write_text("stale", encoding="utf-8")
    (tmp_path / "loose.txt").write_text("no category", encoding="utf-8")
    return TemplateCatalog(tmp_path)


def test_lists_templates_per_category(tmp_path: Path) -> None:
    catalog = _catalog(tmp_path)

    assert catalog.list_categories() == ["liver", "thyroid"]
    assert [info.reference for info in catalog.list_templates()] == [
        "template:liver/cysts",
        "template:thyroid/nodules",
    ]
    assert [info.name for info in catalog.by_category(" THYROID ")] == ["nodules"]
    assert [info.name for info in catalog.search("cy")] == ["cysts"]
    assert [info.name for info in catalog.search("liver")] == ["cysts"]


def test_resolve_reads_and_caches_normalized_text(tmp_path: Path) -> None:
    catalog = _catalog(tmp_path)

    text = catalog.resolve("template:thyroid/Nodules")
    (tmp_path / "Thyroid" / "nodules.txt").write_text("changed", encoding="utf-8")

    assert text == "{{countField}}\n1: Diameter {{d}} mm"
    assert catalog.resolve("thyroid/nodules") == text
    assert catalog.get("Thyroid", "nodules") == text


@pytest.mark.parametrize(
    "reference",
    ["thyroid", "template:/nodules", "thyroid/", "thyroid/a/b", "../liver/cysts", "spleen/x"],
)
def test_resolve_rejects_unknown_references(tmp_path: Path, reference: str) -> None:
    catalog = _catalog(tmp_path)

    with pytest.raises(TemplateNotFoundError) as exc_info:
        catalog.resolve(reference)

    assert exc_info.value.reference == reference


def test_missing_directory_is_an_empty_catalog(tmp_path: Path) -> None:
    catalog = TemplateCatalog(tmp_path / "absent")

    assert catalog.list_templates() == []
    with pytest.raises(TemplateNotFoundError):
        catalog.get("thyroid", "nodules")
