from __future__ import annotations

from pathlib import Path

import pytest

from reportsync.settings import SyncSettings, load_settings


def test_load_default_settings() -> None:
    settings = load_settings()

    assert settings.items_per_page == 1
    assert settings.additional_fields_id == "foreignFields"
    assert settings.additional_fields_label == "Additional Fields"


def test_load_settings_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(
        """
items_per_page: 3
additional_fields_label: Weitere Felder
""",
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.items_per_page == 3
    assert settings.additional_fields_label == "Weitere Felder"
    assert settings.additional_fields_id == "foreignFields"


def test_empty_settings_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("", encoding="utf-8")

    assert load_settings(path) == SyncSettings()


def test_load_settings_raises_for_invalid_type(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("items_per_page: 0\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid settings schema"):
        load_settings(path)


def test_load_settings_rejects_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("count_field_id: total\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid settings schema"):
        load_settings(path)


def test_load_settings_raises_for_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError, match="must contain a mapping"):
        load_settings(path)


def test_load_settings_raises_for_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not found"):
        load_settings(tmp_path / "missing.yaml")


def test_load_settings_raises_for_bad_yaml(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("items_per_page: [1\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_settings(path)
