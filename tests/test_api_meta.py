from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from apps.api.main import app


@pytest.mark.anyio
async def test_meta_returns_capabilities_and_request_id(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / "thyroid.yaml").write_text("id: thyroid\nkind: container\n", encoding="utf-8")
    (tmp_path / "liver.json").write_text('{"id": "liver", "kind": "container"}', encoding="utf-8")
    monkeypatch.setenv("REPORTSYNC_SCHEMA_DIR", str(tmp_path))
    monkeypatch.setenv("REPORTSYNC_MAX_SESSIONS", "8")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/v1/meta")

    assert response.status_code == 200
    assert response.headers["X-Reportsync-Request-Id"]
    payload = response.json()
    assert payload["version"]
    assert payload["schema_categories"] == ["liver", "thyroid"]
    assert payload["max_sessions"] == 8
    assert set(payload["field_kinds"]) == {
        "container",
        "text",
        "number",
        "checkbox",
        "checkboxGroup",
        "dropdown",
    }


@pytest.mark.anyio
async def test_meta_without_schema_dir_lists_no_categories(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("REPORTSYNC_SCHEMA_DIR", raising=False)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/v1/meta")

    assert response.json()["schema_categories"] == []
