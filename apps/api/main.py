"""FastAPI wrapper hosting one section synchronizer per section id."""

from __future__ import annotations

import importlib.metadata
import io
import json
import logging
import os
import threading
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, get_args

from fastapi import Body, FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from reportsync.editor.docx_surface import DocxEditorSurface
from reportsync.editor.surface import InMemoryEditorSurface
from reportsync.form.coercion import coerce_field_value
from reportsync.schema.catalog import SchemaCatalog
from reportsync.schema.loader import parse_schema
from reportsync.schema.models import FieldDefinition, FieldKind
from reportsync.schema.tree import flatten_schema
from reportsync.settings import SyncSettings, load_settings
from reportsync.sync.commands import Command, EditField, LoadTemplate, Reimport, SetCount, SetPage
from reportsync.sync.synchronizer import SectionSynchronizer, SyncResult
from reportsync.templates.catalog import TemplateCatalog, TemplateInfo
from reportsync.utils.errors import (
    FieldValueError,
    ItemNotFoundError,
    SchemaError,
    TemplateNotFoundError,
    SessionNotFoundError,
)

app = FastAPI(title="reportsync API", version="0.1.0")
logger = logging.getLogger("reportsync.api")

REQUEST_ID_HEADER = "X-Reportsync-Request-Id"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_DEFAULT_MAX_TEMPLATE_BYTES = 256 * 1024
_DEFAULT_MAX_SESSIONS = 256


class LoadRequest(BaseModel):
    """Template text or a catalog reference, plus an inline schema tree or a category."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    text: str | None = None
    template: str | None = None
    definition: dict[str, Any] | None = Field(default=None, alias="schema")
    category: str | None = None


class EditRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    item_index: int = Field(ge=0)
    field_id: str = Field(min_length=1)
    value: Any = None


class CountRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    count: int


class PageRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    page: int


class ReimportRequest(BaseModel):
    """Optional replacement text typed directly into the editor surface."""

    model_config = ConfigDict(extra="forbid")

    text: str | None = None


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


@dataclass
class _Session:
    synchronizer: SectionSynchronizer
    surface: InMemoryEditorSurface
    lock: threading.Lock = field(default_factory=threading.Lock)
    closed: bool = False


class SessionRegistry:
    """Section id -> session map guarded by one lock.

    Commands on one section are serialized by that session's own lock so
    edits are applied in arrival order. A discarded session is marked closed
    under its lock; commands that looked it up before the discard see the
    flag once they hold the lock and fail as if it never existed.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, _Session] = {}

    def get(self, section_id: str) -> _Session:
        with self._lock:
            session = self._sessions.get(section_id)
        if session is None:
            raise SessionNotFoundError(section_id)
        return session

    @contextmanager
    def locked(self, section_id: str) -> Iterator[_Session]:
        session = self.get(section_id)
        with session.lock:
            _ensure_open(session, section_id)
            yield session

    def get_or_create(
        self, section_id: str, *, settings: SyncSettings, max_sessions: int
    ) -> _Session:
        with self._lock:
            session = self._sessions.get(section_id)
            if session is not None:
                return session
            if len(self._sessions) >= max_sessions:
                raise ApiRequestError(
                    status_code=429,
                    error_code="TOO_MANY_SESSIONS",
                    message="session limit reached",
                    detail={"max_sessions": max_sessions},
                )
            surface = InMemoryEditorSurface()
            session = _Session(
                synchronizer=SectionSynchronizer(section_id, surface, settings=settings),
                surface=surface,
            )
            self._sessions[section_id] = session
            return session

    @contextmanager
    def locked_or_create(
        self, section_id: str, *, settings: SyncSettings, max_sessions: int
    ) -> Iterator[_Session]:
        while True:
            session = self.get_or_create(
                section_id, settings=settings, max_sessions=max_sessions
            )
            with session.lock:
                if session.closed:
                    continue
                yield session
                return

    def discard(self, section_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(section_id, None)
        if session is None:
            return False
        _close(session)
        return True

    def clear(self) -> None:
        with self._lock:
            discarded = list(self._sessions.values())
            self._sessions.clear()
        for session in discarded:
            _close(session)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def _close(session: _Session) -> None:
    with session.lock:
        session.closed = True


def _ensure_open(session: _Session, section_id: str) -> None:
    if session.closed:
        raise SessionNotFoundError(section_id)


sessions = SessionRegistry()


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """Metadata endpoint for editor clients."""

    request_id = _request_id_from_request(request)
    catalog = _schema_catalog()
    templates = _template_catalog()
    payload = {
        "version": app.version,
        "build_version": _package_version(),
        "field_kinds": list(get_args(FieldKind)),
        "schema_categories": catalog.list_categories() if catalog is not None else [],
        "template_categories": templates.list_categories() if templates is not None else [],
        "max_template_bytes": _max_template_bytes(),
        "max_sessions": _max_sessions(),
        "active_sessions": len(sessions),
    }
    return JSONResponse(status_code=200, headers={REQUEST_ID_HEADER: request_id}, content=payload)


@app.get("/v1/templates")
async def list_templates(
    request: Request,
    category: str | None = None,
    search: str | None = None,
) -> JSONResponse:
    """Catalog entries usable as the ``template`` of a load request."""

    request_id = _request_id_from_request(request)
    catalog = _template_catalog()
    entries: list[TemplateInfo] = []
    if catalog is not None:
        entries = catalog.search(search) if search is not None else catalog.list_templates()
    if category is not None:
        key = category.strip().lower()
        entries = [info for info in entries if info.category == key]
    payload = {
        "templates": [
            {"reference": info.reference, "category": info.category, "name": info.name}
            for info in entries
        ],
        "request_id": request_id,
    }
    return JSONResponse(status_code=200, headers={REQUEST_ID_HEADER: request_id}, content=payload)


@app.get("/v1/sections/{section_id}")
def get_section(request: Request, section_id: str) -> JSONResponse:
    """Current text, count, page and visible items of a loaded section."""

    def action() -> dict[str, Any]:
        with sessions.locked(section_id) as session:
            return _state_payload(session.synchronizer)

    return _respond(request, section_id, "read", action)


@app.delete("/v1/sections/{section_id}")
def delete_section(request: Request, section_id: str) -> JSONResponse:
    def action() -> dict[str, Any]:
        if not sessions.discard(section_id):
            raise SessionNotFoundError(section_id)
        return {"section_id": section_id, "deleted": True}

    return _respond(request, section_id, "delete", action)


@app.post("/v1/sections/{section_id}/load")
def load_section(request: Request, section_id: str, body: LoadRequest) -> JSONResponse:
    """Create (or replace) the section's item store from template text and a schema."""

    def action() -> dict[str, Any]:
        text = _resolve_text(body)
        _check_template_size(text)
        schema = _resolve_schema(body)
        with sessions.locked_or_create(
            section_id, settings=_settings(), max_sessions=_max_sessions()
        ) as session:
            return _apply_locked(session, LoadTemplate(text, schema))

    return _respond(request, section_id, "load", action)


@app.post("/v1/sections/{section_id}/edit")
def edit_field(request: Request, section_id: str, body: EditRequest) -> JSONResponse:
    """Coerce one raw form value and apply it to one item."""

    def action() -> dict[str, Any]:
        with sessions.locked(section_id) as session:
            definition = flatten_schema(session.synchronizer.schema).get(body.field_id)
            if definition is None:
                raise FieldValueError(
                    f"Unknown field: {body.field_id}",
                    field_id=body.field_id,
                    raw_value=body.value,
                )
            value = coerce_field_value(definition, body.value)
            return _apply_locked(session, EditField(body.item_index, body.field_id, value))

    return _respond(request, section_id, "edit", action)


@app.post("/v1/sections/{section_id}/count")
def set_count(request: Request, section_id: str, body: CountRequest) -> JSONResponse:
    def action() -> dict[str, Any]:
        with sessions.locked(section_id) as session:
            return _apply_locked(session, SetCount(body.count))

    return _respond(request, section_id, "count", action)


@app.post("/v1/sections/{section_id}/page")
def set_page(request: Request, section_id: str, body: PageRequest) -> JSONResponse:
    def action() -> dict[str, Any]:
        with sessions.locked(section_id) as session:
            return _apply_locked(session, SetPage(body.page))

    return _respond(request, section_id, "page", action)


@app.post("/v1/sections/{section_id}/reimport")
def reimport_section(
    request: Request,
    section_id: str,
    body: Annotated[ReimportRequest | None, Body()] = None,
) -> JSONResponse:
    """Rebuild the item store from the surface text, optionally replacing it first."""

    def action() -> dict[str, Any]:
        with sessions.locked(section_id) as session:
            if body is not None and body.text is not None:
                _check_template_size(body.text)
                session.surface.set_content(section_id, body.text)
            return _apply_locked(session, Reimport())

    return _respond(request, section_id, "reimport", action)


@app.get("/v1/sections/{section_id}/form")
def get_form(
    request: Request,
    section_id: str,
    item: Annotated[int, Query(ge=0)] = 0,
) -> JSONResponse:
    """Form tree for one item, hidden fields omitted."""

    def action() -> dict[str, Any]:
        with sessions.locked(section_id) as session:
            sync = session.synchronizer
            store = sync.store
            if item >= store.count:
                raise ItemNotFoundError(
                    f"Item {item} out of range (count={store.count})",
                    item_index=item,
                    item_count=store.count,
                )
            node = sync.form_for_item(item).render(store.items[item].values)
            return {
                "section_id": section_id,
                "item_index": item,
                "line_number": store.items[item].line_number,
                "form": node.model_dump(mode="json") if node is not None else None,
            }

    return _respond(request, section_id, "form", action)


@app.get("/v1/sections/{section_id}/export.docx", response_model=None)
def export_docx(request: Request, section_id: str) -> Response:
    """Download the section as a Word document with one heading."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    try:
        with sessions.locked(section_id) as session:
            text = session.synchronizer.store.text
        surface = DocxEditorSurface()
        surface.set_content(section_id, text)
        buffer = io.BytesIO()
        surface.document.save(buffer)
    except SessionNotFoundError as exc:
        return _domain_error_response(exc, request_id, section_id, "export")

    _log_event(
        logging.INFO,
        "done",
        request_id,
        section_id=section_id,
        stage="export",
        total_ms=_elapsed_ms(request_started),
    )
    return Response(
        content=buffer.getvalue(),
        media_type=DOCX_MEDIA_TYPE,
        headers={
            REQUEST_ID_HEADER: request_id,
            "Content-Disposition": f'attachment; filename="{_safe_filename(section_id)}.docx"',
        },
    )


def _respond(
    request: Request,
    section_id: str,
    stage: str,
    action: Callable[[], dict[str, Any]],
) -> JSONResponse:
    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    try:
        payload = action()
    except ApiRequestError as exc:
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            section_id=section_id,
            error_code=exc.error_code,
            status_code=exc.status_code,
            failure_stage=stage,
        )
        return _error_response(
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
            request_id=request_id,
            detail=exc.detail,
        )
    except (
        SchemaError,
        FieldValueError,
        ItemNotFoundError,
        SessionNotFoundError,
        TemplateNotFoundError,
    ) as exc:
        return _domain_error_response(exc, request_id, section_id, stage)

    _log_event(
        logging.INFO,
        "done",
        request_id,
        section_id=section_id,
        stage=stage,
        applied=payload.get("applied"),
        total_ms=_elapsed_ms(request_started),
    )
    payload["request_id"] = request_id
    return JSONResponse(status_code=200, headers={REQUEST_ID_HEADER: request_id}, content=payload)


def _domain_error_response(
    exc: Exception, request_id: str, section_id: str, stage: str
) -> JSONResponse:
    if isinstance(exc, SessionNotFoundError):
        status_code, error_code = 404, "SECTION_NOT_FOUND"
        detail: dict[str, Any] = {"section_id": exc.section_id}
    elif isinstance(exc, ItemNotFoundError):
        status_code, error_code = 404, "ITEM_NOT_FOUND"
        detail = {"item_index": exc.item_index, "item_count": exc.item_count}
    elif isinstance(exc, FieldValueError):
        status_code, error_code = 422, "INVALID_FIELD_VALUE"
        detail = {"field_id": exc.field_id}
    elif isinstance(exc, SchemaError):
        status_code, error_code = 400, "INVALID_SCHEMA"
        detail = {"source": exc.source}
    elif isinstance(exc, TemplateNotFoundError):
        status_code, error_code = 404, "TEMPLATE_NOT_FOUND"
        detail = {"template": exc.reference}
    else:
        raise exc

    _log_event(
        logging.WARNING,
        "error",
        request_id,
        section_id=section_id,
        error_code=error_code,
        status_code=status_code,
        failure_stage=stage,
    )
    return _error_response(
        status_code=status_code,
        error_code=error_code,
        message=str(exc),
        request_id=request_id,
        detail=detail,
    )


def _apply_locked(session: _Session, command: Command) -> dict[str, Any]:
    result = session.synchronizer.handle(command)
    return _result_payload(session.synchronizer, result)


def _result_payload(sync: SectionSynchronizer, result: SyncResult) -> dict[str, Any]:
    payload = _state_payload(sync)
    payload.update({"command": result.command, "applied": result.applied})
    return payload


def _state_payload(sync: SectionSynchronizer) -> dict[str, Any]:
    store = sync.store
    window = sync.window()
    return {
        "section_id": sync.section_id,
        "text": store.text,
        "count": store.count,
        "page": window.page,
        "total_pages": window.total_pages,
        "items": [
            {
                "index": index,
                "line_number": store.items[index].line_number,
                "values": store.items[index].values,
                "indexed_values": store.items[index].indexed_view(store.field_ids),
            }
            for index in window.indexes
        ],
    }


def _resolve_text(body: LoadRequest) -> str:
    if (body.text is None) == (body.template is None):
        raise ApiRequestError(
            status_code=422,
            error_code="INVALID_INPUT",
            message="exactly one of text or template is required",
            detail={"fields": ["text", "template"]},
        )
    if body.text is not None:
        return body.text

    catalog = _template_catalog()
    if catalog is None:
        raise ApiRequestError(
            status_code=400,
            error_code="TEMPLATE_CATALOG_DISABLED",
            message="REPORTSYNC_TEMPLATE_DIR is not configured",
            detail={"template": body.template},
        )
    return catalog.resolve(body.template or "")


def _resolve_schema(body: LoadRequest) -> FieldDefinition:
    if body.definition is not None and body.category is not None:
        raise ApiRequestError(
            status_code=422,
            error_code="INVALID_INPUT",
            message="schema and category cannot be used together",
            detail={"fields": ["schema", "category"]},
        )
    if body.definition is not None:
        return parse_schema(body.definition, source="request")
    if body.category is None:
        raise ApiRequestError(
            status_code=422,
            error_code="INVALID_INPUT",
            message="one of schema or category is required",
            detail={"fields": ["schema", "category"]},
        )

    catalog = _schema_catalog()
    if catalog is None:
        raise ApiRequestError(
            status_code=400,
            error_code="SCHEMA_CATALOG_DISABLED",
            message="REPORTSYNC_SCHEMA_DIR is not configured",
            detail={"category": body.category},
        )
    return catalog.get(body.category)


def _check_template_size(text: str) -> None:
    max_bytes = _max_template_bytes()
    size = len(text.encode("utf-8"))
    if size > max_bytes:
        raise ApiRequestError(
            status_code=413,
            error_code="TEMPLATE_TOO_LARGE",
            message="template text exceeds size limit",
            detail={"max_bytes": max_bytes, "size": size},
        )


def _settings() -> SyncSettings:
    raw = os.getenv("REPORTSYNC_SETTINGS")
    if not raw:
        return SyncSettings()
    try:
        return load_settings(Path(raw))
    except ValueError as exc:
        raise ApiRequestError(
            status_code=500,
            error_code="INVALID_SETTINGS",
            message=str(exc),
            detail={"path": raw},
        ) from exc


def _schema_catalog() -> SchemaCatalog | None:
    raw = os.getenv("REPORTSYNC_SCHEMA_DIR")
    if not raw:
        return None
    return SchemaCatalog(Path(raw))


def _template_catalog() -> TemplateCatalog | None:
    raw = os.getenv("REPORTSYNC_TEMPLATE_DIR")
    if not raw:
        return None
    return TemplateCatalog(Path(raw))


def _max_template_bytes() -> int:
    raw = os.getenv("REPORTSYNC_MAX_TEMPLATE_BYTES")
    if raw is None:
        return _DEFAULT_MAX_TEMPLATE_BYTES
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_TEMPLATE_BYTES
    return parsed if parsed > 0 else _DEFAULT_MAX_TEMPLATE_BYTES


def _max_sessions() -> int:
    raw = os.getenv("REPORTSYNC_MAX_SESSIONS")
    if raw is None:
        return _DEFAULT_MAX_SESSIONS
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_SESSIONS
    return parsed if parsed > 0 else _DEFAULT_MAX_SESSIONS


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


def _package_version() -> str:
    try:
        return importlib.metadata.version("reportsync")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _safe_filename(section_id: str) -> str:
    cleaned = "".join(char if char.isalnum() or char in "-_" else "_" for char in section_id)
    return cleaned or "section"


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))
