"""Synchronous command handler owning one section's item store."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from reportsync.editor.surface import EditorSurface
from reportsync.form.renderer import FormRenderer
from reportsync.items.count_adjuster import set_count
from reportsync.items.field_update import update_field
from reportsync.items.initializer import initialize_store
from reportsync.items.models import Item, ItemStore
from reportsync.schema.models import FieldDefinition
from reportsync.schema.tree import with_additional_fields
from reportsync.settings import SyncSettings
from reportsync.sync.commands import Command, EditField, LoadTemplate, Reimport, SetCount, SetPage
from reportsync.sync.pagination import PageWindow, page_after_count_change, paginate
from reportsync.templates.placeholder_parser import extract_placeholder_ids
from reportsync.utils.errors import SessionNotFoundError

logger = logging.getLogger("reportsync.sync")


@dataclass(frozen=True)
class SyncResult:
    """State of the section after one command."""

    section_id: str
    command: str
    applied: bool
    text: str
    count: int
    page: int
    total_pages: int


class SectionSynchronizer:
    """Keep one section's text and item store consistent.

    Every command runs to completion inside ``handle``: it works on a copy of
    the store, writes the regenerated text to the editor surface, and only
    then swaps the copy in and adjusts the page. A surface write that raises
    leaves the previous state in place.
    """

    def __init__(
        self,
        section_id: str,
        surface: EditorSurface,
        settings: SyncSettings | None = None,
    ) -> None:
        self.section_id = section_id
        self._surface = surface
        self._settings = settings or SyncSettings()
        self._store: ItemStore | None = None
        self._base_schema: FieldDefinition | None = None
        self._schema: FieldDefinition | None = None
        self._page = 1

    @property
    def loaded(self) -> bool:
        return self._store is not None

    @property
    def store(self) -> ItemStore:
        if self._store is None:
            raise SessionNotFoundError(self.section_id)
        return self._store

    @property
    def schema(self) -> FieldDefinition:
        """The loaded schema plus the "Additional Fields" container, if any."""

        if self._schema is None:
            raise SessionNotFoundError(self.section_id)
        return self._schema

    @property
    def page(self) -> int:
        return self._page

    def window(self) -> PageWindow:
        return paginate(self.store.count, self._page, self._settings.items_per_page)

    def visible_items(self) -> list[Item]:
        window = self.window()
        return self.store.items[window.start : window.end]

    def form_for_item(self, item_index: int) -> FormRenderer:
        """Form renderer whose changes are dispatched as edits of ``item_index``."""

        return FormRenderer(
            self.schema,
            on_change=lambda field_id, value: self.handle(EditField(item_index, field_id, value)),
        )

    def handle(self, command: Command) -> SyncResult:
        started = time.perf_counter()

        if isinstance(command, LoadTemplate):
            self._load(command.text, command.schema)
            applied = True
        elif isinstance(command, Reimport):
            applied = self._reimport()
        elif isinstance(command, EditField):
            applied = self._edit(command)
        elif isinstance(command, SetCount):
            applied = self._set_count(command)
        elif isinstance(command, SetPage):
            previous = self._page
            self._page = paginate(
                self.store.count, command.page, self._settings.items_per_page
            ).page
            applied = self._page != previous
        else:
            raise TypeError(f"Unsupported command: {type(command).__name__}")

        result = self._result(command, applied)
        _log_event(
            logging.INFO,
            "command",
            self.section_id,
            command=result.command,
            applied=applied,
            count=result.count,
            page=result.page,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )
        return result

    def _load(
        self, text: str, schema: FieldDefinition, *, skeleton: str | None = None
    ) -> None:
        placeholder_ids = extract_placeholder_ids(text)
        if skeleton is not None:
            placeholder_ids |= extract_placeholder_ids(skeleton)
        enhanced = with_additional_fields(
            schema,
            placeholder_ids,
            container_id=self._settings.additional_fields_id,
            container_label=self._settings.additional_fields_label,
        )
        store = initialize_store(text, enhanced, skeleton=skeleton)

        self._surface.set_content(self.section_id, store.text)
        self._base_schema = schema
        self._schema = enhanced
        self._store = store
        self._page = 1

    def _reimport(self) -> bool:
        """Rebuild the store from whatever the surface holds now."""

        text = self._surface.get_content(self.section_id)
        if text == self.store.text:
            return False
        page = self._page
        self._load(text, self._require_base_schema(), skeleton=self.store.skeleton)
        self._page = paginate(self.store.count, page, self._settings.items_per_page).page
        return True

    def _edit(self, command: EditField) -> bool:
        working = self.store.snapshot()
        if not update_field(working, command.item_index, command.field_id, command.value):
            return False
        self._surface.set_content(self.section_id, working.text)
        self._store = working
        return True

    def _set_count(self, command: SetCount) -> bool:
        store = self.store
        if command.count < 1:
            _log_event(
                logging.WARNING,
                "count_rejected",
                self.section_id,
                requested=command.count,
                count=store.count,
            )
            return False

        working = store.snapshot()
        change = set_count(working, command.count, self.schema)
        if not change.applied:
            return False

        page = page_after_count_change(
            change.old_count, change.new_count, self._page, self._settings.items_per_page
        )
        self._surface.set_content(self.section_id, working.text)
        self._store = working
        self._page = page
        return True

    def _require_base_schema(self) -> FieldDefinition:
        if self._base_schema is None:
            raise SessionNotFoundError(self.section_id)
        return self._base_schema

    def _result(self, command: Command, applied: bool) -> SyncResult:
        window = self.window()
        return SyncResult(
            section_id=self.section_id,
            command=type(command).__name__,
            applied=applied,
            text=self.store.text,
            count=self.store.count,
            page=window.page,
            total_pages=window.total_pages,
        )


def _log_event(level: int, event: str, section_id: str, **fields: Any) -> None:
    payload = {"event": event, "section_id": section_id, **fields}
    logger.log(level, _dump_json(payload))


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
