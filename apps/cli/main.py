"""Typer CLI entrypoint for reportsync."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any, Literal, cast

import typer

from apps.cli.format_human import render_inspect_summary
from apps.cli.io import write_docx_atomic, write_json_atomic, write_text_atomic
from reportsync.editor.docx_surface import DocxEditorSurface
from reportsync.editor.surface import EditorSurface, InMemoryEditorSurface
from reportsync.form.renderer import FormNode
from reportsync.schema.catalog import SchemaCatalog
from reportsync.schema.loader import load_schema
from reportsync.schema.models import FieldDefinition
from reportsync.schema.tree import find_foreign_ids
from reportsync.settings import load_settings
from reportsync.sync.commands import LoadTemplate, SetCount
from reportsync.sync.synchronizer import SectionSynchronizer
from reportsync.templates.catalog import TemplateCatalog
from reportsync.templates.placeholder_parser import extract_numbered_lines, parse_placeholders

app = typer.Typer(help="Repeating-section synchronizer CLI", rich_markup_mode=None)
ReportMode = Literal["human", "json"]

TemplateOption = Annotated[
    Path | None,
    typer.Option(exists=True, dir_okay=False, file_okay=True, help="Section text file."),
]
TemplateRefOption = Annotated[
    str | None,
    typer.Option(help="CATEGORY/NAME (or template:CATEGORY/NAME) under --template-dir."),
]
TemplateDirOption = Annotated[
    Path | None, typer.Option(exists=True, dir_okay=True, file_okay=False)
]
SchemaOption = Annotated[
    Path | None,
    typer.Option(exists=True, dir_okay=False, file_okay=True, help="Schema YAML/JSON file."),
]
CategoryOption = Annotated[
    str | None, typer.Option(help="Schema category resolved under --schema-dir.")
]
SchemaDirOption = Annotated[
    Path | None, typer.Option(exists=True, dir_okay=True, file_okay=False)
]
SettingsOption = Annotated[
    Path | None, typer.Option(help="Synchronizer settings YAML.")
]
SectionOption = Annotated[str, typer.Option(help="Section id used for the editor surface.")]


class CliInputError(ValueError):
    """Invalid argument combination or edit syntax."""


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep subcommands explicit."""


@app.command("render")
def render_command(
    template: TemplateOption = None,
    template_ref: TemplateRefOption = None,
    template_dir: TemplateDirOption = None,
    schema: SchemaOption = None,
    category: CategoryOption = None,
    schema_dir: SchemaDirOption = None,
    settings: SettingsOption = None,
    section_id: SectionOption = "section",
    count: Annotated[
        int | None, typer.Option(help="Resize the repeated section before edits.")
    ] = None,
    edit: Annotated[
        list[str] | None,
        typer.Option(
            "--edit",
            help="ITEM:FIELD=VALUE with a 1-based item; repeatable, applied in order.",
        ),
    ] = None,
    out: Annotated[Path | None, typer.Option(help="Write the regenerated text here.")] = None,
    docx: Annotated[
        Path | None,
        typer.Option(help="Write the section into this .docx (updated in place when present)."),
    ] = None,
) -> None:
    """Load a template, apply a count change and field edits, and write the text."""

    try:
        surface: EditorSurface
        docx_surface: DocxEditorSurface | None = None
        if docx is not None:
            docx_surface = (
                DocxEditorSurface.open(docx) if docx.exists() else DocxEditorSurface()
            )
            surface = docx_surface
        else:
            surface = InMemoryEditorSurface()

        sync = _load_section(
            _resolve_template(template, template_ref, template_dir),
            schema,
            category,
            schema_dir,
            settings,
            section_id,
            surface=surface,
        )
        if count is not None:
            result = sync.handle(SetCount(count))
            if not result.applied and count != result.count:
                typer.echo(f"WARNING: count {count} rejected; keeping {result.count}.")

        for raw_edit in edit or []:
            item_index, field_id, raw_value = parse_edit(raw_edit)
            sync.form_for_item(item_index).change(field_id, raw_value)

        text = sync.store.text
        if out is not None:
            write_text_atomic(out, text)
            typer.echo(f"INFO: wrote section text to {out}")
        if docx_surface is not None and docx is not None:
            write_docx_atomic(docx, docx_surface.document)
            typer.echo(f"INFO: wrote section {section_id} to {docx}")
        if out is None:
            typer.echo(text)
    except (ValueError, LookupError) as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=2) from exc
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=1) from exc


@app.command("inspect")
def inspect_command(
    template: TemplateOption = None,
    template_ref: TemplateRefOption = None,
    template_dir: TemplateDirOption = None,
    schema: SchemaOption = None,
    category: CategoryOption = None,
    schema_dir: SchemaDirOption = None,
    settings: SettingsOption = None,
    section_id: SectionOption = "section",
    report: Annotated[str, typer.Option(help="human or json.")] = "human",
    out: Annotated[Path | None, typer.Option(help="Also write the JSON report here.")] = None,
) -> None:
    """Show placeholders, numbered lines, diagnostics and per-item values."""

    normalized_report = report.lower().strip()
    if normalized_report not in {"human", "json"}:
        typer.echo("ERROR: --report must be one of: human, json.")
        raise typer.Exit(code=2)
    report_mode = cast(ReportMode, normalized_report)

    try:
        text = _resolve_template(template, template_ref, template_dir)
        base_schema = _resolve_schema(schema, category, schema_dir)
        sync = SectionSynchronizer(
            section_id, InMemoryEditorSurface(), settings=load_settings(settings)
        )
        sync.handle(LoadTemplate(text, base_schema))
        payload = build_inspect_payload(sync, text, base_schema)
        if out is not None:
            write_json_atomic(out, payload)
    except (ValueError, LookupError) as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=2) from exc
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=1) from exc

    if report_mode == "json":
        typer.echo(json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2))
    else:
        typer.echo(render_inspect_summary(payload))


@app.command("form")
def form_command(
    template: TemplateOption = None,
    template_ref: TemplateRefOption = None,
    template_dir: TemplateDirOption = None,
    schema: SchemaOption = None,
    category: CategoryOption = None,
    schema_dir: SchemaDirOption = None,
    settings: SettingsOption = None,
    section_id: SectionOption = "section",
    item: Annotated[int, typer.Option(min=1, help="1-based item to render.")] = 1,
    report: Annotated[str, typer.Option(help="human or json.")] = "human",
) -> None:
    """Render the form one item would show, with hidden fields left out."""

    normalized_report = report.lower().strip()
    if normalized_report not in {"human", "json"}:
        typer.echo("ERROR: --report must be one of: human, json.")
        raise typer.Exit(code=2)

    try:
        sync = _load_section(
            _resolve_template(template, template_ref, template_dir),
            schema,
            category,
            schema_dir,
            settings,
            section_id,
        )
        store = sync.store
        if item > store.count:
            raise CliInputError(f"Item {item} out of range (count={store.count})")
        node = sync.form_for_item(item - 1).render(store.items[item - 1].values)
    except (ValueError, LookupError) as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=2) from exc
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=1) from exc

    if node is None:
        typer.echo("INFO: form is hidden for this item")
        return
    if normalized_report == "json":
        typer.echo(node.model_dump_json(indent=2, exclude_none=True))
    else:
        typer.echo("\n".join(render_form_lines(node)))


@app.command("templates")
def templates_command(
    template_dir: Annotated[
        Path, typer.Option(..., exists=True, dir_okay=True, file_okay=False)
    ],
    category: Annotated[str | None, typer.Option(help="Only list this category.")] = None,
    search: Annotated[
        str | None, typer.Option(help="Substring of the template name or category.")
    ] = None,
) -> None:
    """List catalog entries as template:CATEGORY/NAME references."""

    catalog = TemplateCatalog(template_dir)
    if category is not None:
        entries = catalog.by_category(category)
        if search is not None:
            matched = {info.path for info in catalog.search(search)}
            entries = [info for info in entries if info.path in matched]
    elif search is not None:
        entries = catalog.search(search)
    else:
        entries = catalog.list_templates()

    if not entries:
        typer.echo("INFO: no templates found")
        return
    for info in entries:
        typer.echo(info.reference)


def parse_edit(raw: str) -> tuple[int, str, str]:
    """Split ``ITEM:FIELD=VALUE`` into a 0-based item index, field id and raw value."""

    head, separator, value = raw.partition("=")
    item_text, colon, field_id = head.partition(":")
    if not separator or not colon or not field_id.strip():
        raise CliInputError(f"Edit must look like ITEM:FIELD=VALUE: {raw!r}")
    try:
        item_number = int(item_text)
    except ValueError as exc:
        raise CliInputError(f"Edit item must be an integer: {raw!r}") from exc
    if item_number < 1:
        raise CliInputError(f"Edit item is 1-based: {raw!r}")
    return item_number - 1, field_id.strip(), value


def build_inspect_payload(
    sync: SectionSynchronizer, text: str, base_schema: FieldDefinition
) -> dict[str, Any]:
    parsed = parse_placeholders(text)
    store = sync.store
    return {
        "section_id": sync.section_id,
        "count": store.count,
        "has_count_field": store.has_count_field,
        "placeholders": list(parsed.fields),
        "line_numbers": list(extract_numbered_lines(text).line_numbers),
        "unsupported": [asdict(occurrence) for occurrence in parsed.unsupported],
        "additional_fields": find_foreign_ids(base_schema, parsed.fields),
        "items": [
            {
                "line_number": item.line_number,
                "values": dict(item.values),
                "indexed_values": item.indexed_view(store.field_ids),
            }
            for item in store.items
        ],
        "text": store.text,
    }


def render_form_lines(node: FormNode) -> list[str]:
    pad = "  " * (node.depth + node.indent)
    if node.children or node.kind == "container":
        lines = [f"{pad}[{node.label or node.id}]"]
        for child in node.children:
            lines.extend(render_form_lines(child))
        return lines

    value = node.value
    if isinstance(value, dict):
        shown = ", ".join(option for option, selected in value.items() if selected) or "-"
    elif isinstance(value, bool):
        shown = "yes" if value else "no"
    else:
        shown = "" if value is None else str(value)
    unit = f" {node.unit}" if node.unit else ""
    return [f"{pad}{node.label} ({node.kind}): {shown}{unit}"]


def _load_section(
    text: str,
    schema: Path | None,
    category: str | None,
    schema_dir: Path | None,
    settings: Path | None,
    section_id: str,
    *,
    surface: EditorSurface | None = None,
) -> SectionSynchronizer:
    base_schema = _resolve_schema(schema, category, schema_dir)
    sync = SectionSynchronizer(
        section_id,
        surface if surface is not None else InMemoryEditorSurface(),
        settings=load_settings(settings),
    )
    sync.handle(LoadTemplate(text, base_schema))
    return sync


def _resolve_schema(
    schema: Path | None, category: str | None, schema_dir: Path | None
) -> FieldDefinition:
    if schema is not None and category is not None:
        raise CliInputError("--schema and --category cannot be used together.")
    if schema is not None:
        return load_schema(schema)
    if category is None:
        raise CliInputError("One of --schema or --category is required.")
    if schema_dir is None:
        raise CliInputError("--category requires --schema-dir.")
    return SchemaCatalog(schema_dir).get(category)


def _resolve_template(
    template: Path | None, template_ref: str | None, template_dir: Path | None
) -> str:
    if template is not None and template_ref is not None:
        raise CliInputError("--template and --template-ref cannot be used together.")
    if template is not None:
        return template.read_text(encoding="utf-8").replace("\r\n", "\n")
    if template_ref is None:
        raise CliInputError("One of --template or --template-ref is required.")
    if template_dir is None:
        raise CliInputError("--template-ref requires --template-dir.")
    return TemplateCatalog(template_dir).resolve(template_ref)


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
