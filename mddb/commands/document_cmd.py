"""Single-document commands: inspect, get, set, section, table."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..errors import FieldNotFoundError, MdDbError
from ..markdown.document import Document
from ..markdown.frontmatter import display_value
from ..markdown.section import Section
from ..output import OutputFormat, resolve_format
from .common import emit, emit_json, report_error


def _section_path(expr: str) -> list[str]:
    return [part.strip() for part in expr.split(">") if part.strip()]


def _resolve_section(doc: Document, expr: str) -> Section:
    return doc.get_section_by_path(_section_path(expr))


def _outline(sections: list[Section], depth: int = 0) -> list[str]:
    lines = []
    for section in sections:
        lines.append("  " * depth + "#" * section.level + " " + section.heading)
        lines.extend(_outline(section.subsections(), depth + 1))
    return lines


def _finish(doc: Document, dry_run: bool, console: Console) -> int:
    if dry_run:
        emit(doc.raw)
        return 0
    doc.save()
    console.print(f"Updated {doc.path}", style="green")
    return 0


def run_inspect(
    path: Path,
    *,
    section: str | None = None,
    table: int | None = None,
    output_format: str | None = "text",
) -> int:
    """Show a document's front-matter and outline, one section, or one table."""
    console = Console(stderr=True)
    fmt = resolve_format(output_format)
    try:
        doc = Document.from_file(path)
        if section is None:
            if fmt is OutputFormat.JSON:
                emit_json(doc.to_json())
                return 0
            lines = [str(path)]
            if doc.frontmatter is not None:
                lines.append("---")
                lines.append(doc.frontmatter.to_yaml_string().rstrip("\n"))
                lines.append("---")
            lines.extend(_outline(doc.sections()))
            emit("\n".join(lines))
            return 0

        sec = _resolve_section(doc, section)
        if table is None:
            if fmt is OutputFormat.JSON:
                emit_json(sec.to_json())
            elif fmt is OutputFormat.MARKDOWN:
                emit(sec.raw)
            else:
                emit(sec.text())
            return 0

        tbl = sec.get_table(table)
        if fmt is OutputFormat.JSON:
            emit_json(tbl.to_json())
        elif fmt is OutputFormat.MARKDOWN:
            emit(tbl.to_markdown())
        else:
            emit(tbl.to_text())
        return 0
    except MdDbError as exc:
        return report_error(console, exc)


def run_get(path: Path, key: str, *, output_format: str | None = "text") -> int:
    """Print a front-matter value addressed by a dotted key."""
    console = Console(stderr=True)
    try:
        fm = Document.from_file(path).get_frontmatter()
        if not fm.has_path(key):
            raise FieldNotFoundError(key)
    except MdDbError as exc:
        return report_error(console, exc)

    if resolve_format(output_format) is OutputFormat.JSON:
        emit_json(fm.get(key))
    else:
        emit(display_value(fm.get(key)))
    return 0


def run_set(
    path: Path,
    key: str,
    value: str | None = None,
    *,
    remove: bool = False,
    dry_run: bool = False,
) -> int:
    """Set (YAML-typed) or remove a front-matter field."""
    console = Console(stderr=True)
    try:
        doc = Document.from_file(path)
        if remove:
            if doc.frontmatter is None or not doc.frontmatter.has_field(key):
                raise FieldNotFoundError(key)
            doc.remove_field(key)
        else:
            if value is None:
                console.print("error: a value is required unless --remove is given", style="bold red")
                return 1
            doc.set_field_from_str(key, value)
        return _finish(doc, dry_run, console)
    except MdDbError as exc:
        return report_error(console, exc)


def run_section(
    path: Path,
    heading: str,
    content: str,
    *,
    append: bool = False,
    dry_run: bool = False,
) -> int:
    """Replace or append to the content under a heading."""
    console = Console(stderr=True)
    try:
        doc = Document.from_file(path)
        target = _section_path(heading)
        if append:
            doc.append_to_section(target, content)
        else:
            if content and not content.endswith("\n"):
                content += "\n"
            doc.replace_section_content(target, content)
        return _finish(doc, dry_run, console)
    except MdDbError as exc:
        return report_error(console, exc)


def run_table(
    path: Path,
    heading: str,
    *,
    index: int = 0,
    set_cell: tuple[str, int, str] | None = None,
    add_row: list[str] | None = None,
    dry_run: bool = False,
    output_format: str | None = "text",
) -> int:
    """Show a table, or edit one cell / append one row."""
    if set_cell is None and add_row is None:
        return run_inspect(path, section=heading, table=index, output_format=output_format)

    console = Console(stderr=True)
    try:
        doc = Document.from_file(path)
        target = _section_path(heading)
        if set_cell is not None:
            column, row, value = set_cell
            doc.set_table_cell(target, index, column, row, value)
        if add_row is not None:
            doc.add_table_row(target, index, add_row)
        return _finish(doc, dry_run, console)
    except MdDbError as exc:
        return report_error(console, exc)
