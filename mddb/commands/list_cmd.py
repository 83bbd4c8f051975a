"""List command - discover documents with front-matter filters."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..discovery import discover_files, parse_filter
from ..errors import MdDbError, read_text
from ..graph.ids import path_to_id
from ..markdown.frontmatter import Frontmatter
from ..output import OutputFormat, resolve_format
from .common import emit, emit_json

DEFAULT_FIELDS = ("type", "title", "status")


def run_list(
    directory: Path,
    *,
    filters: list[str] | None = None,
    pattern: str | None = None,
    honor_ignore: bool = True,
    fields: list[str] | None = None,
    output_format: str | None = "text",
) -> int:
    """List matching documents with a few front-matter columns."""
    console = Console(stderr=True)
    try:
        parsed = [parse_filter(f) for f in filters or []]
    except ValueError as exc:
        console.print(f"error: {exc}", style="bold red")
        return 1

    columns = list(fields or DEFAULT_FIELDS)
    rows = []
    for path in discover_files(directory, pattern, parsed, honor_ignore):
        try:
            fm, _ = Frontmatter.try_parse(read_text(path))
        except MdDbError as exc:
            console.print(f"warning: {path}: {exc}", style="yellow", markup=False)
            fm = None
        values = {c: (fm.get_display(c) if fm is not None else None) for c in columns}
        rows.append((path, path_to_id(path), values))

    fmt = resolve_format(output_format)
    if fmt is OutputFormat.JSON:
        emit_json([{"path": str(p), "id": i, **values} for p, i, values in rows])
    elif fmt is OutputFormat.COMPACT:
        for path, _, _ in rows:
            emit(str(path))
    elif fmt is OutputFormat.MARKDOWN:
        lines = ["| ID | " + " | ".join(columns) + " | Path |", "|---" * (len(columns) + 2) + "|"]
        for path, doc_id, values in rows:
            cells = [doc_id, *(values[c] or "" for c in columns), str(path)]
            lines.append("| " + " | ".join(cells) + " |")
        emit("\n".join(lines))
    else:
        table = Table(title=f"{len(rows)} document(s)")
        table.add_column("ID", style="bold")
        for c in columns:
            table.add_column(c)
        table.add_column("Path", style="dim")
        for path, doc_id, values in rows:
            table.add_row(doc_id, *(values[c] or "" for c in columns), str(path))
        Console().print(table)
    return 0
