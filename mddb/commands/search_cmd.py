"""Search command implementation."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..discovery import parse_filter
from ..output import OutputFormat, resolve_format
from ..search import SearchOptions, search_documents
from .common import emit, emit_json


def run_search(
    directory: Path,
    query: str,
    *,
    options: SearchOptions | None = None,
    filters: list[str] | None = None,
    pattern: str | None = None,
    honor_ignore: bool = True,
    output_format: str | None = "text",
) -> int:
    """Search documents; exit 1 when nothing matches."""
    console = Console(stderr=True)
    try:
        parsed = [parse_filter(f) for f in filters or []]
    except ValueError as exc:
        console.print(f"error: {exc}", style="bold red")
        return 1

    results = search_documents(directory, query, options, pattern, parsed, honor_ignore)

    fmt = resolve_format(output_format)
    if fmt is OutputFormat.JSON:
        emit_json([r.to_json() for r in results])
    elif fmt is OutputFormat.COMPACT:
        for r in results:
            for m in r.matches:
                where = m.section if m.line is None else str(m.line)
                emit(f"{r.path}:{where}:{m.context}")
    else:
        for r in results:
            emit(r.to_text())
        total = sum(len(r.matches) for r in results)
        console.print(f"{total} match(es) in {len(results)} document(s)", style="dim")
    return 0 if results else 1
