"""New command - write a document skeleton for a schema type."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..errors import MdDbError, write_text
from ..graph import DocGraph
from ..templates import generate_document, parse_field_assignment
from .common import emit, report_error, require_schema


def run_new(
    schema_path: Path | None,
    doc_type: str,
    *,
    fields: list[str] | None = None,
    output: Path | None = None,
    directory: Path | None = None,
    auto_id: bool = False,
    fill: bool = False,
    pattern: str | None = None,
    honor_ignore: bool = True,
) -> int:
    """Generate a document of ``doc_type`` with placeholder values.

    With ``auto_id`` the file is written to ``<dir>/<folder>/<next-id>.md``,
    where ``folder`` is the type's declared folder.
    """
    console = Console(stderr=True)
    try:
        schema = require_schema(schema_path)
        type_def = schema.require_type(doc_type)
        overrides = dict(parse_field_assignment(f) for f in fields or [])
        content = generate_document(type_def, overrides, fill)

        if auto_id:
            if directory is None:
                console.print("error: --auto-id needs a document directory", style="bold red")
                return 1
            graph = DocGraph.build(directory, schema, pattern, honor_ignore)
            next_id = graph.next_id(doc_type)
            output = directory / (type_def.folder or ".") / f"{next_id.lower()}.md"
            console.print(f"auto-id: {next_id} -> {output}", style="dim", markup=False)

        if output is None:
            emit(content)
            if type_def.folder:
                console.print(f'hint: default folder for type "{type_def.name}" is "{type_def.folder}"', style="dim")
            return 0

        output.parent.mkdir(parents=True, exist_ok=True)
        write_text(output, content)
    except MdDbError as exc:
        return report_error(console, exc)

    console.print(f"Wrote {output}", style="green", markup=False)
    return 0
