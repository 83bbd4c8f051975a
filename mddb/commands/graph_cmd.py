"""Graph commands - references, rendering, health checks and ID allocation."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..errors import MdDbError
from ..graph import DocGraph, Edge
from ..output import OutputFormat, dump_json, resolve_format
from ..validation.diagnostics import FileResult, ValidationResult
from .common import emit, emit_json, optional_schema, report_error, require_schema

GRAPH_FORMATS = ("mermaid", "dot", "json")


def _edge_line(edge: Edge, depth: int = 1) -> str:
    return "  " * depth + f"{edge.source} --{edge.relation}--> {edge.target}"


def run_refs(
    directory: Path,
    doc_id: str,
    schema_path: Path | None,
    *,
    direction: str = "both",
    depth: int = 1,
    pattern: str | None = None,
    honor_ignore: bool = True,
    output_format: str | None = "text",
) -> int:
    """Show outgoing and/or incoming references of a document.

    Args:
        direction: "from" (outgoing), "to" (incoming) or "both"
        depth: Follow references transitively up to this many hops
    """
    console = Console(stderr=True)
    try:
        schema = optional_schema(schema_path)
        graph = DocGraph.build(directory, schema, pattern, honor_ignore)
    except MdDbError as exc:
        return report_error(console, exc)

    if graph.get_node(doc_id) is None:
        console.print(f"warning: {doc_id} is not a known document", style="yellow")

    outgoing = graph.refs_from_transitive(doc_id, depth) if direction in ("from", "both") else []
    incoming = graph.refs_to_transitive(doc_id, depth) if direction in ("to", "both") else []

    if resolve_format(output_format) is OutputFormat.JSON:
        emit_json(
            {
                "id": doc_id.upper(),
                "from": [{"depth": d, **e.to_json()} for d, e in outgoing],
                "to": [{"depth": d, **e.to_json()} for d, e in incoming],
            }
        )
        return 0

    lines = []
    if direction in ("from", "both"):
        lines.append(f"references from {doc_id.upper()}:")
        lines.extend(_edge_line(e, d) for d, e in outgoing)
        if not outgoing:
            lines.append("  (none)")
    if direction in ("to", "both"):
        lines.append(f"references to {doc_id.upper()}:")
        lines.extend(_edge_line(e, d) for d, e in incoming)
        if not incoming:
            lines.append("  (none)")
    emit("\n".join(lines))
    return 0


def run_graph(
    directory: Path,
    schema_path: Path | None,
    *,
    graph_format: str = "mermaid",
    doc_type: str | None = None,
    out: Path | None = None,
    pattern: str | None = None,
    honor_ignore: bool = True,
) -> int:
    """Render the relation graph as Mermaid, DOT or JSON."""
    console = Console(stderr=True)
    try:
        graph = DocGraph.build(directory, optional_schema(schema_path), pattern, honor_ignore)
    except MdDbError as exc:
        return report_error(console, exc)

    if graph_format == "dot":
        text = graph.to_dot(doc_type)
    elif graph_format == "json":
        text = dump_json(graph.to_json(doc_type)) + "\n"
    else:
        text = graph.to_mermaid(doc_type)

    if out is not None:
        out.write_text(text, encoding="utf-8")
        console.print(f"Wrote graph output to {out}", style="green")
    else:
        emit(text)
    return 0


def run_check(
    directory: Path,
    schema_path: Path | None,
    *,
    pattern: str | None = None,
    honor_ignore: bool = True,
    output_format: str | None = "text",
) -> int:
    """Run the graph health checks; exit 1 when any error is found."""
    console = Console(stderr=True)
    try:
        schema = require_schema(schema_path)
        graph = DocGraph.build(directory, schema, pattern, honor_ignore)
    except MdDbError as exc:
        return report_error(console, exc)

    result = ValidationResult([FileResult(Path(directory), graph.check_health(schema))])
    fmt = resolve_format(output_format)
    if fmt is OutputFormat.JSON:
        emit_json(
            {
                "diagnostics": [d.to_json() for d in result.diagnostics],
                "errors": result.error_count,
                "warnings": result.warning_count,
            }
        )
    elif fmt is OutputFormat.COMPACT:
        for d in result.diagnostics:
            emit(d.to_compact())
    elif fmt is OutputFormat.MARKDOWN:
        emit(result.to_markdown())
    else:
        emit(result.to_report())
    return 1 if result.has_errors else 0


def run_next_id(
    directory: Path,
    prefix: str,
    schema_path: Path | None = None,
    *,
    pattern: str | None = None,
    honor_ignore: bool = True,
) -> int:
    """Print the next free ``PREFIX-NNN`` identifier."""
    console = Console(stderr=True)
    try:
        graph = DocGraph.build(directory, optional_schema(schema_path), pattern, honor_ignore)
    except MdDbError as exc:
        return report_error(console, exc)
    emit(graph.next_id(prefix))
    return 0
