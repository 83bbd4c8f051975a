"""Sync command - fill in missing inverse relation fields."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..errors import MdDbError
from ..output import OutputFormat, resolve_format
from ..sync import apply_sync_plan, compute_sync_plan
from .common import emit, emit_json, report_error, require_schema


def run_sync(
    directory: Path,
    schema_path: Path | None,
    *,
    apply: bool = False,
    pattern: str | None = None,
    honor_ignore: bool = True,
    output_format: str | None = "text",
) -> int:
    """Print the inverse-sync plan; with ``apply``, write it."""
    console = Console(stderr=True)
    try:
        schema = require_schema(schema_path)
        plan = compute_sync_plan(directory, schema, pattern=pattern, honor_ignore=honor_ignore)
        modified = apply_sync_plan(plan) if apply else None
    except MdDbError as exc:
        return report_error(console, exc)

    if resolve_format(output_format) is OutputFormat.JSON:
        payload = plan.to_json()
        if modified is not None:
            payload["modified"] = [str(p) for p in modified]
        emit_json(payload)
    else:
        emit(plan.to_report())
        if modified is not None:
            console.print(f"{len(modified)} document(s) updated", style="bold green")
        elif not plan.is_empty:
            console.print("dry run; pass --apply to write changes", style="dim")
    return 0
