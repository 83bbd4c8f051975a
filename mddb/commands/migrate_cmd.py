"""Migrate command - bring documents in line with a changed schema."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..errors import MdDbError
from ..migrate import apply_migration, compute_migration, diff_schemas
from ..output import OutputFormat, resolve_format
from ..schema import load_schema
from .common import emit, emit_json, report_error


def run_migrate(
    directory: Path,
    old_schema_path: Path,
    new_schema_path: Path,
    *,
    apply: bool = False,
    pattern: str | None = None,
    honor_ignore: bool = True,
    output_format: str | None = "text",
) -> int:
    """Show the schema diff and migration plan; with ``apply``, run it.

    Returns:
        Exit code (0 = nothing left to do by hand, 1 = manual fixes or failure)
    """
    console = Console(stderr=True)
    try:
        old = load_schema(old_schema_path)
        new = load_schema(new_schema_path)
        schema_diff = diff_schemas(old, new)
        plan = compute_migration(schema_diff, directory, pattern, honor_ignore)
        result = apply_migration(plan) if apply else None
    except MdDbError as exc:
        return report_error(console, exc)

    manual = [a for a in plan.actions if a.affected and not a.auto_fixable]

    if resolve_format(output_format) is OutputFormat.JSON:
        payload = {
            "schema_diff": {
                "added_types": schema_diff.added_types,
                "removed_types": schema_diff.removed_types,
                "changed_types": [c.name for c in schema_diff.type_changes],
            },
            "plan": plan.to_json(),
        }
        if result is not None:
            payload["applied"] = {
                "modified": [str(p) for p in result.modified],
                "warnings": result.warnings,
            }
        emit_json(payload)
    else:
        emit(schema_diff.to_text())
        emit(plan.to_text())
        if result is not None:
            for path in result.modified:
                console.print(f"migrated {path}", style="green")
            for warning in result.warnings:
                console.print(f"warning: {warning}", style="yellow")
            console.print(f"{len(result.modified)} document(s) modified", style="bold")
        elif not plan.is_empty:
            console.print("dry run; pass --apply to write changes", style="dim")

    return 1 if manual else 0
