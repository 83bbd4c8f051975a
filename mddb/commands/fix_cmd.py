"""Fix command - apply the repairs validation findings point at."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..errors import MdDbError
from ..fix import fix_documents
from ..output import OutputFormat, resolve_format
from .common import emit, emit_json, report_error, require_schema


def run_fix(
    target: Path,
    schema_path: Path | None,
    *,
    dry_run: bool = False,
    pattern: str | None = None,
    honor_ignore: bool = True,
    output_format: str | None = "text",
) -> int:
    """Fix a document or directory.

    Returns:
        Exit code (0 = everything found was fixed, 1 = manual fixes remain or failure)
    """
    console = Console(stderr=True)
    try:
        schema = require_schema(schema_path)
        report = fix_documents(target, schema, dry_run=dry_run, pattern=pattern, honor_ignore=honor_ignore)
    except MdDbError as exc:
        return report_error(console, exc)

    if resolve_format(output_format) is OutputFormat.JSON:
        emit_json(report.to_json())
    else:
        emit(report.to_text())
    return 1 if report.skipped_count else 0
