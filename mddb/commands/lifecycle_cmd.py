"""Rename and deprecate commands - document lifecycle edits across the corpus."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..errors import MdDbError
from ..lifecycle import deprecate_document, rename_document
from ..output import OutputFormat, resolve_format
from .common import emit, emit_json, optional_schema, report_error


def run_rename(
    path: Path,
    new_id: str,
    directory: Path,
    schema_path: Path | None,
    *,
    dry_run: bool = False,
    pattern: str | None = None,
    honor_ignore: bool = True,
    output_format: str | None = "text",
) -> int:
    """Rename a document to ``new_id`` and rewrite the references to it."""
    console = Console(stderr=True)
    try:
        result = rename_document(
            path,
            new_id,
            optional_schema(schema_path),
            directory,
            dry_run=dry_run,
            pattern=pattern,
            honor_ignore=honor_ignore,
        )
    except MdDbError as exc:
        return report_error(console, exc)

    if resolve_format(output_format) is OutputFormat.JSON:
        emit_json(result.to_json())
    else:
        emit(result.to_text())
    return 0


def run_deprecate(
    path: Path,
    schema_path: Path | None,
    *,
    superseded_by: str | None = None,
    directory: Path | None = None,
    dry_run: bool = False,
    pattern: str | None = None,
    honor_ignore: bool = True,
    output_format: str | None = "text",
) -> int:
    """Mark a document deprecated (or superseded) and report what still points at it."""
    console = Console(stderr=True)
    try:
        result = deprecate_document(
            path,
            optional_schema(schema_path),
            superseded_by=superseded_by,
            directory=directory,
            dry_run=dry_run,
            pattern=pattern,
            honor_ignore=honor_ignore,
        )
    except MdDbError as exc:
        return report_error(console, exc)

    if resolve_format(output_format) is OutputFormat.JSON:
        emit_json(result.to_json())
    else:
        emit(result.to_text())
    return 0
