"""Validate command implementation."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..errors import MdDbError
from ..output import OutputFormat, resolve_format
from ..validation import ValidationResult, validate_directory, validate_file, validate_text
from .common import emit, emit_json, load_users, report_error, require_schema


def run_validate(
    target: Path | None,
    schema_path: Path | None,
    *,
    users_path: Path | None = None,
    corpus_dir: Path | None = None,
    pattern: str | None = None,
    honor_ignore: bool = True,
    output_format: str | None = "text",
    stdin_text: str | None = None,
) -> int:
    """Validate a file, a directory, or document text read from stdin.

    Returns:
        Exit code (0 = no error diagnostics, 1 = errors found or fatal failure)
    """
    console = Console(stderr=True)
    try:
        schema = require_schema(schema_path)
        users = load_users(users_path)

        if stdin_text is not None:
            result = validate_text(stdin_text, schema, users)
        elif target is not None and target.is_file():
            result = validate_file(target, schema, users, corpus_dir, pattern, honor_ignore)
        else:
            directory = target or corpus_dir or Path.cwd()
            console.print(f"Validating {directory}...", style="dim")
            result = validate_directory(directory, schema, pattern, users, honor_ignore)
    except MdDbError as exc:
        return report_error(console, exc)

    print_result(result, resolve_format(output_format))
    return 1 if result.has_errors else 0


def print_result(result: ValidationResult, fmt: OutputFormat) -> None:
    if fmt is OutputFormat.JSON:
        emit_json(result.to_json())
    elif fmt is OutputFormat.COMPACT:
        compact = result.to_compact()
        if compact:
            emit(compact)
    elif fmt is OutputFormat.MARKDOWN:
        emit(result.to_markdown())
    else:
        emit(result.to_report())
