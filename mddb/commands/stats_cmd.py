"""Stats command - a one-screen summary of the corpus."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..errors import MdDbError
from ..output import OutputFormat, resolve_format
from ..stats import compute_stats
from .common import emit, emit_json, load_users, report_error, require_schema


def run_stats(
    directory: Path,
    schema_path: Path | None,
    *,
    users_path: Path | None = None,
    pattern: str | None = None,
    honor_ignore: bool = True,
    output_format: str | None = "text",
) -> int:
    console = Console(stderr=True)
    try:
        stats = compute_stats(
            directory,
            require_schema(schema_path),
            load_users(users_path),
            pattern=pattern,
            honor_ignore=honor_ignore,
        )
    except MdDbError as exc:
        return report_error(console, exc)

    if resolve_format(output_format) is OutputFormat.JSON:
        emit_json(stats.to_json())
    else:
        emit(stats.to_text())
    return 0
