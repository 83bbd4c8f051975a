"""Watch command - revalidate documents as they change."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..errors import MdDbError
from ..schema import Schema
from ..users import UserDirectory
from ..validation import ValidationResult, validate_directory, validate_file
from ..watcher import run_watch_loop
from .common import load_users, report_error, require_schema


def revalidate(
    paths: list[Path],
    directory: Path,
    schema: Schema,
    users: UserDirectory | None = None,
    pattern: str | None = None,
    honor_ignore: bool = True,
) -> ValidationResult:
    """Validate the changed paths that still exist against the whole corpus."""
    result = ValidationResult()
    for path in paths:
        if not path.is_file():
            continue
        result.files.extend(validate_file(path, schema, users, directory, pattern, honor_ignore).files)
    return result


def run_watch(
    directory: Path,
    schema_path: Path | None,
    *,
    users_path: Path | None = None,
    pattern: str | None = None,
    honor_ignore: bool = True,
    debounce_ms: int = 300,
) -> int:
    """
    Validate once, then watch ``directory`` and revalidate changed documents.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)
    try:
        schema = require_schema(schema_path)
        users = load_users(users_path)
    except MdDbError as exc:
        return report_error(console, exc)

    initial = validate_directory(directory, schema, pattern, users, honor_ignore)
    console.print(initial.to_report().rstrip("\n"), markup=False)
    console.print(f"[bold]Watching[/bold] {directory}")
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    def on_change(paths: list[Path]) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        try:
            result = revalidate(paths, directory, schema, users, pattern, honor_ignore)
        except MdDbError as exc:
            console.print(f"[dim]{timestamp}[/dim] error: {exc}", style="bold red")
            return
        console.print(f"[dim]{timestamp}[/dim] {len(paths)} changed file(s)")
        style = "bold red" if result.has_errors else "green"
        console.print(result.to_report().rstrip("\n"), style=style, markup=False)

    run_watch_loop(directory, on_change, debounce_ms)
    console.print("[bold]Stopped.[/bold]")
    return 0
