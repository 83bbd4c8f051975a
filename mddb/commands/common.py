"""Helpers shared by the command implementations."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from rich.console import Console

from ..errors import ConfigError, MdDbError
from ..output import dump_json
from ..schema import Schema, load_schema
from ..users import UserDirectory


def emit(text: str) -> None:
    """Write command output to stdout."""
    print(text, end="" if text.endswith("\n") else "\n")


def emit_json(data: Any) -> None:
    print(dump_json(data))


def report_error(console: Console, exc: MdDbError) -> int:
    console.print(f"error: {exc}", style="bold red", markup=False)
    return 1


def require_schema(schema_path: Path | None) -> Schema:
    if schema_path is None:
        raise ConfigError("no schema found; pass --schema or add schema.kdl to the document directory")
    return load_schema(schema_path)


def optional_schema(schema_path: Path | None) -> Schema:
    """The schema when one is configured, else an empty one (no relations declared)."""
    return load_schema(schema_path) if schema_path is not None else Schema()


def load_users(users_path: Path | None) -> UserDirectory | None:
    return UserDirectory.from_file(users_path) if users_path is not None else None
