"""Diff command - structural comparison of two document versions."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..diff import diff_documents
from ..errors import MdDbError
from ..markdown.document import Document
from ..output import OutputFormat, resolve_format
from .common import emit, emit_json, report_error


def run_diff(old_path: Path, new_path: Path, *, output_format: str | None = "text") -> int:
    """Compare two files field by field and section by section.

    Returns:
        Exit code (0 = identical structure, 1 = differences or failure)
    """
    console = Console(stderr=True)
    try:
        old = Document.from_file(old_path)
        new = Document.from_file(new_path)
    except MdDbError as exc:
        return report_error(console, exc)

    result = diff_documents(old, new)
    if resolve_format(output_format) is OutputFormat.JSON:
        emit_json(result.to_json())
    else:
        emit(result.to_text())
    return 0 if result.is_empty else 1
