"""Describe command - print what a schema declares."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..errors import MdDbError
from ..output import OutputFormat, resolve_format
from ..schema import describe
from .common import emit, emit_json, report_error, require_schema


def run_describe(
    schema_path: Path | None,
    *,
    doc_type: str | None = None,
    field: str | None = None,
    relations: bool = False,
    export: bool = False,
    output_format: str | None = "text",
) -> int:
    """Describe the whole schema, one type, one field of a type, or the relations.

    ``export`` always prints JSON with every type expanded.
    """
    console = Console(stderr=True)
    try:
        schema = require_schema(schema_path)
        as_json = resolve_format(output_format) is OutputFormat.JSON
        if export:
            emit_json(describe.export_schema(schema))
        elif relations:
            if as_json:
                emit_json(describe.relations_to_json(schema))
            else:
                emit(describe.relations_text(schema))
        elif doc_type is not None:
            type_def = schema.require_type(doc_type)
            if field is not None:
                field_def = describe.require_field(type_def, field)
                if as_json:
                    emit_json(describe.field_to_json(field_def))
                else:
                    emit(describe.field_text(field_def))
            elif as_json:
                emit_json(describe.type_to_json(type_def, schema))
            else:
                emit(describe.type_text(type_def, schema))
        elif as_json:
            emit_json(describe.overview_to_json(schema))
        else:
            emit(describe.overview_text(schema))
    except MdDbError as exc:
        return report_error(console, exc)
    return 0
