"""Fatal error types.

Diagnostics (validation findings, graph health checks) are returned as values
and never raised. The exceptions here are for conditions that abort the
current operation: unreadable files, malformed front-matter or schema, and
structural edits that address something that does not exist.
"""

from __future__ import annotations

from pathlib import Path


class MdDbError(Exception):
    """Base class for all md-db errors."""

    category = "error"


class FileMissingError(MdDbError):
    category = "file_not_found"

    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(f"file not found: {path}")


class IoError(MdDbError):
    category = "io"


class FrontmatterParseError(MdDbError):
    category = "frontmatter_parse"


class NoFrontmatterError(MdDbError):
    category = "no_frontmatter"

    def __init__(self, message: str = "document has no frontmatter"):
        super().__init__(message)


class SectionNotFoundError(MdDbError):
    category = "section_not_found"

    def __init__(self, heading: str):
        self.heading = heading
        super().__init__(f"section not found: {heading}")


class FieldNotFoundError(MdDbError):
    category = "field_not_found"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"field not found: {key}")


class TableNotFoundError(MdDbError):
    category = "table_not_found"

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"table not found at index {index}")


class ColumnNotFoundError(MdDbError):
    category = "column_not_found"

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"column not found: {column}")


class RowOutOfBoundsError(MdDbError):
    category = "row_out_of_bounds"

    def __init__(self, row: int, max: int):
        self.row = row
        self.max = max
        super().__init__(f"row {row} out of bounds (table has {max} rows)")


class CellNotFoundError(MdDbError):
    category = "cell_not_found"

    def __init__(self, column: str, row: int):
        self.column = column
        self.row = row
        super().__init__(f"cell not found: column {column!r}, row {row}")


class SchemaParseError(MdDbError):
    """Malformed schema file, with a 1-based source position when known."""

    category = "schema_parse"

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        self.message = message
        self.line = line
        self.column = column
        if line is not None:
            message = f"{message} (line {line}, column {column or 1})"
        super().__init__(message)


class NoPathError(MdDbError):
    category = "no_path"

    def __init__(self):
        super().__init__("document has no path; use save_to()")


class InvalidFieldValueError(MdDbError):
    category = "invalid_field_value"


class TypeNotFoundError(MdDbError):
    category = "type_not_found"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"type not found in schema: {name}")


class UserConfigError(MdDbError):
    category = "user_config"


class ConfigError(MdDbError):
    category = "config"


class RenameError(MdDbError):
    category = "rename"


def read_text(path: Path) -> str:
    """Read a UTF-8 file verbatim, mapping OS failures onto md-db errors.

    Newlines are not translated so that edits can be written back byte-exact.
    """
    try:
        with path.open(encoding="utf-8", newline="") as f:
            return f.read()
    except FileNotFoundError as exc:
        raise FileMissingError(path) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise IoError(f"{path}: {exc}") from exc


def write_text(path: Path, text: str) -> None:
    try:
        with path.open("w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as exc:
        raise IoError(f"failed to write {path}: {exc}") from exc
