"""Table value object: header/row access, cell edits, Markdown/text/JSON rendering."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import CellNotFoundError, ColumnNotFoundError, RowOutOfBoundsError


def _escape_cell(value: str) -> str:
    return value.replace("|", "\\|").replace("\n", " ")


@dataclass
class Table:
    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)

    def column_index(self, column: str) -> int | None:
        """Index of a header, matched exactly first and then case-insensitively."""
        if column in self.headers:
            return self.headers.index(column)
        lowered = column.strip().lower()
        for i, header in enumerate(self.headers):
            if header.strip().lower() == lowered:
                return i
        return None

    def get_cell(self, column: str, row: int) -> str | None:
        idx = self.column_index(column)
        if idx is None or not 0 <= row < len(self.rows):
            return None
        cells = self.rows[row]
        return cells[idx] if idx < len(cells) else None

    def require_cell(self, column: str, row: int) -> str:
        value = self.get_cell(column, row)
        if value is None:
            raise CellNotFoundError(column, row)
        return value

    def get_column(self, column: str) -> list[str] | None:
        idx = self.column_index(column)
        if idx is None:
            return None
        return [cells[idx] if idx < len(cells) else "" for cells in self.rows]

    def get_row(self, row: int) -> list[str] | None:
        if not 0 <= row < len(self.rows):
            return None
        return list(self.rows[row])

    def set_cell(self, column: str, row: int, value: str) -> None:
        idx = self.column_index(column)
        if idx is None:
            raise ColumnNotFoundError(column)
        if not 0 <= row < len(self.rows):
            raise RowOutOfBoundsError(row, len(self.rows))
        cells = self.rows[row]
        while len(cells) < len(self.headers):
            cells.append("")
        cells[idx] = value

    def add_row(self, values: list[str]) -> None:
        """Append a row, padded with empty cells or truncated to the header width."""
        width = len(self.headers)
        row = list(values[:width])
        row.extend([""] * (width - len(row)))
        self.rows.append(row)

    def _normalized_rows(self) -> list[list[str]]:
        width = len(self.headers)
        return [(list(r) + [""] * width)[:width] for r in self.rows]

    def to_markdown(self) -> str:
        """GitHub-flavored Markdown, newline-terminated."""
        lines = ["| " + " | ".join(_escape_cell(h) for h in self.headers) + " |"]
        lines.append("|" + "|".join("---" for _ in self.headers) + "|")
        for cells in self._normalized_rows():
            lines.append("| " + " | ".join(_escape_cell(c) for c in cells) + " |")
        return "\n".join(lines) + "\n"

    def to_text(self) -> str:
        """Column-aligned plain text."""
        rows = self._normalized_rows()
        widths = [len(h) for h in self.headers]
        for cells in rows:
            for i, cell in enumerate(cells):
                widths[i] = max(widths[i], len(cell))

        def fmt(cells: list[str]) -> str:
            return "  ".join(c.ljust(widths[i]) for i, c in enumerate(cells)).rstrip()

        lines = [fmt(self.headers), "  ".join("-" * w for w in widths)]
        lines.extend(fmt(cells) for cells in rows)
        return "\n".join(lines) + "\n"

    def to_json(self) -> list[dict[str, str]]:
        return [dict(zip(self.headers, cells)) for cells in self._normalized_rows()]
