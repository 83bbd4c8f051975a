"""Section value object: a heading and everything up to the next peer heading."""

from __future__ import annotations

from dataclasses import dataclass

from . import ast
from .table import Table
from ..errors import TableNotFoundError


@dataclass
class Section:
    heading: str
    level: int
    raw: str  # heading line included
    content: str  # heading line excluded

    @classmethod
    def from_heading(cls, node, body: str) -> "Section":
        start, end = ast.section_byte_range(node, body)
        content_start, _ = ast.section_content_byte_range(node, body)
        return cls(
            heading=ast.heading_text(node),
            level=ast.heading_level(node),
            raw=body[start:end],
            content=body[content_start:end],
        )

    def subsections(self) -> list["Section"]:
        """Sections exactly one level deeper, found within this section's content."""
        content = self.content
        return [
            Section.from_heading(node, content)
            for node in ast.find_headings(ast.parse(content), self.level + 1)
        ]

    def subsection(self, name: str) -> "Section | None":
        wanted = name.strip().lower()
        for sub in self.subsections():
            if sub.heading.strip().lower() == wanted:
                return sub
        return None

    def tables(self) -> list[Table]:
        return ast.parse_tables(self.content)

    def get_table(self, index: int = 0) -> Table:
        tables = self.tables()
        if not 0 <= index < len(tables):
            raise TableNotFoundError(index)
        return tables[index]

    def text(self) -> str:
        """Plain text of the content blocks, separated by blank lines."""
        return "\n\n".join(ast.block_texts(ast.parse(self.content)))

    def to_json(self) -> dict:
        return {"heading": self.heading, "level": self.level, "content": self.content}
