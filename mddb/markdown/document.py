"""Whole-file document model with byte-preserving structural edits."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from . import ast
from .frontmatter import Frontmatter
from .section import Section
from ..errors import (
    NoFrontmatterError,
    NoPathError,
    SectionNotFoundError,
    TableNotFoundError,
    read_text,
    write_text,
)


class Document:
    """One Markdown file: optional front-matter plus body.

    ``raw`` always equals the serialized front-matter block followed by
    ``body``. Every edit below changes a single region of the body (or the
    front-matter) and then rebuilds ``raw``; text outside that region is kept
    byte for byte.
    """

    def __init__(
        self,
        raw: str,
        frontmatter: Frontmatter | None,
        body: str,
        path: Path | None = None,
    ):
        self.raw = raw
        self.frontmatter = frontmatter
        self.body = body
        self.path = path

    @classmethod
    def from_str(cls, raw: str, path: Path | None = None) -> "Document":
        fm, body = Frontmatter.try_parse(raw)
        return cls(raw, fm, body, path)

    @classmethod
    def from_file(cls, path: Path | str) -> "Document":
        path = Path(path)
        return cls.from_str(read_text(path), path)

    # Reads

    def get_frontmatter(self) -> Frontmatter:
        if self.frontmatter is None:
            raise NoFrontmatterError()
        return self.frontmatter

    def get_field(self, path: str) -> Any:
        """Front-matter value at a dotted path, or None (also when there is no front-matter)."""
        if self.frontmatter is None:
            return None
        return self.frontmatter.get(path)

    @property
    def doc_type(self) -> str | None:
        value = self.get_field("type")
        return value if isinstance(value, str) else None

    def _tree(self):
        return ast.parse(self.body)

    def _heading(self, target: str | list[str]):
        """Heading node for a heading text, or for a ``["Parent", "Child"]`` path.

        Each path step is looked up one level deeper and only inside the
        section resolved so far, so repeated child names under different
        parents resolve to the right one.
        """
        path = [target] if isinstance(target, str) else list(target)
        if not path:
            raise SectionNotFoundError("")
        tree = self._tree()
        node = ast.find_heading_by_text(tree, path[0])
        if node is None:
            raise SectionNotFoundError(path[0])
        headings = ast.find_headings(tree)
        for i, name in enumerate(path[1:], start=2):
            start, end = ast.section_byte_range(node, self.body)
            level = ast.heading_level(node) + 1
            wanted = name.strip().lower()
            node = next(
                (
                    h
                    for h in headings
                    if ast.heading_level(h) == level
                    and start < ast.line_start_offset(self.body, h.map[0]) < end
                    and ast.heading_text(h).lower() == wanted
                ),
                None,
            )
            if node is None:
                raise SectionNotFoundError(" > ".join(path[:i]))
        return node

    def get_section(self, heading: str) -> Section:
        return Section.from_heading(self._heading(heading), self.body)

    def find_section(self, heading: str) -> Section | None:
        node = ast.find_heading_by_text(self._tree(), heading)
        return Section.from_heading(node, self.body) if node is not None else None

    def get_section_by_path(self, path: list[str]) -> Section:
        """Resolve ``["Consequences", "Positive"]`` one nesting level at a time."""
        return Section.from_heading(self._heading(path), self.body)

    def sections(self) -> list[Section]:
        """Top-level sections: headings at the smallest level present in the body."""
        headings = ast.find_headings(self._tree())
        if not headings:
            return []
        top = min(ast.heading_level(h) for h in headings)
        return [
            Section.from_heading(h, self.body)
            for h in headings
            if ast.heading_level(h) == top
        ]

    def links(self) -> list[str]:
        return ast.extract_links(self.body)

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.frontmatter is not None:
            out["frontmatter"] = self.frontmatter.to_json()
        if self.path is not None:
            out["path"] = str(self.path)
        out["sections"] = [s.to_json() for s in self.sections()]
        out["body"] = self.body
        return out

    # Writes

    def _rebuild_raw(self) -> None:
        if self.frontmatter is None:
            self.raw = self.body
        else:
            self.raw = "---\n" + self.frontmatter.to_yaml_string() + "---\n" + self.body

    def _ensure_frontmatter(self) -> Frontmatter:
        if self.frontmatter is None:
            self.frontmatter = Frontmatter()
        return self.frontmatter

    def set_field(self, key: str, value: Any) -> None:
        self._ensure_frontmatter().set(key, value)
        self._rebuild_raw()

    def set_field_from_str(self, key: str, raw: str) -> None:
        self._ensure_frontmatter().set_from_str(key, raw)
        self._rebuild_raw()

    def remove_field(self, key: str) -> Any:
        value = self.get_frontmatter().remove(key)
        self._rebuild_raw()
        return value

    def set_body(self, body: str) -> None:
        self.body = body
        self._rebuild_raw()

    def _splice(self, start: int, end: int, text: str) -> None:
        self.body = self.body[:start] + text + self.body[end:]
        self._rebuild_raw()

    def replace_section_content(self, heading: str | list[str], new_content: str) -> None:
        start, end = ast.section_content_byte_range(self._heading(heading), self.body)
        self._splice(start, end, new_content)

    def append_to_section(self, heading: str | list[str], text: str) -> None:
        start, end = ast.section_content_byte_range(self._heading(heading), self.body)
        existing = self.body[start:end].rstrip()
        new_content = existing + "\n\n" + text if existing else text
        if not new_content.endswith("\n"):
            new_content += "\n"
        # keep the blank line before the following heading
        if end < len(self.body):
            new_content += "\n"
        self._splice(start, end, new_content)

    def append_section(self, heading: str, content: str = "") -> None:
        """Append a new section at the body's top heading level."""
        headings = ast.find_headings(self._tree())
        level = min((ast.heading_level(h) for h in headings), default=1)
        block = "#" * level + " " + heading + "\n"
        if content:
            block += "\n" + content.rstrip("\n") + "\n"
        body = self.body
        if body and not body.endswith("\n"):
            body += "\n"
        if body.strip():
            body += "\n"
        self.body = body + block
        self._rebuild_raw()

    def has_section_path(self, path: list[str]) -> bool:
        try:
            self._heading(path)
        except SectionNotFoundError:
            return False
        return True

    def add_section_path(self, path: list[str]) -> None:
        """Add the last heading of ``path``; nested headings go at the end of their parent, one level deeper."""
        if len(path) == 1:
            self.append_section(path[0])
            return
        parent = self._heading(path[:-1])
        heading = "#" * min(ast.heading_level(parent) + 1, 6) + " " + path[-1]
        self.append_to_section(path[:-1], heading)

    def _section_table(self, heading: str | list[str], index: int):
        node = self._heading(heading)
        sec_start, sec_end = ast.section_byte_range(node, self.body)
        tables = [
            t
            for t in ast.find_tables(self._tree())
            if sec_start <= ast.table_byte_range(t, self.body)[0] < sec_end
        ]
        if not 0 <= index < len(tables):
            raise TableNotFoundError(index)
        table_node = tables[index]
        return ast.parse_table_node(table_node), ast.table_byte_range(table_node, self.body)

    def set_table_cell(self, heading: str | list[str], index: int, column: str, row: int, value: str) -> None:
        table, (start, end) = self._section_table(heading, index)
        table.set_cell(column, row, value)
        self._splice(start, end, table.to_markdown())

    def add_table_row(self, heading: str | list[str], index: int, values: list[str]) -> None:
        table, (start, end) = self._section_table(heading, index)
        table.add_row(values)
        self._splice(start, end, table.to_markdown())

    def save(self) -> None:
        if self.path is None:
            raise NoPathError()
        write_text(self.path, self.raw)

    def save_to(self, path: Path | str) -> None:
        write_text(Path(path), self.raw)

    def __repr__(self) -> str:
        return f"Document(path={self.path!r})"
