"""Structural diff between two versions of a document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from .graph.ids import path_to_id
from .markdown.document import Document
from .markdown.frontmatter import display_value, values_equal
from .markdown.section import Section

FieldChangeKind = Literal["added", "removed", "changed"]
SectionChangeKind = Literal["added", "modified", "removed"]

_SECTION_ORDER = {"added": 0, "modified": 1, "removed": 2}


@dataclass
class FieldChange:
    key: str
    kind: FieldChangeKind
    old: str | None = None
    new: str | None = None

    def to_json(self) -> dict[str, Any]:
        return {"key": self.key, "kind": self.kind, "old": self.old, "new": self.new}


@dataclass
class SectionChange:
    path: str
    kind: SectionChangeKind
    lines_added: int = 0
    lines_removed: int = 0

    def to_json(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "kind": self.kind,
            "lines_added": self.lines_added,
            "lines_removed": self.lines_removed,
        }


@dataclass
class DocDiff:
    path: str | None = None
    id: str | None = None
    field_changes: list[FieldChange] = field(default_factory=list)
    section_changes: list[SectionChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.field_changes and not self.section_changes

    def to_text(self) -> str:
        title = self.id or self.path or "document"
        if self.is_empty:
            return f"{title}: no changes\n"
        lines = [title]
        if self.field_changes:
            lines.append("  fields:")
            for c in self.field_changes:
                if c.kind == "added":
                    lines.append(f"    + {c.key}: {c.new}")
                elif c.kind == "removed":
                    lines.append(f"    - {c.key}: {c.old}")
                else:
                    lines.append(f"    ~ {c.key}: {c.old} -> {c.new}")
        if self.section_changes:
            lines.append("  sections:")
            for c in self.section_changes:
                if c.kind == "added":
                    lines.append(f"    + {c.path}")
                elif c.kind == "removed":
                    lines.append(f"    - {c.path}")
                else:
                    lines.append(f"    ~ {c.path} (+{c.lines_added} -{c.lines_removed})")
        return "\n".join(lines) + "\n"

    def to_json(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "id": self.id,
            "field_changes": [c.to_json() for c in self.field_changes],
            "section_changes": [c.to_json() for c in self.section_changes],
        }


def diff_fields(old: Document, new: Document) -> list[FieldChange]:
    old_data = old.frontmatter.data if old.frontmatter else {}
    new_data = new.frontmatter.data if new.frontmatter else {}
    changes = []
    for key in sorted(set(old_data) | set(new_data)):
        if key not in old_data:
            changes.append(FieldChange(key, "added", new=display_value(new_data[key])))
        elif key not in new_data:
            changes.append(FieldChange(key, "removed", old=display_value(old_data[key])))
        elif not values_equal(old_data[key], new_data[key]):
            changes.append(
                FieldChange(key, "changed", old=display_value(old_data[key]), new=display_value(new_data[key]))
            )
    return changes


def section_map(doc: Document) -> dict[str, str]:
    """Every section keyed by its ``"A > B"`` path (first occurrence wins)."""
    out: dict[str, str] = {}

    def visit(section: Section, prefix: str) -> None:
        path = f"{prefix} > {section.heading}" if prefix else section.heading
        out.setdefault(path, section.content)
        for sub in section.subsections():
            visit(sub, path)

    for section in doc.sections():
        visit(section, "")
    return out


def _count_missing(lines: list[str], other: list[str]) -> int:
    other_set = set(other)
    return sum(1 for line in lines if line not in other_set)


def diff_sections(old: Document, new: Document) -> list[SectionChange]:
    old_sections = section_map(old)
    new_sections = section_map(new)
    changes = []
    for path in set(old_sections) | set(new_sections):
        if path not in old_sections:
            changes.append(SectionChange(path, "added"))
        elif path not in new_sections:
            changes.append(SectionChange(path, "removed"))
        elif old_sections[path] != new_sections[path]:
            old_lines = old_sections[path].splitlines()
            new_lines = new_sections[path].splitlines()
            changes.append(
                SectionChange(
                    path,
                    "modified",
                    lines_added=_count_missing(new_lines, old_lines),
                    lines_removed=_count_missing(old_lines, new_lines),
                )
            )
    changes.sort(key=lambda c: (_SECTION_ORDER[c.kind], c.path))
    return changes


def diff_documents(old: Document, new: Document) -> DocDiff:
    path = new.path or old.path
    doc_id = new.get_field("id") or old.get_field("id")
    if not isinstance(doc_id, str):
        doc_id = path_to_id(path) if path is not None else None
    return DocDiff(
        path=str(path) if path is not None else None,
        id=doc_id,
        field_changes=diff_fields(old, new),
        section_changes=diff_sections(old, new),
    )
