"""Section-aware full-text search over a document corpus."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from .discovery import Filter, discover_files
from .errors import MdDbError
from .graph.ids import path_to_id
from .markdown import ast
from .markdown.document import Document
from .markdown.frontmatter import display_value

logger = logging.getLogger(__name__)

ROOT_SECTION = "(root)"
CONTEXT_RADIUS = 1


@dataclass
class SearchOptions:
    case_sensitive: bool = False
    section: str | None = None
    field: str | None = None
    max_results: int | None = None


@dataclass
class Match:
    section: str  # heading text, "(root)", or "frontmatter.<key>"
    line: int | None
    context: str

    def to_json(self) -> dict[str, Any]:
        return {"section": self.section, "line": self.line, "context": self.context}


@dataclass
class SearchResult:
    path: Path
    id: str
    title: str | None = None
    matches: list[Match] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "id": self.id,
            "title": self.title,
            "matches": [m.to_json() for m in self.matches],
        }

    def to_text(self) -> str:
        header = f"{self.id} {self.path}"
        if self.title:
            header += f" ({self.title})"
        lines = [header]
        for m in self.matches:
            where = m.section if m.line is None else f"{m.section}:{m.line}"
            lines.append(f"  [{where}] {m.context}")
        return "\n".join(lines)


def highlight(text: str, query: str, case_sensitive: bool = False) -> str:
    """Wrap every occurrence of ``query`` in ``*...*``."""
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.sub(re.escape(query), lambda m: f"*{m.group(0)}*", text, flags=flags)


def _contains(text: str, query: str, case_sensitive: bool) -> bool:
    if case_sensitive:
        return query in text
    return query.lower() in text.lower()


def _heading_lines(body: str) -> list[tuple[int, str]]:
    return [(h.map[0], ast.heading_text(h)) for h in ast.find_headings(ast.parse(body)) if h.map]


def _section_at(headings: list[tuple[int, str]], line: int) -> str:
    current = ROOT_SECTION
    for start, text in headings:
        if start > line:
            break
        current = text
    return current


def _context(lines: list[str], index: int) -> str:
    lo = max(0, index - CONTEXT_RADIUS)
    hi = min(len(lines), index + CONTEXT_RADIUS + 1)
    return " ".join(line.strip() for line in lines[lo:hi] if line.strip())


def search_frontmatter(doc: Document, query: str, options: SearchOptions) -> list[Match]:
    if doc.frontmatter is None:
        return []
    keys = [options.field] if options.field else doc.frontmatter.keys()
    matches = []
    for key in keys:
        shown = doc.frontmatter.get_display(key)
        if shown is None or not _contains(shown, query, options.case_sensitive):
            continue
        matches.append(
            Match(f"frontmatter.{key}", None, highlight(f"{key}: {shown}", query, options.case_sensitive))
        )
    return matches


def search_body(doc: Document, query: str, options: SearchOptions) -> list[Match]:
    lines = doc.body.splitlines()
    headings = _heading_lines(doc.body)
    offset = doc.raw[: len(doc.raw) - len(doc.body)].count("\n")
    wanted = options.section.lower() if options.section else None
    matches = []
    for i, line in enumerate(lines):
        if not _contains(line, query, options.case_sensitive):
            continue
        section = _section_at(headings, i)
        if wanted is not None and section.lower() != wanted:
            continue
        matches.append(
            Match(section, offset + i + 1, highlight(_context(lines, i), query, options.case_sensitive))
        )
    return matches


def search_document(doc: Document, query: str, options: SearchOptions) -> list[Match]:
    matches: list[Match] = []
    if options.section is None:
        matches.extend(search_frontmatter(doc, query, options))
    if options.field is None:
        matches.extend(search_body(doc, query, options))
    return matches


def search_documents(
    directory: Path | str,
    query: str,
    options: SearchOptions | None = None,
    pattern: str | None = None,
    filters: Iterable[Filter] = (),
    honor_ignore: bool = True,
) -> list[SearchResult]:
    """Documents containing ``query``, sorted by path."""
    options = options or SearchOptions()
    if not query:
        return []
    results: list[SearchResult] = []
    for path in discover_files(directory, pattern, filters, honor_ignore):
        try:
            doc = Document.from_file(path)
        except MdDbError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            continue
        matches = search_document(doc, query, options)
        if not matches:
            continue
        title = doc.get_field("title")
        results.append(
            SearchResult(
                path=path,
                id=path_to_id(path),
                title=display_value(title) if title is not None else None,
                matches=matches,
            )
        )
        if options.max_results is not None and len(results) >= options.max_results:
            break
    return results
