"""Corpus dashboard: document counts, validation summary, graph shape and staleness."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .discovery import discover_files
from .errors import MdDbError
from .graph.graph import DocGraph
from .markdown.document import Document
from .markdown.frontmatter import display_value
from .schema.model import Schema
from .users import UserDirectory
from .validation import validate_directory

logger = logging.getLogger(__name__)


@dataclass
class TypeStats:
    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)


@dataclass
class CorpusStats:
    by_type: dict[str, TypeStats] = field(default_factory=dict)
    files_ok: int = 0
    files_with_errors: int = 0
    by_code: dict[str, int] = field(default_factory=dict)
    nodes: int = 0
    edges: int = 0
    orphans: int = 0
    most_referenced: tuple[str, int] | None = None
    most_referencing: tuple[str, int] | None = None
    oldest: tuple[str, str] | None = None
    newest: tuple[str, str] | None = None

    @property
    def total_docs(self) -> int:
        return sum(t.total for t in self.by_type.values())

    def to_json(self) -> dict[str, Any]:
        graph: dict[str, Any] = {"nodes": self.nodes, "edges": self.edges, "orphans": self.orphans}
        if self.most_referenced:
            graph["most_referenced"] = {"id": self.most_referenced[0], "backlinks": self.most_referenced[1]}
        if self.most_referencing:
            graph["most_referencing"] = {"id": self.most_referencing[0], "outgoing": self.most_referencing[1]}
        staleness = {}
        if self.oldest:
            staleness["oldest"] = {"id": self.oldest[0], "date": self.oldest[1]}
        if self.newest:
            staleness["newest"] = {"id": self.newest[0], "date": self.newest[1]}
        return {
            "total_docs": self.total_docs,
            "by_type": {
                name: {"total": t.total, "by_status": dict(t.by_status)} for name, t in self.by_type.items()
            },
            "validation": {
                "ok": self.files_ok,
                "errors": self.files_with_errors,
                "by_code": dict(self.by_code),
            },
            "graph": graph,
            "staleness": staleness,
        }

    def to_text(self) -> str:
        lines = [f"Documents: {self.total_docs}"]
        for name, t in self.by_type.items():
            statuses = ", ".join(f"{count} {status}" for status, count in t.by_status.items())
            lines.append(f"  {name}: {t.total}" + (f" ({statuses})" if statuses else ""))

        lines += ["", f"Validation: {self.files_ok} ok, {self.files_with_errors} with errors"]
        lines.extend(f"  {code}: {count}" for code, count in self.by_code.items())

        lines += ["", f"Graph: {self.nodes} nodes, {self.edges} edges"]
        lines.append(f"  Orphans (no refs in or out): {self.orphans}")
        if self.most_referenced:
            lines.append(f"  Most referenced: {self.most_referenced[0]} ({self.most_referenced[1]} backlinks)")
        if self.most_referencing:
            lines.append(f"  Most referencing: {self.most_referencing[0]} ({self.most_referencing[1]} outgoing)")

        lines += ["", "Staleness:"]
        if self.oldest:
            lines.append(f"  Oldest unchanged: {self.oldest[0]} ({self.oldest[1]})")
        if self.newest:
            lines.append(f"  Newest: {self.newest[0]} ({self.newest[1]})")
        return "\n".join(lines) + "\n"


def _busiest(degrees: Counter, order: list[str]) -> tuple[str, int] | None:
    best = max(order, key=lambda node_id: degrees[node_id], default=None)
    if best is None or degrees[best] == 0:
        return None
    return best, degrees[best]


def _mtime_date(mtime: float) -> str:
    return datetime.fromtimestamp(mtime, timezone.utc).strftime("%Y-%m-%d")


def compute_stats(
    directory: Path | str,
    schema: Schema,
    users: UserDirectory | None = None,
    pattern: str | None = None,
    honor_ignore: bool = True,
) -> CorpusStats:
    stats = CorpusStats()

    by_type: dict[str, TypeStats] = {}
    for path in discover_files(directory, pattern, honor_ignore=honor_ignore):
        try:
            doc = Document.from_file(path)
        except MdDbError as exc:
            logger.debug("Not counting %s: %s", path, exc)
            continue
        if doc.frontmatter is None or not doc.frontmatter.has_field("type"):
            continue
        entry = by_type.setdefault(display_value(doc.get_field("type")), TypeStats())
        entry.total += 1
        if doc.frontmatter.has_field("status"):
            status = display_value(doc.get_field("status"))
            entry.by_status[status] = entry.by_status.get(status, 0) + 1
    stats.by_type = {name: by_type[name] for name in sorted(by_type)}
    for entry in stats.by_type.values():
        entry.by_status = dict(sorted(entry.by_status.items()))

    result = validate_directory(directory, schema, pattern, users, honor_ignore)
    stats.files_with_errors = sum(1 for f in result.files if f.has_errors)
    stats.files_ok = len(result.files) - stats.files_with_errors
    stats.by_code = dict(sorted(Counter(d.code for d in result.diagnostics).items()))

    graph = DocGraph.build(directory, schema, pattern, honor_ignore)
    stats.nodes = len(graph.nodes)
    stats.edges = len(graph.edges)
    incoming = Counter(e.target for e in graph.edges)
    outgoing = Counter(e.source for e in graph.edges)
    order = list(graph.nodes)
    stats.orphans = sum(1 for node_id in order if not incoming[node_id] and not outgoing[node_id])
    stats.most_referenced = _busiest(incoming, order)
    stats.most_referencing = _busiest(outgoing, order)

    times = []
    for node_id, node in graph.nodes.items():
        try:
            times.append((node.path.stat().st_mtime, node_id))
        except OSError:
            continue
    if times:
        times.sort()
        stats.oldest = (times[0][1], _mtime_date(times[0][0]))
        stats.newest = (times[-1][1], _mtime_date(times[-1][0]))
    return stats
