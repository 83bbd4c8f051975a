"""Relation graph over a corpus of documents."""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from ..discovery import discover_files
from ..errors import MdDbError
from ..markdown.document import Document
from ..schema.model import Schema
from .ids import is_string_id, normalize_id, path_to_id, split_id

logger = logging.getLogger(__name__)

INLINE_REF = "inline_ref"
INACTIVE_STATUSES = ("deprecated", "superseded")


def _opt_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


@dataclass
class Node:
    id: str
    path: Path
    doc_type: str | None = None
    title: str | None = None
    status: str | None = None

    @property
    def is_inactive(self) -> bool:
        return self.status in INACTIVE_STATUSES

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": str(self.path),
            "type": self.doc_type,
            "title": self.title,
            "status": self.status,
        }


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    relation: str

    def to_json(self) -> dict[str, str]:
        return {"from": self.source, "to": self.target, "relation": self.relation}


def relation_targets(value: Any) -> list[str]:
    """Upper-cased targets of a relation field value (string or list of strings)."""
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, list):
        items = [v for v in value if isinstance(v, str)]
    else:
        return []
    return [normalize_id(v) for v in items if v.strip()]


@dataclass
class DocGraph:
    """Directed multigraph: nodes keyed by document ID, edges labelled by relation."""

    nodes: dict[str, Node] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        directory: Path | str,
        schema: Schema,
        pattern: str | None = None,
        honor_ignore: bool = True,
    ) -> "DocGraph":
        """Load every document under ``directory`` and build the graph.

        Files that fail to parse are logged and left out.
        """
        docs = []
        for path in discover_files(directory, pattern, honor_ignore=honor_ignore):
            try:
                docs.append(Document.from_file(path))
            except MdDbError as exc:
                logger.warning("Skipping %s: %s", path, exc)
        return cls.from_documents(docs, schema)

    @classmethod
    def from_documents(cls, docs: Iterable[Document], schema: Schema) -> "DocGraph":
        graph = cls()
        docs = [d for d in docs if d.frontmatter is not None and d.path is not None]

        for doc in docs:
            fm = doc.frontmatter
            node_id = path_to_id(doc.path)
            if node_id in graph.nodes:
                logger.warning("Duplicate document ID %s: %s and %s", node_id, graph.nodes[node_id].path, doc.path)
            graph.nodes[node_id] = Node(
                id=node_id,
                path=doc.path,
                doc_type=_opt_str(fm.get("type")),
                title=_opt_str(fm.get("title")),
                status=_opt_str(fm.get("status")),
            )
        graph.nodes = dict(sorted(graph.nodes.items()))

        relation_names = schema.all_relation_field_names()
        for doc in docs:
            graph._add_document_edges(doc, relation_names)

        logger.debug("Built graph: %d node(s), %d edge(s)", len(graph.nodes), len(graph.edges))
        return graph

    def _add_document_edges(self, doc: Document, relation_names: list[str]) -> None:
        source = path_to_id(doc.path)
        seen: set[Edge] = set()
        linked: set[str] = set()

        for name in relation_names:
            for target in relation_targets(doc.frontmatter.get(name)):
                edge = Edge(source, target, name)
                if edge in seen:
                    continue
                seen.add(edge)
                linked.add(target)
                self.edges.append(edge)

        for url in doc.links():
            if url.endswith(".md"):
                target = path_to_id(doc.path.parent / url)
            elif is_string_id(url):
                target = normalize_id(url)
            else:
                continue
            # one edge per (from, to): front-matter relations win over inline links
            if target in linked:
                continue
            linked.add(target)
            self.edges.append(Edge(source, target, INLINE_REF))

    # Queries

    def get_node(self, node_id: str) -> Node | None:
        return self.nodes.get(normalize_id(node_id))

    def refs_from(self, node_id: str) -> list[Edge]:
        node_id = normalize_id(node_id)
        return [e for e in self.edges if e.source == node_id]

    def refs_to(self, node_id: str) -> list[Edge]:
        node_id = normalize_id(node_id)
        return [e for e in self.edges if e.target == node_id]

    def _traverse(self, start: str, depth: int, forward: bool) -> list[tuple[int, Edge]]:
        adjacency: dict[str, list[Edge]] = defaultdict(list)
        for edge in self.edges:
            adjacency[edge.source if forward else edge.target].append(edge)

        start = normalize_id(start)
        results: list[tuple[int, Edge]] = []
        seen_edges: set[Edge] = set()
        expanded = {start}
        queue = deque([(start, 0)])
        # breadth-first, so every edge is reported at its shortest distance
        while queue:
            current, level = queue.popleft()
            if level >= depth:
                continue
            for edge in adjacency.get(current, []):
                if edge in seen_edges:
                    continue
                seen_edges.add(edge)
                results.append((level + 1, edge))
                nxt = edge.target if forward else edge.source
                if nxt not in expanded:
                    expanded.add(nxt)
                    queue.append((nxt, level + 1))
        return results

    def refs_from_transitive(self, node_id: str, depth: int) -> list[tuple[int, Edge]]:
        return self._traverse(node_id, depth, forward=True)

    def refs_to_transitive(self, node_id: str, depth: int) -> list[tuple[int, Edge]]:
        return self._traverse(node_id, depth, forward=False)

    def has_edge(self, source: str, target: str, relation: str | None = None) -> bool:
        return any(
            e.source == source and e.target == target and (relation is None or e.relation == relation)
            for e in self.edges
        )

    def next_id(self, prefix: str) -> str:
        prefix = prefix.upper()
        highest = 0
        for node_id in self.nodes:
            parsed = split_id(node_id)
            if parsed and parsed[0] == prefix:
                highest = max(highest, parsed[1])
        return f"{prefix}-{highest + 1:03d}"

    # Rendering

    def filtered(self, doc_type: str | None) -> tuple[list[Node], list[Edge]]:
        """Nodes of ``doc_type`` and the edges between them (everything when None)."""
        if doc_type is None:
            return list(self.nodes.values()), list(self.edges)
        nodes = [n for n in self.nodes.values() if n.doc_type == doc_type]
        ids = {n.id for n in nodes}
        return nodes, [e for e in self.edges if e.source in ids and e.target in ids]

    def to_mermaid(self, doc_type: str | None = None) -> str:
        from .render import to_mermaid

        return to_mermaid(self, doc_type)

    def to_dot(self, doc_type: str | None = None) -> str:
        from .render import to_dot

        return to_dot(self, doc_type)

    def to_json(self, doc_type: str | None = None) -> dict[str, Any]:
        nodes, edges = self.filtered(doc_type)
        return {
            "nodes": [n.to_json() for n in nodes],
            "edges": [e.to_json() for e in edges],
        }

    def check_health(self, schema: Schema) -> list:
        from .health import GraphHealth

        return GraphHealth(self, schema).run_all()
