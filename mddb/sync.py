"""Inverse sync: make every relation edge visible from both ends."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import MdDbError
from .graph.graph import DocGraph
from .markdown.document import Document
from .schema.model import Cardinality, Schema

logger = logging.getLogger(__name__)


@dataclass
class SyncAction:
    """Add ``add_refs`` to the ``field_name`` front-matter field of ``doc_id``."""

    path: Path
    doc_id: str
    field_name: str
    add_refs: list[str]
    cardinality: Cardinality = "many"

    def to_json(self) -> dict[str, Any]:
        return {
            "doc": self.doc_id,
            "path": str(self.path),
            "field": self.field_name,
            "add": list(self.add_refs),
            "cardinality": self.cardinality,
        }


@dataclass
class SyncPlan:
    actions: list[SyncAction] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.actions

    def to_report(self) -> str:
        lines = []
        for action in self.actions:
            lines.append(f"{action.doc_id}: add {', '.join(action.add_refs)} to \"{action.field_name}\"")
            lines.append(f"    {action.path}")
        for warning in self.warnings:
            lines.append(f"warning: {warning}")
        if not lines:
            return "inverse relations are in sync\n"
        lines.append("")
        lines.append(f"{len(self.actions)} action(s), {len(self.warnings)} warning(s)")
        return "\n".join(lines) + "\n"

    def to_json(self) -> dict[str, Any]:
        return {
            "actions": [a.to_json() for a in self.actions],
            "warnings": list(self.warnings),
        }


def compute_sync_plan(
    directory: Path | str,
    schema: Schema,
    graph: DocGraph | None = None,
    pattern: str | None = None,
    honor_ignore: bool = True,
) -> SyncPlan:
    """Schedule the missing inverse references for every relation edge."""
    if graph is None:
        graph = DocGraph.build(directory, schema, pattern, honor_ignore)

    plan = SyncPlan()
    pending: dict[tuple[str, str], list[str]] = {}
    cardinalities: dict[str, Cardinality] = {}
    loaded: dict[str, Document | None] = {}

    def target_field(node_id: str, name: str) -> Any:
        if node_id not in loaded:
            try:
                loaded[node_id] = Document.from_file(graph.nodes[node_id].path)
            except MdDbError as exc:
                logger.warning("Skipping %s: %s", graph.nodes[node_id].path, exc)
                loaded[node_id] = None
        doc = loaded[node_id]
        return doc.get_field(name) if doc is not None else None

    for edge in graph.edges:
        inverse = schema.inverse_of(edge.relation)
        if inverse is None or edge.target not in graph.nodes:
            continue
        if graph.has_edge(edge.target, edge.source, inverse):
            continue

        cardinality = schema.relation_cardinality(inverse) or "many"
        key = (edge.target, inverse)
        refs = pending.setdefault(key, [])
        if edge.source in refs:
            continue

        if cardinality == "one":
            current = target_field(edge.target, inverse)
            if current not in (None, "", []) or refs:
                plan.warnings.append(
                    f'{edge.target}: field "{inverse}" already has a value (cardinality=one), '
                    f"cannot add {edge.source}"
                )
                continue

        refs.append(edge.source)
        cardinalities[inverse] = cardinality

    for (target, inverse), refs in sorted(pending.items()):
        if not refs:
            continue
        plan.actions.append(
            SyncAction(
                path=graph.nodes[target].path,
                doc_id=target,
                field_name=inverse,
                add_refs=sorted(refs),
                cardinality=cardinalities[inverse],
            )
        )
    logger.debug("Sync plan: %d action(s), %d warning(s)", len(plan.actions), len(plan.warnings))
    return plan


def existing_refs(value: Any) -> list[str]:
    """The references held by a relation field, scalar or list."""
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str)]
    return []


def merge_refs(existing: list[str], additions: list[str]) -> list[str]:
    """Existing refs followed by new ones, without case-insensitive duplicates."""
    merged: list[str] = []
    seen: set[str] = set()
    for ref in [*existing, *additions]:
        folded = ref.strip().upper()
        if folded in seen:
            continue
        seen.add(folded)
        merged.append(ref)
    return merged


def apply_sync_plan(plan: SyncPlan) -> list[Path]:
    """Write every action to disk; returns the modified paths."""
    modified: list[Path] = []
    for action in plan.actions:
        doc = Document.from_file(action.path)
        refs = merge_refs(existing_refs(doc.get_field(action.field_name)), action.add_refs)
        if action.cardinality == "one":
            doc.set_field(action.field_name, refs[0])
        else:
            doc.set_field(action.field_name, refs)
        doc.save()
        logger.debug("Synced %s: %s += %s", action.path, action.field_name, ", ".join(action.add_refs))
        if action.path not in modified:
            modified.append(action.path)
    return modified
