"""Edits that ripple through the corpus: renaming a document ID and deprecating a document."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Callable

from .errors import InvalidFieldValueError, IoError, RenameError
from .graph.graph import DocGraph, Edge
from .graph.ids import is_string_id, normalize_id, path_to_id
from .markdown.document import Document
from .schema.model import Schema
from .sync import existing_refs, merge_refs

logger = logging.getLogger(__name__)

LINK_TARGET_PATTERN = re.compile(r"(\]\(\s*<?)([^)\s>]+)")

SUPERSEDED = "superseded"
DEPRECATED = "deprecated"
SUPERSEDED_BY = "superseded_by"


def renamed_filename(path: Path, old_id: str, new_id: str) -> str:
    """``adr-001-use-postgres.md`` renamed to ``ADR-010`` -> ``adr-010-use-postgres.md``."""
    stem = path.stem
    slug = stem[len(old_id):] if stem.upper().replace("_", "-").startswith(old_id) else ""
    return new_id.lower() + slug + (path.suffix or ".md")


def ref_field_names(schema: Schema) -> set[str]:
    """Front-matter fields that can hold document references."""
    names = set(schema.all_relation_field_names())
    for type_def in schema.types:
        names.update(f.name for f in type_def.fields if f.type in ("ref", "ref[]"))
    return names


def _rewrite_ref(value: str, base: Path, old_path: Path, old_id: str, new_id: str, new_name: str) -> str | None:
    if value.endswith(".md"):
        if (base / value).resolve() != old_path.resolve():
            return None
        head, sep, _ = value.rpartition("/")
        return head + sep + new_name
    if is_string_id(value) and normalize_id(value).replace("_", "-") == old_id:
        return new_id
    return None


def _rewrite_value(value: Any, rewrite: Callable[[str], str | None]) -> tuple[Any, bool]:
    if isinstance(value, str):
        new = rewrite(value)
        return (value, False) if new is None else (new, True)
    if isinstance(value, list):
        changed = False
        items = []
        for item in value:
            new, item_changed = _rewrite_value(item, rewrite)
            items.append(new)
            changed = changed or item_changed
        return items, changed
    return value, False


def rewrite_references(doc: Document, field_names: set[str], rewrite: Callable[[str], str | None]) -> bool:
    """Rewrite reference fields and inline link targets in place; True when anything changed."""
    changed = False
    if doc.frontmatter is not None:
        for name in list(doc.frontmatter.data):
            if name not in field_names:
                continue
            new, field_changed = _rewrite_value(doc.frontmatter.get(name), rewrite)
            if field_changed:
                doc.set_field(name, new)
                changed = True

    def replace(match: re.Match) -> str:
        new = rewrite(match.group(2))
        return match.group(0) if new is None else match.group(1) + new

    body = LINK_TARGET_PATTERN.sub(replace, doc.body)
    if body != doc.body:
        doc.set_body(body)
        changed = True
    return changed


# Rename


@dataclass
class RenameResult:
    old_id: str
    new_id: str
    old_path: Path
    new_path: Path
    updated: list[Path] = field(default_factory=list)
    dry_run: bool = False

    def to_text(self) -> str:
        verb = "would update" if self.dry_run else "updated"
        lines = [f"  {verb}: {p}" for p in self.updated]
        lines.append(f"  {'would rename' if self.dry_run else 'renamed'}: {self.old_path} -> {self.new_path}")
        lines.append(f"rename {self.old_id} -> {self.new_id}: {len(self.updated)} file(s) updated, 1 file renamed")
        return "\n".join(lines) + "\n"

    def to_json(self) -> dict[str, Any]:
        return {
            "old_id": self.old_id,
            "new_id": self.new_id,
            "old_path": str(self.old_path),
            "new_path": str(self.new_path),
            "updated": [str(p) for p in self.updated],
            "dry_run": self.dry_run,
        }


def rename_document(
    path: Path | str,
    new_id: str,
    schema: Schema,
    directory: Path | str,
    dry_run: bool = False,
    pattern: str | None = None,
    honor_ignore: bool = True,
) -> RenameResult:
    """Give a document a new ID: rename its file and rewrite every reference to it."""
    path = Path(path)
    old_id = path_to_id(path)
    new_id = normalize_id(new_id)
    if old_id == new_id:
        raise RenameError(f"old ID and new ID are the same: {old_id}")

    new_name = renamed_filename(path, old_id, new_id)
    new_path = path.with_name(new_name)
    if new_path.exists() and new_path != path:
        raise RenameError(f"target file already exists: {new_path}")

    graph = DocGraph.build(directory, schema, pattern, honor_ignore)
    referencing = sorted({e.source for e in graph.refs_to(old_id) if e.source != old_id})
    field_names = ref_field_names(schema)
    result = RenameResult(old_id, new_id, path, new_path, dry_run=dry_run)

    for ref_id in referencing:
        node = graph.nodes.get(ref_id)
        if node is None:
            continue
        doc = Document.from_file(node.path)
        rewrite = partial(
            _rewrite_ref,
            base=node.path.parent,
            old_path=path,
            old_id=old_id,
            new_id=new_id,
            new_name=new_name,
        )
        if not rewrite_references(doc, field_names, rewrite):
            continue
        if not dry_run:
            doc.save()
        logger.debug("Rewrote references to %s in %s", old_id, node.path)
        result.updated.append(node.path)

    if not dry_run:
        try:
            path.rename(new_path)
        except OSError as exc:
            raise IoError(f"failed to rename {path}: {exc}") from exc
    return result


# Deprecate


@dataclass
class DeprecateResult:
    doc_id: str
    path: Path
    status: str
    superseded_by: str | None = None
    backlinks: list[Edge] = field(default_factory=list)
    updated: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    dry_run: bool = False

    def to_text(self) -> str:
        head = f"{self.doc_id}: status={self.status}"
        if self.superseded_by:
            head += f", {SUPERSEDED_BY}={self.superseded_by}"
        lines = [head + (" (dry-run)" if self.dry_run else "")]
        verb = "would update" if self.dry_run else "updated"
        lines.extend(f"  {verb}: {p}" for p in self.updated)
        for edge in self.backlinks:
            lines.append(f"  backlink: {edge.source} ({edge.relation}) references deprecated {self.doc_id}")
        if self.backlinks:
            lines.append(f"  {len(self.backlinks)} document(s) still reference {self.doc_id}")
        lines.extend(f"warning: {w}" for w in self.warnings)
        return "\n".join(lines) + "\n"

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.doc_id,
            "path": str(self.path),
            "status": self.status,
            SUPERSEDED_BY: self.superseded_by,
            "backlinks": [e.to_json() for e in self.backlinks],
            "updated": [str(p) for p in self.updated],
            "warnings": list(self.warnings),
            "dry_run": self.dry_run,
        }


def _link_replacement(graph: DocGraph, schema: Schema, result: DeprecateResult) -> None:
    """Record the deprecated document on the replacement's side of the relation."""
    forward = schema.inverse_of(SUPERSEDED_BY)
    replacement = graph.get_node(result.superseded_by)
    if forward is None or replacement is None:
        return
    if graph.has_edge(replacement.id, result.doc_id, forward):
        return

    doc = Document.from_file(replacement.path)
    current = existing_refs(doc.get_field(forward))
    if schema.relation_cardinality(forward) == "one":
        if current:
            result.warnings.append(
                f'{replacement.id}: field "{forward}" already has a value (cardinality=one), '
                f"cannot add {result.doc_id}"
            )
            return
        doc.set_field(forward, result.doc_id)
    else:
        doc.set_field(forward, merge_refs(current, [result.doc_id]))
    if not result.dry_run:
        doc.save()
    result.updated.append(replacement.path)


def deprecate_document(
    path: Path | str,
    schema: Schema,
    superseded_by: str | None = None,
    directory: Path | str | None = None,
    dry_run: bool = False,
    pattern: str | None = None,
    honor_ignore: bool = True,
) -> DeprecateResult:
    """Mark a document deprecated, or superseded by another one.

    With ``directory`` the corpus is scanned: the replacement gets the
    inverse reference and every remaining backlink is reported.
    """
    path = Path(path)
    doc = Document.from_file(path)
    doc_id = path_to_id(path)

    if superseded_by:
        replacement = normalize_id(superseded_by)
        if replacement == doc_id:
            raise InvalidFieldValueError(f"{doc_id} cannot supersede itself")
        doc.set_field("status", SUPERSEDED)
        doc.set_field(SUPERSEDED_BY, replacement)
        result = DeprecateResult(doc_id, path, SUPERSEDED, replacement, dry_run=dry_run)
    else:
        doc.set_field("status", DEPRECATED)
        result = DeprecateResult(doc_id, path, DEPRECATED, dry_run=dry_run)

    if not dry_run:
        doc.save()
    result.updated.append(path)
    if directory is None:
        return result

    graph = DocGraph.build(directory, schema, pattern, honor_ignore)
    if result.superseded_by:
        _link_replacement(graph, schema, result)
    result.backlinks = [
        e
        for e in graph.refs_to(doc_id)
        if e.source != doc_id and e.source in graph.nodes and e.relation != schema.inverse_of(SUPERSEDED_BY)
    ]
    return result
