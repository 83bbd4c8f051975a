"""Whole-directory validation: per-document checks plus the type-count pass."""

from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path

from ..discovery import discover_files
from ..errors import MdDbError
from ..graph.ids import path_to_id
from ..markdown.document import Document
from ..markdown.frontmatter import display_value
from ..schema.model import Schema
from ..users import UserDirectory
from .diagnostics import Diagnostic, FileResult, ValidationResult
from .validator import validate_document

logger = logging.getLogger(__name__)


def corpus_index(paths: list[Path]) -> tuple[set[Path], set[str]]:
    """(resolved file paths, document IDs) for reference checks."""
    known_files: set[Path] = set()
    known_ids: set[str] = set()
    for path in paths:
        known_files.add(path)
        known_files.add(path.resolve())
        known_ids.add(path_to_id(path))
    return known_files, known_ids


def validate_directory(
    directory: Path | str,
    schema: Schema,
    pattern: str | None = None,
    users: UserDirectory | None = None,
    honor_ignore: bool = True,
) -> ValidationResult:
    """Validate every schema-managed document under ``directory``.

    Files without front-matter or without a ``type`` are not managed by the
    schema and are skipped. Files that fail to load get a single ``E000``.
    """
    paths = discover_files(directory, pattern, honor_ignore=honor_ignore)
    known_files, known_ids = corpus_index(paths)

    result = ValidationResult()
    by_type: dict[str, list[Path]] = defaultdict(list)

    for path in paths:
        try:
            doc = Document.from_file(path)
        except MdDbError as exc:
            logger.debug("Failed to load %s: %s", path, exc)
            result.files.append(
                FileResult(path, [Diagnostic.error("E000", f"failed to parse: {exc}", str(path))])
            )
            continue

        if doc.frontmatter is None or not doc.frontmatter.has_field("type"):
            continue
        by_type[display_value(doc.frontmatter.get("type"))].append(path)
        diagnostics = validate_document(doc, schema, known_files, known_ids, users)
        result.files.append(FileResult(path, diagnostics))

    check_type_counts(result, schema, by_type)
    return result


def check_type_counts(result: ValidationResult, schema: Schema, by_type: dict[str, list[Path]]) -> None:
    """``T010`` on the first document beyond a type's ``max_count``."""
    for type_def in schema.types:
        if type_def.max_count is None:
            continue
        paths = by_type.get(type_def.name, [])
        if len(paths) <= type_def.max_count:
            continue
        excess = paths[type_def.max_count]
        diag = Diagnostic.error(
            "T010",
            f'type "{type_def.name}" has {len(paths)} document(s) but max_count is {type_def.max_count}',
            f'type "{type_def.name}"',
            "files: " + ", ".join(str(p) for p in paths),
        )
        file_result = result.for_path(excess)
        if file_result is None:
            file_result = FileResult(excess)
            result.files.append(file_result)
        file_result.diagnostics.append(diag)


def validate_file(
    path: Path | str,
    schema: Schema,
    users: UserDirectory | None = None,
    corpus_dir: Path | None = None,
    pattern: str | None = None,
    honor_ignore: bool = True,
) -> ValidationResult:
    """Validate a single file, resolving references against ``corpus_dir`` (default: its directory)."""
    path = Path(path)
    corpus_dir = corpus_dir or path.parent
    known_files, known_ids = corpus_index(discover_files(corpus_dir, pattern, honor_ignore=honor_ignore))
    try:
        doc = Document.from_file(path)
    except MdDbError as exc:
        return ValidationResult(
            [FileResult(path, [Diagnostic.error("E000", f"failed to parse: {exc}", str(path))])]
        )
    return ValidationResult([FileResult(path, validate_document(doc, schema, known_files, known_ids, users))])


def validate_text(
    text: str,
    schema: Schema,
    users: UserDirectory | None = None,
    label: str = "<stdin>",
) -> ValidationResult:
    """Validate document text (e.g. read from stdin) with no corpus context."""
    try:
        doc = Document.from_str(text)
    except MdDbError as exc:
        return ValidationResult(
            [FileResult(Path(label), [Diagnostic.error("E000", f"failed to parse: {exc}", label)])]
        )
    return ValidationResult([FileResult(Path(label), validate_document(doc, schema, users=users))])
