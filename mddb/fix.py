"""Automatic repair of validation findings that have one obvious fix.

Three kinds are handled: a required field that is missing but has a schema
default (F010), an enum value close enough to an allowed one to be a typo
(F021), and a required section that is missing (S010). Anything else is left
to the author.
"""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from .discovery import discover_files
from .errors import MdDbError
from .markdown.document import Document
from .markdown.frontmatter import display_value
from .schema.model import Schema, SectionDef, TypeDef
from .templates import default_value

logger = logging.getLogger(__name__)

ENUM_MATCH_CUTOFF = 0.6


@dataclass
class FixAction:
    code: str
    description: str
    applied: bool

    def to_json(self) -> dict[str, Any]:
        return {"code": self.code, "description": self.description, "applied": self.applied}


@dataclass
class FileFixes:
    path: Path
    actions: list[FixAction] = field(default_factory=list)

    @property
    def modified(self) -> bool:
        return any(a.applied for a in self.actions)


@dataclass
class FixReport:
    files: list[FileFixes] = field(default_factory=list)
    dry_run: bool = False

    @property
    def fixed_count(self) -> int:
        return sum(1 for f in self.files for a in f.actions if a.applied)

    @property
    def skipped_count(self) -> int:
        return sum(1 for f in self.files for a in f.actions if not a.applied)

    def to_text(self) -> str:
        dry = " (dry-run)" if self.dry_run else ""
        lines = []
        for file_fixes in self.files:
            lines.append(f"{file_fixes.path}:{dry}")
            for action in file_fixes.actions:
                prefix = "fixed" if action.applied else "skipped"
                lines.append(f"  {prefix} {action.code}: {action.description}")
            lines.append("")
        lines.append(f"{self.fixed_count} fix(es) applied, {self.skipped_count} skipped{dry}")
        return "\n".join(lines) + "\n"

    def to_json(self) -> dict[str, Any]:
        return {
            "files": [
                {"path": str(f.path), "actions": [a.to_json() for a in f.actions]}
                for f in self.files
            ],
            "fixed": self.fixed_count,
            "skipped": self.skipped_count,
            "dry_run": self.dry_run,
        }


def closest_value(value: str, allowed: Iterable[str]) -> str | None:
    """The allowed value ``value`` most plausibly misspells, compared case-insensitively."""
    by_folded = {v.lower(): v for v in allowed}
    matches = difflib.get_close_matches(value.lower(), list(by_folded), n=1, cutoff=ENUM_MATCH_CUTOFF)
    return by_folded[matches[0]] if matches else None


def _fix_sections(doc: Document, section_defs: list[SectionDef], parent: list[str], actions: list[FixAction]) -> None:
    for sec_def in section_defs:
        path = [*parent, sec_def.name]
        if not doc.has_section_path(path):
            if not sec_def.required:
                continue
            doc.add_section_path(path)
            actions.append(FixAction("S010", f'added section "{" > ".join(path)}"', True))
        _fix_sections(doc, sec_def.children, path, actions)


def fix_document(doc: Document, type_def: TypeDef, now: datetime | None = None) -> list[FixAction]:
    """Repair ``doc`` in memory and describe each fix, applied or not."""
    actions: list[FixAction] = []
    fm = doc.get_frontmatter()

    for field_def in type_def.fields:
        name = field_def.name
        if not fm.has_field(name):
            if not field_def.required:
                continue
            if field_def.default is None:
                actions.append(FixAction("F010", f'field "{name}" has no default, manual fix needed', False))
                continue
            value = default_value(field_def.default, now)
            doc.set_field(name, value)
            actions.append(
                FixAction(
                    "F010",
                    f'added field {name}="{display_value(value)}" (schema default: {field_def.default})',
                    True,
                )
            )
            continue

        value = fm.get(name)
        if field_def.type != "enum" or not isinstance(value, str) or value in field_def.values:
            continue
        match = closest_value(value, field_def.values)
        if match is None:
            actions.append(
                FixAction(
                    "F021",
                    f'field "{name}": no close match for "{value}" in [{", ".join(field_def.values)}]',
                    False,
                )
            )
            continue
        doc.set_field(name, match)
        actions.append(FixAction("F021", f'field "{name}": "{value}" -> "{match}"', True))

    _fix_sections(doc, type_def.sections, [], actions)
    return actions


def fix_documents(
    target: Path | str,
    schema: Schema,
    dry_run: bool = False,
    pattern: str | None = None,
    honor_ignore: bool = True,
    now: datetime | None = None,
) -> FixReport:
    """Fix one file, or every schema-managed document under a directory.

    Files are only written when a fix was applied and ``dry_run`` is off.
    """
    target = Path(target)
    paths = [target] if target.is_file() else discover_files(target, pattern, honor_ignore=honor_ignore)
    report = FixReport(dry_run=dry_run)

    for path in paths:
        try:
            doc = Document.from_file(path)
        except MdDbError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            continue
        type_def = schema.get_type(doc.doc_type) if doc.doc_type else None
        if doc.frontmatter is None or type_def is None:
            continue

        actions = fix_document(doc, type_def, now)
        if not actions:
            continue
        file_fixes = FileFixes(path, actions)
        if file_fixes.modified and not dry_run:
            doc.save()
            logger.debug("Fixed %s: %d action(s)", path, len(actions))
        report.files.append(file_fixes)
    return report
