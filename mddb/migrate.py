"""Schema diff and the document migrations it implies."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar

from .discovery import FieldEquals, discover_files
from .errors import MdDbError
from .markdown.document import Document
from .markdown.frontmatter import display_value
from .schema.model import FieldDef, Schema, TypeDef
from .templates import default_value

logger = logging.getLogger(__name__)


# Schema diff


@dataclass
class FieldDiff:
    name: str
    old: FieldDef
    new: FieldDef

    @property
    def type_changed(self) -> bool:
        return self.old.type != self.new.type

    @property
    def required_changed(self) -> bool:
        return self.old.required != self.new.required

    @property
    def default_changed(self) -> bool:
        return self.old.default != self.new.default

    @property
    def added_values(self) -> list[str]:
        return [v for v in self.new.values if v not in self.old.values]

    @property
    def removed_values(self) -> list[str]:
        return [v for v in self.old.values if v not in self.new.values]

    def describe(self) -> list[str]:
        parts = []
        if self.type_changed:
            parts.append(f"type {self.old.type} -> {self.new.type}")
        if self.required_changed:
            parts.append(f"required {str(self.old.required).lower()} -> {str(self.new.required).lower()}")
        if self.default_changed:
            parts.append(f"default {self.old.default or '(none)'} -> {self.new.default or '(none)'}")
        if self.added_values:
            parts.append("values added: " + ", ".join(self.added_values))
        if self.removed_values:
            parts.append("values removed: " + ", ".join(self.removed_values))
        return parts


def fields_differ(old: FieldDef, new: FieldDef) -> bool:
    return (
        old.type != new.type
        or old.required != new.required
        or old.default != new.default
        or old.values != new.values
    )


@dataclass
class TypeChange:
    name: str
    added_fields: list[FieldDef] = field(default_factory=list)
    removed_fields: list[FieldDef] = field(default_factory=list)
    changed_fields: list[FieldDiff] = field(default_factory=list)
    added_sections: list[str] = field(default_factory=list)
    removed_sections: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.added_fields
            or self.removed_fields
            or self.changed_fields
            or self.added_sections
            or self.removed_sections
        )


@dataclass
class SchemaDiff:
    added_types: list[str] = field(default_factory=list)
    removed_types: list[str] = field(default_factory=list)
    type_changes: list[TypeChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added_types or self.removed_types or self.type_changes)

    def to_text(self) -> str:
        if self.is_empty:
            return "no schema changes\n"
        lines = []
        for name in self.added_types:
            lines.append(f"+ type {name}")
        for name in self.removed_types:
            lines.append(f"- type {name}")
        for change in self.type_changes:
            lines.append(f"~ type {change.name}")
            for f in change.added_fields:
                default = f" (default: {f.default})" if f.default is not None else ""
                lines.append(f"    + field {f.name}: {f.type_label}{default}")
            for f in change.removed_fields:
                lines.append(f"    - field {f.name}")
            for d in change.changed_fields:
                lines.append(f"    ~ field {d.name}: " + "; ".join(d.describe()))
            for s in change.added_sections:
                lines.append(f"    + section {s}")
            for s in change.removed_sections:
                lines.append(f"    - section {s}")
        return "\n".join(lines) + "\n"


def diff_type(old: TypeDef, new: TypeDef) -> TypeChange:
    old_fields = {f.name: f for f in old.fields}
    new_fields = {f.name: f for f in new.fields}
    old_sections = old.section_names()
    new_sections = new.section_names()
    return TypeChange(
        name=new.name,
        added_fields=[f for f in new.fields if f.name not in old_fields],
        removed_fields=[f for f in old.fields if f.name not in new_fields],
        changed_fields=[
            FieldDiff(f.name, old_fields[f.name], f)
            for f in new.fields
            if f.name in old_fields and fields_differ(old_fields[f.name], f)
        ],
        added_sections=[s for s in new_sections if s not in old_sections],
        removed_sections=[s for s in old_sections if s not in new_sections],
    )


def diff_schemas(old: Schema, new: Schema) -> SchemaDiff:
    old_names = set(old.type_names())
    new_names = set(new.type_names())
    changes = []
    for type_def in new.types:
        if type_def.name in old_names:
            change = diff_type(old.get_type(type_def.name), type_def)
            if not change.is_empty:
                changes.append(change)
    return SchemaDiff(
        added_types=sorted(new_names - old_names),
        removed_types=sorted(old_names - new_names),
        type_changes=changes,
    )


# Migration plan


@dataclass
class MigrationAction(ABC):
    type_name: str
    affected: list[Path]

    kind: ClassVar[str] = ""
    auto_fixable: ClassVar[bool] = True

    @abstractmethod
    def describe(self) -> str: ...

    def to_json(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "type": self.type_name,
            "description": self.describe(),
            "auto_fixable": self.auto_fixable,
            "affected": [str(p) for p in self.affected],
        }


@dataclass
class AddField(MigrationAction):
    field_name: str = ""
    default: str = ""

    kind: ClassVar[str] = "add_field"

    def describe(self) -> str:
        return f'add field "{self.field_name}" = {self.default}'


@dataclass
class RemoveField(MigrationAction):
    field_name: str = ""

    kind: ClassVar[str] = "remove_field"

    def describe(self) -> str:
        return f'remove field "{self.field_name}"'


@dataclass
class RemovedEnumValue(MigrationAction):
    field_name: str = ""
    value: str = ""

    kind: ClassVar[str] = "removed_enum_value"
    auto_fixable: ClassVar[bool] = False

    def describe(self) -> str:
        return f'field "{self.field_name}" uses removed value "{self.value}" (manual fix required)'


@dataclass
class AddSection(MigrationAction):
    section: str = ""  # "Parent > Child" path

    kind: ClassVar[str] = "add_section"

    @property
    def section_path(self) -> list[str]:
        return [part.strip() for part in self.section.split(">")]

    def describe(self) -> str:
        return f'add section "{self.section}"'


@dataclass
class MigrationPlan:
    actions: list[MigrationAction] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(a.affected for a in self.actions)

    def to_text(self) -> str:
        active = [a for a in self.actions if a.affected]
        if not active:
            return "no documents need migration\n"
        lines = []
        for action in active:
            marker = "" if action.auto_fixable else " [manual]"
            lines.append(f"[{action.type_name}] {action.describe()}{marker}: {len(action.affected)} document(s)")
            lines.extend(f"    {p}" for p in action.affected)
        return "\n".join(lines) + "\n"

    def to_json(self) -> dict[str, Any]:
        return {"actions": [a.to_json() for a in self.actions if a.affected]}


def _load(path: Path) -> Document | None:
    try:
        return Document.from_file(path)
    except MdDbError as exc:
        logger.warning("Skipping %s: %s", path, exc)
        return None


def compute_migration(
    diff: SchemaDiff,
    directory: Path | str,
    pattern: str | None = None,
    honor_ignore: bool = True,
) -> MigrationPlan:
    """Work out which documents each schema change touches."""
    plan = MigrationPlan()
    for change in diff.type_changes:
        paths = discover_files(directory, pattern, [FieldEquals("type", change.name)], honor_ignore)
        docs = [(p, d) for p in paths if (d := _load(p)) is not None]

        for f in change.added_fields:
            if f.default is None:
                continue
            affected = [p for p, d in docs if not d.frontmatter.has_field(f.name)]
            plan.actions.append(AddField(change.name, affected, field_name=f.name, default=f.default))

        for f in change.removed_fields:
            affected = [p for p, d in docs if d.frontmatter.has_field(f.name)]
            plan.actions.append(RemoveField(change.name, affected, field_name=f.name))

        for d_field in change.changed_fields:
            for value in d_field.removed_values:
                affected = [
                    p
                    for p, d in docs
                    if d.frontmatter.has_field(d_field.name)
                    and display_value(d.frontmatter.get(d_field.name)) == value
                ]
                plan.actions.append(
                    RemovedEnumValue(change.name, affected, field_name=d_field.name, value=value)
                )

        for section in change.added_sections:
            action = AddSection(change.name, [], section=section)
            action.affected = [p for p, d in docs if not d.has_section_path(action.section_path)]
            plan.actions.append(action)

    return plan


@dataclass
class ApplyResult:
    modified: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def note_modified(self, path: Path) -> None:
        if path not in self.modified:
            self.modified.append(path)


def apply_migration(plan: MigrationPlan, now: datetime | None = None) -> ApplyResult:
    """Apply the auto-fixable actions; removed enum values become warnings."""
    result = ApplyResult()
    for action in plan.actions:
        if not action.auto_fixable:
            for path in action.affected:
                result.warnings.append(f"{path}: {action.describe()}")
            continue

        for path in action.affected:
            doc = _load(path)
            if doc is None:
                result.warnings.append(f"{path}: could not be loaded")
                continue
            if isinstance(action, AddField):
                if doc.frontmatter is not None and doc.frontmatter.has_field(action.field_name):
                    continue
                doc.set_field(action.field_name, default_value(action.default, now))
            elif isinstance(action, RemoveField):
                doc.remove_field(action.field_name)
            elif isinstance(action, AddSection):
                if doc.has_section_path(action.section_path):
                    continue
                try:
                    doc.add_section_path(action.section_path)
                except MdDbError as exc:
                    result.warnings.append(f"{path}: cannot add section {action.section!r}: {exc}")
                    continue
            doc.save()
            logger.debug("Migrated %s: %s", path, action.describe())
            result.note_modified(path)
    return result
