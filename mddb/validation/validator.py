"""Per-document validation against a schema type.

Checks run in a fixed order so the diagnostic sequence is deterministic:
front-matter presence, ``type``, declared fields, conditional rules,
relation fields, then the section tree.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Collection

from ..markdown import ast
from ..markdown.document import Document
from ..markdown.frontmatter import Frontmatter, display_value, yaml_type_name
from ..markdown.section import Section
from ..errors import SectionNotFoundError
from ..schema.model import FieldDef, Schema, SectionDef, TableDef, TypeDef
from ..users import UserDirectory
from .diagnostics import Diagnostic


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def _fm(name: str) -> str:
    return f"frontmatter.{name}"


def type_mismatch(name: str, expected: str, value: Any) -> Diagnostic:
    return Diagnostic.error(
        "F020",
        f'field "{name}" expected {expected}, got {yaml_type_name(value)}',
        _fm(name),
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class DocumentValidator:
    """Validate one document.

    ``known_files`` holds resolved paths of every document in scope (used for
    ``.md`` references), ``known_ids`` the upper-cased document IDs (used for
    bare ID references). Either may be empty, in which case the matching
    existence checks are skipped.
    """

    def __init__(
        self,
        doc: Document,
        schema: Schema,
        known_files: Collection[Path] = frozenset(),
        known_ids: Collection[str] = frozenset(),
        users: UserDirectory | None = None,
    ):
        self.doc = doc
        self.schema = schema
        self.known_files = known_files
        self.known_ids = known_ids
        self.users = users
        self.diagnostics: list[Diagnostic] = []

    def run_all(self) -> list[Diagnostic]:
        self.diagnostics = []
        fm = self.doc.frontmatter
        if fm is None:
            self._emit(
                Diagnostic.error(
                    "F000",
                    "document has no frontmatter",
                    "frontmatter",
                    "add YAML frontmatter between --- delimiters",
                )
            )
            return self.diagnostics

        if not fm.has_field("type"):
            self._emit(
                Diagnostic.error(
                    "F001",
                    'missing required field "type"',
                    "frontmatter",
                    "add 'type: <typename>' to frontmatter",
                )
            )
            return self.diagnostics

        type_name = display_value(fm.get("type"))
        type_def = self.schema.get_type(type_name)
        if type_def is None:
            self._emit(
                Diagnostic.error(
                    "F002",
                    f'unknown document type "{type_name}"',
                    _fm("type"),
                    "known types: " + ", ".join(self.schema.type_names()),
                )
            )
            return self.diagnostics

        self.check_fields(fm, type_def)
        self.check_rules(fm, type_def)
        self.check_relation_fields(fm, type_def)
        self.check_sections(type_def.sections, [])
        return self.diagnostics

    def _emit(self, diag: Diagnostic) -> None:
        self.diagnostics.append(diag)

    # Fields

    def check_fields(self, fm: Frontmatter, type_def: TypeDef) -> None:
        for field_def in type_def.fields:
            if not fm.has_field(field_def.name):
                if field_def.required:
                    hint = f"add '{field_def.name}: <{field_def.type_label}>' to frontmatter"
                    if field_def.description:
                        hint += f" ({field_def.description})"
                    self._emit(
                        Diagnostic.error(
                            "F010",
                            f'missing required field "{field_def.name}"',
                            "frontmatter",
                            hint,
                        )
                    )
                continue
            self.check_field_value(field_def.name, fm.get(field_def.name), field_def)

    def check_field_value(self, name: str, value: Any, field_def: FieldDef) -> None:
        kind = field_def.type
        if kind == "string":
            if not isinstance(value, str):
                self._emit(type_mismatch(name, "string", value))
            elif field_def.pattern:
                self.check_pattern(name, value, field_def.pattern)
        elif kind == "number":
            if not _is_number(value):
                self._emit(type_mismatch(name, "number", value))
        elif kind == "bool":
            if not isinstance(value, bool):
                self._emit(type_mismatch(name, "bool", value))
        elif kind == "enum":
            if not isinstance(value, str):
                self._emit(type_mismatch(name, "enum (string)", value))
            elif value not in field_def.values:
                self._emit(
                    Diagnostic.error(
                        "F021",
                        f'field "{name}" has invalid value "{value}"',
                        _fm(name),
                        "allowed values: " + ", ".join(field_def.values),
                    )
                )
        elif kind == "string[]":
            if not isinstance(value, list):
                self._emit(type_mismatch(name, "string[]", value))
                return
            for i, item in enumerate(value):
                item_name = f"{name}[{i}]"
                if not isinstance(item, str):
                    self._emit(type_mismatch(item_name, "string", item))
                elif field_def.pattern:
                    self.check_pattern(item_name, item, field_def.pattern)
        elif kind == "ref":
            if isinstance(value, str):
                self.check_ref(name, value)
            else:
                self._emit(type_mismatch(name, "ref (string)", value))
        elif kind == "ref[]":
            self._check_list(name, value, "ref[]", "ref (string)", self.check_ref)
        elif kind == "user":
            if isinstance(value, str):
                self.check_user_ref(name, value)
            else:
                self._emit(type_mismatch(name, "user (string)", value))
        elif kind == "user[]":
            self._check_list(name, value, "user[]", "user (string)", self.check_user_ref)

    def _check_list(self, name: str, value: Any, list_label: str, item_label: str, check) -> None:
        if not isinstance(value, list):
            self._emit(type_mismatch(name, list_label, value))
            return
        for i, item in enumerate(value):
            item_name = f"{name}[{i}]"
            if isinstance(item, str):
                check(item_name, item)
            else:
                self._emit(type_mismatch(item_name, item_label, item))

    def check_pattern(self, name: str, value: str, pattern: str) -> None:
        try:
            regex = compile_pattern(pattern)
        except re.error as exc:
            self._emit(
                Diagnostic.warning(
                    "S000",
                    f'invalid regex pattern in schema for "{name}": {exc}',
                    "schema",
                )
            )
            return
        if not regex.search(value):
            self._emit(
                Diagnostic.error(
                    "F030",
                    f'field "{name}" value "{value}" doesn\'t match pattern',
                    _fm(name),
                    f"expected pattern: {pattern}",
                )
            )

    def check_ref(self, name: str, value: str) -> None:
        formats = self.schema.ref_formats
        if formats:
            matched = False
            for ref_format in formats:
                try:
                    regex = compile_pattern(ref_format.pattern)
                except re.error as exc:
                    self._emit(
                        Diagnostic.warning(
                            "S000",
                            f'invalid regex pattern in ref-format "{ref_format.name}": {exc}',
                            "schema",
                        )
                    )
                    continue
                if regex.search(value):
                    matched = True
                    break
            if not matched:
                self._emit(
                    Diagnostic.warning(
                        "R001",
                        f'ref "{value}" in "{name}" doesn\'t match any ref-format',
                        _fm(name),
                        "expected patterns: " + ", ".join(f.pattern for f in formats),
                    )
                )
                return

        if value.endswith(".md"):
            if self.doc.path is None:
                return
            target = self.doc.path.parent / value
            if self._file_known(target):
                return
            self._emit(
                Diagnostic.error(
                    "R010",
                    f'broken file reference "{value}" in "{name}"',
                    _fm(name),
                    f"resolved to: {target}",
                )
            )
        elif self.known_ids and value.upper() not in self.known_ids:
            self._emit(
                Diagnostic.warning(
                    "R011",
                    f'unresolved reference "{value}" in "{name}"',
                    _fm(name),
                    "no document with matching ID found in scope",
                )
            )

    def _file_known(self, target: Path) -> bool:
        if not self.known_files:
            return target.exists()
        if target in self.known_files:
            return True
        return target.resolve() in self.known_files

    def check_user_ref(self, name: str, value: str, location: str | None = None) -> None:
        location = location or _fm(name)
        if not value.startswith("@"):
            self._emit(
                Diagnostic.error(
                    "U010",
                    f'field "{name}" value "{value}" is not a valid user reference',
                    location,
                    "user references must start with @ (e.g. @onni, @team/platform)",
                )
            )
            return
        if self.users is not None and not self.users.is_valid_ref(value):
            known = self.users.all_user_handles() + ["team/" + t for t in self.users.all_team_names()]
            self._emit(
                Diagnostic.error(
                    "U011",
                    f'field "{name}" references unknown user/team "{value}"',
                    location,
                    ("known: " + ", ".join(known)) if known else None,
                )
            )

    # Conditional rules

    def check_rules(self, fm: Frontmatter, type_def: TypeDef) -> None:
        for rule in type_def.rules:
            if fm.get_display(rule.when_field) != rule.equals:
                continue
            for required in rule.then_required:
                if fm.has_field(required):
                    continue
                self._emit(
                    Diagnostic.error(
                        "F040",
                        f'field "{required}" required when {rule.when_field}={rule.equals}',
                        _fm(required),
                        f"add '{required}' to frontmatter (required by rule \"{rule.name}\")",
                    )
                )

    # Relation fields

    def check_relation_fields(self, fm: Frontmatter, type_def: TypeDef) -> None:
        for key in fm.keys():
            found = self.schema.find_relation(key)
            if found is None or type_def.get_field(key) is not None:
                continue
            relation, _ = found
            value = fm.get(key)
            if relation.cardinality == "one":
                if isinstance(value, str):
                    self.check_ref(key, value)
                else:
                    self._emit(type_mismatch(key, "ref (string)", value))
            elif isinstance(value, str):
                self.check_ref(key, value)
            else:
                self._check_list(key, value, "ref[]", "ref (string)", self.check_ref)

    # Sections

    def _find_section(self, path: list[str]) -> Section | None:
        try:
            if len(path) == 1:
                return self.doc.get_section(path[0])
            return self.doc.get_section_by_path(path)
        except SectionNotFoundError:
            return None

    def check_sections(self, section_defs: list[SectionDef], parent: list[str]) -> None:
        for sec_def in section_defs:
            path = [*parent, sec_def.name]
            section = self._find_section(path)
            if section is None:
                if sec_def.required:
                    full_name = " > ".join(path)
                    hint = f'add heading: "{"#" * len(path)} {sec_def.name}"'
                    if sec_def.description:
                        hint += f" ({sec_def.description})"
                    self._emit(
                        Diagnostic.error(
                            "S010",
                            f'missing required section "{full_name}"',
                            "document body",
                            hint,
                        )
                    )
                continue

            tree = ast.parse(section.content)
            if sec_def.table is not None:
                self.check_table(section, sec_def.table, sec_def.name)
            if sec_def.content is not None and sec_def.content.min_paragraphs is not None:
                minimum = sec_def.content.min_paragraphs
                found = ast.count_paragraphs(tree)
                if found < minimum:
                    self._emit(
                        Diagnostic.error(
                            "S030",
                            f'section "{sec_def.name}" requires at least {minimum} paragraph(s), found {found}',
                            f'section "{sec_def.name}"',
                            "add prose content to this section",
                        )
                    )
            if sec_def.list_def is not None:
                self.check_list(tree, sec_def)
            if sec_def.diagram is not None:
                self.check_diagram(tree, sec_def)
            if sec_def.children:
                self.check_sections(sec_def.children, path)

    def check_table(self, section: Section, table_def: TableDef, section_name: str) -> None:
        tables = section.tables()
        if not tables:
            if table_def.required:
                self._emit(
                    Diagnostic.error(
                        "S020",
                        f'section "{section_name}" requires a table but none found',
                        f'section "{section_name}"',
                        "add a markdown table to this section",
                    )
                )
            return

        table = tables[0]
        for col_def in table_def.columns:
            if col_def.required and col_def.name not in table.headers:
                self._emit(
                    Diagnostic.error(
                        "S021",
                        f'table in "{section_name}" missing required column "{col_def.name}"',
                        f'section "{section_name}" > table',
                    )
                )
                continue
            if col_def.type != "user":
                continue
            for row, cell in enumerate(table.get_column(col_def.name) or []):
                cell = cell.strip()
                location = f'section "{section_name}" > table > {col_def.name}[{row}]'
                if not cell:
                    if col_def.required:
                        self._emit(
                            Diagnostic.error(
                                "S022",
                                f'table in "{section_name}" column "{col_def.name}" row {row} is empty but required',
                                location,
                            )
                        )
                    continue
                self.check_user_ref(f"table:{section_name}.{col_def.name}.row{row}", cell, location)

    def check_list(self, tree, sec_def: SectionDef) -> None:
        list_def = sec_def.list_def
        lists = ast.find_lists(tree)
        location = f'section "{sec_def.name}"'
        if not lists:
            if list_def.required:
                self._emit(
                    Diagnostic.error(
                        "S031",
                        f'section "{sec_def.name}" requires a list but none found',
                        location,
                        "add a markdown list (- item) to this section",
                    )
                )
            return
        if list_def.min_items is not None:
            total = sum(ast.list_item_count(node) for node in lists)
            if total < list_def.min_items:
                self._emit(
                    Diagnostic.error(
                        "S031",
                        f'section "{sec_def.name}" requires at least {list_def.min_items} list item(s), found {total}',
                        location,
                        f"add at least {list_def.min_items} list items",
                    )
                )

    def check_diagram(self, tree, sec_def: SectionDef) -> None:
        diagram = sec_def.diagram
        language = diagram.language.lower() if diagram.language else None
        if not diagram.required or ast.has_diagram(tree, language):
            return
        if language:
            hint = f"add a ```{language} code block to this section"
        else:
            hint = "add a fenced code block with a diagram language (" + ", ".join(ast.DIAGRAM_LANGUAGES) + ")"
        self._emit(
            Diagnostic.error(
                "S032",
                f'section "{sec_def.name}" requires a diagram but none found',
                f'section "{sec_def.name}"',
                hint,
            )
        )


def validate_document(
    doc: Document,
    schema: Schema,
    known_files: Collection[Path] = frozenset(),
    known_ids: Collection[str] = frozenset(),
    users: UserDirectory | None = None,
) -> list[Diagnostic]:
    return DocumentValidator(doc, schema, known_files, known_ids, users).run_all()
