"""Schema model: document types, their fields and sections, relations and reference formats."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from ..errors import TypeNotFoundError

FieldType = Literal["string", "number", "bool", "enum", "string[]", "ref", "ref[]", "user", "user[]"]
ColumnType = Literal["string", "number", "user"]
Cardinality = Literal["one", "many"]

FIELD_TYPES: tuple[str, ...] = ("string", "number", "bool", "enum", "string[]", "ref", "ref[]", "user", "user[]")
COLUMN_TYPES: tuple[str, ...] = ("string", "number", "user")
CARDINALITIES: tuple[str, ...] = ("one", "many")


@dataclass(frozen=True)
class FieldDef:
    name: str
    type: FieldType = "string"
    required: bool = False
    pattern: str | None = None
    default: str | None = None
    description: str | None = None
    values: tuple[str, ...] = ()  # enum only

    @property
    def type_label(self) -> str:
        if self.type == "enum" and self.values:
            return "enum(" + ", ".join(self.values) + ")"
        return self.type


@dataclass(frozen=True)
class ColumnDef:
    name: str
    type: ColumnType = "string"
    required: bool = False


@dataclass(frozen=True)
class TableDef:
    required: bool = False
    description: str | None = None
    columns: list[ColumnDef] = field(default_factory=list)


@dataclass(frozen=True)
class ContentDef:
    min_paragraphs: int | None = None


@dataclass(frozen=True)
class ListDef:
    required: bool = True
    min_items: int | None = None


@dataclass(frozen=True)
class DiagramDef:
    required: bool = True
    language: str | None = None


@dataclass(frozen=True)
class SectionDef:
    name: str
    required: bool = False
    description: str | None = None
    children: list["SectionDef"] = field(default_factory=list)
    table: TableDef | None = None
    content: ContentDef | None = None
    list_def: ListDef | None = None
    diagram: DiagramDef | None = None

    def flatten_names(self, prefix: str = "") -> list[str]:
        """This section and its descendants as ``"A > B"`` paths."""
        path = f"{prefix} > {self.name}" if prefix else self.name
        names = [path]
        for child in self.children:
            names.extend(child.flatten_names(path))
        return names


@dataclass(frozen=True)
class ConditionalRule:
    name: str
    when_field: str
    equals: str
    then_required: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TypeDef:
    name: str
    description: str | None = None
    folder: str | None = None
    max_count: int | None = None
    fields: list[FieldDef] = field(default_factory=list)
    sections: list[SectionDef] = field(default_factory=list)
    rules: list[ConditionalRule] = field(default_factory=list)

    def get_field(self, name: str) -> FieldDef | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def section_names(self) -> list[str]:
        names: list[str] = []
        for section in self.sections:
            names.extend(section.flatten_names())
        return names


@dataclass(frozen=True)
class RelationDef:
    name: str
    inverse: str | None = None
    cardinality: Cardinality = "many"
    description: str | None = None
    acyclic: bool = False


@dataclass(frozen=True)
class RefFormat:
    name: str
    pattern: str


@dataclass(frozen=True)
class Schema:
    types: list[TypeDef] = field(default_factory=list)
    relations: list[RelationDef] = field(default_factory=list)
    ref_formats: list[RefFormat] = field(default_factory=list)

    def get_type(self, name: str) -> TypeDef | None:
        for t in self.types:
            if t.name == name:
                return t
        return None

    def require_type(self, name: str) -> TypeDef:
        type_def = self.get_type(name)
        if type_def is None:
            raise TypeNotFoundError(name)
        return type_def

    def type_names(self) -> list[str]:
        return [t.name for t in self.types]

    def all_relation_field_names(self) -> list[str]:
        """Every forward relation name followed by its inverse, if declared."""
        names: list[str] = []
        for rel in self.relations:
            names.append(rel.name)
            if rel.inverse:
                names.append(rel.inverse)
        return names

    def find_relation(self, name: str) -> tuple[RelationDef, bool] | None:
        """(relation, is_inverse) for a forward or inverse relation name."""
        for rel in self.relations:
            if rel.name == name:
                return rel, False
            if rel.inverse == name:
                return rel, True
        return None

    def relation_cardinality(self, name: str) -> Cardinality | None:
        found = self.find_relation(name)
        return found[0].cardinality if found else None

    def inverse_of(self, name: str) -> str | None:
        """The name on the other side of a relation (forward for an inverse and vice versa)."""
        found = self.find_relation(name)
        if found is None:
            return None
        rel, is_inverse = found
        return rel.name if is_inverse else rel.inverse

    def acyclic_relation_names(self) -> set[str]:
        names: set[str] = set()
        for rel in self.relations:
            if rel.acyclic:
                names.add(rel.name)
                if rel.inverse:
                    names.add(rel.inverse)
        return names
