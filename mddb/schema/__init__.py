"""Schema model and the KDL-subset schema reader."""

from .model import (
    ColumnDef,
    ConditionalRule,
    ContentDef,
    DiagramDef,
    FieldDef,
    ListDef,
    RefFormat,
    RelationDef,
    Schema,
    SectionDef,
    TableDef,
    TypeDef,
)
from .parser import load_schema, parse_schema

__all__ = [
    "ColumnDef",
    "ConditionalRule",
    "ContentDef",
    "DiagramDef",
    "FieldDef",
    "ListDef",
    "RefFormat",
    "RelationDef",
    "Schema",
    "SectionDef",
    "TableDef",
    "TypeDef",
    "load_schema",
    "parse_schema",
]
