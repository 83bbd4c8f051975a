"""Turn schema KDL nodes into the :class:`Schema` model."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..errors import SchemaParseError, read_text
from .kdl import KdlNode, parse_kdl
from .model import (
    CARDINALITIES,
    COLUMN_TYPES,
    FIELD_TYPES,
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


def _fail(node: KdlNode, message: str) -> SchemaParseError:
    return SchemaParseError(message, node.line, node.column)


def _name_arg(node: KdlNode) -> str:
    value = node.arg(0)
    if not isinstance(value, str) or not value:
        raise _fail(node, f"{node.name} node missing name argument")
    return value


def _str_prop(node: KdlNode, key: str) -> str | None:
    if key not in node.props:
        return None
    value = node.props[key]
    if not isinstance(value, str):
        raise _fail(node, f"property '{key}' of {node.name} must be a string")
    return value


def _bool_prop(node: KdlNode, key: str, default: bool) -> bool:
    if key not in node.props:
        return default
    value = node.props[key]
    if not isinstance(value, bool):
        raise _fail(node, f"property '{key}' of {node.name} must be #true or #false")
    return value


def _int_prop(node: KdlNode, key: str) -> int | None:
    if key not in node.props:
        return None
    value = node.props[key]
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise _fail(node, f"property '{key}' of {node.name} must be a non-negative integer")
    return value


def _literal(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_schema(text: str) -> Schema:
    types: list[TypeDef] = []
    relations: list[RelationDef] = []
    ref_formats: list[RefFormat] = []

    for node in parse_kdl(text):
        if node.name == "type":
            type_def = _parse_type(node)
            if any(t.name == type_def.name for t in types):
                raise _fail(node, f"duplicate type '{type_def.name}'")
            types.append(type_def)
        elif node.name == "relation":
            relations.append(_parse_relation(node))
        elif node.name == "ref-format":
            ref_formats.extend(_parse_ref_formats(node))
        else:
            raise _fail(node, f"unknown top-level node: '{node.name}'")

    return Schema(types=types, relations=relations, ref_formats=ref_formats)


def load_schema(path: Path | str) -> Schema:
    path = Path(path)
    text = read_text(path)
    try:
        return parse_schema(text)
    except SchemaParseError as exc:
        raise SchemaParseError(f"{path}: {exc.message}", exc.line, exc.column) from exc


def _parse_type(node: KdlNode) -> TypeDef:
    name = _name_arg(node)
    fields: list[FieldDef] = []
    sections: list[SectionDef] = []
    rules: list[ConditionalRule] = []

    for child in node.children:
        if child.name == "field":
            fields.append(_parse_field(child))
        elif child.name == "section":
            sections.append(_parse_section(child))
        elif child.name == "rule":
            rules.append(_parse_rule(child))
        else:
            raise _fail(child, f"unknown node in type '{name}': '{child.name}'")

    return TypeDef(
        name=name,
        description=_str_prop(node, "description"),
        folder=_str_prop(node, "folder"),
        max_count=_int_prop(node, "max_count"),
        fields=fields,
        sections=sections,
        rules=rules,
    )


def _parse_field(node: KdlNode) -> FieldDef:
    name = _name_arg(node)
    field_type = _str_prop(node, "type") or "string"
    if field_type not in FIELD_TYPES:
        raise _fail(node, f"unknown field type '{field_type}' for field '{name}'")

    values: list[str] = []
    for child in node.children:
        if child.name == "values":
            values.extend(_literal(v) or "" for v in child.args)
        else:
            raise _fail(child, f"unknown node in field '{name}': '{child.name}'")
    if field_type == "enum" and not values:
        raise _fail(node, f"enum field '{name}' has no values defined")

    return FieldDef(
        name=name,
        type=field_type,  # type: ignore[arg-type]
        required=_bool_prop(node, "required", False),
        pattern=_str_prop(node, "pattern"),
        default=_literal(node.props.get("default")),
        description=_str_prop(node, "description"),
        values=tuple(values),
    )


def _parse_section(node: KdlNode) -> SectionDef:
    name = _name_arg(node)
    children: list[SectionDef] = []
    constraints: dict[str, Any] = {}

    for child in node.children:
        if child.name == "section":
            children.append(_parse_section(child))
            continue
        if child.name not in ("table", "content", "list", "diagram"):
            raise _fail(child, f"unknown node in section '{name}': '{child.name}'")
        if child.name in constraints:
            raise _fail(child, f"duplicate '{child.name}' in section '{name}'")
        if child.name == "table":
            constraints["table"] = _parse_table(child)
        elif child.name == "content":
            constraints["content"] = ContentDef(min_paragraphs=_int_prop(child, "min-paragraphs"))
        elif child.name == "list":
            constraints["list"] = ListDef(
                required=_bool_prop(child, "required", True),
                min_items=_int_prop(child, "min-items"),
            )
        else:
            constraints["diagram"] = DiagramDef(
                required=_bool_prop(child, "required", True),
                language=_str_prop(child, "type"),
            )

    return SectionDef(
        name=name,
        required=_bool_prop(node, "required", False),
        description=_str_prop(node, "description"),
        children=children,
        table=constraints.get("table"),
        content=constraints.get("content"),
        list_def=constraints.get("list"),
        diagram=constraints.get("diagram"),
    )


def _parse_table(node: KdlNode) -> TableDef:
    columns: list[ColumnDef] = []
    for child in node.children:
        if child.name != "column":
            raise _fail(child, f"unknown node in table: '{child.name}'")
        col_name = _name_arg(child)
        col_type = _str_prop(child, "type") or "string"
        if col_type not in COLUMN_TYPES:
            raise _fail(child, f"unknown column type '{col_type}' for column '{col_name}'")
        columns.append(
            ColumnDef(
                name=col_name,
                type=col_type,  # type: ignore[arg-type]
                required=_bool_prop(child, "required", False),
            )
        )
    return TableDef(
        required=_bool_prop(node, "required", False),
        description=_str_prop(node, "description"),
        columns=columns,
    )


def _parse_rule(node: KdlNode) -> ConditionalRule:
    name = _name_arg(node)
    when_field: str | None = None
    equals: str | None = None
    then_required: list[str] = []

    for child in node.children:
        if child.name == "when":
            when_field = _name_arg(child)
            equals = _literal(child.props.get("equals"))
            if equals is None:
                raise _fail(child, f"rule '{name}': 'when' requires an equals= property")
        elif child.name == "then-required":
            for arg in child.args:
                if not isinstance(arg, str):
                    raise _fail(child, f"rule '{name}': then-required takes field names")
                then_required.append(arg)
        else:
            raise _fail(child, f"unknown node in rule '{name}': '{child.name}'")

    if when_field is None or equals is None:
        raise _fail(node, f"rule '{name}' has no 'when' clause")
    if not then_required:
        raise _fail(node, f"rule '{name}' has no 'then-required' fields")
    return ConditionalRule(name=name, when_field=when_field, equals=equals, then_required=then_required)


def _parse_relation(node: KdlNode) -> RelationDef:
    name = _name_arg(node)
    cardinality = _str_prop(node, "cardinality") or "many"
    if cardinality not in CARDINALITIES:
        raise _fail(node, f"unknown cardinality '{cardinality}' for relation '{name}' (expected one or many)")
    return RelationDef(
        name=name,
        inverse=_str_prop(node, "inverse"),
        cardinality=cardinality,  # type: ignore[arg-type]
        description=_str_prop(node, "description"),
        acyclic=_bool_prop(node, "acyclic", False),
    )


def _parse_ref_formats(node: KdlNode) -> list[RefFormat]:
    formats = []
    for child in node.children:
        pattern = _str_prop(child, "pattern")
        if pattern is None:
            raise _fail(child, f"ref-format '{child.name}' missing pattern")
        formats.append(RefFormat(name=child.name, pattern=pattern))
    return formats
