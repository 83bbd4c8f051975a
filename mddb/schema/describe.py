"""Schema introspection: what types, fields, sections and relations a schema declares."""

from __future__ import annotations

from typing import Any

from ..errors import FieldNotFoundError
from .model import ConditionalRule, FieldDef, RelationDef, Schema, SectionDef, TypeDef

DETAIL_INDENT = " " * 35


def require_field(type_def: TypeDef, name: str) -> FieldDef:
    field_def = type_def.get_field(name)
    if field_def is None:
        raise FieldNotFoundError(f"{type_def.name}.{name}")
    return field_def


# JSON


def field_to_json(f: FieldDef) -> dict[str, Any]:
    out: dict[str, Any] = {"name": f.name, "type": f.type, "required": f.required}
    if f.description:
        out["description"] = f.description
    if f.pattern:
        out["pattern"] = f.pattern
    if f.default is not None:
        out["default"] = f.default
    if f.type == "enum":
        out["values"] = list(f.values)
    return out


def section_to_json(s: SectionDef) -> dict[str, Any]:
    out: dict[str, Any] = {"name": s.name, "required": s.required}
    if s.description:
        out["description"] = s.description
    if s.content is not None:
        out["content"] = {"min_paragraphs": s.content.min_paragraphs}
    if s.list_def is not None:
        out["list"] = {"required": s.list_def.required, "min_items": s.list_def.min_items}
    if s.diagram is not None:
        out["diagram"] = {"required": s.diagram.required, "type": s.diagram.language}
    if s.table is not None:
        table: dict[str, Any] = {
            "required": s.table.required,
            "columns": [{"name": c.name, "type": c.type, "required": c.required} for c in s.table.columns],
        }
        if s.table.description:
            table["description"] = s.table.description
        out["table"] = table
    if s.children:
        out["children"] = [section_to_json(c) for c in s.children]
    return out


def rule_to_json(rule: ConditionalRule) -> dict[str, Any]:
    return {
        "name": rule.name,
        "when_field": rule.when_field,
        "when_equals": rule.equals,
        "then_required": list(rule.then_required),
    }


def relation_to_json(rel: RelationDef) -> dict[str, Any]:
    out: dict[str, Any] = {
        "name": rel.name,
        "inverse": rel.inverse,
        "cardinality": rel.cardinality,
        "acyclic": rel.acyclic,
    }
    if rel.description:
        out["description"] = rel.description
    return out


def relations_to_json(schema: Schema) -> list[dict[str, Any]]:
    return [relation_to_json(r) for r in schema.relations]


def _type_json(type_def: TypeDef) -> dict[str, Any]:
    out: dict[str, Any] = {
        "name": type_def.name,
        "description": type_def.description,
        "fields": [field_to_json(f) for f in type_def.fields],
        "sections": [section_to_json(s) for s in type_def.sections],
        "rules": [rule_to_json(r) for r in type_def.rules],
    }
    if type_def.folder:
        out["folder"] = type_def.folder
    if type_def.max_count is not None:
        out["max_count"] = type_def.max_count
    return out


def type_to_json(type_def: TypeDef, schema: Schema) -> dict[str, Any]:
    return {**_type_json(type_def), "relations": relations_to_json(schema)}


def overview_to_json(schema: Schema) -> dict[str, Any]:
    types = []
    for t in schema.types:
        entry: dict[str, Any] = {
            "name": t.name,
            "description": t.description,
            "fields": len(t.fields),
            "sections": len(t.sections),
        }
        if t.folder:
            entry["folder"] = t.folder
        if t.max_count is not None:
            entry["max_count"] = t.max_count
        types.append(entry)
    return {"types": types, "relations": relations_to_json(schema)}


def export_schema(schema: Schema) -> dict[str, Any]:
    """The whole schema, every type expanded."""
    return {
        "types": [_type_json(t) for t in schema.types],
        "relations": relations_to_json(schema),
        "ref_formats": [{"name": rf.name, "pattern": rf.pattern} for rf in schema.ref_formats],
    }


# Text


def _relation_line(rel: RelationDef) -> str:
    inverse = f" -> {rel.inverse}" if rel.inverse else ""
    acyclic = ", acyclic" if rel.acyclic else ""
    description = f"  {rel.description}" if rel.description else ""
    return f"  {rel.name}{inverse}  ({rel.cardinality}{acyclic}){description}"


def overview_text(schema: Schema) -> str:
    lines = ["Types:"]
    for t in schema.types:
        description = f" - {t.description}" if t.description else ""
        meta = []
        if t.folder:
            meta.append(f"folder={t.folder}")
        if t.max_count is not None:
            meta.append(f"max_count={t.max_count}")
        lines.append(f"  {t.name}{description}" + (f"  ({', '.join(meta)})" if meta else ""))
    if schema.relations:
        lines += ["", "Relations:"]
        lines.extend(_relation_line(r) for r in schema.relations)
    return "\n".join(lines) + "\n"


def _section_tree(sections: list[SectionDef], depth: int, lines: list[str]) -> None:
    for s in sections:
        required = "required" if s.required else ""
        description = f"  {s.description}" if s.description else ""
        lines.append(f"  {'#' * depth} {s.name:<20}{required:<10}{description}".rstrip())
        if s.content is not None:
            detail = (
                f"min {s.content.min_paragraphs} paragraph(s)" if s.content.min_paragraphs is not None else "prose"
            )
            lines.append(f"{DETAIL_INDENT}content: {detail}")
        if s.list_def is not None:
            detail = f"min {s.list_def.min_items} item(s)" if s.list_def.min_items is not None else "required"
            lines.append(f"{DETAIL_INDENT}list: {detail}")
        if s.diagram is not None:
            lines.append(f"{DETAIL_INDENT}diagram: " + (f"type={s.diagram.language}" if s.diagram.language else "any"))
        if s.table is not None:
            columns = " | ".join(c.name for c in s.table.columns)
            description = f"  {s.table.description}" if s.table.description else ""
            lines.append(f"{DETAIL_INDENT}table: {columns}{description}")
        _section_tree(s.children, depth + 1, lines)


def type_text(type_def: TypeDef, schema: Schema) -> str:
    description = f" - {type_def.description}" if type_def.description else ""
    lines = [f"Type: {type_def.name}{description}"]
    if type_def.folder:
        lines.append(f"  folder: {type_def.folder}")
    if type_def.max_count is not None:
        lines.append(f"  max_count: {type_def.max_count}")

    if type_def.fields:
        lines += ["", "Fields:"]
        for f in type_def.fields:
            required = "required" if f.required else ""
            description = f"  {f.description}" if f.description else ""
            lines.append(f"  {f.name:<14}{f.type:<9}{required:<10}{description}".rstrip())
            if f.type == "enum":
                lines.append(f"{DETAIL_INDENT}values: {', '.join(f.values)}")
            if f.pattern:
                lines.append(f"{DETAIL_INDENT}pattern: {f.pattern}")
            if f.default is not None:
                lines.append(f"{DETAIL_INDENT}default: {f.default}")

    if type_def.sections:
        lines += ["", "Sections:"]
        _section_tree(type_def.sections, 1, lines)

    if type_def.rules:
        lines += ["", "Rules:"]
        for r in type_def.rules:
            lines.append(f'  "{r.name}"  when {r.when_field}={r.equals} -> require {", ".join(r.then_required)}')

    if schema.relations:
        lines += ["", "Relations (all types):"]
        lines.extend(_relation_line(r) for r in schema.relations)
    return "\n".join(lines) + "\n"


def field_text(f: FieldDef) -> str:
    lines = [f"Field: {f.name}", f"  type: {f.type_label}", f"  required: {str(f.required).lower()}"]
    if f.description:
        lines.append(f"  description: {f.description}")
    if f.pattern:
        lines.append(f"  pattern: {f.pattern}")
    if f.default is not None:
        lines.append(f"  default: {f.default}")
    if f.type == "enum":
        lines.append(f"  values: {', '.join(f.values)}")
    return "\n".join(lines) + "\n"


def relations_text(schema: Schema) -> str:
    if not schema.relations:
        return "No relations defined.\n"
    return "\n".join(["Relations:", *(_relation_line(r) for r in schema.relations)]) + "\n"
