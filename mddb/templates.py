"""Placeholder expansion for schema field defaults, and new-document skeletons."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .errors import InvalidFieldValueError
from .markdown.frontmatter import Frontmatter, parse_yaml_value
from .schema.model import FieldDef, SectionDef, TypeDef

TODAY = "$TODAY"
NOW = "$NOW"

_EMPTY_BY_TYPE: dict[str, Any] = {
    "string": "",
    "number": 0,
    "bool": False,
    "user": "@",
    "ref": "",
}


def expand_placeholders(text: str, now: datetime | None = None) -> str:
    """Replace ``$TODAY`` with ``YYYY-MM-DD`` and ``$NOW`` with an ISO UTC timestamp."""
    now = now or datetime.now(timezone.utc)
    return text.replace(NOW, now.strftime("%Y-%m-%dT%H:%M:%SZ")).replace(TODAY, now.strftime("%Y-%m-%d"))


def default_value(default: str, now: datetime | None = None) -> Any:
    """The front-matter value for a schema default."""
    return parse_yaml_value(expand_placeholders(default, now))


def _is_date_pattern(pattern: str) -> bool:
    return ("\\d{4}" in pattern or "[0-9]{4}" in pattern) and ("\\d{2}" in pattern or "[0-9]{2}" in pattern)


def placeholder_value(field_def: FieldDef, fill: bool = False, now: datetime | None = None) -> Any:
    """Starting value for a field in a new document.

    The schema default wins. Date-shaped patterns get ``YYYY-MM-DD`` (or the
    real date with ``fill``), enums their first value, lists an empty list.
    """
    if field_def.default is not None:
        return default_value(field_def.default, now)
    if field_def.pattern and _is_date_pattern(field_def.pattern):
        with_time = "T" in field_def.pattern
        if fill:
            return expand_placeholders(NOW if with_time else TODAY, now)
        return "YYYY-MM-DDT00:00:00Z" if with_time else "YYYY-MM-DD"
    if field_def.type == "enum":
        return field_def.values[0] if field_def.values else ""
    if field_def.type.endswith("[]"):
        return []
    return _EMPTY_BY_TYPE.get(field_def.type, "")


def parse_field_assignment(expr: str) -> tuple[str, str]:
    """Split a ``key=value`` command-line assignment."""
    key, sep, value = expr.partition("=")
    if not sep or not key.strip():
        raise InvalidFieldValueError(f"invalid field assignment {expr!r}, expected key=value")
    return key.strip(), value


def _render_section(section: SectionDef, depth: int, lines: list[str]) -> None:
    lines += ["", "#" * min(depth, 6) + " " + section.name]
    if section.table is not None and section.table.columns:
        names = [c.name for c in section.table.columns]
        lines += ["", "| " + " | ".join(names) + " |", "|" + "---|" * len(names)]
    for child in section.children:
        _render_section(child, depth + 1, lines)


def generate_document(
    type_def: TypeDef,
    fields: dict[str, str] | None = None,
    fill: bool = False,
    now: datetime | None = None,
) -> str:
    """A new document of ``type_def``: every declared field, then every declared section.

    ``fields`` holds raw command-line values that override the placeholders;
    keys the type does not declare are appended after the declared ones.
    """
    overrides = dict(fields or {})
    fm = Frontmatter({"type": type_def.name})
    for field_def in type_def.fields:
        if field_def.name in overrides:
            fm.set_from_str(field_def.name, overrides.pop(field_def.name))
        else:
            fm.set(field_def.name, placeholder_value(field_def, fill, now))
    for key, raw in overrides.items():
        fm.set_from_str(key, raw)

    lines = ["---", fm.to_yaml_string().rstrip("\n"), "---"]
    for section in type_def.sections:
        _render_section(section, 1, lines)
    return "\n".join(lines) + "\n"
