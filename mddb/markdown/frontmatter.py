"""YAML front-matter: detection, dotted-path reads, typed mutation, re-serialization.

The block is split off by hand rather than through ``frontmatter.loads`` because
that strips the body, and edits must leave every byte after the closing fence
untouched. Parsing and dumping still go through python-frontmatter's YAML
handler, with a loader that keeps dates as plain strings.
"""

from __future__ import annotations

import json
import re
from typing import Any

import yaml
from frontmatter.default_handlers import YAMLHandler

from ..errors import FrontmatterParseError

FENCE_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(?P<yaml>.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)

INT_PATTERN = re.compile(r"[+-]?\d+")
FLOAT_PATTERN = re.compile(r"[+-]?(\d+\.\d*|\.\d+)([eE][+-]?\d+)?")

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class FrontmatterLoader(yaml.SafeLoader):
    """SafeLoader without the timestamp resolver (``date: 2025-01-10`` stays a string)."""


FrontmatterLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

_HANDLER = YAMLHandler()


def load_yaml(text: str) -> Any:
    """Parse YAML text into plain Python values."""
    return _HANDLER.load(text, Loader=FrontmatterLoader)


def dump_yaml(value: Any) -> str:
    """Serialize a value as block-style YAML, keeping key order."""
    return _HANDLER.export(value, Dumper=yaml.SafeDumper, sort_keys=False)


def yaml_type_name(value: Any) -> str:
    """Name of the YAML value kind: null, bool, number, string, array, mapping."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "mapping"
    return type(value).__name__


def display_value(value: Any) -> str:
    """Stringify a value for display, comparison and filtering."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    if isinstance(value, list):
        return "[" + ", ".join(display_value(v) for v in value) + "]"
    if isinstance(value, dict):
        return dump_yaml(value)
    return str(value)


def values_equal(a: Any, b: Any) -> bool:
    """Structural equality that does not conflate ``True`` with ``1``."""
    return json.dumps(a, sort_keys=True, default=str) == json.dumps(b, sort_keys=True, default=str)


def parse_yaml_value(s: str) -> Any:
    """Coerce a raw user string (e.g. from the command line) into a YAML value.

    Anything that is not a bool, number or flow list comes back unchanged.
    """
    stripped = s.strip()
    if stripped == "true":
        return True
    if stripped == "false":
        return False
    if INT_PATTERN.fullmatch(stripped):
        return int(stripped)
    if FLOAT_PATTERN.fullmatch(stripped):
        return float(stripped)
    if stripped.startswith("[") and stripped.endswith("]"):
        try:
            parsed = load_yaml(stripped)
        except yaml.YAMLError:
            return s
        if isinstance(parsed, list):
            return parsed
    return s


class Frontmatter:
    """An ordered mapping of front-matter keys to YAML values."""

    def __init__(self, data: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(data or {})

    @classmethod
    def from_yaml(cls, text: str) -> "Frontmatter":
        try:
            data = load_yaml(text)
        except yaml.YAMLError as exc:
            raise FrontmatterParseError(f"invalid YAML in frontmatter: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise FrontmatterParseError(
                f"frontmatter must be a mapping, got {yaml_type_name(data)}"
            )
        return cls({str(k): v for k, v in data.items()})

    @classmethod
    def try_parse(cls, raw: str) -> tuple["Frontmatter | None", str]:
        """Split ``raw`` into (front-matter, body).

        Returns ``(None, raw)`` when the text does not open with a fenced block.
        """
        match = FENCE_PATTERN.match(raw)
        if not match:
            return None, raw
        return cls.from_yaml(match.group("yaml")), raw[match.end():]

    # Reads

    def get(self, path: str) -> Any:
        """Value at a dotted path (``links.superseded_by``), or None."""
        if path in self._data:
            return self._data[path]
        current: Any = self._data
        for part in path.split("."):
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current

    def has_path(self, path: str) -> bool:
        if path in self._data:
            return True
        current: Any = self._data
        for part in path.split("."):
            if not isinstance(current, dict) or part not in current:
                return False
            current = current[part]
        return True

    def get_display(self, path: str) -> str | None:
        if not self.has_path(path):
            return None
        return display_value(self.get(path))

    def has_field(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> list[str]:
        return list(self._data)

    @property
    def data(self) -> dict[str, Any]:
        """The underlying mapping; mutating it mutates the front-matter."""
        return self._data

    # Writes

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def set_from_str(self, key: str, raw: str) -> None:
        self._data[key] = parse_yaml_value(raw)

    def remove(self, key: str) -> Any:
        return self._data.pop(key, None)

    # Serialization

    def to_yaml_string(self) -> str:
        """YAML for the block between the fences, newline-terminated (empty if no keys)."""
        if not self._data:
            return ""
        return dump_yaml(self._data) + "\n"

    def to_json(self) -> dict[str, Any]:
        return dict(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Frontmatter):
            return NotImplemented
        return values_equal(self._data, other._data)

    def __repr__(self) -> str:
        return f"Frontmatter({self._data!r})"
