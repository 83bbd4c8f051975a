"""Project configuration (``mddb.toml``)."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .output import FORMAT_CHOICES

CONFIG_NAMES = ("mddb.toml", ".mddb.toml")
DEFAULT_SCHEMA = "schema.kdl"
DEFAULT_USERS = "users.yaml"
DEFAULT_DEBOUNCE_MS = 300


@dataclass
class Config:
    """Resolved settings; paths are absolute once loaded from a file."""

    path: Path | None = None
    dir: Path | None = None
    schema: Path | None = None
    users: Path | None = None
    pattern: str | None = None
    no_ignore: bool = False
    format: str | None = None
    debounce_ms: int = DEFAULT_DEBOUNCE_MS

    def document_dir(self, override: Path | None = None) -> Path:
        if override is not None:
            return override
        if self.dir is not None:
            return self.dir
        return Path.cwd()

    def schema_path(self, directory: Path, override: Path | None = None) -> Path | None:
        """Explicit option, then config, then ``schema.kdl`` in the document directory."""
        if override is not None:
            return override
        if self.schema is not None:
            return self.schema
        candidate = directory / DEFAULT_SCHEMA
        return candidate if candidate.is_file() else None

    def users_path(self, directory: Path, override: Path | None = None) -> Path | None:
        if override is not None:
            return override
        if self.users is not None:
            return self.users
        candidate = directory / DEFAULT_USERS
        return candidate if candidate.is_file() else None


def find_config(start: Path) -> Path | None:
    """Walk up from ``start`` looking for a config file."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        for name in CONFIG_NAMES:
            candidate = p / name
            if candidate.is_file():
                return candidate
    return None


def _expect(data: dict[str, Any], key: str, kind: type, where: Path) -> Any:
    value = data.get(key)
    if value is None:
        return None
    # bool is an int subclass; keep the two apart
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ConfigError(f"{where}: '{key}' must be {kind.__name__}, got {type(value).__name__}")
    return value


def load_config(path: Path) -> Config:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"could not read {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc

    base = path.resolve().parent

    def resolve(key: str) -> Path | None:
        value = _expect(data, key, str, path)
        return (base / value).resolve() if value else None

    fmt = _expect(data, "format", str, path)
    if fmt is not None and fmt not in FORMAT_CHOICES:
        raise ConfigError(f"{path}: 'format' must be one of {', '.join(FORMAT_CHOICES)}")

    debounce = _expect(data, "debounce_ms", int, path)
    if debounce is not None and debounce < 0:
        raise ConfigError(f"{path}: 'debounce_ms' must not be negative")

    return Config(
        path=path,
        dir=resolve("dir"),
        schema=resolve("schema"),
        users=resolve("users"),
        pattern=_expect(data, "pattern", str, path),
        no_ignore=bool(_expect(data, "no_ignore", bool, path)),
        format=fmt,
        debounce_ms=DEFAULT_DEBOUNCE_MS if debounce is None else debounce,
    )


def discover_config(start: Path | None = None, explicit: Path | None = None) -> Config:
    """The explicit config file, else the nearest one above ``start``, else defaults."""
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigError(f"config file not found: {explicit}")
        return load_config(explicit)
    found = find_config(start or Path.cwd())
    return load_config(found) if found is not None else Config()
