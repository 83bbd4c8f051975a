"""Find Markdown documents under a directory, with front-matter filters."""

from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union

import pathspec

from .errors import MdDbError, read_text
from .markdown.frontmatter import Frontmatter

logger = logging.getLogger(__name__)

DEFAULT_PATTERN = "*.md"
IGNORE_FILES = (".gitignore", ".ignore")


@dataclass(frozen=True)
class FieldEquals:
    key: str
    value: str

    def matches(self, fm: Frontmatter) -> bool:
        return fm.get_display(self.key) == self.value


@dataclass(frozen=True)
class FieldNotEquals:
    """Passes when the field is absent."""

    key: str
    value: str

    def matches(self, fm: Frontmatter) -> bool:
        return fm.get_display(self.key) != self.value


@dataclass(frozen=True)
class FieldContains:
    key: str
    value: str

    def matches(self, fm: Frontmatter) -> bool:
        shown = fm.get_display(self.key)
        return shown is not None and self.value in shown


@dataclass(frozen=True)
class FieldIn:
    key: str
    values: tuple[str, ...]

    def matches(self, fm: Frontmatter) -> bool:
        return fm.get_display(self.key) in self.values


@dataclass(frozen=True)
class HasField:
    key: str

    def matches(self, fm: Frontmatter) -> bool:
        return fm.has_path(self.key)


@dataclass(frozen=True)
class NotHasField:
    key: str

    def matches(self, fm: Frontmatter) -> bool:
        return not fm.has_path(self.key)


Filter = Union[FieldEquals, FieldNotEquals, FieldContains, FieldIn, HasField, NotHasField]


def parse_filter(expr: str) -> Filter:
    """Parse a command-line filter expression.

    ``key=value``, ``key!=value``, ``key~=value``, ``key=in:a,b,c``,
    ``has:key`` and ``!has:key``.
    """
    expr = expr.strip()
    if expr.startswith("!has:"):
        return NotHasField(expr[len("!has:"):].strip())
    if expr.startswith("has:"):
        return HasField(expr[len("has:"):].strip())
    if "!=" in expr:
        key, value = expr.split("!=", 1)
        return FieldNotEquals(key.strip(), value.strip())
    if "~=" in expr:
        key, value = expr.split("~=", 1)
        return FieldContains(key.strip(), value.strip())
    if "=" in expr:
        key, value = expr.split("=", 1)
        value = value.strip()
        if value.startswith("in:"):
            return FieldIn(key.strip(), tuple(v.strip() for v in value[3:].split(",")))
        return FieldEquals(key.strip(), value)
    raise ValueError(f"invalid filter expression: {expr!r}")


def check_filters(fm: Frontmatter, filters: Iterable[Filter]) -> bool:
    return all(f.matches(fm) for f in filters)


class _IgnoreRules:
    """Ignore-file rules collected while walking, each scoped to its directory."""

    def __init__(self) -> None:
        self.specs: list[tuple[Path, pathspec.PathSpec]] = []

    def load_dir(self, directory: Path) -> None:
        for name in IGNORE_FILES:
            ignore_file = directory / name
            if not ignore_file.is_file():
                continue
            try:
                lines = ignore_file.read_text(encoding="utf-8").splitlines()
            except OSError as exc:
                logger.warning("Could not read %s: %s", ignore_file, exc)
                continue
            self.specs.append((directory, pathspec.GitIgnoreSpec.from_lines(lines)))

    def is_ignored(self, path: Path, is_dir: bool = False) -> bool:
        for base, spec in self.specs:
            try:
                rel = path.relative_to(base).as_posix()
            except ValueError:
                continue
            if is_dir:
                rel += "/"
            if spec.match_file(rel):
                return True
        return False


def walk_files(directory: Path, honor_ignore: bool = True) -> Iterable[Path]:
    """Every regular file under ``directory``, following symlinks."""
    rules = _IgnoreRules()
    seen_dirs: set[str] = set()
    for root, dirs, files in os.walk(directory, followlinks=True):
        root_path = Path(root)
        real = os.path.realpath(root)
        if real in seen_dirs:
            dirs[:] = []
            continue
        seen_dirs.add(real)

        if honor_ignore:
            rules.load_dir(root_path)
        dirs[:] = sorted(
            d
            for d in dirs
            if d != ".git" and not (honor_ignore and rules.is_ignored(root_path / d, is_dir=True))
        )
        for name in sorted(files):
            path = root_path / name
            if honor_ignore and rules.is_ignored(path):
                continue
            if path.is_file():
                yield path


def discover_files(
    directory: Path | str,
    pattern: str | None = None,
    filters: Iterable[Filter] = (),
    honor_ignore: bool = True,
) -> list[Path]:
    """Sorted paths of files whose name matches ``pattern`` and whose front-matter passes ``filters``.

    With filters given, files without front-matter (or with unreadable
    front-matter) are skipped.
    """
    directory = Path(directory)
    glob = pattern or DEFAULT_PATTERN
    filters = list(filters)
    results: list[Path] = []

    for path in walk_files(directory, honor_ignore=honor_ignore):
        if not fnmatch.fnmatch(path.name, glob):
            continue
        if filters:
            try:
                fm, _ = Frontmatter.try_parse(read_text(path))
            except MdDbError as exc:
                logger.debug("Skipping %s: %s", path, exc)
                continue
            if fm is None or not check_filters(fm, filters):
                continue
        results.append(path)

    results.sort()
    logger.debug("Discovered %d file(s) under %s", len(results), directory)
    return results
