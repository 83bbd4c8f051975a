"""Document IDs derived from file names."""

from __future__ import annotations

import re
from pathlib import Path

ID_PREFIX_PATTERN = re.compile(r"[A-Z]+-[0-9]+")
STRING_ID_PATTERN = re.compile(r"[A-Za-z]+[-_][0-9]+")


def path_to_id(path: Path | str) -> str:
    """``docs/adr-001-use-postgres.md`` -> ``ADR-001``.

    Falls back to the whole upper-cased stem when it has no LETTERS-DIGITS prefix.
    """
    stem = Path(path).stem.upper().replace("_", "-")
    match = ID_PREFIX_PATTERN.match(stem)
    return match.group(0) if match else stem


def is_string_id(value: str) -> bool:
    """True for bare IDs such as ``ADR-001`` or ``rfc_12``."""
    return STRING_ID_PATTERN.fullmatch(value) is not None


def normalize_id(value: str) -> str:
    return value.strip().upper()


def split_id(value: str) -> tuple[str, int] | None:
    """``ADR-012`` -> ``("ADR", 12)``; None when the suffix is not numeric."""
    prefix, sep, number = value.partition("-")
    if not sep or not number.isdigit():
        return None
    return prefix, int(number)
