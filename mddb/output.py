"""Output format selection shared by the commands."""

from __future__ import annotations

import json
import sys
from enum import Enum
from typing import Any


class OutputFormat(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    JSON = "json"
    COMPACT = "compact"
    AUTO = "auto"


FORMAT_CHOICES = [f.value for f in OutputFormat]


def resolve_format(value: str | OutputFormat | None, stream=None) -> OutputFormat:
    """``auto`` (and None) become ``json`` when the stream is not a terminal, else ``text``."""
    fmt = OutputFormat(value) if value is not None else OutputFormat.AUTO
    if fmt is not OutputFormat.AUTO:
        return fmt
    stream = stream if stream is not None else sys.stdout
    isatty = getattr(stream, "isatty", None)
    return OutputFormat.TEXT if isatty is not None and isatty() else OutputFormat.JSON


def dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)
