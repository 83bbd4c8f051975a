"""Diagnostic records and the reports built from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

Severity = Literal["error", "warning", "info"]

SEVERITY_ORDER = {"error": 0, "warning": 1, "info": 2}


@dataclass
class Diagnostic:
    """A single finding with a stable code."""

    severity: Severity
    code: str
    message: str
    location: str
    hint: str | None = None

    @classmethod
    def error(cls, code: str, message: str, location: str, hint: str | None = None) -> "Diagnostic":
        return cls("error", code, message, location, hint)

    @classmethod
    def warning(cls, code: str, message: str, location: str, hint: str | None = None) -> "Diagnostic":
        return cls("warning", code, message, location, hint)

    @classmethod
    def info(cls, code: str, message: str, location: str, hint: str | None = None) -> "Diagnostic":
        return cls("info", code, message, location, hint)

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    def __str__(self) -> str:
        text = f"{self.severity}[{self.code}]: {self.message}\n--> {self.location}"
        if self.hint:
            text += f"\n= hint: {self.hint}"
        return text

    def to_compact(self) -> str:
        return f"{self.code}:{self.severity}:{self.location}:{self.message}"

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "location": self.location,
        }
        if self.hint:
            out["hint"] = self.hint
        return out


def count_severity(diagnostics: list[Diagnostic], severity: Severity) -> int:
    return sum(1 for d in diagnostics if d.severity == severity)


@dataclass
class FileResult:
    path: Path
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    def to_json(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "diagnostics": [d.to_json() for d in self.diagnostics],
        }


@dataclass
class ValidationResult:
    files: list[FileResult] = field(default_factory=list)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [d for f in self.files for d in f.diagnostics]

    @property
    def error_count(self) -> int:
        return count_severity(self.diagnostics, "error")

    @property
    def warning_count(self) -> int:
        return count_severity(self.diagnostics, "warning")

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    def for_path(self, path: Path) -> FileResult | None:
        for f in self.files:
            if f.path == path:
                return f
        return None

    def summary(self) -> str:
        return f"result: {self.error_count} error(s), {self.warning_count} warning(s)"

    def to_report(self) -> str:
        blocks = []
        for f in self.files:
            if not f.diagnostics:
                continue
            lines = [str(f.path)]
            for d in f.diagnostics:
                lines.extend("  " + line if i == 0 else "    " + line for i, line in enumerate(str(d).splitlines()))
            blocks.append("\n".join(lines))
        blocks.append(self.summary())
        return "\n\n".join(blocks) + "\n"

    def to_compact(self) -> str:
        return "".join(f"{f.path}:{d.to_compact()}\n" for f in self.files for d in f.diagnostics)

    def to_markdown(self) -> str:
        lines = [
            "| File | Severity | Code | Location | Message |",
            "|---|---|---|---|---|",
        ]
        for f in self.files:
            for d in f.diagnostics:
                cells = [str(f.path), d.severity, d.code, d.location, d.message]
                lines.append("| " + " | ".join(c.replace("|", "\\|") for c in cells) + " |")
        lines.append("")
        lines.append(f"**{self.summary()}**")
        return "\n".join(lines) + "\n"

    def to_json(self) -> dict[str, Any]:
        return {
            "files": [f.to_json() for f in self.files],
            "errors": self.error_count,
            "warnings": self.warning_count,
        }
