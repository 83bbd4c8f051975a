"""Schema validation: diagnostics, the per-document validator and corpus passes."""

from .corpus import validate_directory, validate_file, validate_text
from .diagnostics import Diagnostic, FileResult, ValidationResult
from .validator import DocumentValidator, validate_document

__all__ = [
    "Diagnostic",
    "DocumentValidator",
    "FileResult",
    "ValidationResult",
    "validate_directory",
    "validate_document",
    "validate_file",
    "validate_text",
]
