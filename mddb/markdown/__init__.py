"""Document model: front-matter, sections, tables and the Markdown AST helpers."""

from .document import Document
from .frontmatter import Frontmatter, display_value, parse_yaml_value
from .section import Section
from .table import Table

__all__ = [
    "Document",
    "Frontmatter",
    "Section",
    "Table",
    "display_value",
    "parse_yaml_value",
]
