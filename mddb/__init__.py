"""md-db - Markdown files as a typed, schema-validated document database."""

__version__ = "0.4.0"
