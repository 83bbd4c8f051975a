"""Command implementations behind the md-db CLI."""
