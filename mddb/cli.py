"""CLI entrypoint for md-db."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import click

from . import __version__
from .config import Config, discover_config
from .errors import ConfigError
from .output import FORMAT_CHOICES

LOG_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG]

_dir_option = click.option(
    "--dir",
    "-d",
    "directory",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Document directory (defaults to config `dir`, then the working directory)",
)
_schema_option = click.option(
    "--schema",
    "-s",
    "schema_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Schema file (defaults to config `schema`, then <dir>/schema.kdl)",
)
_pattern_option = click.option("--pattern", default=None, help="File name glob (default: *.md)")
_no_ignore_option = click.option(
    "--no-ignore",
    is_flag=True,
    default=False,
    help="Do not honor .gitignore / .ignore files",
)
_format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(FORMAT_CHOICES),
    default=None,
    help="Output format (auto: json when piped, text on a terminal)",
)


@dataclass
class Corpus:
    """Options resolved against the loaded configuration."""

    directory: Path
    schema_path: Path | None
    users_path: Path | None
    pattern: str | None
    honor_ignore: bool


def _config(ctx: click.Context) -> Config:
    return ctx.obj["config"]


def _corpus(
    ctx: click.Context,
    directory: Path | None = None,
    schema_path: Path | None = None,
    users_path: Path | None = None,
    pattern: str | None = None,
    no_ignore: bool = False,
) -> Corpus:
    config = _config(ctx)
    resolved = config.document_dir(directory)
    return Corpus(
        directory=resolved,
        schema_path=config.schema_path(resolved, schema_path),
        users_path=config.users_path(resolved, users_path),
        pattern=pattern or config.pattern,
        honor_ignore=not (no_ignore or config.no_ignore),
    )


def _format(ctx: click.Context, value: str | None) -> str:
    return value or _config(ctx).format or "auto"


@click.group()
@click.version_option(__version__, prog_name="md-db")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="Config file (defaults to the nearest mddb.toml above the working directory)",
)
@click.option("--verbose", "-V", count=True, help="More logging (-V info, -VV debug)")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: int) -> None:
    """md-db - Markdown files as a typed, schema-validated document database.

    Validate, query, edit and migrate a directory of Markdown documents
    against a KDL schema.
    """
    logging.basicConfig(
        level=LOG_LEVELS[min(verbose, len(LOG_LEVELS) - 1)],
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = discover_config(Path.cwd(), config_path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.argument(
    "target",
    required=False,
    type=click.Path(exists=True, path_type=Path),
)
@_schema_option
@click.option(
    "--users",
    "users_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="User directory YAML (defaults to config `users`, then <dir>/users.yaml)",
)
@_pattern_option
@_no_ignore_option
@_format_option
@click.option("--stdin", "from_stdin", is_flag=True, help="Validate document text read from stdin")
@click.pass_context
def validate(
    ctx: click.Context,
    target: Path | None,
    schema_path: Path | None,
    users_path: Path | None,
    pattern: str | None,
    no_ignore: bool,
    output_format: str | None,
    from_stdin: bool,
) -> None:
    """Validate a document or every document in a directory.

    Examples:

        md-db validate docs/

        md-db validate docs/adr-001.md --format compact
    """
    from .commands.validate import run_validate

    if target is None:
        base = None
    elif target.is_dir():
        base = target
    else:
        # a single file resolves references against its own directory
        base = _config(ctx).dir or target.parent
    corpus = _corpus(ctx, base, schema_path, users_path, pattern, no_ignore)
    exit_code = run_validate(
        target if target is not None else corpus.directory,
        corpus.schema_path,
        users_path=corpus.users_path,
        corpus_dir=corpus.directory,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        output_format=_format(ctx, output_format),
        stdin_text=click.get_text_stream("stdin").read() if from_stdin else None,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--section", default=None, help='Section to show ("Parent > Child" for nested)')
@click.option("--table", type=int, default=None, help="Show the Nth table of --section")
@_format_option
@click.pass_context
def inspect(
    ctx: click.Context,
    path: Path,
    section: str | None,
    table: int | None,
    output_format: str | None,
) -> None:
    """Show a document's front-matter and outline, a section, or a table."""
    from .commands.document_cmd import run_inspect

    if table is not None and section is None:
        raise click.UsageError("--table requires --section")
    sys.exit(run_inspect(path, section=section, table=table, output_format=_format(ctx, output_format)))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("key")
@_format_option
@click.pass_context
def get(ctx: click.Context, path: Path, key: str, output_format: str | None) -> None:
    """Print a front-matter value (dotted keys reach into mappings)."""
    from .commands.document_cmd import run_get

    sys.exit(run_get(path, key, output_format=_format(ctx, output_format)))


@cli.command("set")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("key")
@click.argument("value", required=False)
@click.option("--remove", is_flag=True, help="Remove the field instead of setting it")
@click.option("--dry-run", is_flag=True, help="Print the result instead of writing the file")
def set_field(path: Path, key: str, value: str | None, remove: bool, dry_run: bool) -> None:
    """Set a front-matter field; VALUE is read as YAML (true, 42, [a, b])."""
    from .commands.document_cmd import run_set

    sys.exit(run_set(path, key, value, remove=remove, dry_run=dry_run))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("heading")
@click.option("--content", default=None, help="New content (default: read from stdin)")
@click.option("--append", is_flag=True, help="Append to the section instead of replacing it")
@click.option("--dry-run", is_flag=True, help="Print the result instead of writing the file")
def section(path: Path, heading: str, content: str | None, append: bool, dry_run: bool) -> None:
    """Replace (or append to) the content under HEADING."""
    from .commands.document_cmd import run_section

    if content is None:
        content = click.get_text_stream("stdin").read()
    sys.exit(run_section(path, heading, content, append=append, dry_run=dry_run))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("heading")
@click.option("--index", type=int, default=0, show_default=True, help="Table index within the section")
@click.option(
    "--set",
    "set_cell",
    nargs=3,
    type=(str, int, str),
    default=None,
    metavar="COLUMN ROW VALUE",
    help="Set one cell (ROW is 0-based)",
)
@click.option("--add-row", "add_row", multiple=True, help="Append a row; repeat once per cell")
@click.option("--dry-run", is_flag=True, help="Print the result instead of writing the file")
@_format_option
@click.pass_context
def table(
    ctx: click.Context,
    path: Path,
    heading: str,
    index: int,
    set_cell: tuple[str, int, str] | None,
    add_row: tuple[str, ...],
    dry_run: bool,
    output_format: str | None,
) -> None:
    """Show or edit a table inside a section.

    Examples:

        md-db table adr-001.md Options --set Status 0 accepted

        md-db table adr-001.md Options --add-row MySQL --add-row rejected
    """
    from .commands.document_cmd import run_table

    exit_code = run_table(
        path,
        heading,
        index=index,
        set_cell=set_cell or None,
        add_row=list(add_row) if add_row else None,
        dry_run=dry_run,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command("list")
@_dir_option
@click.option("--filter", "-f", "filters", multiple=True, help="key=value, key!=value, key~=value, key=in:a,b, has:key, !has:key")
@click.option("--field", "fields", multiple=True, help="Front-matter columns to show (repeatable)")
@_pattern_option
@_no_ignore_option
@_format_option
@click.pass_context
def list_docs(
    ctx: click.Context,
    directory: Path | None,
    filters: tuple[str, ...],
    fields: tuple[str, ...],
    pattern: str | None,
    no_ignore: bool,
    output_format: str | None,
) -> None:
    """List documents, optionally filtered by front-matter."""
    from .commands.list_cmd import run_list

    corpus = _corpus(ctx, directory, pattern=pattern, no_ignore=no_ignore)
    exit_code = run_list(
        corpus.directory,
        filters=list(filters),
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        fields=list(fields) or None,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("doc_id")
@_dir_option
@_schema_option
@click.option(
    "--direction",
    type=click.Choice(["from", "to", "both"]),
    default="both",
    show_default=True,
    help="Outgoing (from), incoming (to) or both",
)
@click.option("--depth", type=click.IntRange(min=1), default=1, show_default=True, help="Transitive depth")
@_format_option
@click.pass_context
def refs(
    ctx: click.Context,
    doc_id: str,
    directory: Path | None,
    schema_path: Path | None,
    direction: str,
    depth: int,
    output_format: str | None,
) -> None:
    """Show references from and to a document."""
    from .commands.graph_cmd import run_refs

    corpus = _corpus(ctx, directory, schema_path)
    exit_code = run_refs(
        corpus.directory,
        doc_id,
        corpus.schema_path,
        direction=direction,
        depth=depth,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command()
@_dir_option
@_schema_option
@click.option(
    "--format",
    "graph_format",
    type=click.Choice(["mermaid", "dot", "json"]),
    default="mermaid",
    show_default=True,
    help="Graph output format",
)
@click.option("--type", "doc_type", default=None, help="Only documents of this type")
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write output to a file (default: stdout)",
)
@click.pass_context
def graph(
    ctx: click.Context,
    directory: Path | None,
    schema_path: Path | None,
    graph_format: str,
    doc_type: str | None,
    out: Path | None,
) -> None:
    """Render the relation graph."""
    from .commands.graph_cmd import run_graph

    corpus = _corpus(ctx, directory, schema_path)
    exit_code = run_graph(
        corpus.directory,
        corpus.schema_path,
        graph_format=graph_format,
        doc_type=doc_type,
        out=out,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
    )
    sys.exit(exit_code)


@cli.command()
@_dir_option
@_schema_option
@_format_option
@click.pass_context
def check(
    ctx: click.Context,
    directory: Path | None,
    schema_path: Path | None,
    output_format: str | None,
) -> None:
    """Run graph health checks (cycles, orphans, dangling references)."""
    from .commands.graph_cmd import run_check

    corpus = _corpus(ctx, directory, schema_path)
    exit_code = run_check(
        corpus.directory,
        corpus.schema_path,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command("next-id")
@click.argument("prefix")
@_dir_option
@click.pass_context
def next_id(ctx: click.Context, prefix: str, directory: Path | None) -> None:
    """Print the next free ID for PREFIX (e.g. ADR -> ADR-004)."""
    from .commands.graph_cmd import run_next_id

    corpus = _corpus(ctx, directory)
    sys.exit(
        run_next_id(
            corpus.directory,
            prefix,
            corpus.schema_path,
            pattern=corpus.pattern,
            honor_ignore=corpus.honor_ignore,
        )
    )


@cli.command()
@click.argument("doc_type")
@_dir_option
@_schema_option
@click.option("--field", "fields", multiple=True, help="Pre-fill a field: key=value (repeatable)")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to this file instead of stdout",
)
@click.option("--auto-id", is_flag=True, help="Write to <dir>/<folder>/<next-id>.md")
@click.option("--fill", is_flag=True, help="Use today's date for date-shaped fields")
@click.pass_context
def new(
    ctx: click.Context,
    doc_type: str,
    directory: Path | None,
    schema_path: Path | None,
    fields: tuple[str, ...],
    output: Path | None,
    auto_id: bool,
    fill: bool,
) -> None:
    """Create a document of DOC_TYPE with every field and section in place.

    Examples:

        md-db new adr --field title="Use SQLite" --auto-id

        md-db new adr --fill > draft.md
    """
    from .commands.new_cmd import run_new

    corpus = _corpus(ctx, directory, schema_path)
    exit_code = run_new(
        corpus.schema_path,
        doc_type,
        fields=list(fields),
        output=output,
        directory=corpus.directory,
        auto_id=auto_id,
        fill=fill,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("query")
@_dir_option
@click.option("--case-sensitive", is_flag=True, help="Match case exactly")
@click.option("--section", default=None, help="Only search the body under this heading")
@click.option("--field", "field_name", default=None, help="Only search this front-matter field")
@click.option("--max-results", type=click.IntRange(min=1), default=None, help="Stop after N documents")
@click.option("--filter", "-f", "filters", multiple=True, help="Front-matter filter (see `list`)")
@_pattern_option
@_no_ignore_option
@_format_option
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    directory: Path | None,
    case_sensitive: bool,
    section: str | None,
    field_name: str | None,
    max_results: int | None,
    filters: tuple[str, ...],
    pattern: str | None,
    no_ignore: bool,
    output_format: str | None,
) -> None:
    """Search front-matter and body text."""
    from .commands.search_cmd import run_search
    from .search import SearchOptions

    corpus = _corpus(ctx, directory, pattern=pattern, no_ignore=no_ignore)
    options = SearchOptions(
        case_sensitive=case_sensitive,
        section=section,
        field=field_name,
        max_results=max_results,
    )
    exit_code = run_search(
        corpus.directory,
        query,
        options=options,
        filters=list(filters),
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("old", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_format_option
@click.pass_context
def diff(ctx: click.Context, old: Path, new: Path, output_format: str | None) -> None:
    """Structural diff of two versions of a document."""
    from .commands.diff_cmd import run_diff

    sys.exit(run_diff(old, new, output_format=_format(ctx, output_format)))


@cli.command()
@click.argument("old_schema", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new_schema", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_dir_option
@click.option("--apply", is_flag=True, help="Write the migration (default: dry run)")
@_format_option
@click.pass_context
def migrate(
    ctx: click.Context,
    old_schema: Path,
    new_schema: Path,
    directory: Path | None,
    apply: bool,
    output_format: str | None,
) -> None:
    """Migrate documents from OLD_SCHEMA to NEW_SCHEMA."""
    from .commands.migrate_cmd import run_migrate

    corpus = _corpus(ctx, directory)
    exit_code = run_migrate(
        corpus.directory,
        old_schema,
        new_schema,
        apply=apply,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command()
@_dir_option
@_schema_option
@click.option("--apply", is_flag=True, help="Write the missing inverse references (default: dry run)")
@_format_option
@click.pass_context
def sync(
    ctx: click.Context,
    directory: Path | None,
    schema_path: Path | None,
    apply: bool,
    output_format: str | None,
) -> None:
    """Add missing inverse relation references."""
    from .commands.sync_cmd import run_sync

    corpus = _corpus(ctx, directory, schema_path)
    exit_code = run_sync(
        corpus.directory,
        corpus.schema_path,
        apply=apply,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("target", required=False, type=click.Path(exists=True, path_type=Path))
@_schema_option
@_pattern_option
@_no_ignore_option
@click.option("--dry-run", is_flag=True, help="Show what would be fixed without writing")
@_format_option
@click.pass_context
def fix(
    ctx: click.Context,
    target: Path | None,
    schema_path: Path | None,
    pattern: str | None,
    no_ignore: bool,
    dry_run: bool,
    output_format: str | None,
) -> None:
    """Fix missing defaulted fields, enum typos and missing sections.

    TARGET is a file or directory (default: the document directory).
    """
    from .commands.fix_cmd import run_fix

    if target is None or target.is_dir():
        base = target
    else:
        base = _config(ctx).dir or target.parent
    corpus = _corpus(ctx, base, schema_path, pattern=pattern, no_ignore=no_ignore)
    exit_code = run_fix(
        target if target is not None else corpus.directory,
        corpus.schema_path,
        dry_run=dry_run,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new_id")
@_dir_option
@_schema_option
@click.option("--dry-run", is_flag=True, help="Show the changes without writing")
@_format_option
@click.pass_context
def rename(
    ctx: click.Context,
    path: Path,
    new_id: str,
    directory: Path | None,
    schema_path: Path | None,
    dry_run: bool,
    output_format: str | None,
) -> None:
    """Rename a document to NEW_ID and rewrite every reference to it.

    Example:

        md-db rename docs/adr-001-use-postgres.md ADR-010
    """
    from .commands.lifecycle_cmd import run_rename

    corpus = _corpus(ctx, directory, schema_path)
    exit_code = run_rename(
        path,
        new_id,
        corpus.directory,
        corpus.schema_path,
        dry_run=dry_run,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--superseded-by", default=None, help="Mark as superseded by this document ID")
@_dir_option
@_schema_option
@click.option("--no-scan", is_flag=True, help="Do not scan the corpus for backlinks")
@click.option("--dry-run", is_flag=True, help="Show the changes without writing")
@_format_option
@click.pass_context
def deprecate(
    ctx: click.Context,
    path: Path,
    superseded_by: str | None,
    directory: Path | None,
    schema_path: Path | None,
    no_scan: bool,
    dry_run: bool,
    output_format: str | None,
) -> None:
    """Set status to deprecated, or to superseded with --superseded-by."""
    from .commands.lifecycle_cmd import run_deprecate

    corpus = _corpus(ctx, directory, schema_path)
    exit_code = run_deprecate(
        path,
        corpus.schema_path,
        superseded_by=superseded_by,
        directory=None if no_scan else corpus.directory,
        dry_run=dry_run,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command()
@_dir_option
@_schema_option
@click.option(
    "--users",
    "users_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="User directory YAML (defaults to config `users`, then <dir>/users.yaml)",
)
@_format_option
@click.pass_context
def stats(
    ctx: click.Context,
    directory: Path | None,
    schema_path: Path | None,
    users_path: Path | None,
    output_format: str | None,
) -> None:
    """Summarize the corpus: counts by type, validation, graph and staleness."""
    from .commands.stats_cmd import run_stats

    corpus = _corpus(ctx, directory, schema_path, users_path)
    exit_code = run_stats(
        corpus.directory,
        corpus.schema_path,
        users_path=corpus.users_path,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command()
@_dir_option
@_schema_option
@click.option("--type", "doc_type", default=None, help="Describe one document type")
@click.option("--field", "field_name", default=None, help="Describe one field (requires --type)")
@click.option("--relations", is_flag=True, help="Describe the relations only")
@click.option("--export", is_flag=True, help="Print the whole schema as JSON")
@_format_option
@click.pass_context
def describe(
    ctx: click.Context,
    directory: Path | None,
    schema_path: Path | None,
    doc_type: str | None,
    field_name: str | None,
    relations: bool,
    export: bool,
    output_format: str | None,
) -> None:
    """Describe the schema: types, fields, sections and relations."""
    from .commands.describe_cmd import run_describe

    if field_name is not None and doc_type is None:
        raise click.UsageError("--field requires --type")
    corpus = _corpus(ctx, directory, schema_path)
    exit_code = run_describe(
        corpus.schema_path,
        doc_type=doc_type,
        field=field_name,
        relations=relations,
        export=export,
        output_format=_format(ctx, output_format),
    )
    sys.exit(exit_code)


@cli.command()
@_dir_option
@_schema_option
@click.option("--debounce-ms", type=click.IntRange(min=0), default=None, help="Debounce window (default: 300)")
@click.pass_context
def watch(
    ctx: click.Context,
    directory: Path | None,
    schema_path: Path | None,
    debounce_ms: int | None,
) -> None:
    """Watch the document directory and revalidate on change.

    Runs until interrupted (Ctrl+C).
    """
    from .commands.watch_cmd import run_watch

    corpus = _corpus(ctx, directory, schema_path)
    exit_code = run_watch(
        corpus.directory,
        corpus.schema_path,
        users_path=corpus.users_path,
        pattern=corpus.pattern,
        honor_ignore=corpus.honor_ignore,
        debounce_ms=debounce_ms if debounce_ms is not None else _config(ctx).debounce_ms,
    )
    sys.exit(exit_code)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
