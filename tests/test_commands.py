import json
from pathlib import Path

from click.testing import CliRunner

from conftest import VALID_ADR, adr_text
from mddb.cli import cli
from mddb.commands.describe_cmd import run_describe
from mddb.commands.diff_cmd import run_diff
from mddb.commands.document_cmd import run_get, run_inspect, run_section, run_set, run_table
from mddb.commands.fix_cmd import run_fix
from mddb.commands.graph_cmd import run_check, run_graph, run_next_id, run_refs
from mddb.commands.lifecycle_cmd import run_deprecate, run_rename
from mddb.commands.list_cmd import run_list
from mddb.commands.migrate_cmd import run_migrate
from mddb.commands.new_cmd import run_new
from mddb.commands.search_cmd import run_search
from mddb.commands.stats_cmd import run_stats
from mddb.commands.sync_cmd import run_sync
from mddb.commands.validate import run_validate

TABLE_DOC = "\n".join(
    [
        "---",
        "type: note",
        "---",
        "",
        "# Options",
        "",
        "| Option | Owner |",
        "|--------|-------|",
        "| Postgres | @onni |",
        "",
    ]
)


def test_validate_directory_json(corpus: Path, capsys) -> None:
    code = run_validate(corpus, corpus / "schema.kdl", users_path=corpus / "users.yaml", output_format="json")

    data = json.loads(capsys.readouterr().out)
    assert code == 0
    assert data["errors"] == 0
    assert [Path(f["path"]).name for f in data["files"]] == ["adr-001-use-postgres.md", "adr-002.md"]


def test_validate_file_with_errors(corpus: Path, capsys) -> None:
    bad = corpus / "adr-003.md"
    bad.write_text(VALID_ADR.replace("status: accepted", "status: aceppted"), encoding="utf-8")

    code = run_validate(bad, corpus / "schema.kdl", corpus_dir=corpus, output_format="compact")

    assert code == 1
    assert capsys.readouterr().out == f'{bad}:F021:error:frontmatter.status:field "status" has invalid value "aceppted"\n'


def test_validate_stdin_and_missing_schema(corpus: Path, capsys) -> None:
    assert run_validate(None, corpus / "schema.kdl", stdin_text=VALID_ADR, output_format="text") == 0
    assert capsys.readouterr().out == "result: 0 error(s), 0 warning(s)\n"

    assert run_validate(corpus, None) == 1
    assert "no schema found" in capsys.readouterr().err


def test_get_and_set(corpus: Path, capsys) -> None:
    path = corpus / "adr-001-use-postgres.md"

    assert run_get(path, "title") == 0
    assert capsys.readouterr().out == "Use PostgreSQL\n"
    assert run_get(path, "missing") == 1
    assert "field not found: missing" in capsys.readouterr().err

    original = path.read_text(encoding="utf-8")
    assert run_set(path, "status", "rejected", dry_run=True) == 0
    assert "status: rejected" in capsys.readouterr().out
    assert path.read_text(encoding="utf-8") == original

    assert run_set(path, "priority", "2") == 0
    assert run_set(path, "author", remove=True) == 0
    text = path.read_text(encoding="utf-8")
    assert "priority: 2\n" in text
    assert "author:" not in text
    assert text.endswith(original.split("---\n", 2)[2])


def test_inspect_and_section(corpus: Path, capsys) -> None:
    path = corpus / "adr-001-use-postgres.md"

    assert run_inspect(path, section="Consequences > Positive") == 0
    assert capsys.readouterr().out == "Mature ecosystem\n"

    assert run_inspect(path) == 0
    out = capsys.readouterr().out
    assert "# Consequences\n  ## Positive\n  ## Negative" in out

    assert run_section(path, "Decision", "We will use SQLite.") == 0
    assert "# Decision\nWe will use SQLite.\n# Consequences" in path.read_text(encoding="utf-8")

    assert run_section(path, "Nowhere", "x") == 1
    assert "section not found: Nowhere" in capsys.readouterr().err


def test_table_edits(tmp_path: Path, capsys) -> None:
    path = tmp_path / "note.md"
    path.write_text(TABLE_DOC, encoding="utf-8")

    assert run_table(path, "Options", set_cell=("Owner", 0, "@maria"), add_row=["SQLite"]) == 0
    assert path.read_text(encoding="utf-8").endswith(
        "| Option | Owner |\n|---|---|\n| Postgres | @maria |\n| SQLite |  |\n"
    )

    assert run_table(path, "Options", output_format="json") == 0
    assert json.loads(capsys.readouterr().out) == [
        {"Option": "Postgres", "Owner": "@maria"},
        {"Option": "SQLite", "Owner": ""},
    ]

    assert run_table(path, "Options", set_cell=("Owner", 5, "x")) == 1
    assert "row 5 out of bounds" in capsys.readouterr().err


def test_section_and_table_edits_follow_parent_path(tmp_path: Path) -> None:
    path = tmp_path / "options.md"
    path.write_text(
        "# Option A\n\n## Pros\n\nalpha\n\n# Option B\n\n## Pros\n\nbeta\n\n| K | V |\n|---|---|\n| x | 1 |\n",
        encoding="utf-8",
    )

    assert run_table(path, "Option B > Pros", set_cell=("V", 0, "2")) == 0
    assert run_section(path, "Option B > Pros", "gamma", append=True) == 0

    text = path.read_text(encoding="utf-8")
    assert text.startswith("# Option A\n\n## Pros\n\nalpha\n\n# Option B\n")
    assert text.endswith("| K | V |\n|---|---|\n| x | 2 |\n\ngamma\n")


def test_list_with_filters(corpus: Path, capsys) -> None:
    (corpus / "adr-003.md").write_text(adr_text(status="proposed"), encoding="utf-8")

    assert run_list(corpus, filters=["status=proposed"], output_format="json") == 0
    [row] = json.loads(capsys.readouterr().out)
    assert row["id"] == "ADR-003"
    assert row["status"] == "proposed"

    assert run_list(corpus, filters=["bogus"]) == 1


def test_graph_commands(corpus: Path, capsys) -> None:
    schema = corpus / "schema.kdl"

    assert run_refs(corpus, "adr-002", schema, direction="from", output_format="text") == 0
    assert capsys.readouterr().out == "references from ADR-002:\n  ADR-002 --enables--> ADR-001\n"

    assert run_refs(corpus, "ADR-001", schema, direction="to", output_format="json") == 0
    data = json.loads(capsys.readouterr().out)
    assert data["to"] == [{"depth": 1, "from": "ADR-002", "to": "ADR-001", "relation": "enables"}]

    assert run_graph(corpus, schema, graph_format="mermaid") == 0
    assert "  ADR-002 -->|enables| ADR-001" in capsys.readouterr().out

    out = corpus / "graph.dot"
    assert run_graph(corpus, schema, graph_format="dot", out=out) == 0
    assert out.read_text(encoding="utf-8").startswith("digraph docs {")

    assert run_check(corpus, schema, output_format="json") == 0
    assert json.loads(capsys.readouterr().out)["errors"] == 0

    assert run_next_id(corpus, "adr") == 0
    assert capsys.readouterr().out == "ADR-003\n"


def test_check_reports_dangling_refs(corpus: Path, capsys) -> None:
    (corpus / "adr-003.md").write_text(adr_text("superseded_by: ADR-005"), encoding="utf-8")

    assert run_check(corpus, corpus / "schema.kdl", output_format="compact") == 1
    assert "G030:error:ADR-003:" in capsys.readouterr().out


def test_search_command(corpus: Path, capsys) -> None:
    assert run_search(corpus, "postgresql", output_format="compact") == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == f"{corpus / 'adr-001-use-postgres.md'}:frontmatter.title:title: Use *PostgreSQL*"

    assert run_search(corpus, "no such text") == 1


def test_diff_command(tmp_path: Path, capsys) -> None:
    old = tmp_path / "old.md"
    new = tmp_path / "new.md"
    old.write_text(VALID_ADR, encoding="utf-8")
    new.write_text(VALID_ADR.replace("status: accepted", "status: rejected"), encoding="utf-8")

    assert run_diff(old, old) == 0
    capsys.readouterr()
    assert run_diff(old, new, output_format="json") == 1
    data = json.loads(capsys.readouterr().out)
    assert data["field_changes"] == [{"key": "status", "kind": "changed", "old": "accepted", "new": "rejected"}]


def test_migrate_command(corpus: Path, capsys) -> None:
    old_schema = corpus / "schema.kdl"
    new_schema = corpus / "schema-v2.kdl"
    new_schema.write_text(
        old_schema.read_text(encoding="utf-8").replace(
            'field "tags" type="string[]"',
            'field "tags" type="string[]"\n    field "reviewed" type="bool" default="false"',
        ),
        encoding="utf-8",
    )

    assert run_migrate(corpus, old_schema, new_schema, output_format="json") == 0
    data = json.loads(capsys.readouterr().out)
    assert data["schema_diff"]["changed_types"] == ["adr"]
    [action] = data["plan"]["actions"]
    assert action["kind"] == "add_field"
    assert len(action["affected"]) == 2

    assert run_migrate(corpus, old_schema, new_schema, apply=True, output_format="text") == 0
    assert "reviewed: false\n" in (corpus / "adr-002.md").read_text(encoding="utf-8")


def test_sync_command(corpus: Path, capsys) -> None:
    schema = corpus / "schema.kdl"

    assert run_sync(corpus, schema, output_format="json") == 0
    data = json.loads(capsys.readouterr().out)
    assert [(a["doc"], a["field"], a["add"]) for a in data["actions"]] == [("ADR-001", "enabled_by", ["ADR-002"])]

    assert run_sync(corpus, schema, apply=True, output_format="text") == 0
    capsys.readouterr()
    assert run_sync(corpus, schema, output_format="text") == 0
    assert capsys.readouterr().out == "inverse relations are in sync\n"


def test_cli_smoke(corpus: Path) -> None:
    config = corpus.parent / "mddb.toml"
    config.write_text('dir = "docs"\n', encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(cli, ["--config", str(config), "next-id", "ADR"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "ADR-003"

    result = runner.invoke(
        cli,
        ["--config", str(config), "validate", str(corpus / "adr-002.md"), "--format", "json"],
    )
    assert result.exit_code == 0
    assert json.loads(result.stdout)["errors"] == 0

    result = runner.invoke(cli, ["--config", str(corpus / "missing.toml"), "next-id", "ADR"])
    assert result.exit_code == 1
    assert "config file not found" in result.output


def test_new_command(corpus: Path, capsys) -> None:
    schema = corpus / "schema.kdl"

    assert run_new(schema, "adr", fields=["title=Use SQLite"]) == 0
    assert capsys.readouterr().out.startswith("---\ntype: adr\ntitle: Use SQLite\n")

    assert run_new(schema, "adr", fields=["status=accepted"], directory=corpus, auto_id=True) == 0
    created = corpus / "adr-003.md"
    assert "status: accepted\n" in created.read_text(encoding="utf-8")

    assert run_new(schema, "memo") == 1
    assert "type not found in schema: memo" in capsys.readouterr().err
    assert run_new(schema, "adr", fields=["title"]) == 1


def test_fix_command(corpus: Path, capsys) -> None:
    schema = corpus / "schema.kdl"
    typo = corpus / "adr-003.md"
    typo.write_text(adr_text(status="aceppted"), encoding="utf-8")

    assert run_fix(typo, schema, dry_run=True, output_format="json") == 0
    data = json.loads(capsys.readouterr().out)
    assert data["fixed"] == 1
    assert data["files"][0]["actions"] == [
        {"code": "F021", "description": 'field "status": "aceppted" -> "accepted"', "applied": True}
    ]
    assert "status: aceppted\n" in typo.read_text(encoding="utf-8")

    assert run_fix(corpus, schema, output_format="text") == 0
    assert capsys.readouterr().out.endswith("1 fix(es) applied, 0 skipped\n")
    assert "status: accepted\n" in typo.read_text(encoding="utf-8")

    typo.write_text(adr_text(status="zzz"), encoding="utf-8")
    assert run_fix(typo, schema) == 1
    assert 'no close match for "zzz" in [proposed, accepted, rejected]' in capsys.readouterr().out

    assert run_fix(corpus, None) == 1
    assert "no schema found" in capsys.readouterr().err


def test_rename_and_deprecate_commands(corpus: Path, capsys) -> None:
    schema = corpus / "schema.kdl"

    assert run_rename(corpus / "adr-001-use-postgres.md", "ADR-010", corpus, schema, output_format="json") == 0
    data = json.loads(capsys.readouterr().out)
    assert Path(data["new_path"]).name == "adr-010-use-postgres.md"
    assert [Path(p).name for p in data["updated"]] == ["adr-002.md"]

    assert run_rename(corpus / "adr-002.md", "ADR-002", corpus, schema) == 1
    assert "old ID and new ID are the same: ADR-002" in capsys.readouterr().err

    assert run_deprecate(corpus / "adr-010-use-postgres.md", schema, directory=corpus) == 0
    out = capsys.readouterr().out
    assert out.startswith("ADR-010: status=deprecated\n")
    assert "  backlink: ADR-002 (enables) references deprecated ADR-010\n" in out


def test_stats_and_describe_commands(corpus: Path, capsys) -> None:
    schema = corpus / "schema.kdl"

    assert run_stats(corpus, schema, users_path=corpus / "users.yaml", output_format="json") == 0
    data = json.loads(capsys.readouterr().out)
    assert data["total_docs"] == 2
    assert data["validation"] == {"ok": 2, "errors": 0, "by_code": {}}
    assert data["graph"]["most_referenced"] == {"id": "ADR-001", "backlinks": 1}

    assert run_describe(schema) == 0
    assert capsys.readouterr().out.startswith("Types:\n  adr - Architecture decision record\n")
    assert run_describe(schema, doc_type="adr", field="status", output_format="json") == 0
    assert json.loads(capsys.readouterr().out)["values"] == ["proposed", "accepted", "rejected"]
    assert run_describe(schema, export=True, output_format="text") == 0
    assert json.loads(capsys.readouterr().out)["types"][0]["name"] == "adr"
    assert run_describe(schema, doc_type="adr", field="owner") == 1
    assert "adr.owner" in capsys.readouterr().err


def test_cli_lifecycle_commands(corpus: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["describe", "-d", str(corpus), "--relations", "--format", "text"])
    assert result.exit_code == 0
    assert result.stdout.startswith("Relations:\n  supersedes -> superseded_by")

    result = runner.invoke(cli, ["describe", "-d", str(corpus), "--field", "status"])
    assert result.exit_code == 2
    assert "--field requires --type" in result.output

    result = runner.invoke(cli, ["stats", "-d", str(corpus), "--format", "text"])
    assert result.exit_code == 0
    assert result.stdout.startswith("Documents: 2\n")

    result = runner.invoke(
        cli,
        [
            "deprecate",
            str(corpus / "adr-002.md"),
            "--superseded-by",
            "ADR-001",
            "-d",
            str(corpus),
            "--dry-run",
            "--format",
            "text",
        ],
    )
    assert result.exit_code == 0
    assert result.stdout.startswith("ADR-002: status=superseded, superseded_by=ADR-001 (dry-run)\n")
    assert "status: accepted\n" in (corpus / "adr-002.md").read_text(encoding="utf-8")
