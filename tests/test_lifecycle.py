from pathlib import Path

import pytest

from conftest import adr_text
from mddb.errors import InvalidFieldValueError, RenameError
from mddb.graph.graph import Edge
from mddb.lifecycle import deprecate_document, ref_field_names, rename_document, renamed_filename
from mddb.markdown.document import Document


def test_renamed_filename_keeps_slug() -> None:
    assert renamed_filename(Path("adr-001-use-postgres.md"), "ADR-001", "ADR-010") == "adr-010-use-postgres.md"
    assert renamed_filename(Path("ADR_002.md"), "ADR-002", "RFC-7") == "rfc-7.md"


def test_ref_field_names(schema) -> None:
    assert ref_field_names(schema) == {"supersedes", "superseded_by", "enables", "enabled_by"}


def test_rename_rewrites_fields_and_links(corpus: Path, schema) -> None:
    linking = corpus / "adr-003.md"
    linking.write_text(
        adr_text(title="Linker") + "\nSee [the database](adr-001-use-postgres.md) and [other](adr-002.md).\n",
        encoding="utf-8",
    )

    result = rename_document(corpus / "adr-001-use-postgres.md", "adr-010", schema, corpus)

    assert (result.old_id, result.new_id) == ("ADR-001", "ADR-010")
    assert result.new_path == corpus / "adr-010-use-postgres.md"
    assert result.new_path.exists()
    assert not (corpus / "adr-001-use-postgres.md").exists()
    assert result.updated == [corpus / "adr-002.md", linking]
    assert Document.from_file(corpus / "adr-002.md").get_field("enables") == ["ADR-010"]
    body = Document.from_file(linking).body
    assert "[the database](adr-010-use-postgres.md)" in body
    assert "[other](adr-002.md)" in body
    assert result.to_text().endswith("rename ADR-001 -> ADR-010: 2 file(s) updated, 1 file renamed\n")


def test_rename_dry_run_touches_nothing(corpus: Path, schema) -> None:
    before = (corpus / "adr-002.md").read_text(encoding="utf-8")

    result = rename_document(corpus / "adr-001-use-postgres.md", "ADR-010", schema, corpus, dry_run=True)

    assert result.updated == [corpus / "adr-002.md"]
    assert (corpus / "adr-001-use-postgres.md").exists()
    assert (corpus / "adr-002.md").read_text(encoding="utf-8") == before
    assert "  would rename: " in result.to_text()


def test_rename_refuses_same_id_and_existing_target(corpus: Path, schema) -> None:
    with pytest.raises(RenameError, match="same"):
        rename_document(corpus / "adr-002.md", "adr-002", schema, corpus)
    (corpus / "adr-010-use-postgres.md").write_text(adr_text(), encoding="utf-8")
    with pytest.raises(RenameError, match="already exists"):
        rename_document(corpus / "adr-001-use-postgres.md", "ADR-010", schema, corpus)
    assert (corpus / "adr-001-use-postgres.md").exists()


def test_deprecate_without_replacement(corpus: Path, schema) -> None:
    path = corpus / "adr-001-use-postgres.md"

    result = deprecate_document(path, schema, directory=corpus)

    assert Document.from_file(path).get_field("status") == "deprecated"
    assert result.updated == [path]
    assert result.backlinks == [Edge("ADR-002", "ADR-001", "enables")]
    assert result.to_text() == (
        "ADR-001: status=deprecated\n"
        f"  updated: {path}\n"
        "  backlink: ADR-002 (enables) references deprecated ADR-001\n"
        "  1 document(s) still reference ADR-001\n"
    )


def test_deprecate_links_replacement(corpus: Path, schema) -> None:
    old = corpus / "adr-002.md"

    result = deprecate_document(old, schema, superseded_by="adr-001", directory=corpus)

    deprecated = Document.from_file(old)
    assert deprecated.get_field("status") == "superseded"
    assert deprecated.get_field("superseded_by") == "ADR-001"
    assert Document.from_file(corpus / "adr-001-use-postgres.md").get_field("supersedes") == "ADR-002"
    assert result.updated == [old, corpus / "adr-001-use-postgres.md"]
    assert result.backlinks == []
    assert result.to_json()["superseded_by"] == "ADR-001"


def test_deprecate_warns_when_replacement_already_supersedes(corpus: Path, schema) -> None:
    (corpus / "adr-003.md").write_text(adr_text("supersedes: ADR-009"), encoding="utf-8")
    before = (corpus / "adr-003.md").read_text(encoding="utf-8")

    result = deprecate_document(corpus / "adr-002.md", schema, superseded_by="ADR-003", directory=corpus)

    assert (corpus / "adr-003.md").read_text(encoding="utf-8") == before
    assert result.warnings == [
        'ADR-003: field "supersedes" already has a value (cardinality=one), cannot add ADR-002'
    ]


def test_deprecate_refuses_self_supersession(corpus: Path, schema) -> None:
    with pytest.raises(InvalidFieldValueError):
        deprecate_document(corpus / "adr-002.md", schema, superseded_by="ADR-002")
