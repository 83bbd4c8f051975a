from pathlib import Path

from mddb.discovery import FieldEquals
from mddb.markdown.document import Document
from mddb.search import SearchOptions, highlight, search_document, search_documents

DOC = """\
---
title: Use PostgreSQL
status: accepted
---

Intro mentions postgres once.

# Decision

We pick PostgreSQL
for storage.

# Notes

Nothing here.
"""


def test_highlight() -> None:
    assert highlight("Postgres and postgres", "postgres") == "*Postgres* and *postgres*"
    assert highlight("Postgres and postgres", "postgres", case_sensitive=True) == "Postgres and *postgres*"
    assert highlight("a.b", ".") == "a*.*b"


def test_search_document_frontmatter_and_body() -> None:
    matches = search_document(Document.from_str(DOC), "postgres", SearchOptions())

    assert [(m.section, m.line) for m in matches] == [
        ("frontmatter.title", None),
        ("(root)", 6),
        ("Decision", 10),
    ]
    assert matches[0].context == "title: Use *Postgres*QL"
    assert matches[2].context == "We pick *Postgres*QL for storage."


def test_section_and_field_filters() -> None:
    doc = Document.from_str(DOC)

    in_decision = search_document(doc, "postgres", SearchOptions(section="decision"))
    assert [m.section for m in in_decision] == ["Decision"]

    in_title = search_document(doc, "postgres", SearchOptions(field="title"))
    assert [m.section for m in in_title] == ["frontmatter.title"]

    sensitive = search_document(doc, "postgres", SearchOptions(case_sensitive=True))
    assert [m.section for m in sensitive] == ["(root)"]


def test_search_documents(tmp_path: Path) -> None:
    (tmp_path / "adr-001.md").write_text(DOC, encoding="utf-8")
    (tmp_path / "adr-002.md").write_text(DOC.replace("accepted", "proposed"), encoding="utf-8")
    (tmp_path / "adr-003.md").write_text("---\ntitle: Other\n---\nnothing\n", encoding="utf-8")

    results = search_documents(tmp_path, "postgres")
    assert [r.id for r in results] == ["ADR-001", "ADR-002"]
    assert results[0].title == "Use PostgreSQL"
    assert results[0].to_text().splitlines()[0] == f"ADR-001 {tmp_path / 'adr-001.md'} (Use PostgreSQL)"
    assert results[0].to_json()["matches"][1] == {
        "section": "(root)",
        "line": 6,
        "context": "Intro mentions *postgres* once.",
    }

    filtered = search_documents(tmp_path, "postgres", filters=[FieldEquals("status", "proposed")])
    assert [r.id for r in filtered] == ["ADR-002"]

    limited = search_documents(tmp_path, "postgres", SearchOptions(max_results=1))
    assert len(limited) == 1

    assert search_documents(tmp_path, "") == []
