from datetime import datetime, timezone
from pathlib import Path

from mddb.fix import closest_value, fix_document, fix_documents
from mddb.markdown.document import Document
from mddb.schema import parse_schema
from mddb.validation import validate_document

NOW = datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)

TASK_SCHEMA = """\
type "task" {
    field "title" type="string" required=#true
    field "state" type="enum" required=#true default="open" {
        values "open" "in-progress" "done"
    }
    field "priority" type="enum" {
        values "low" "high"
    }
    field "owner" type="user" required=#true
    field "created" type="string" required=#true default="$TODAY"
    section "Summary" required=#true
    section "Plan" required=#true {
        section "Risks" required=#true
    }
    section "Notes"
}
"""

BROKEN_TASK = "---\ntype: task\ntitle: Ship\npriority: hight\n---\n\n# Summary\n\nText.\n"


def test_closest_value() -> None:
    assert closest_value("aceppted", ["proposed", "accepted", "rejected"]) == "accepted"
    assert closest_value("DONE", ["open", "done"]) == "done"
    assert closest_value("zzz", ["open", "done"]) is None


def test_fix_document_repairs_what_it_can() -> None:
    task = parse_schema(TASK_SCHEMA).require_type("task")
    doc = Document.from_str(BROKEN_TASK)

    actions = fix_document(doc, task, NOW)

    assert [(a.code, a.applied) for a in actions] == [
        ("F010", True),
        ("F021", True),
        ("F010", False),
        ("F010", True),
        ("S010", True),
        ("S010", True),
    ]
    assert actions[0].description == 'added field state="open" (schema default: open)'
    assert actions[1].description == 'field "priority": "hight" -> "high"'
    assert actions[2].description == 'field "owner" has no default, manual fix needed'
    assert actions[3].description == 'added field created="2025-03-04" (schema default: $TODAY)'
    assert [a.description for a in actions[4:]] == ['added section "Plan"', 'added section "Plan > Risks"']

    assert doc.get_frontmatter().keys() == ["type", "title", "priority", "state", "created"]
    assert doc.get_field("priority") == "high"
    assert doc.body == "\n# Summary\n\nText.\n\n# Plan\n## Risks\n"
    remaining = validate_document(doc, parse_schema(TASK_SCHEMA))
    assert [d.code for d in remaining] == ["F010"]


def test_fix_documents_dry_run_and_apply(tmp_path: Path) -> None:
    schema = parse_schema(TASK_SCHEMA)
    broken = tmp_path / "task-1.md"
    broken.write_text(BROKEN_TASK, encoding="utf-8")
    (tmp_path / "readme.md").write_text("# Not managed\n", encoding="utf-8")

    dry = fix_documents(tmp_path, schema, dry_run=True, now=NOW)
    assert broken.read_text(encoding="utf-8") == BROKEN_TASK
    assert [f.path for f in dry.files] == [broken]
    assert (dry.fixed_count, dry.skipped_count) == (5, 1)
    text = dry.to_text()
    assert text.startswith(f"{broken}: (dry-run)\n  fixed F010: added field state=")
    assert "  skipped F010: field \"owner\" has no default, manual fix needed\n" in text
    assert text.endswith("5 fix(es) applied, 1 skipped (dry-run)\n")

    applied = fix_documents(broken, schema, now=NOW)
    assert applied.to_json()["fixed"] == 5
    assert "state: open\n" in broken.read_text(encoding="utf-8")

    again = fix_documents(tmp_path, schema, now=NOW)
    assert [(a.code, a.applied) for a in again.files[0].actions] == [("F010", False)]
