from pathlib import Path

from conftest import SCHEMA_KDL, VALID_ADR, adr_text
from mddb.markdown.document import Document
from mddb.schema import parse_schema
from mddb.validation import validate_directory, validate_document, validate_file, validate_text


def _codes(diagnostics) -> list[str]:
    return [d.code for d in diagnostics]


def test_valid_adr_has_no_diagnostics(schema, users) -> None:
    assert validate_document(Document.from_str(VALID_ADR), schema, users=users) == []


def test_missing_nested_section(schema, users) -> None:
    text = VALID_ADR.replace("## Positive\n\n- Mature ecosystem\n\n", "")
    diagnostics = validate_document(Document.from_str(text), schema, users=users)

    assert _codes(diagnostics) == ["S010"]
    assert "Consequences > Positive" in diagnostics[0].message
    assert diagnostics[0].hint == 'add heading: "## Positive"'


def test_enum_typo(schema, users) -> None:
    text = VALID_ADR.replace("status: accepted", 'status: "aceppted"')
    diagnostics = validate_document(Document.from_str(text), schema, users=users)

    assert _codes(diagnostics) == ["F021"]
    assert '"status"' in diagnostics[0].message
    assert '"aceppted"' in diagnostics[0].message
    assert diagnostics[0].location == "frontmatter.status"
    assert diagnostics[0].hint == "allowed values: proposed, accepted, rejected"


def test_missing_required_field_hint_includes_description(schema) -> None:
    text = VALID_ADR.replace('author: "@onni"\n', "")
    diagnostics = validate_document(Document.from_str(text), schema)

    assert _codes(diagnostics) == ["F010"]
    assert diagnostics[0].hint == "add 'author: <user>' to frontmatter (who wrote it)"


def test_frontmatter_and_type_checks(schema) -> None:
    assert _codes(validate_document(Document.from_str("# No header\n"), schema)) == ["F000"]
    assert _codes(validate_document(Document.from_str("---\ntitle: x\n---\n"), schema)) == ["F001"]

    unknown = validate_document(Document.from_str("---\ntype: memo\n---\n"), schema)
    assert _codes(unknown) == ["F002"]
    assert unknown[0].hint == "known types: adr"


def test_type_mismatch_and_pattern(schema) -> None:
    text = adr_text("tags: solo").replace('date: "2025-01-10"', 'date: "10.1.2025"')
    diagnostics = validate_document(Document.from_str(text), schema)

    assert _codes(diagnostics) == ["F030", "F020"]
    assert diagnostics[1].message == 'field "tags" expected string[], got string'


def test_conditional_rule(schema) -> None:
    rejected = adr_text(status="rejected")
    diagnostics = validate_document(Document.from_str(rejected), schema)
    assert _codes(diagnostics) == ["F040"]
    assert diagnostics[0].location == "frontmatter.reason"

    with_reason = adr_text("reason: too costly", status="rejected")
    assert validate_document(Document.from_str(with_reason), schema) == []


def test_user_references(schema, users) -> None:
    bare = adr_text().replace('author: "@onni"', "author: onni")
    assert _codes(validate_document(Document.from_str(bare), schema, users=users)) == ["U010"]

    unknown = adr_text().replace('author: "@onni"', 'author: "@nobody"')
    diagnostics = validate_document(Document.from_str(unknown), schema, users=users)
    assert _codes(diagnostics) == ["U011"]
    assert diagnostics[0].hint == "known: maria, onni, team/platform"

    team = adr_text().replace('author: "@onni"', 'author: "@team/platform"')
    assert validate_document(Document.from_str(team), schema, users=users) == []


def test_ref_format_mismatch(schema) -> None:
    doc = Document.from_str(adr_text("enables: [adr 7]"))
    diagnostics = validate_document(doc, schema, known_ids={"ADR-001"})

    assert _codes(diagnostics) == ["R001"]
    assert diagnostics[0].severity == "warning"


def test_file_reference_resolution(tmp_path: Path) -> None:
    schema = parse_schema(
        'type "note" {\n    field "see" type="ref"\n}\n'
    )
    (tmp_path / "other.md").write_text("---\ntype: note\n---\n", encoding="utf-8")
    good = tmp_path / "good.md"
    good.write_text("---\ntype: note\nsee: other.md\n---\n", encoding="utf-8")
    bad = tmp_path / "bad.md"
    bad.write_text("---\ntype: note\nsee: missing.md\n---\n", encoding="utf-8")

    result = validate_directory(tmp_path, schema)

    assert result.for_path(good).diagnostics == []
    bad_diags = result.for_path(bad).diagnostics
    assert _codes(bad_diags) == ["R010"]
    assert bad_diags[0].hint == f"resolved to: {tmp_path / 'missing.md'}"


def test_table_and_block_constraints() -> None:
    schema = parse_schema(
        "\n".join(
            [
                'type "plan" {',
                '    section "Owners" {',
                "        table required=#true {",
                '            column "Task" required=#true',
                '            column "Owner" type="user" required=#true',
                "        }",
                "    }",
                '    section "Steps" {',
                "        list min-items=2",
                '        diagram type="mermaid"',
                "        content min-paragraphs=2",
                "    }",
                "}",
            ]
        )
    )
    text = "\n".join(
        [
            "---",
            "type: plan",
            "---",
            "",
            "# Owners",
            "",
            "| Task | Owner |",
            "|------|-------|",
            "| Ship | onni |",
            "| Test |  |",
            "",
            "# Steps",
            "",
            "- only one",
            "",
        ]
    )
    diagnostics = validate_document(Document.from_str(text), schema)

    assert _codes(diagnostics) == ["U010", "S022", "S030", "S031", "S032"]
    assert diagnostics[0].location == 'section "Owners" > table > Owner[0]'
    assert diagnostics[4].hint == "add a ```mermaid code block to this section"


def test_directory_validation_skips_untyped_files(corpus: Path, schema, users) -> None:
    (corpus / "README.md").write_text("# Just notes\n", encoding="utf-8")

    result = validate_directory(corpus, schema, users=users)

    assert [f.path.name for f in result.files] == ["adr-001-use-postgres.md", "adr-002.md"]
    assert result.error_count == 0
    assert result.warning_count == 0


def test_max_count_reported_on_first_excess_document(tmp_path: Path) -> None:
    schema = parse_schema('type "index" max_count=1 {\n}\n')
    for name in ("a.md", "b.md"):
        (tmp_path / name).write_text("---\ntype: index\n---\n", encoding="utf-8")

    result = validate_directory(tmp_path, schema)

    assert result.for_path(tmp_path / "a.md").diagnostics == []
    [diag] = result.for_path(tmp_path / "b.md").diagnostics
    assert diag.code == "T010"
    assert diag.message == 'type "index" has 2 document(s) but max_count is 1'


def test_validate_file_and_text(corpus: Path, schema) -> None:
    result = validate_file(corpus / "adr-002.md", schema)
    assert not result.has_errors

    text_result = validate_text("---\ntype: adr\n---\n", parse_schema(SCHEMA_KDL))
    assert str(text_result.files[0].path) == "<stdin>"
    assert text_result.error_count == 6


def test_report_formats(schema) -> None:
    text = VALID_ADR.replace("status: accepted", "status: nope")
    result = validate_text(text, schema, label="adr.md")

    report = result.to_report()
    assert "adr.md\n  error[F021]: field \"status\" has invalid value \"nope\"" in report
    assert report.endswith("result: 1 error(s), 0 warning(s)\n")
    assert result.to_compact() == 'adr.md:F021:error:frontmatter.status:field "status" has invalid value "nope"\n'
    assert result.to_json()["errors"] == 1
    assert "| adr.md | error | F021 | frontmatter.status |" in result.to_markdown()


OWNERS_SCHEMA = "\n".join(
    [
        'type "plan" {',
        '    field "code" type="string" pattern="[unclosed"',
        '    section "Owners" {',
        "        table required=#true {",
        '            column "Task" required=#true',
        '            column "Owner" required=#true',
        "        }",
        "    }",
        "}",
    ]
)


def test_required_table_and_columns() -> None:
    schema = parse_schema(OWNERS_SCHEMA)

    no_table = validate_document(Document.from_str("---\ntype: plan\n---\n\n# Owners\n\nNobody yet.\n"), schema)
    assert _codes(no_table) == ["S020"]
    assert no_table[0].message == 'section "Owners" requires a table but none found'

    text = "---\ntype: plan\n---\n\n# Owners\n\n| Task |\n|------|\n| Ship |\n"
    [missing_column] = validate_document(Document.from_str(text), schema)
    assert missing_column.code == "S021"
    assert missing_column.message == 'table in "Owners" missing required column "Owner"'
    assert missing_column.location == 'section "Owners" > table'


def test_invalid_schema_pattern_is_a_warning() -> None:
    schema = parse_schema(OWNERS_SCHEMA)
    text = "---\ntype: plan\ncode: anything\n---\n\n# Owners\n\n| Task | Owner |\n|---|---|\n| Ship | x |\n"

    [diagnostic] = validate_document(Document.from_str(text), schema)

    assert (diagnostic.code, diagnostic.severity, diagnostic.location) == ("S000", "warning", "schema")
    assert diagnostic.message.startswith('invalid regex pattern in schema for "code":')


def test_directory_validation_reports_unparseable_file(corpus: Path, schema, users) -> None:
    broken = corpus / "adr-003.md"
    broken.write_text("---\ntitle: [unclosed\n---\n\n# Decision\n", encoding="utf-8")

    result = validate_directory(corpus, schema, users=users)

    assert [f.path.name for f in result.files] == ["adr-001-use-postgres.md", "adr-002.md", "adr-003.md"]
    [diagnostic] = result.for_path(broken).diagnostics
    assert diagnostic.code == "E000"
    assert diagnostic.message.startswith("failed to parse: invalid YAML in frontmatter")
    assert result.for_path(corpus / "adr-002.md").diagnostics == []
    assert result.error_count == 1
