from pathlib import Path

import pytest

from mddb.errors import SchemaParseError
from mddb.schema import load_schema, parse_schema
from mddb.schema.kdl import parse_kdl


def test_fixture_schema_shape(schema) -> None:
    adr = schema.get_type("adr")

    assert schema.type_names() == ["adr"]
    assert adr.description == "Architecture decision record"
    assert [f.name for f in adr.fields] == ["title", "status", "author", "date", "tags"]
    assert adr.get_field("status").values == ("proposed", "accepted", "rejected")
    assert adr.get_field("status").type_label == "enum(proposed, accepted, rejected)"
    assert adr.get_field("author").description == "who wrote it"
    assert adr.get_field("tags").type == "string[]"
    assert adr.section_names() == ["Decision", "Consequences", "Consequences > Positive", "Consequences > Negative"]
    assert adr.rules[0].when_field == "status"
    assert adr.rules[0].then_required == ["reason"]


def test_relations_and_ref_formats(schema) -> None:
    assert schema.all_relation_field_names() == ["supersedes", "superseded_by", "enables", "enabled_by"]
    assert schema.relation_cardinality("superseded_by") == "one"
    assert schema.relation_cardinality("enabled_by") == "many"
    assert schema.inverse_of("superseded_by") == "supersedes"
    assert schema.inverse_of("enables") == "enabled_by"
    assert schema.acyclic_relation_names() == {"supersedes", "superseded_by"}
    assert schema.find_relation("unknown") is None
    assert schema.ref_formats[0].pattern == "^[A-Z]+-[0-9]+$"


def test_kdl_comments_slashdash_and_raw_strings() -> None:
    nodes = parse_kdl(
        "\n".join(
            [
                "/* block /* nested */ comment */",
                'a "x" r"raw \\d" #"also "raw""# key=#false /-skipped=1 // trailing',
                "/-b {",
                "    c",
                "}",
                "d 1 2.5 0x10; e \\",
                "  continued=#null",
            ]
        )
    )

    assert [n.name for n in nodes] == ["a", "d", "e"]
    assert nodes[0].args == ["x", "raw \\d", 'also "raw"']
    assert nodes[0].props == {"key": False}
    assert nodes[1].args == [1, 2.5, 16]
    assert nodes[2].props == {"continued": None}


def test_kdl_children_and_positions() -> None:
    nodes = parse_kdl('outer {\n  inner "v"\n}\n')
    inner = nodes[0].children[0]
    assert inner.name == "inner"
    assert (inner.line, inner.column) == (2, 3)


def test_kdl_errors_report_position() -> None:
    with pytest.raises(SchemaParseError) as excinfo:
        parse_kdl('a "unterminated\n')
    assert excinfo.value.line == 1
    assert excinfo.value.column == 3

    with pytest.raises(SchemaParseError, match="unclosed"):
        parse_kdl("a {\n  b\n")


def test_field_defaults_and_section_constraints() -> None:
    schema = parse_schema(
        "\n".join(
            [
                'type "doc" folder="docs" max_count=1 {',
                '    field "status" type="enum" default="draft" {',
                '        values "draft" "final"',
                "    }",
                '    section "Options" {',
                '        table required=#true {',
                '            column "Option" required=#true',
                '            column "Score" type="number"',
                "        }",
                "        content min-paragraphs=1",
                "    }",
                '    section "Steps" {',
                "        list min-items=2",
                '        diagram type="mermaid"',
                "    }",
                "}",
            ]
        )
    )
    doc = schema.get_type("doc")

    assert doc.folder == "docs"
    assert doc.max_count == 1
    assert doc.get_field("status").default == "draft"
    options = doc.sections[0]
    assert options.table.required
    assert [(c.name, c.type, c.required) for c in options.table.columns] == [
        ("Option", "string", True),
        ("Score", "number", False),
    ]
    assert options.content.min_paragraphs == 1
    steps = doc.sections[1]
    assert steps.list_def.required and steps.list_def.min_items == 2
    assert steps.diagram.language == "mermaid"


@pytest.mark.parametrize(
    "text, message",
    [
        ('type "a" {\n    field "s" type="enum"\n}\n', "has no values defined"),
        ('type "a"\ntype "a"\n', "duplicate type 'a'"),
        ('widget "x"\n', "unknown top-level node"),
        ("ref-format {\n    doc-id\n}\n", "missing pattern"),
        ('type "a" {\n    field "f" type="date"\n}\n', "unknown field type 'date'"),
        ('relation "r" cardinality="few"\n', "unknown cardinality"),
        ('type "a" {\n    rule "r" {\n        then-required "x"\n    }\n}\n', "no 'when' clause"),
    ],
)
def test_schema_errors(text: str, message: str) -> None:
    with pytest.raises(SchemaParseError, match=message):
        parse_schema(text)


def test_schema_error_carries_node_position() -> None:
    with pytest.raises(SchemaParseError) as excinfo:
        parse_schema('type "a" {\n    field "s" type="enum"\n}\n')
    assert excinfo.value.line == 2
    assert excinfo.value.column == 5

    with pytest.raises(SchemaParseError) as excinfo:
        parse_schema('type "a" {\n}\n\nrelation "r" cardinality="few"\n')
    assert (excinfo.value.line, excinfo.value.column) == (4, 1)
    assert str(excinfo.value).endswith("(line 4, column 1)")


def test_load_schema_prefixes_path(tmp_path: Path) -> None:
    path = tmp_path / "schema.kdl"
    path.write_text('bogus "x"\n', encoding="utf-8")

    with pytest.raises(SchemaParseError) as excinfo:
        load_schema(path)
    assert str(path) in excinfo.value.message
    assert excinfo.value.line == 1


def test_load_schema_reads_fixture(tmp_path: Path, schema_text: str) -> None:
    path = tmp_path / "schema.kdl"
    path.write_text("\ufeff" + schema_text, encoding="utf-8")
    assert load_schema(path).get_type("adr") is not None
