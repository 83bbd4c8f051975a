import pytest

from mddb.errors import FieldNotFoundError
from mddb.schema import describe, parse_schema


def test_overview(schema) -> None:
    assert describe.overview_text(schema) == (
        "Types:\n"
        "  adr - Architecture decision record\n"
        "\n"
        "Relations:\n"
        "  supersedes -> superseded_by  (one, acyclic)\n"
        "  enables -> enabled_by  (many)\n"
    )
    overview = describe.overview_to_json(schema)
    assert overview["types"] == [
        {"name": "adr", "description": "Architecture decision record", "fields": 5, "sections": 2}
    ]
    assert overview["relations"][0] == {
        "name": "supersedes",
        "inverse": "superseded_by",
        "cardinality": "one",
        "acyclic": True,
    }


def test_type_text(schema) -> None:
    text = describe.type_text(schema.require_type("adr"), schema)
    lines = text.splitlines()

    assert lines[0] == "Type: adr - Architecture decision record"
    assert "  title         string   required" in lines
    assert f"  {'author':<14}{'user':<9}{'required':<10}  who wrote it" in lines
    assert "  tags          string[]" in lines
    assert describe.DETAIL_INDENT + "values: proposed, accepted, rejected" in lines
    assert f"  # {'Decision':<20}required" in lines
    assert f"  ## {'Positive':<20}required" in lines
    assert "  ## Negative" in lines
    assert '  "rejection-needs-reason"  when status=rejected -> require reason' in lines
    assert text.endswith(
        "Relations (all types):\n  supersedes -> superseded_by  (one, acyclic)\n  enables -> enabled_by  (many)\n"
    )


def test_type_json_nests_sections(schema) -> None:
    data = describe.type_to_json(schema.require_type("adr"), schema)

    assert [f["name"] for f in data["fields"]] == ["title", "status", "author", "date", "tags"]
    assert data["fields"][1]["values"] == ["proposed", "accepted", "rejected"]
    assert data["sections"][1] == {
        "name": "Consequences",
        "required": True,
        "children": [{"name": "Positive", "required": True}, {"name": "Negative", "required": False}],
    }
    assert data["rules"] == [
        {
            "name": "rejection-needs-reason",
            "when_field": "status",
            "when_equals": "rejected",
            "then_required": ["reason"],
        }
    ]
    assert len(data["relations"]) == 2


def test_field(schema) -> None:
    adr = schema.require_type("adr")

    assert describe.field_text(describe.require_field(adr, "author")) == (
        "Field: author\n  type: user\n  required: true\n  description: who wrote it\n"
    )
    assert describe.field_text(describe.require_field(adr, "status")).splitlines()[1] == (
        "  type: enum(proposed, accepted, rejected)"
    )
    assert describe.field_to_json(describe.require_field(adr, "date"))["pattern"] == "^[0-9]{4}-[0-9]{2}-[0-9]{2}$"
    with pytest.raises(FieldNotFoundError) as excinfo:
        describe.require_field(adr, "nope")
    assert excinfo.value.key == "adr.nope"


def test_relations_and_export(schema) -> None:
    assert describe.relations_text(parse_schema('type "note" {\n}\n')) == "No relations defined.\n"
    assert describe.relations_text(schema).startswith("Relations:\n  supersedes")

    exported = describe.export_schema(schema)
    assert exported["ref_formats"] == [{"name": "doc-id", "pattern": "^[A-Z]+-[0-9]+$"}]
    assert exported["types"][0]["fields"][2]["description"] == "who wrote it"
    assert "relations" not in exported["types"][0]
