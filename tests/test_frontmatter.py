import pytest

from mddb.errors import FrontmatterParseError
from mddb.markdown.frontmatter import (
    Frontmatter,
    display_value,
    parse_yaml_value,
    values_equal,
    yaml_type_name,
)


def test_try_parse_splits_block_and_keeps_body_verbatim() -> None:
    raw = "---\ntitle: Hello\ntags: [a, b]\n---\n\n# Body\r\n\ntext  \n"
    fm, body = Frontmatter.try_parse(raw)

    assert fm is not None
    assert fm.get("title") == "Hello"
    assert fm.get("tags") == ["a", "b"]
    assert body == "\n# Body\r\n\ntext  \n"


def test_try_parse_without_fence_returns_whole_text() -> None:
    fm, body = Frontmatter.try_parse("# Just a heading\n")
    assert fm is None
    assert body == "# Just a heading\n"


def test_try_parse_rejects_non_mapping() -> None:
    with pytest.raises(FrontmatterParseError):
        Frontmatter.try_parse("---\n- a\n- b\n---\nbody\n")


def test_try_parse_rejects_invalid_yaml() -> None:
    with pytest.raises(FrontmatterParseError, match="invalid YAML in frontmatter"):
        Frontmatter.try_parse("---\ntitle: [unclosed\n---\nbody\n")


def test_dates_stay_strings() -> None:
    fm, _ = Frontmatter.try_parse("---\ndate: 2025-01-10\n---\n")
    assert fm.get("date") == "2025-01-10"


def test_dotted_path_lookup() -> None:
    fm = Frontmatter({"links": {"superseded_by": "ADR-002"}, "a.b": 1})

    assert fm.get("links.superseded_by") == "ADR-002"
    assert fm.get("a.b") == 1
    assert fm.get("links.missing") is None
    assert fm.has_path("links.superseded_by")
    assert not fm.has_path("links.missing")
    assert fm.get_display("links.superseded_by") == "ADR-002"
    assert fm.get_display("nope") is None


def test_set_from_str_coerces_values() -> None:
    fm = Frontmatter()
    fm.set_from_str("flag", "true")
    fm.set_from_str("count", "42")
    fm.set_from_str("ratio", "0.5")
    fm.set_from_str("tags", "[a, b]")
    fm.set_from_str("title", "Plain text")

    assert fm.get("flag") is True
    assert fm.get("count") == 42
    assert fm.get("ratio") == 0.5
    assert fm.get("tags") == ["a", "b"]
    assert fm.get("title") == "Plain text"


def test_parse_yaml_value_keeps_unparseable_strings() -> None:
    assert parse_yaml_value("1.2.3") == "1.2.3"
    assert parse_yaml_value("[unclosed") == "[unclosed"
    assert parse_yaml_value("-7") == -7


def test_parse_yaml_value_trims_and_rejects_loose_numbers() -> None:
    assert parse_yaml_value(" true") is True
    assert parse_yaml_value("false\n") is False
    assert parse_yaml_value(" 42 ") == 42
    assert parse_yaml_value("-0.5") == -0.5
    assert parse_yaml_value("1_0.5") == "1_0.5"
    assert parse_yaml_value("1_000") == "1_000"
    assert parse_yaml_value("nan.") == "nan."
    assert parse_yaml_value(" plain text ") == " plain text "


def test_to_yaml_string_keeps_insertion_order() -> None:
    fm = Frontmatter({"type": "adr", "title": "X"})
    fm.set("status", "accepted")

    assert fm.to_yaml_string() == "type: adr\ntitle: X\nstatus: accepted\n"
    assert Frontmatter().to_yaml_string() == ""


def test_round_trip_is_value_equal() -> None:
    original, _ = Frontmatter.try_parse(
        "---\ntype: adr\nnested:\n  k: [1, 2]\nflag: false\nempty: null\n---\n"
    )
    again, _ = Frontmatter.try_parse("---\n" + original.to_yaml_string() + "---\n")
    assert again == original


def test_display_and_type_names() -> None:
    assert display_value(None) == "null"
    assert display_value(True) == "true"
    assert display_value(["a", 1]) == "[a, 1]"
    assert yaml_type_name(True) == "bool"
    assert yaml_type_name(3.5) == "number"
    assert yaml_type_name({}) == "mapping"
    assert yaml_type_name([]) == "array"


def test_values_equal_distinguishes_bool_from_int() -> None:
    assert not values_equal(True, 1)
    assert values_equal({"a": [1, 2]}, {"a": [1, 2]})
