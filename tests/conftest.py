"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from mddb.schema import Schema, parse_schema
from mddb.users import UserDirectory

SCHEMA_KDL = """\
// Architecture decision records
type "adr" description="Architecture decision record" {
    field "title" type="string" required=#true
    field "status" type="enum" required=#true {
        values "proposed" "accepted" "rejected"
    }
    field "author" type="user" required=#true description="who wrote it"
    field "date" type="string" required=#true pattern="^[0-9]{4}-[0-9]{2}-[0-9]{2}$"
    field "tags" type="string[]"

    rule "rejection-needs-reason" {
        when "status" equals="rejected"
        then-required "reason"
    }

    section "Decision" required=#true
    section "Consequences" required=#true {
        section "Positive" required=#true
        section "Negative"
    }
}

relation "supersedes" inverse="superseded_by" cardinality="one" acyclic=#true
relation "enables" inverse="enabled_by"

ref-format {
    doc-id pattern="^[A-Z]+-[0-9]+$"
}
"""

USERS_YAML = """\
users:
  onni:
    name: Onni Hakala
    email: onni@example.com
    teams: [platform]
  maria:
    name: Maria
teams:
  platform:
    name: Platform
"""

VALID_ADR = """\
---
type: adr
title: "Use PostgreSQL"
status: accepted
author: "@onni"
date: "2025-01-10"
---

# Decision

We will use PostgreSQL.

# Consequences

## Positive

- Mature ecosystem

## Negative

- Operational overhead
"""


def adr_text(extra: str = "", status: str = "accepted", title: str = "A decision") -> str:
    """A valid ADR with optional extra front-matter lines."""
    lines = [
        "---",
        "type: adr",
        f'title: "{title}"',
        f"status: {status}",
        'author: "@onni"',
        'date: "2025-01-10"',
    ]
    if extra:
        lines.append(extra.rstrip("\n"))
    lines += [
        "---",
        "",
        "# Decision",
        "",
        "Decided.",
        "",
        "# Consequences",
        "",
        "## Positive",
        "",
        "- Good",
        "",
    ]
    return "\n".join(lines)


@pytest.fixture
def schema_text() -> str:
    return SCHEMA_KDL


@pytest.fixture
def schema() -> Schema:
    return parse_schema(SCHEMA_KDL)


@pytest.fixture
def users() -> UserDirectory:
    return UserDirectory.from_str(USERS_YAML)


@pytest.fixture
def corpus(tmp_path: Path) -> Path:
    """A small document directory with schema.kdl and users.yaml."""
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "schema.kdl").write_text(SCHEMA_KDL, encoding="utf-8")
    (docs / "users.yaml").write_text(USERS_YAML, encoding="utf-8")
    (docs / "adr-001-use-postgres.md").write_text(VALID_ADR, encoding="utf-8")
    (docs / "adr-002.md").write_text(
        adr_text("enables: [ADR-001]", title="Adopt migrations"),
        encoding="utf-8",
    )
    return docs
