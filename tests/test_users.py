from pathlib import Path

import pytest

from mddb.errors import UserConfigError
from mddb.users import UserDirectory


def test_lookup_users_and_teams(users) -> None:
    assert users.is_valid_user("onni")
    assert users.is_valid_user("@onni")
    assert not users.is_valid_user("@nobody")
    assert users.is_valid_ref("@maria")
    assert users.is_valid_ref("@team/platform")
    assert not users.is_valid_ref("@team/unknown")
    assert not users.is_valid_ref("maria")
    assert users.all_user_handles() == ["maria", "onni"]
    assert users.all_team_names() == ["platform"]
    assert users.users["onni"].email == "onni@example.com"


def test_expand_nested_team_members() -> None:
    directory = UserDirectory.from_str(
        "\n".join(
            [
                "users:",
                "  a: {teams: [platform]}",
                "  b: {teams: [infra]}",
                "  c: {}",
                "teams:",
                "  platform:",
                "    teams: [infra]",
                "  infra:",
                "    teams: [platform]",
            ]
        )
    )
    assert directory.expand_team_members("platform") == {"a", "b"}
    assert directory.expand_team_members("infra") == {"a", "b"}


def test_empty_file_is_empty_directory() -> None:
    directory = UserDirectory.from_str("")
    assert directory.all_user_handles() == []
    assert not directory.is_valid_ref("@anyone")


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "users: [a, b]\n",
        "users:\n  a: [x]\n",
        "users:\n  a:\n    teams: 3\n",
        "users: {a: {\n",
    ],
)
def test_malformed_config(text: str) -> None:
    with pytest.raises(UserConfigError):
        UserDirectory.from_str(text)


def test_from_file_prefixes_path(tmp_path: Path) -> None:
    path = tmp_path / "users.yaml"
    path.write_text("users: [a]\n", encoding="utf-8")
    with pytest.raises(UserConfigError, match="users.yaml"):
        UserDirectory.from_file(path)
