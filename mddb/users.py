"""User and team directory used by ``user``-typed fields and table columns.

File layout (YAML)::

    users:
      onni:
        name: Onni Hakala
        email: onni@example.com
        teams: [platform]
    teams:
      platform:
        name: Platform
        teams: [infra]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import UserConfigError, read_text


@dataclass
class User:
    handle: str
    name: str | None = None
    email: str | None = None
    teams: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class Team:
    id: str
    name: str | None = None
    teams: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


def _str_list(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise UserConfigError(f"{where}: 'teams' must be a list")
    return [str(v) for v in value]


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


class UserDirectory:
    def __init__(self, users: dict[str, User] | None = None, teams: dict[str, Team] | None = None):
        self.users: dict[str, User] = users or {}
        self.teams: dict[str, Team] = teams or {}

    @classmethod
    def from_str(cls, text: str) -> "UserDirectory":
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise UserConfigError(f"invalid YAML in user config: {exc}") from exc
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise UserConfigError("user config must be a mapping with 'users' and 'teams'")

        users: dict[str, User] = {}
        raw_users = data.get("users") or {}
        if not isinstance(raw_users, dict):
            raise UserConfigError("'users' must be a mapping of handle to user")
        for handle, entry in raw_users.items():
            handle = str(handle)
            entry = entry or {}
            if not isinstance(entry, dict):
                raise UserConfigError(f"user '{handle}' must be a mapping")
            users[handle] = User(
                handle=handle,
                name=_opt_str(entry.get("name")),
                email=_opt_str(entry.get("email")),
                teams=_str_list(entry.get("teams"), f"user '{handle}'"),
                extra={k: v for k, v in entry.items() if k not in ("name", "email", "teams")},
            )

        teams: dict[str, Team] = {}
        raw_teams = data.get("teams") or {}
        if not isinstance(raw_teams, dict):
            raise UserConfigError("'teams' must be a mapping of id to team")
        for team_id, entry in raw_teams.items():
            team_id = str(team_id)
            entry = entry or {}
            if not isinstance(entry, dict):
                raise UserConfigError(f"team '{team_id}' must be a mapping")
            teams[team_id] = Team(
                id=team_id,
                name=_opt_str(entry.get("name")),
                teams=_str_list(entry.get("teams"), f"team '{team_id}'"),
                extra={k: v for k, v in entry.items() if k not in ("name", "teams")},
            )

        return cls(users, teams)

    @classmethod
    def from_file(cls, path: Path | str) -> "UserDirectory":
        path = Path(path)
        try:
            return cls.from_str(read_text(path))
        except UserConfigError as exc:
            raise UserConfigError(f"{path}: {exc}") from exc

    def is_valid_user(self, handle: str) -> bool:
        return handle.removeprefix("@") in self.users

    def is_valid_team(self, team_id: str) -> bool:
        return team_id in self.teams

    def is_valid_ref(self, ref: str) -> bool:
        """``@handle`` resolves against users, ``@team/id`` against teams."""
        if not ref.startswith("@"):
            return False
        name = ref[1:]
        if name.startswith("team/"):
            return self.is_valid_team(name[len("team/"):])
        return name in self.users

    def all_user_handles(self) -> list[str]:
        return sorted(self.users)

    def all_team_names(self) -> list[str]:
        return sorted(self.teams)

    def expand_team_members(self, team_id: str) -> set[str]:
        """Handles of every user in ``team_id`` or any team nested under it."""
        members: set[str] = set()
        visited: set[str] = set()
        stack = [team_id]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            members.update(h for h, u in self.users.items() if current in u.teams)
            team = self.teams.get(current)
            if team is not None:
                stack.extend(team.teams)
        return members
