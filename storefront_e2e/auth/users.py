"""Test-user catalogue.

Users live in ``data/test-users.json`` as a list of
``{"type": ..., "username": ..., "password": ...}`` records, one per role.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

LOCKED_OUT_ROLE = "locked_out"
DEFAULT_ROLE = "standard"


class AuthError(Exception):
    """Base class for authentication setup failures."""


class UsersFileError(AuthError):
    """Raised when the test-users file cannot be read or validated."""


class UnknownRoleError(AuthError, LookupError):
    """Raised when no test user exists for the requested role."""

    def __init__(self, role: str) -> None:
        self.role = role
        super().__init__(f"User with role '{role}' not found in test-users.json")


class TestUser(BaseModel):
    """A storefront account the suite can log in as."""

    __test__ = False

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    role: str = Field(alias="type", min_length=1)
    username: str
    password: str

    @property
    def is_locked_out(self) -> bool:
        return self.role == LOCKED_OUT_ROLE


def load_test_users(path: Path) -> list[TestUser]:
    """Read and validate every user in *path*.

    Raises:
        UsersFileError: If the file is missing, is not a JSON array, or a
            record fails validation.
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise UsersFileError(f"Test users file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise UsersFileError(f"Test users file is not valid JSON: {exc}") from exc

    if not isinstance(raw, list):
        raise UsersFileError(f"Expected a JSON array of users in {path}")

    try:
        return [TestUser.model_validate(record) for record in raw]
    except ValidationError as exc:
        raise UsersFileError(f"Invalid user record in {path}: {exc}") from exc


def find_user(users: Iterable[TestUser], role: str) -> TestUser:
    """Return the first user whose role is *role*."""
    for user in users:
        if user.role == role:
            return user
    raise UnknownRoleError(role)
