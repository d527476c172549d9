"""Saved browser storage state.

A storage-state file is what ``BrowserContext.storage_state(path=...)``
writes: the cookies and per-origin local storage of a logged-in session.
One file exists per role, named ``auth-state-<role>.json``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError
from rich.console import Console

from ..config import AUTH_STATE_PREFIX, auth_state_filename
from .users import AuthError

console = Console()

STATE_FILE_PREFIX = AUTH_STATE_PREFIX
STATE_FILE_GLOB = f"{STATE_FILE_PREFIX}*.json"


class StorageStateError(AuthError):
    """Raised when a storage-state file exists but cannot be parsed."""


class StorageState(BaseModel):
    """Cookies and local storage captured from an authenticated context."""

    cookies: list[dict[str, Any]] = Field(default_factory=list)
    origins: list[dict[str, Any]] = Field(default_factory=list)

    def cookie(self, name: str) -> Optional[dict[str, Any]]:
        for cookie in self.cookies:
            if cookie.get("name") == name:
                return cookie
        return None

    def as_playwright(self) -> dict[str, Any]:
        """Dict accepted by ``new_context(storage_state=...)``."""
        return {"cookies": list(self.cookies), "origins": list(self.origins)}


def auth_state_path(state_dir: Path, role: str) -> Path:
    return Path(state_dir) / auth_state_filename(role)


def load_storage_state(path: Path) -> Optional[StorageState]:
    """Parse *path*, returning ``None`` when the file does not exist."""
    state_file = Path(path)
    if not state_file.exists():
        return None
    try:
        return StorageState.model_validate(json.loads(state_file.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise StorageStateError(f"Unreadable storage state {state_file}: {exc}") from exc


def cleanup_auth_states(state_dir: Path) -> list[Path]:
    """Delete every ``auth-state-*.json`` in *state_dir* and return what was removed."""
    directory = Path(state_dir)
    if not directory.is_dir():
        return []

    removed: list[Path] = []
    for state_file in sorted(directory.glob(STATE_FILE_GLOB)):
        state_file.unlink()
        console.print(f"[dim]Removed auth state file: {state_file.name}[/dim]")
        removed.append(state_file)
    return removed
