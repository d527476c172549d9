"""Storefront E2E configuration.

Centralised, typed configuration for the suite.  Settings use Pydantic v2
models so they are validated at construction time and can be serialised to
and from JSON or environment variables.  A single :class:`Config` is built by
the pytest plugin or the CLI and handed to every page object, fixture, and
lifecycle hook that needs it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from .utils import sanitize_name

DEFAULT_BASE_URL = "https://www.saucedemo.com"
AUTH_STATE_PREFIX = "auth-state-"

_TRUTHY = {"1", "true", "yes", "on"}


def auth_state_filename(role: str) -> str:
    """``"Performance Glitch"`` -> ``"auth-state-performance-glitch.json"``."""
    return f"{AUTH_STATE_PREFIX}{sanitize_name(role)}.json"


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUTHY


class BrowserConfig(BaseModel):
    """Launch and context options for the browser under automation."""

    name: Literal["chromium", "firefox", "webkit"] = Field(default="chromium")
    headless: bool = Field(default=True)
    slow_mo_ms: int = Field(default=0, ge=0, description="Delay added to every Playwright operation")
    viewport_width: int = Field(default=1280, ge=1)
    viewport_height: int = Field(default=720, ge=1)
    default_timeout_ms: int = Field(default=30_000, ge=1000)

    @property
    def viewport(self) -> dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}

    def launch_options(self) -> dict[str, Any]:
        """Keyword arguments for ``BrowserType.launch``."""
        return {"headless": self.headless, "slow_mo": self.slow_mo_ms}


class RetryConfig(BaseModel):
    """Defaults for :class:`~storefront_e2e.tester.retry.RetryPolicy`."""

    max_attempts: int = Field(default=3, ge=1)
    initial_delay_ms: int = Field(default=1000, ge=0)


class Config(BaseModel):
    """Global suite configuration.

    Holds the target application URL, browser options, and every derived
    path the suite reads from or writes to.  All paths hang off
    ``project_dir`` so a test run can be redirected wholesale.
    """

    base_url: str = Field(default=DEFAULT_BASE_URL)
    project_dir: Path = Field(default=Path("."))
    ci: bool = Field(default=False, description="Running under continuous integration")
    cleanup_auth_states: bool = Field(
        default=False, description="Delete auth-state files during global teardown"
    )
    visual_threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def data_dir(self) -> Path:
        """Directory holding static test data."""
        return self.project_dir / "data"

    @property
    def users_path(self) -> Path:
        """Path to ``test-users.json``."""
        return self.data_dir / "test-users.json"

    @property
    def auth_state_dir(self) -> Path:
        """Directory where per-role storage-state files are written."""
        return self.project_dir

    @property
    def baselines_dir(self) -> Path:
        """Directory of approved visual-regression baselines."""
        return self.project_dir / "visual-baselines"

    @property
    def screenshots_dir(self) -> Path:
        return self.project_dir / "screenshots"

    @property
    def reports_dir(self) -> Path:
        return self.project_dir / "reports"

    @property
    def results_path(self) -> Path:
        """JSON array of per-test outcomes produced by a run."""
        return self.reports_dir / "test-results.json"

    @property
    def summary_path(self) -> Path:
        """Aggregated summary written by global teardown."""
        return self.reports_dir / "summary.json"

    def auth_state_path(self, role: str) -> Path:
        """Storage-state file for *role*; the name depends only on the role."""
        return self.auth_state_dir / auth_state_filename(role)

    def url_for(self, path: str) -> str:
        """Join *path* onto ``base_url``."""
        base = self.base_url.rstrip("/")
        if not path:
            return base
        return f"{base}{path}" if path.startswith("/") else f"{base}/{path}"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            BASE_URL, CI, CLEANUP_AUTH_STATES, E2E_PROJECT_DIR,
            E2E_VISUAL_THRESHOLD, E2E_HEADLESS, E2E_SLOW_MO, E2E_BROWSER,
            E2E_TIMEOUT, E2E_RETRY_ATTEMPTS, E2E_RETRY_DELAY_MS.
        """
        browser_kwargs: dict[str, Any] = {
            "headless": _env_flag("E2E_HEADLESS", True),
        }
        if os.environ.get("E2E_SLOW_MO"):
            browser_kwargs["slow_mo_ms"] = int(os.environ["E2E_SLOW_MO"])
        if os.environ.get("E2E_BROWSER"):
            browser_kwargs["name"] = os.environ["E2E_BROWSER"].strip().lower()
        if os.environ.get("E2E_TIMEOUT"):
            browser_kwargs["default_timeout_ms"] = int(os.environ["E2E_TIMEOUT"])

        retry_kwargs: dict[str, Any] = {}
        if os.environ.get("E2E_RETRY_ATTEMPTS"):
            retry_kwargs["max_attempts"] = int(os.environ["E2E_RETRY_ATTEMPTS"])
        if os.environ.get("E2E_RETRY_DELAY_MS"):
            retry_kwargs["initial_delay_ms"] = int(os.environ["E2E_RETRY_DELAY_MS"])

        kwargs: dict[str, Any] = {
            "base_url": os.environ.get("BASE_URL") or DEFAULT_BASE_URL,
            "project_dir": Path(os.environ.get("E2E_PROJECT_DIR", ".")),
            "ci": _env_flag("CI", False),
            "cleanup_auth_states": _env_flag("CLEANUP_AUTH_STATES", False),
            "browser": BrowserConfig(**browser_kwargs),
            "retry": RetryConfig(**retry_kwargs),
        }
        if os.environ.get("E2E_VISUAL_THRESHOLD"):
            kwargs["visual_threshold"] = float(os.environ["E2E_VISUAL_THRESHOLD"])

        return cls(**kwargs)

    def ensure_directories(self) -> None:
        """Create every output directory the suite writes into."""
        for directory in (self.screenshots_dir, self.reports_dir, self.auth_state_dir):
            directory.mkdir(parents=True, exist_ok=True)
