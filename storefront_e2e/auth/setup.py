"""Create per-role storage states before a run.

Logging in through the UI once per role and saving the resulting cookies
lets tests start already authenticated.  Failures are collected per role in
an :class:`AuthSetupReport` so one broken account does not stop the others.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from playwright.async_api import Browser
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright
from pydantic import BaseModel, Field
from rich.console import Console

from ..config import Config
from ..pages.login import INVENTORY_PATH, LoginPage
from ..pages.session import PageSession
from ..utils import wait_for_site
from .users import TestUser, load_test_users

console = Console()

SITE_PROBE_TIMEOUT = 30


class AuthSetupReport(BaseModel):
    """What :func:`create_auth_states` did for each role."""

    created: dict[str, Path] = Field(default_factory=dict)
    failed: dict[str, str] = Field(default_factory=dict)
    skipped: list[str] = Field(default_factory=list)
    skipped_reason: str = Field(default="", description="Why setup did not run at all")

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped_reason


async def login_and_save_state(browser: Browser, config: Config, user: TestUser) -> Path:
    """Log *user* in through the UI in a fresh context and save its storage state.

    Returns:
        Path of the written ``auth-state-<role>.json``.
    """
    context = await browser.new_context(viewport=config.browser.viewport)
    try:
        page = await context.new_page()
        page.set_default_timeout(config.browser.default_timeout_ms)
        login_page = LoginPage(PageSession(page, config))
        await login_page.goto()
        await login_page.login(user.username, user.password)
        if not user.is_locked_out:
            await page.wait_for_url(f"**{INVENTORY_PATH}")

        state_path = config.auth_state_path(user.role)
        state_path.parent.mkdir(parents=True, exist_ok=True)
        await context.storage_state(path=str(state_path))
        return state_path
    finally:
        await context.close()


async def _create_for_users(
    browser: Browser, config: Config, users: list[TestUser], report: AuthSetupReport
) -> None:
    for user in users:
        if user.is_locked_out:
            report.skipped.append(user.role)
            continue

        console.print(f"Creating auth state for [cyan]{user.role}[/cyan] user...")
        try:
            report.created[user.role] = await login_and_save_state(browser, config, user)
        except (PlaywrightError, AssertionError) as exc:
            report.failed[user.role] = str(exc)
            console.print(f"[red]Failed to create auth state for {user.role} user: {exc}[/red]")
        else:
            console.print(f"[green]Auth state created for {user.role} user[/green]")


async def create_auth_states(config: Config, browser: Optional[Browser] = None) -> AuthSetupReport:
    """Write a storage-state file for every non-locked-out test user.

    When *browser* is ``None`` a Chromium instance is launched with the
    configured launch options and closed afterwards.
    """
    report = AuthSetupReport()

    if not config.users_path.exists():
        console.print("[yellow]Test users file not found. Skipping authentication setup.[/yellow]")
        report.skipped_reason = f"missing {config.users_path}"
        return report

    users = load_test_users(config.users_path)

    if not await wait_for_site(config.base_url, timeout=SITE_PROBE_TIMEOUT):
        console.print(f"[red]{config.base_url} is not reachable. Skipping authentication setup.[/red]")
        report.skipped_reason = f"{config.base_url} unreachable"
        return report

    if browser is not None:
        await _create_for_users(browser, config, users, report)
        return report

    async with async_playwright() as playwright:
        launched = await playwright.chromium.launch(**config.browser.launch_options())
        try:
            await _create_for_users(launched, config, users, report)
        finally:
            await launched.close()

    return report
