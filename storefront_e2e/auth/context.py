"""Authenticated browser and API contexts for tests."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from playwright.async_api import APIRequestContext, Browser, BrowserContext, Playwright
from playwright.async_api import Error as PlaywrightError
from rich.console import Console

from ..config import Config
from ..pages.login import INVENTORY_PATH, LoginPage
from ..pages.session import PageSession
from .state import StorageStateError, auth_state_path, load_storage_state
from .users import TestUser

console = Console()

API_LOGIN_PATH = "/api/login"
JSON_HEADERS = {"Accept": "application/json"}


async def open_authenticated_context(browser: Browser, config: Config, user: TestUser) -> BrowserContext:
    """Open a context and log *user* in through the UI.

    The context's storage state is saved to the role's auth-state file on
    the way out.  The caller owns the returned context and must close it.
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
        await context.storage_state(path=str(config.auth_state_path(user.role)))
    except BaseException:
        await context.close()
        raise
    return context


async def _api_login(request: APIRequestContext, user: TestUser) -> Optional[str]:
    """POST the credentials to the login endpoint; the bearer token or ``None``."""
    try:
        response = await request.post(
            API_LOGIN_PATH,
            data={"username": user.username, "password": user.password},
        )
        if not response.ok:
            return None
        payload = await response.json()
    except (PlaywrightError, ValueError):
        return None

    token = payload.get("token") if isinstance(payload, dict) else None
    return str(token) if token else None


async def open_authenticated_request(
    playwright: Playwright,
    config: Config,
    user: TestUser,
    state_dir: Optional[Path] = None,
) -> APIRequestContext:
    """Build an ``APIRequestContext`` that acts as *user*.

    Token login through the API is tried first.  When the endpoint is absent
    or refuses the credentials, the role's saved storage state is loaded
    instead.  With neither available, the plain context is returned.

    Raises:
        StorageStateError: The role's storage-state file exists but cannot
            be parsed.
    """
    request = await playwright.request.new_context(
        base_url=config.base_url,
        extra_http_headers=dict(JSON_HEADERS),
    )

    token = await _api_login(request, user)
    if token:
        await request.dispose()
        return await playwright.request.new_context(
            base_url=config.base_url,
            extra_http_headers={**JSON_HEADERS, "Authorization": f"Bearer {token}"},
        )

    console.print("[yellow]API login not available, using storage state from UI login[/yellow]")
    if user.is_locked_out:
        return request

    state_path = auth_state_path(state_dir or config.auth_state_dir, user.role)
    try:
        state = load_storage_state(state_path)
    except StorageStateError:
        await request.dispose()
        raise
    if state is None:
        console.print(
            f"[red]Storage state file for role '{user.role}' not found. Run UI login first.[/red]"
        )
        return request

    await request.dispose()
    return await playwright.request.new_context(
        base_url=config.base_url,
        extra_http_headers=dict(JSON_HEADERS),
        storage_state=state.as_playwright(),
    )
