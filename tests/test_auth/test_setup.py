"""Unit tests for auth-state creation (storefront_e2e.auth.setup).

Tests cover:
- login_and_save_state drives the login form and saves storage state
- Locked-out users skip the inventory redirect wait
- The context is closed on success and failure
- create_auth_states skips locked-out users and records per-role failures
- Missing users file and unreachable site skip setup entirely
- A Chromium instance is launched and closed when no browser is given
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from storefront_e2e.auth.setup import AuthSetupReport, create_auth_states, login_and_save_state
from storefront_e2e.auth.users import TestUser, UsersFileError
from storefront_e2e.config import Config

STANDARD = TestUser(role="standard", username="standard_user", password="secret_sauce")
LOCKED_OUT = TestUser(role="locked_out", username="locked_out_user", password="secret_sauce")


def mock_browser(page) -> MagicMock:
    context = MagicMock(name="context")
    context.new_page = AsyncMock(return_value=page)
    context.storage_state = AsyncMock()
    context.close = AsyncMock()
    browser = MagicMock(name="browser")
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()
    return browser


# ---------------------------------------------------------------------------
# login_and_save_state
# ---------------------------------------------------------------------------


class TestLoginAndSaveState:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_saves_state_for_role(self, config, fake_page, mock_expect):
        browser = mock_browser(fake_page)
        context = browser.new_context.return_value

        path = await login_and_save_state(browser, config, STANDARD)

        assert path == config.auth_state_path("standard")
        fake_page.goto.assert_awaited_once_with("https://www.saucedemo.com/")
        fake_page.locators['[data-test="username"]'].fill.assert_awaited_once_with("standard_user")
        fake_page.locators['[data-test="password"]'].fill.assert_awaited_once_with("secret_sauce")
        fake_page.wait_for_url.assert_awaited_once_with("**/inventory.html")
        context.storage_state.assert_awaited_once_with(path=str(path))
        context.close.assert_awaited_once()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_locked_out_does_not_wait_for_redirect(self, config, fake_page, mock_expect):
        browser = mock_browser(fake_page)
        await login_and_save_state(browser, config, LOCKED_OUT)
        fake_page.wait_for_url.assert_not_awaited()
        fake_page.expect_navigation.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_context_closed_on_failure(self, config, fake_page, mock_expect):
        fake_page.wait_for_url.side_effect = PlaywrightTimeoutError("no redirect")
        browser = mock_browser(fake_page)
        context = browser.new_context.return_value

        with pytest.raises(PlaywrightTimeoutError):
            await login_and_save_state(browser, config, STANDARD)
        context.storage_state.assert_not_awaited()
        context.close.assert_awaited_once()


# ---------------------------------------------------------------------------
# create_auth_states
# ---------------------------------------------------------------------------


class TestCreateAuthStates:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_per_role_results(self, config):
        async def fake_login(browser, cfg, user):
            if user.role == "problem":
                raise PlaywrightError("login form never rendered")
            return cfg.auth_state_path(user.role)

        with patch("storefront_e2e.auth.setup.wait_for_site", AsyncMock(return_value=True)), \
             patch("storefront_e2e.auth.setup.login_and_save_state", side_effect=fake_login) as login, \
             patch("storefront_e2e.auth.setup.console"):
            report = await create_auth_states(config, browser=MagicMock())

        assert report.created == {"standard": config.auth_state_path("standard")}
        assert report.failed == {"problem": "login form never rendered"}
        assert report.skipped == ["locked_out"]
        assert report.ok is False
        assert [call.args[2].role for call in login.await_args_list] == ["standard", "problem"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_users_file(self, tmp_path: Path):
        config = Config(project_dir=tmp_path)
        with patch("storefront_e2e.auth.setup.wait_for_site", AsyncMock(return_value=True)) as site_check, \
             patch("storefront_e2e.auth.setup.console"):
            report = await create_auth_states(config, browser=MagicMock())

        assert "test-users.json" in report.skipped_reason
        assert report.created == {}
        site_check.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unreachable_site(self, config):
        with patch("storefront_e2e.auth.setup.wait_for_site", AsyncMock(return_value=False)), \
             patch("storefront_e2e.auth.setup.login_and_save_state", AsyncMock()) as login, \
             patch("storefront_e2e.auth.setup.console"):
            report = await create_auth_states(config, browser=MagicMock())

        assert "unreachable" in report.skipped_reason
        login.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_launches_and_closes_chromium(self, config):
        browser = MagicMock(name="browser")
        browser.close = AsyncMock()
        pw = MagicMock(name="playwright")
        pw.chromium.launch = AsyncMock(return_value=browser)
        manager = MagicMock(name="async_playwright")
        manager.__aenter__ = AsyncMock(return_value=pw)
        manager.__aexit__ = AsyncMock(return_value=False)

        with patch("storefront_e2e.auth.setup.wait_for_site", AsyncMock(return_value=True)), \
             patch("storefront_e2e.auth.setup.async_playwright", return_value=manager), \
             patch("storefront_e2e.auth.setup.login_and_save_state", AsyncMock(return_value=Path("x"))), \
             patch("storefront_e2e.auth.setup.console"):
            report = await create_auth_states(config)

        pw.chromium.launch.assert_awaited_once_with(headless=True, slow_mo=0)
        browser.close.assert_awaited_once()
        assert set(report.created) == {"standard", "problem"}
        assert report.ok is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_users_file_raises(self, config):
        config.users_path.write_text(json.dumps({"not": "a list"}), encoding="utf-8")
        with patch("storefront_e2e.auth.setup.console"):
            with pytest.raises(UsersFileError):
                await create_auth_states(config, browser=MagicMock())


class TestAuthSetupReport:
    @pytest.mark.unit
    def test_empty_report_is_ok(self):
        assert AuthSetupReport().ok is True

    @pytest.mark.unit
    def test_skip_reason_is_not_ok(self):
        assert AuthSetupReport(skipped_reason="missing users").ok is False
