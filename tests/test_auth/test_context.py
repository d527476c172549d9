"""Unit tests for authenticated contexts (storefront_e2e.auth.context).

Tests cover:
- open_authenticated_context logs in, saves state, returns the open context
- The context is closed when login fails
- open_authenticated_request: bearer-token login, storage-state fallback,
  missing or unreadable state file, unreachable login endpoint,
  locked-out users
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError

from storefront_e2e.auth.context import open_authenticated_context, open_authenticated_request
from storefront_e2e.auth.state import StorageStateError
from storefront_e2e.auth.users import TestUser

STANDARD = TestUser(role="standard", username="standard_user", password="secret_sauce")
LOCKED_OUT = TestUser(role="locked_out", username="locked_out_user", password="secret_sauce")


def api_response(ok: bool, payload=None) -> MagicMock:
    response = MagicMock(name="response")
    response.ok = ok
    response.json = AsyncMock(return_value=payload or {})
    return response


def request_context(response=None, post_error=None) -> MagicMock:
    request = MagicMock(name="request_context")
    request.post = AsyncMock(return_value=response, side_effect=post_error)
    request.dispose = AsyncMock()
    return request


def mock_playwright(*contexts: MagicMock) -> MagicMock:
    pw = MagicMock(name="playwright")
    pw.request.new_context = AsyncMock(side_effect=list(contexts))
    return pw


# ---------------------------------------------------------------------------
# open_authenticated_context
# ---------------------------------------------------------------------------


class TestOpenAuthenticatedContext:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_returns_logged_in_context(self, config, fake_page, mock_expect):
        context = MagicMock(name="context")
        context.new_page = AsyncMock(return_value=fake_page)
        context.storage_state = AsyncMock()
        context.close = AsyncMock()
        browser = MagicMock(name="browser")
        browser.new_context = AsyncMock(return_value=context)

        result = await open_authenticated_context(browser, config, STANDARD)

        assert result is context
        fake_page.wait_for_url.assert_awaited_once_with("**/inventory.html")
        context.storage_state.assert_awaited_once_with(path=str(config.auth_state_path("standard")))
        context.close.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_closes_context_when_login_fails(self, config, fake_page, mock_expect):
        fake_page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        context = MagicMock(name="context")
        context.new_page = AsyncMock(return_value=fake_page)
        context.close = AsyncMock()
        browser = MagicMock(name="browser")
        browser.new_context = AsyncMock(return_value=context)

        with pytest.raises(PlaywrightError):
            await open_authenticated_context(browser, config, STANDARD)
        context.close.assert_awaited_once()


# ---------------------------------------------------------------------------
# open_authenticated_request
# ---------------------------------------------------------------------------


class TestOpenAuthenticatedRequest:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bearer_token_from_api_login(self, config):
        first = request_context(api_response(True, {"token": "abc123"}))
        second = request_context()
        pw = mock_playwright(first, second)

        result = await open_authenticated_request(pw, config, STANDARD)

        assert result is second
        first.post.assert_awaited_once_with(
            "/api/login", data={"username": "standard_user", "password": "secret_sauce"}
        )
        first.dispose.assert_awaited_once()
        kwargs = pw.request.new_context.await_args_list[1].kwargs
        assert kwargs["base_url"] == config.base_url
        assert kwargs["extra_http_headers"] == {
            "Accept": "application/json",
            "Authorization": "Bearer abc123",
        }

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_first_context_sends_json_accept(self, config):
        first = request_context(api_response(False))
        pw = mock_playwright(first)
        with patch("storefront_e2e.auth.context.console"):
            await open_authenticated_request(pw, config, STANDARD)
        kwargs = pw.request.new_context.await_args_list[0].kwargs
        assert kwargs["extra_http_headers"] == {"Accept": "application/json"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_falls_back_to_storage_state(self, config):
        state = {
            "cookies": [{"name": "session-username", "value": "standard_user", "domain": "www.saucedemo.com"}],
            "origins": [],
        }
        config.auth_state_path("standard").write_text(json.dumps(state), encoding="utf-8")
        first = request_context(api_response(False))
        second = request_context()
        pw = mock_playwright(first, second)

        with patch("storefront_e2e.auth.context.console"):
            result = await open_authenticated_request(pw, config, STANDARD)

        assert result is second
        first.dispose.assert_awaited_once()
        assert pw.request.new_context.await_args_list[1].kwargs["storage_state"] == state

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_state_file_returns_plain_context(self, config):
        first = request_context(api_response(False))
        pw = mock_playwright(first)

        with patch("storefront_e2e.auth.context.console") as console:
            result = await open_authenticated_request(pw, config, STANDARD)

        assert result is first
        first.dispose.assert_not_awaited()
        printed = " ".join(call.args[0] for call in console.print.call_args_list)
        assert "Storage state file for role 'standard' not found" in printed

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_endpoint_error_falls_back(self, config, tmp_path):
        state_dir = tmp_path / "states"
        state_dir.mkdir()
        (state_dir / "auth-state-standard.json").write_text("{}", encoding="utf-8")
        first = request_context(post_error=PlaywrightError("connection refused"))
        second = request_context()
        pw = mock_playwright(first, second)

        with patch("storefront_e2e.auth.context.console"):
            result = await open_authenticated_request(pw, config, STANDARD, state_dir=state_dir)

        assert result is second
        assert pw.request.new_context.await_args_list[1].kwargs["storage_state"] == {"cookies": [], "origins": []}

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["{not json", "[]", '{"cookies": "nope"}'])
    async def test_unreadable_state_file_raises(self, config, content: str):
        config.auth_state_path("standard").write_text(content, encoding="utf-8")
        first = request_context(api_response(False))
        pw = mock_playwright(first)

        with patch("storefront_e2e.auth.context.console"):
            with pytest.raises(StorageStateError):
                await open_authenticated_request(pw, config, STANDARD)

        first.dispose.assert_awaited_once()
        assert pw.request.new_context.await_count == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_ok_response_without_token_falls_back(self, config):
        first = request_context(api_response(True, {"status": "ok"}))
        pw = mock_playwright(first)
        with patch("storefront_e2e.auth.context.console"):
            result = await open_authenticated_request(pw, config, STANDARD)
        assert result is first

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_locked_out_user_gets_plain_context(self, config):
        config.auth_state_path("locked_out").write_text("{}", encoding="utf-8")
        first = request_context(api_response(False))
        pw = mock_playwright(first)
        with patch("storefront_e2e.auth.context.console"):
            result = await open_authenticated_request(pw, config, LOCKED_OUT)
        assert result is first
        assert pw.request.new_context.await_count == 1
