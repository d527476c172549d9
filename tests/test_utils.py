"""Unit tests for utility functions (storefront_e2e.utils).

Tests cover:
- sanitize_name (various inputs)
- wait_for_site (mock httpx)
- Rich output helpers
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from storefront_e2e.utils import print_summary_table, sanitize_name, wait_for_site


# ---------------------------------------------------------------------------
# sanitize_name
# ---------------------------------------------------------------------------


class TestSanitizeName:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("standard", "standard"),
            ("Performance Glitch", "performance-glitch"),
            ("  locked_out  ", "locked_out"),
            ("a//b..c", "a-b-c"),
            ("---", ""),
        ],
    )
    def test_sanitize(self, raw: str, expected: str):
        assert sanitize_name(raw) == expected


# ---------------------------------------------------------------------------
# wait_for_site
# ---------------------------------------------------------------------------


def _mock_client(get: AsyncMock) -> MagicMock:
    client = MagicMock()
    client.get = get
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


class TestWaitForSite:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_up_on_first_response(self):
        get = AsyncMock(return_value=MagicMock(status_code=200))
        with patch("storefront_e2e.utils.httpx.AsyncClient", return_value=_mock_client(get)):
            assert await wait_for_site("https://shop.test", timeout=5, interval=0.01) is True
        get.assert_awaited_once_with("https://shop.test")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_client_errors_count_as_up(self):
        get = AsyncMock(return_value=MagicMock(status_code=404))
        with patch("storefront_e2e.utils.httpx.AsyncClient", return_value=_mock_client(get)):
            assert await wait_for_site("https://shop.test", timeout=5, interval=0.01) is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_retries_after_connection_error(self):
        get = AsyncMock(
            side_effect=[httpx.ConnectError("refused"), MagicMock(status_code=200)]
        )
        with patch("storefront_e2e.utils.httpx.AsyncClient", return_value=_mock_client(get)):
            assert await wait_for_site("https://shop.test", timeout=5, interval=0.01) is True
        assert get.await_count == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_times_out_on_server_errors(self):
        get = AsyncMock(return_value=MagicMock(status_code=503))
        with patch("storefront_e2e.utils.httpx.AsyncClient", return_value=_mock_client(get)):
            assert await wait_for_site("https://shop.test", timeout=0.05, interval=0.01) is False


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestRichHelpers:
    @pytest.mark.unit
    def test_print_summary_table_rows(self):
        with patch("storefront_e2e.utils.console") as console:
            print_summary_table({"Total": 4, "Passed": 2}, title="Results")
        table = console.print.call_args_list[0].args[0]
        assert table.title == "Results"
        assert table.row_count == 2
