"""Shared browser handle for page objects.

Every page object owns a :class:`PageSession` instead of inheriting from a
base page.  The session bundles the Playwright :class:`~playwright.async_api.Page`,
the suite :class:`~storefront_e2e.config.Config`, a retry policy, and a
visual differ, and exposes the helpers all pages share: navigation, waits,
text access, screenshots, cookies, network mocking, and diagnostics.
"""

from __future__ import annotations

import asyncio
import json
from functools import partial
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

from playwright.async_api import Locator, Page, Route

from ..config import Config
from ..tester.comparator import DiffResult, FileBaselineStore, VisualDiffer
from ..tester.retry import RetryPolicy

T = TypeVar("T")

AXE_CDN_URL = "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.7.0/axe.min.js"

_PERFORMANCE_SCRIPT = """
() => {
    const entries = performance.getEntriesByType("navigation");
    if (entries.length === 0) {
        return null;
    }
    const nav = entries[0];
    const paint = performance.getEntriesByName("first-contentful-paint")[0];
    return {
        domContentLoaded: nav.domContentLoadedEventEnd - nav.startTime,
        load: nav.loadEventEnd - nav.startTime,
        firstContentfulPaint: paint ? paint.startTime : null,
        networkRequests: performance.getEntriesByType("resource").length,
    };
}
"""

_INJECT_AXE_SCRIPT = """
(src) => {
    if (!window.hasOwnProperty("axe")) {
        const script = document.createElement("script");
        script.src = src;
        document.head.appendChild(script);
    }
}
"""

_RUN_AXE_SCRIPT = """
() => new Promise((resolve, reject) => {
    window.axe.run(document, { reporter: "v2" }, (err, results) => {
        if (err) {
            reject(err);
            return;
        }
        resolve(results.violations);
    });
})
"""


class PageSession:
    """Playwright page plus the suite services page objects rely on."""

    def __init__(
        self,
        page: Page,
        config: Optional[Config] = None,
        *,
        retry: Optional[RetryPolicy] = None,
        differ: Optional[VisualDiffer] = None,
    ) -> None:
        self.page = page
        self.config = config or Config()
        self.retry = retry or RetryPolicy(
            self.config.retry.max_attempts,
            self.config.retry.initial_delay_ms,
        )
        self.differ = differ or VisualDiffer(
            FileBaselineStore(self.config.baselines_dir),
            default_threshold=self.config.visual_threshold,
        )

    # -- Common elements -----------------------------------------------------

    @property
    def header(self) -> Locator:
        return self.page.locator(".primary-header")

    @property
    def footer(self) -> Locator:
        return self.page.locator(".footer")

    @property
    def navigation_menu(self) -> Locator:
        return self.page.locator("nav.menu")

    @property
    def loading_indicator(self) -> Locator:
        return self.page.locator(".loading-indicator")

    # -- Navigation ----------------------------------------------------------

    async def navigate(self, path: str = "/") -> None:
        """Open *path* relative to the configured base URL."""
        await self.page.goto(self.config.url_for(path))

    async def wait_for_page_load(self) -> None:
        """Wait for network idle, then for any loading indicator to go away."""
        await self.page.wait_for_load_state("networkidle")
        if await self.loading_indicator.is_visible():
            await self.loading_indicator.wait_for(state="hidden", timeout=30_000)

    async def click_and_wait_for_navigation(self, locator: Locator) -> None:
        async with self.page.expect_navigation():
            await locator.click()

    @property
    def current_url(self) -> str:
        return self.page.url

    async def get_page_title(self) -> str:
        return await self.page.title()

    # -- Element helpers -----------------------------------------------------

    async def get_text(self, locator: Locator) -> str:
        """Text content of *locator*, or an empty string when it has none."""
        return (await locator.text_content()) or ""

    async def is_element_present(self, locator: Locator) -> bool:
        return await locator.count() > 0

    async def wait_for_element_visible(self, locator: Locator, timeout: Optional[float] = None) -> None:
        await locator.wait_for(state="visible", timeout=timeout)

    async def scroll_to_element(self, locator: Locator) -> None:
        await locator.scroll_into_view_if_needed()

    async def scroll_to_bottom(self) -> None:
        await self.page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")

    async def execute_script(self, script: str, arg: Any = None) -> Any:
        return await self.page.evaluate(script, arg)

    # -- Visual regression ---------------------------------------------------

    async def visual_compare(
        self,
        locator: Locator,
        baseline_name: str,
        threshold: Optional[float] = None,
    ) -> DiffResult:
        """Screenshot *locator* and diff it against the named baseline.

        The pixel comparison runs in a thread-pool executor so it does not
        block the event loop.
        """
        screenshot = await locator.screenshot()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            partial(self.differ.compare_to_baseline, screenshot, baseline_name, threshold),
        )

    async def take_screenshot(self, name: str) -> Path:
        """Save a full-page screenshot as ``<screenshots_dir>/<name>.png``."""
        path = self.config.screenshots_dir / f"{name}.png"
        path.parent.mkdir(parents=True, exist_ok=True)
        await self.page.screenshot(path=str(path), full_page=True)
        return path

    # -- Network -------------------------------------------------------------

    async def mock_network_response(self, url: str, response_data: Any, status: int = 200) -> None:
        """Answer every request matching *url* with *response_data* as JSON."""
        body = json.dumps(response_data)

        async def _fulfill(route: Route) -> None:
            await route.fulfill(status=status, content_type="application/json", body=body)

        await self.page.route(url, _fulfill)

    # -- Diagnostics ---------------------------------------------------------

    async def get_performance_metrics(self) -> Optional[dict[str, Any]]:
        """Navigation timing for the current page, or ``None`` before any navigation."""
        return await self.page.evaluate(_PERFORMANCE_SCRIPT)

    async def check_accessibility(self) -> list[dict[str, Any]]:
        """Run axe-core against the current page and return its violations."""
        await self.page.evaluate(_INJECT_AXE_SCRIPT, AXE_CDN_URL)
        await self.page.wait_for_function("() => window.hasOwnProperty('axe')")
        return await self.page.evaluate(_RUN_AXE_SCRIPT)

    # -- Cookies -------------------------------------------------------------

    async def get_cookies(self) -> list[dict[str, Any]]:
        return await self.page.context.cookies()

    async def set_cookie(self, name: str, value: str) -> None:
        await self.page.context.add_cookies([{"name": name, "value": value, "url": self.page.url}])

    async def clear_cookies(self) -> None:
        await self.page.context.clear_cookies()

    # -- Resilience ----------------------------------------------------------

    async def retry_with_backoff(
        self,
        action: Callable[[], Awaitable[T]],
        max_attempts: Optional[int] = None,
        initial_delay_ms: Optional[float] = None,
    ) -> T:
        """Run *action* under the session's retry policy."""
        return await self.retry.run(action, max_attempts, initial_delay_ms)
