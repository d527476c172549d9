"""pytest plugin: browser fixtures, authentication, and result reporting.

Enable it from a ``conftest.py``::

    pytest_plugins = ["storefront_e2e.plugin"]

Browser-level fixtures are session scoped and bound to the session event
loop, so async tests that use them must run in that loop as well::

    pytestmark = [pytest.mark.e2e, pytest.mark.asyncio(loop_scope="session")]

Tests marked ``e2e`` drive a real browser against the live storefront and
are skipped unless ``--run-e2e`` is given.
"""

from __future__ import annotations

import asyncio
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from playwright.async_api import (
    APIRequestContext,
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from .auth import (
    DEFAULT_ROLE,
    TestUser,
    find_user,
    load_test_users,
    open_authenticated_context,
    open_authenticated_request,
)
from .config import Config
from .lifecycle import global_setup, global_teardown
from .pages import CartPage, CheckoutPage, LoginPage, PageSession, ProductListPage
from .tester.results import TestOutcome, TestStatus, save_outcomes

CONFIG_KEY = pytest.StashKey[Config]()
RECORDER_KEY = pytest.StashKey["OutcomeRecorder"]()


# ---------------------------------------------------------------------------
# Options and configuration
# ---------------------------------------------------------------------------


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("storefront-e2e", "storefront end-to-end suite")
    group.addoption("--e2e-base-url", default=None, help="Storefront URL (overrides BASE_URL)")
    group.addoption(
        "--e2e-headed",
        action="store_true",
        default=False,
        help="Show the browser window (ignored when CI is set)",
    )
    group.addoption(
        "--e2e-browser",
        default=None,
        choices=("chromium", "firefox", "webkit"),
        help="Browser engine to launch",
    )
    group.addoption("--e2e-role", default=DEFAULT_ROLE, help="Default user role for auth fixtures")
    group.addoption(
        "--e2e-global-setup",
        action="store_true",
        default=False,
        help="Create per-role auth-state files before the session",
    )
    group.addoption(
        "--e2e-report",
        action="store_true",
        default=False,
        help="Write reports/test-results.json and reports/summary.json after the session",
    )
    group.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run tests marked e2e against the live storefront",
    )


def build_config(pytest_config: pytest.Config) -> Config:
    """Environment-derived :class:`Config` with command-line overrides applied."""
    config = Config.from_env()

    base_url = pytest_config.getoption("--e2e-base-url")
    if base_url:
        config = config.model_copy(update={"base_url": base_url})

    browser_updates: dict = {}
    if pytest_config.getoption("--e2e-headed"):
        browser_updates["headless"] = False
    if pytest_config.getoption("--e2e-browser"):
        browser_updates["name"] = pytest_config.getoption("--e2e-browser")
    if config.ci:
        browser_updates["headless"] = True
    if browser_updates:
        config = config.model_copy(
            update={"browser": config.browser.model_copy(update=browser_updates)}
        )
    return config


class OutcomeRecorder:
    """Collects one :class:`TestOutcome` per test from the run's reports.

    The call phase decides the outcome.  A skip or failure during setup is
    recorded instead when the call phase never runs, and a teardown error
    turns an otherwise passing test into a failure.
    """

    def __init__(self) -> None:
        self._outcomes: dict[str, TestOutcome] = {}

    @property
    def outcomes(self) -> list[TestOutcome]:
        return list(self._outcomes.values())

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        if report.when == "call" or (report.when == "setup" and not report.passed):
            self._outcomes[report.nodeid] = TestOutcome(
                id=report.nodeid,
                status=TestStatus(report.outcome),
                duration_ms=round(report.duration * 1000, 3),
                error=report.longreprtext if report.failed else "",
            )
        elif report.when == "teardown" and report.failed:
            previous = self._outcomes.get(report.nodeid)
            self._outcomes[report.nodeid] = TestOutcome(
                id=report.nodeid,
                status=TestStatus.FAILED,
                duration_ms=previous.duration_ms if previous else None,
                error=report.longreprtext,
            )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "e2e: drives a real browser against the live storefront")
    config.stash[CONFIG_KEY] = build_config(config)

    recorder = OutcomeRecorder()
    config.stash[RECORDER_KEY] = recorder
    config.pluginmanager.register(recorder, "storefront-e2e-recorder")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="needs --run-e2e to drive a real browser")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


def pytest_sessionstart(session: pytest.Session) -> None:
    if session.config.getoption("--e2e-global-setup"):
        asyncio.run(global_setup(session.config.stash[CONFIG_KEY]))


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    if not session.config.getoption("--e2e-report"):
        return
    e2e_config = session.config.stash[CONFIG_KEY]
    recorder = session.config.stash[RECORDER_KEY]
    save_outcomes(recorder.outcomes, e2e_config.results_path)
    global_teardown(e2e_config)


# ---------------------------------------------------------------------------
# Browser fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def e2e_config(pytestconfig: pytest.Config) -> Config:
    """The suite configuration shared by every fixture."""
    return pytestconfig.stash[CONFIG_KEY]


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def playwright_instance() -> AsyncGenerator[Playwright, None]:
    async with async_playwright() as pw:
        yield pw


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def browser(playwright_instance: Playwright, e2e_config: Config) -> AsyncGenerator[Browser, None]:
    """Browser engine named by the configuration, launched once per session."""
    browser_type = getattr(playwright_instance, e2e_config.browser.name)
    browser = await browser_type.launch(**e2e_config.browser.launch_options())
    yield browser
    await browser.close()


@pytest_asyncio.fixture(loop_scope="session")
async def context(browser: Browser, e2e_config: Config) -> AsyncGenerator[BrowserContext, None]:
    """Fresh, isolated context per test."""
    context = await browser.new_context(
        viewport=e2e_config.browser.viewport,
        base_url=e2e_config.base_url,
    )
    context.set_default_timeout(e2e_config.browser.default_timeout_ms)
    yield context
    await context.close()


@pytest_asyncio.fixture(loop_scope="session")
async def page(context: BrowserContext) -> AsyncGenerator[Page, None]:
    page = await context.new_page()
    yield page
    await page.close()


@pytest.fixture
def page_session(page: Page, e2e_config: Config) -> PageSession:
    return PageSession(page, e2e_config)


# ---------------------------------------------------------------------------
# Authentication fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_role(request: pytest.FixtureRequest) -> str:
    """Role to authenticate as; override this fixture or pass ``--e2e-role``."""
    return request.config.getoption("--e2e-role")


@pytest.fixture(scope="session")
def e2e_users(e2e_config: Config) -> list[TestUser]:
    return load_test_users(e2e_config.users_path)


@pytest.fixture
def test_user(e2e_users: list[TestUser], user_role: str) -> TestUser:
    return find_user(e2e_users, user_role)


@pytest_asyncio.fixture(loop_scope="session")
async def authenticated_context(
    browser: Browser, e2e_config: Config, test_user: TestUser
) -> AsyncGenerator[BrowserContext, None]:
    """Context already logged in as ``test_user`` through the UI."""
    context = await open_authenticated_context(browser, e2e_config, test_user)
    yield context
    await context.close()


@pytest_asyncio.fixture(loop_scope="session")
async def authenticated_page(authenticated_context: BrowserContext) -> AsyncGenerator[Page, None]:
    page = await authenticated_context.new_page()
    yield page
    await page.close()


@pytest_asyncio.fixture(loop_scope="session")
async def authenticated_request(
    playwright_instance: Playwright, e2e_config: Config, test_user: TestUser
) -> AsyncGenerator[APIRequestContext, None]:
    request = await open_authenticated_request(playwright_instance, e2e_config, test_user)
    yield request
    await request.dispose()


# ---------------------------------------------------------------------------
# Page-object fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def login_page(page_session: PageSession) -> LoginPage:
    return LoginPage(page_session)


@pytest.fixture
def product_list_page(page_session: PageSession) -> ProductListPage:
    return ProductListPage(page_session)


@pytest.fixture
def cart_page(page_session: PageSession) -> CartPage:
    return CartPage(page_session)


@pytest.fixture
def checkout_page(page_session: PageSession) -> CheckoutPage:
    return CheckoutPage(page_session)


@pytest.fixture
def authenticated_session(authenticated_page: Page, e2e_config: Config) -> PageSession:
    return PageSession(authenticated_page, e2e_config)


@pytest.fixture
def authenticated_product_list_page(authenticated_session: PageSession) -> ProductListPage:
    return ProductListPage(authenticated_session)


@pytest.fixture
def authenticated_cart_page(authenticated_session: PageSession) -> CartPage:
    return CartPage(authenticated_session)


@pytest.fixture
def authenticated_checkout_page(authenticated_session: PageSession) -> CheckoutPage:
    return CheckoutPage(authenticated_session)
