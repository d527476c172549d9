"""Login page object."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Locator, expect
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from rich.console import Console

from .session import PageSession

console = Console()

INVENTORY_PATH = "/inventory.html"
LOCKED_OUT_USERNAME = "locked_out_user"


class LoginPage:
    """Page object for the storefront login form at ``/``."""

    def __init__(self, session: PageSession) -> None:
        self.session = session
        self.page = session.page

    # Selectors
    @property
    def username_input(self) -> Locator:
        return self.page.locator('[data-test="username"]')

    @property
    def password_input(self) -> Locator:
        return self.page.locator('[data-test="password"]')

    @property
    def login_button(self) -> Locator:
        return self.page.locator('[data-test="login-button"]')

    @property
    def error_message(self) -> Locator:
        return self.page.locator('[data-test="error"]')

    @property
    def logo(self) -> Locator:
        return self.page.locator(".login_logo")

    # Actions
    async def goto(self) -> None:
        await self.session.navigate("/")
        await self.session.wait_for_page_load()
        await expect(self.login_button).to_be_visible()

    async def login(self, username: str, password: str) -> None:
        """Fill the form and submit it.

        For credentials expected to succeed the click waits up to ten
        seconds for the resulting navigation; a navigation that never comes
        is reported and the test carries on, so assertions downstream decide
        whether the login worked.
        """
        await self.username_input.fill(username)
        await self.password_input.fill(password)

        if username and password and username != LOCKED_OUT_USERNAME:
            try:
                async with self.page.expect_navigation(timeout=10_000):
                    await self.login_button.click()
            except PlaywrightTimeoutError:
                console.print("[yellow]Navigation did not complete after login, continuing...[/yellow]")
        else:
            await self.login_button.click()

    async def get_error_message(self) -> str:
        await expect(self.error_message).to_be_visible(timeout=5_000)
        return await self.session.get_text(self.error_message)

    async def is_error_displayed(self) -> bool:
        return await self.error_message.is_visible()

    async def login_and_verify_redirect(
        self,
        username: str,
        password: str,
        expected_redirect_url: str = INVENTORY_PATH,
    ) -> None:
        await self.login(username, password)
        await self.page.wait_for_url(f"**{expected_redirect_url}", timeout=10_000)
        current_url = self.session.current_url
        assert expected_redirect_url in current_url, (
            f"Expected redirect to {expected_redirect_url}, landed on {current_url}"
        )

    async def verify_login_failure(
        self,
        username: str,
        password: str,
        expected_error_text: Optional[str] = None,
    ) -> None:
        await self.login(username, password)
        await expect(self.error_message).to_be_visible()
        if expected_error_text:
            actual_error = await self.get_error_message()
            assert expected_error_text in actual_error, (
                f"Expected error containing {expected_error_text!r}, got {actual_error!r}"
            )

    async def clear_login_form(self) -> None:
        await self.username_input.clear()
        await self.password_input.clear()

    async def is_login_page_loaded(self) -> bool:
        return (
            await self.login_button.is_visible()
            and await self.username_input.is_visible()
            and await self.password_input.is_visible()
        )

    async def verify_login_form_elements(self) -> None:
        await expect(self.username_input).to_be_visible()
        await expect(self.password_input).to_be_visible()
        await expect(self.login_button).to_be_visible()
        await expect(self.logo).to_be_visible()
