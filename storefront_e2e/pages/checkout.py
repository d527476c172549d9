"""Checkout flow page object.

Covers the three checkout steps: customer information
(``/checkout-step-one.html``), order overview (``/checkout-step-two.html``),
and the completion page.
"""

from __future__ import annotations

from playwright.async_api import Locator, expect

from .products import parse_price
from .session import PageSession


def summary_value(label_text: str) -> str:
    """``"Item total: $29.99"`` -> ``"$29.99"``."""
    _, sep, value = label_text.partition(": ")
    if not sep:
        raise ValueError(f"Unexpected summary label format: {label_text!r}")
    return value.strip()


def totals_match(subtotal: float, tax: float, total: float) -> bool:
    """Whether *total* equals subtotal plus tax, compared in whole cents."""
    return round(total * 100) == round((subtotal + tax) * 100)


class CheckoutPage:
    """Page object for the checkout steps."""

    def __init__(self, session: PageSession) -> None:
        self.session = session
        self.page = session.page

    # Information step
    @property
    def first_name_input(self) -> Locator:
        return self.page.locator('[data-test="firstName"]')

    @property
    def last_name_input(self) -> Locator:
        return self.page.locator('[data-test="lastName"]')

    @property
    def postal_code_input(self) -> Locator:
        return self.page.locator('[data-test="postalCode"]')

    @property
    def continue_button(self) -> Locator:
        return self.page.locator('[data-test="continue"]')

    @property
    def cancel_button(self) -> Locator:
        return self.page.locator('[data-test="cancel"]')

    @property
    def error_message(self) -> Locator:
        return self.page.locator('[data-test="error"]')

    # Overview step
    @property
    def checkout_items(self) -> Locator:
        return self.page.locator(".cart_item")

    @property
    def item_total_label(self) -> Locator:
        return self.page.locator(".summary_subtotal_label")

    @property
    def tax_label(self) -> Locator:
        return self.page.locator(".summary_tax_label")

    @property
    def total_label(self) -> Locator:
        return self.page.locator(".summary_total_label")

    @property
    def finish_button(self) -> Locator:
        return self.page.locator('[data-test="finish"]')

    # Completion step
    @property
    def complete_header(self) -> Locator:
        return self.page.locator(".complete-header")

    @property
    def complete_text(self) -> Locator:
        return self.page.locator(".complete-text")

    @property
    def back_home_button(self) -> Locator:
        return self.page.locator('[data-test="back-to-products"]')

    @property
    def checkmark_image(self) -> Locator:
        return self.page.locator(".pony_express")

    @property
    def page_title(self) -> Locator:
        return self.page.locator(".title")

    # -- Information ---------------------------------------------------------

    async def goto_information(self) -> None:
        await self.session.navigate("/checkout-step-one.html")
        await self.session.wait_for_page_load()
        await expect(self.page_title).to_have_text("Checkout: Your Information")

    async def fill_information(self, first_name: str, last_name: str, postal_code: str) -> None:
        await self.first_name_input.fill(first_name)
        await self.last_name_input.fill(last_name)
        await self.postal_code_input.fill(postal_code)

    async def continue_to_overview(self) -> None:
        await self.continue_button.click()
        await self.session.wait_for_page_load()
        await expect(self.page_title).to_have_text("Checkout: Overview")

    async def fill_information_and_continue(
        self, first_name: str, last_name: str, postal_code: str
    ) -> None:
        await self.fill_information(first_name, last_name, postal_code)
        await self.continue_to_overview()

    async def cancel_information(self) -> None:
        await self.cancel_button.click()

    async def get_error_message(self) -> str:
        await expect(self.error_message).to_be_visible()
        return await self.session.get_text(self.error_message)

    # -- Overview ------------------------------------------------------------

    async def goto_overview(self) -> None:
        await self.session.navigate("/checkout-step-two.html")
        await self.session.wait_for_page_load()
        await expect(self.page_title).to_have_text("Checkout: Overview")

    async def get_checkout_item_count(self) -> int:
        return await self.checkout_items.count()

    async def get_subtotal(self) -> str:
        return summary_value(await self.session.get_text(self.item_total_label))

    async def get_tax(self) -> str:
        return summary_value(await self.session.get_text(self.tax_label))

    async def get_total(self) -> str:
        return summary_value(await self.session.get_text(self.total_label))

    async def get_numeric_subtotal(self) -> float:
        return parse_price(await self.get_subtotal())

    async def get_numeric_tax(self) -> float:
        return parse_price(await self.get_tax())

    async def get_numeric_total(self) -> float:
        return parse_price(await self.get_total())

    async def verify_total_calculation(self) -> bool:
        return totals_match(
            await self.get_numeric_subtotal(),
            await self.get_numeric_tax(),
            await self.get_numeric_total(),
        )

    async def finish_purchase(self) -> None:
        await self.finish_button.click()
        await self.session.wait_for_page_load()
        await expect(self.page_title).to_have_text("Checkout: Complete!")

    async def cancel_overview(self) -> None:
        await self.cancel_button.click()

    # -- Completion ----------------------------------------------------------

    async def is_checkout_complete(self) -> bool:
        return await self.complete_header.is_visible() and await self.back_home_button.is_visible()

    async def get_complete_header_text(self) -> str:
        return await self.session.get_text(self.complete_header)

    async def get_complete_message_text(self) -> str:
        return await self.session.get_text(self.complete_text)

    async def return_to_products(self) -> None:
        await self.back_home_button.click()

    async def complete_checkout(self, first_name: str, last_name: str, postal_code: str) -> bool:
        """Run the information and overview steps and report whether the order went through."""
        await self.fill_information_and_continue(first_name, last_name, postal_code)
        await self.finish_purchase()
        return await self.is_checkout_complete()
