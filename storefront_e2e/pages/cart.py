"""Shopping cart page object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from playwright.async_api import Locator, expect

from .products import nth_element, parse_price
from .session import PageSession


@dataclass(frozen=True)
class CartItem:
    name: str
    price: str
    quantity: int


def cart_total(items: Sequence[CartItem]) -> float:
    """Sum of price * quantity, rounded to cents."""
    return round(sum(parse_price(item.price) * item.quantity for item in items), 2)


def same_items(actual: Sequence[CartItem], expected: Sequence[CartItem]) -> bool:
    """Order-insensitive equality of two item lists."""
    if len(actual) != len(expected):
        return False

    def _key(item: CartItem) -> tuple[str, str, int]:
        return item.name, item.price, item.quantity

    return sorted(actual, key=_key) == sorted(expected, key=_key)


class CartPage:
    """Page object for ``/cart.html``."""

    def __init__(self, session: PageSession) -> None:
        self.session = session
        self.page = session.page

    # Selectors
    @property
    def cart_list(self) -> Locator:
        return self.page.locator(".cart_list")

    @property
    def cart_items(self) -> Locator:
        return self.page.locator(".cart_item")

    @property
    def cart_item_names(self) -> Locator:
        return self.page.locator(".inventory_item_name")

    @property
    def cart_item_prices(self) -> Locator:
        return self.page.locator(".inventory_item_price")

    @property
    def cart_item_quantities(self) -> Locator:
        return self.page.locator(".cart_quantity")

    @property
    def remove_buttons(self) -> Locator:
        return self.page.locator('button[id^="remove"]')

    @property
    def continue_shopping_button(self) -> Locator:
        return self.page.locator('[data-test="continue-shopping"]')

    @property
    def checkout_button(self) -> Locator:
        return self.page.locator('[data-test="checkout"]')

    @property
    def page_title(self) -> Locator:
        return self.page.locator(".title")

    async def goto(self) -> None:
        await self.session.navigate("/cart.html")
        await self.session.wait_for_page_load()
        await expect(self.page_title).to_have_text("Your Cart")

    async def get_cart_items(self) -> list[Locator]:
        return await self.cart_items.all()

    async def get_cart_item_count(self) -> int:
        return await self.cart_items.count()

    async def get_cart_item_name(self, index: int) -> str:
        return await self.session.get_text(
            await nth_element(self.cart_item_names, index, "items in cart")
        )

    async def get_cart_item_price(self, index: int) -> str:
        return await self.session.get_text(
            await nth_element(self.cart_item_prices, index, "items in cart")
        )

    async def get_cart_item_quantity(self, index: int) -> int:
        text = await self.session.get_text(
            await nth_element(self.cart_item_quantities, index, "items in cart")
        )
        return int(text.strip() or "0")

    async def remove_cart_item(self, index: int) -> None:
        await (await nth_element(self.remove_buttons, index, "items in cart")).click()

    async def continue_shopping(self) -> None:
        await self.continue_shopping_button.click()

    async def proceed_to_checkout(self) -> None:
        await self.checkout_button.click()

    async def get_all_cart_data(self) -> list[CartItem]:
        items: list[CartItem] = []
        for i in range(await self.get_cart_item_count()):
            items.append(
                CartItem(
                    name=await self.get_cart_item_name(i),
                    price=await self.get_cart_item_price(i),
                    quantity=await self.get_cart_item_quantity(i),
                )
            )
        return items

    async def calculate_cart_total(self) -> float:
        return cart_total(await self.get_all_cart_data())

    async def is_cart_empty(self) -> bool:
        return await self.get_cart_item_count() == 0

    async def get_item_index_by_name(self, item_name: str) -> int:
        """Index of the first item named *item_name*, or -1."""
        for i in range(await self.get_cart_item_count()):
            if await self.get_cart_item_name(i) == item_name:
                return i
        return -1

    async def is_item_in_cart(self, item_name: str) -> bool:
        return await self.get_item_index_by_name(item_name) >= 0

    async def verify_cart_items(self, expected_items: Sequence[CartItem]) -> bool:
        return same_items(await self.get_all_cart_data(), expected_items)
