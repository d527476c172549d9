"""Inventory (product list) page object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from playwright.async_api import Locator, expect

from .session import PageSession

SORT_OPTIONS = ("az", "za", "lohi", "hilo")


@dataclass(frozen=True)
class ProductData:
    """Name, price text, and description of one inventory card."""

    name: str
    price: str
    description: str


def parse_price(text: str) -> float:
    """``"$29.99"`` -> ``29.99``."""
    return float(text.strip().replace("$", "").replace(",", ""))


async def nth_element(locator: Locator, index: int, noun: str = "products") -> Locator:
    """Return the *index*-th match of *locator* or raise ``IndexError``."""
    elements = await locator.all()
    if not 0 <= index < len(elements):
        raise IndexError(
            f"Index {index} is out of range. Only {len(elements)} {noun} available."
        )
    return elements[index]


def is_sorted(products: Sequence[ProductData], sort_type: str) -> bool:
    """Whether *products* appear in the order the *sort_type* option promises.

    ``az`` / ``za`` compare names case-insensitively; ``lohi`` / ``hilo``
    compare numeric prices.
    """
    if sort_type not in SORT_OPTIONS:
        raise ValueError(f"Unknown sort option {sort_type!r}; expected one of {SORT_OPTIONS}")

    if sort_type in ("az", "za"):
        keys: list = [p.name.casefold() for p in products]
    else:
        keys = [parse_price(p.price) for p in products]

    pairs = list(zip(keys, keys[1:]))
    if sort_type in ("az", "lohi"):
        return all(a <= b for a, b in pairs)
    return all(a >= b for a, b in pairs)


class ProductListPage:
    """Page object for ``/inventory.html``."""

    def __init__(self, session: PageSession) -> None:
        self.session = session
        self.page = session.page

    # Selectors
    @property
    def inventory_container(self) -> Locator:
        return self.page.locator("#inventory_container")

    @property
    def product_items(self) -> Locator:
        return self.page.locator(".inventory_item")

    @property
    def product_titles(self) -> Locator:
        return self.page.locator(".inventory_item_name")

    @property
    def product_prices(self) -> Locator:
        return self.page.locator(".inventory_item_price")

    @property
    def product_descriptions(self) -> Locator:
        return self.page.locator(".inventory_item_desc")

    @property
    def add_to_cart_buttons(self) -> Locator:
        return self.page.locator('button[id^="add-to-cart"]')

    @property
    def remove_buttons(self) -> Locator:
        return self.page.locator('button[id^="remove"]')

    @property
    def product_images(self) -> Locator:
        return self.page.locator(".inventory_item_img")

    @property
    def sort_dropdown(self) -> Locator:
        return self.page.locator('[data-test="product_sort_container"]')

    @property
    def cart_badge(self) -> Locator:
        return self.page.locator(".shopping_cart_badge")

    @property
    def cart_link(self) -> Locator:
        return self.page.locator(".shopping_cart_link")

    @property
    def burger_menu(self) -> Locator:
        return self.page.locator("#react-burger-menu-btn")

    @property
    def logout_link(self) -> Locator:
        return self.page.locator("#logout_sidebar_link")

    @property
    def page_title(self) -> Locator:
        return self.page.locator(".title")

    # Navigation
    async def goto(self) -> None:
        await self.session.navigate("/inventory.html")
        await self.session.wait_for_page_load()
        await expect(self.page_title).to_have_text("Products")

    # Reading products
    async def get_product_count(self) -> int:
        return await self.product_items.count()

    async def get_product_name(self, index: int) -> str:
        return await self.session.get_text(await nth_element(self.product_titles, index))

    async def get_product_price(self, index: int) -> str:
        return await self.session.get_text(await nth_element(self.product_prices, index))

    async def get_product_description(self, index: int) -> str:
        return await self.session.get_text(await nth_element(self.product_descriptions, index))

    async def get_all_product_data(self) -> list[ProductData]:
        products: list[ProductData] = []
        for i in range(await self.get_product_count()):
            products.append(
                ProductData(
                    name=await self.get_product_name(i),
                    price=await self.get_product_price(i),
                    description=await self.get_product_description(i),
                )
            )
        return products

    async def filter_products_by_text(self, search_text: str) -> list[int]:
        """Indexes of products whose name or description contains *search_text*."""
        needle = search_text.casefold()
        matches: list[int] = []
        for i in range(await self.get_product_count()):
            name = await self.get_product_name(i)
            description = await self.get_product_description(i)
            if needle in name.casefold() or needle in description.casefold():
                matches.append(i)
        return matches

    # Cart interaction
    async def add_product_to_cart(self, index: int) -> None:
        await (await nth_element(self.add_to_cart_buttons, index)).click()

    async def remove_product_from_cart(self, index: int) -> None:
        await (await nth_element(self.remove_buttons, index, "remove buttons")).click()

    async def get_cart_item_count(self) -> int:
        """Number on the cart badge; 0 when the badge is hidden."""
        if not await self.cart_badge.is_visible():
            return 0
        text = await self.session.get_text(self.cart_badge)
        return int(text.strip() or "0")

    async def navigate_to_cart(self) -> None:
        await self.cart_link.click()

    async def open_product_details(self, index: int) -> None:
        await (await nth_element(self.product_titles, index)).click()

    # Sorting
    async def sort_products(self, sort_option: str) -> None:
        await self.sort_dropdown.select_option(sort_option)
        await self.page.wait_for_timeout(500)

    async def verify_product_sorting(self, sort_type: str) -> bool:
        return is_sorted(await self.get_all_product_data(), sort_type)

    # Menu
    async def open_burger_menu(self) -> None:
        await self.burger_menu.click()
        await self.page.wait_for_timeout(500)

    async def logout(self) -> None:
        await self.open_burger_menu()
        await self.logout_link.click()
