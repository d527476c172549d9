"""Page objects for the storefront.

Each page object wraps one screen of the shop and owns a shared
:class:`PageSession` for navigation, waits, and diagnostics.
"""

from .cart import CartItem, CartPage
from .checkout import CheckoutPage
from .login import LoginPage
from .products import ProductData, ProductListPage
from .session import PageSession

__all__ = [
    "PageSession",
    "LoginPage",
    "ProductListPage",
    "ProductData",
    "CartPage",
    "CartItem",
    "CheckoutPage",
]
