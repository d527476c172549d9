"""Shared pytest fixtures for the storefront E2E test suite.

Provides reusable fixtures for:
- Temporary project directories laid out like the suite expects
- In-memory PNG images for the visual differ
- A fake Playwright page whose locators are ``AsyncMock``-backed
- A patched ``expect`` for page objects
"""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from PIL import Image

from storefront_e2e.config import Config
from storefront_e2e.pages.session import PageSession
from storefront_e2e.tester.retry import RetryPolicy

pytest_plugins = ["pytester", "storefront_e2e.plugin"]

SAMPLE_USERS: list[dict[str, str]] = [
    {"type": "standard", "username": "standard_user", "password": "secret_sauce"},
    {"type": "locked_out", "username": "locked_out_user", "password": "secret_sauce"},
    {"type": "problem", "username": "problem_user", "password": "secret_sauce"},
]


# ---------------------------------------------------------------------------
# Paths & configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Project root with ``data/test-users.json`` in place."""
    project_dir = tmp_path / "suite"
    (project_dir / "data").mkdir(parents=True)
    (project_dir / "data" / "test-users.json").write_text(json.dumps(SAMPLE_USERS), encoding="utf-8")
    return project_dir


@pytest.fixture
def config(tmp_project_dir: Path) -> Config:
    return Config(project_dir=tmp_project_dir)


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


def make_image(
    width: int = 4,
    height: int = 4,
    color: tuple[int, int, int, int] = (255, 255, 255, 255),
) -> Image.Image:
    return Image.new("RGBA", (width, height), color)


def png_bytes(img: Image.Image) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_rgba() -> Callable[..., Image.Image]:
    """Factory: ``make_rgba(width, height, color)`` -> solid RGBA image."""
    return make_image


@pytest.fixture
def encode_png() -> Callable[[Image.Image], bytes]:
    """``encode_png(img)`` -> PNG bytes."""
    return png_bytes


@pytest.fixture
def make_png() -> Callable[..., bytes]:
    """Factory: ``make_png(width, height, color)`` -> encoded PNG bytes."""

    def _make(
        width: int = 4,
        height: int = 4,
        color: tuple[int, int, int, int] = (255, 255, 255, 255),
    ) -> bytes:
        return png_bytes(make_image(width, height, color))

    return _make


# ---------------------------------------------------------------------------
# Fake Playwright objects
# ---------------------------------------------------------------------------


def _leaf_locator(text: str, visible: bool) -> MagicMock:
    locator = MagicMock(name=f"locator[{text!r}]")
    locator.text_content = AsyncMock(return_value=text)
    locator.is_visible = AsyncMock(return_value=visible)
    locator.count = AsyncMock(return_value=1)
    locator.click = AsyncMock()
    locator.fill = AsyncMock()
    locator.clear = AsyncMock()
    locator.wait_for = AsyncMock()
    locator.screenshot = AsyncMock(return_value=b"")
    locator.scroll_into_view_if_needed = AsyncMock()
    return locator


def make_locator(
    texts: Optional[list[str]] = None,
    *,
    visible: bool = True,
    screenshot: bytes = b"",
) -> MagicMock:
    """Locator mock matching ``len(texts)`` elements with the given text content."""
    texts = texts or []
    locator = MagicMock(name="locator")
    locator.children = [_leaf_locator(text, visible) for text in texts]
    locator.text_content = AsyncMock(return_value=texts[0] if texts else None)
    locator.is_visible = AsyncMock(return_value=visible)
    locator.count = AsyncMock(return_value=len(texts))
    locator.all = AsyncMock(return_value=locator.children)
    locator.click = AsyncMock()
    locator.fill = AsyncMock()
    locator.clear = AsyncMock()
    locator.wait_for = AsyncMock()
    locator.select_option = AsyncMock()
    locator.screenshot = AsyncMock(return_value=screenshot)
    locator.scroll_into_view_if_needed = AsyncMock()
    return locator


class FakePage:
    """Stand-in for ``playwright.async_api.Page``.

    ``locator(selector)`` always returns the same mock for a selector;
    :meth:`set_locator` replaces it with one matching specific elements.
    """

    def __init__(self, url: str = "https://www.saucedemo.com/") -> None:
        self.url = url
        self.locators: dict[str, MagicMock] = {}
        self.goto = AsyncMock()
        self.title = AsyncMock(return_value="Swag Labs")
        self.wait_for_load_state = AsyncMock()
        self.wait_for_url = AsyncMock()
        self.wait_for_timeout = AsyncMock()
        self.wait_for_function = AsyncMock()
        self.evaluate = AsyncMock()
        self.screenshot = AsyncMock(return_value=b"")
        self.route = AsyncMock()
        self.set_default_timeout = MagicMock()

        navigation = MagicMock(name="expect_navigation")
        navigation.__aenter__ = AsyncMock(return_value=MagicMock())
        navigation.__aexit__ = AsyncMock(return_value=False)
        self.navigation = navigation
        self.expect_navigation = MagicMock(return_value=navigation)

        self.context = MagicMock(name="context")
        self.context.cookies = AsyncMock(return_value=[])
        self.context.add_cookies = AsyncMock()
        self.context.clear_cookies = AsyncMock()

    def locator(self, selector: str) -> MagicMock:
        if selector not in self.locators:
            self.locators[selector] = make_locator()
        return self.locators[selector]

    def set_locator(self, selector: str, texts: Optional[list[str]] = None, **kwargs: Any) -> MagicMock:
        self.locators[selector] = make_locator(texts, **kwargs)
        return self.locators[selector]


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def session(fake_page: FakePage, config: Config) -> PageSession:
    """PageSession over the fake page with a silent, non-sleeping retry policy."""
    return PageSession(
        fake_page,  # type: ignore[arg-type]
        config,
        retry=RetryPolicy(3, 10, sleep=AsyncMock(), quiet=True),
    )


@pytest.fixture
def mock_expect():
    """Patch ``expect`` in every page-object module; assertions always pass."""
    assertion = MagicMock(name="assertion")
    assertion.to_be_visible = AsyncMock()
    assertion.to_have_text = AsyncMock()
    expect = MagicMock(name="expect", return_value=assertion)
    with patch("storefront_e2e.pages.login.expect", expect), \
         patch("storefront_e2e.pages.products.expect", expect), \
         patch("storefront_e2e.pages.cart.expect", expect), \
         patch("storefront_e2e.pages.checkout.expect", expect):
        yield expect
