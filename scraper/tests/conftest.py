"""Shared fixtures for the scraper test suite.

No real browser is started: FakePage implements the handful of
Playwright page calls the scraper and search orchestrator make.
"""

from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Set

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from scraper.site_configs import SiteExtractionConfig


WEBUY_RESULTS_HTML = """
<html><head><title>Search results</title></head>
<body>
<main>
  <div class="search-product-card">
    <div class="card-img">
      <a href="/product-detail?id=SPS5DISC">
        <img src="/assets/warranty-badge.svg">
        <img src="/product_images/ps5-disc.jpg">
      </a>
    </div>
    <div class="cx-warranty-badge"></div>
    <div class="card-title"><a href="/product-detail?id=SPS5DISC">PS5 Disc Edition</a></div>
    <div class="card-subtitle">Playstation5 Consoles</div>
    <span class="grade-letter">B</span>
    <span class="grade-title">Boxed</span>
    <div class="card-rating"><span>4.5</span></div>
    <div class="price-wrapper">
      <p class="product-main-price">£300.00</p>
      <p class="price-reduction">£20.00 off</p>
    </div>
    <div class="tradeInPrices">
      <div><span>Voucher</span><p class="product-main-price">£200.00</p></div>
      <div><span>Cash</span><p class="product-main-price">£150.00</p></div>
    </div>
  </div>
  <div class="search-product-card">
    <div class="card-img"><a href="/product-detail?id=SPS5DIG"><img data-src="//cdn.webuy.com/product_images/ps5-digital.jpg"></a></div>
    <div class="card-title"><a href="/product-detail?id=SPS5DIG">PS5 Digital Edition</a></div>
    <div class="price-wrapper"><p class="product-main-price">£280.00</p></div>
  </div>
  <div class="search-product-card">
    <div class="price-wrapper"><p class="product-main-price">£10.00</p></div>
  </div>
  <div class="search-product-card">
    <div class="card-title"><a href="/product-detail?id=SPS5DISCR">PS5 Disc Edition Refurbished</a></div>
    <div class="price-wrapper"><p class="product-main-price">Call for price</p></div>
  </div>
</main>
</body></html>
"""

HOME_HTML = """
<html><head><title>CeX UK</title></head>
<body><input id="predictiveSearchText"></body></html>
"""


@pytest.fixture
def webuy_html():
    return WEBUY_RESULTS_HTML


@pytest.fixture
def simple_config():
    """A small config for generic extraction tests."""
    return SiteExtractionConfig.from_dict(
        {
            "name": "example",
            "domain": "example.com",
            "base_url": "https://example.com",
            "selectors": {
                "card_container": [".missing", ".card", ".item"],
                "title": [".name"],
                "product_url": ["a"],
                "price": [".price"],
            },
        }
    )


class FakeElement:
    """Element handle returned by FakePage.query_selector."""

    def __init__(self, page: "FakePage", selector: str):
        self.page = page
        self.selector = selector

    async def click(self, timeout: Optional[int] = None) -> None:
        self.page.calls.append(("click", self.selector))
        if self.page.fail_click:
            raise PlaywrightError("Element is not attached to the DOM")
        if self.page.navigate_on == "suggestion":
            self.page._navigate()


class FakePage:
    """In-memory stand-in for a Playwright page.

    Args:
        html: Content served before any navigation happens
        present: Selectors that exist on the page
        suggestions: Selectors query_selector finds an element for
        navigate_on: "suggestion", "enter" or None (no navigation)
        result_url / result_html / result_title: state after navigating
        fail_goto: Raise a timeout on goto
    """

    def __init__(
        self,
        html: str = HOME_HTML,
        title: str = "CeX UK",
        present: Optional[Set[str]] = None,
        suggestions: Optional[Set[str]] = None,
        navigate_on: Optional[str] = None,
        result_url: str = "https://uk.webuy.com/search?stext=PS5",
        result_html: str = WEBUY_RESULTS_HTML,
        result_title: str = "Search results",
        fail_goto: bool = False,
        fail_click: bool = False,
    ):
        self.url = "about:blank"
        self.html = html
        self._title = title
        self.present = {"#predictiveSearchText"} if present is None else set(present)
        self.suggestions = set(suggestions or set())
        self.navigate_on = navigate_on
        self.result_url = result_url
        self.result_html = result_html
        self.result_title = result_title
        self.fail_goto = fail_goto
        self.fail_click = fail_click
        self.values: Dict[str, str] = {}
        self.calls: List[tuple] = []
        self.closed = False

    def _navigate(self) -> None:
        self.url = self.result_url
        self.html = self.result_html
        self._title = self.result_title

    async def goto(self, url: str, wait_until: Optional[str] = None, timeout: Optional[int] = None):
        self.calls.append(("goto", url))
        if self.fail_goto:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded navigating to {url}")
        self.url = url

    async def title(self) -> str:
        return self._title

    async def content(self) -> str:
        return self.html

    async def wait_for_selector(self, selector: str, state: Optional[str] = None, timeout: Optional[int] = None):
        self.calls.append(("wait_for_selector", selector))
        parts = [p.strip() for p in selector.split(",")]
        if not any(p in self.present or p in self.suggestions for p in parts):
            raise PlaywrightTimeoutError(f"Timeout waiting for {selector}")
        return FakeElement(self, selector)

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        if selector in self.suggestions:
            return FakeElement(self, selector)
        return None

    async def fill(self, selector: str, value: str) -> None:
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout filling {selector}")
        self.calls.append(("fill", selector, value))
        self.values[selector] = value

    async def dispatch_event(self, selector: str, event: str) -> None:
        self.calls.append(("dispatch_event", selector, event))

    async def wait_for_timeout(self, ms: int) -> None:
        self.calls.append(("wait_for_timeout", ms))

    async def press(self, selector: str, key: str) -> None:
        self.calls.append(("press", selector, key))
        if self.navigate_on == "enter":
            self._navigate()

    async def wait_for_url(self, predicate, timeout: Optional[int] = None) -> None:
        if not predicate(self.url):
            raise PlaywrightTimeoutError("Timeout waiting for navigation")

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[int] = None) -> None:
        self.calls.append(("wait_for_load_state", state))

    async def close(self) -> None:
        self.closed = True


class FakePool:
    """BrowserPool stand-in that hands out prepared FakePages in order."""

    def __init__(self, *pages: FakePage):
        self._pages = list(pages)
        self.opened: List[FakePage] = []

    @asynccontextmanager
    async def page(self):
        page = self._pages.pop(0) if self._pages else FakePage()
        self.opened.append(page)
        try:
            yield page
        finally:
            await page.close()


@pytest.fixture
def fake_page_cls():
    return FakePage


@pytest.fixture
def fake_pool_cls():
    return FakePool
