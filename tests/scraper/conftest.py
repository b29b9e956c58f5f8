"""Shared test fixtures for scraper tests."""

from collections import Counter
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeout

from lbcscraper.config import (
    Credentials,
    DelayRange,
    PauseDelays,
    Settings,
    SiteSelectors,
    TypingDelays,
)
from lbcscraper.scraper.session import AutomationSession

NO_DELAY = DelayRange(min_ms=0, max_ms=0)


class NavigationStub:
    """Stands in for `page.expect_navigation`.

    Set `navigates` to False to model an action that leaves the current
    document in place. `events` records when the wait was armed and settled.
    """

    def __init__(self):
        self.navigates = True
        self.calls: list[dict] = []
        self.events: list[str] = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        return self

    async def __aenter__(self):
        self.events.append("armed")
        return MagicMock()

    async def __aexit__(self, exc_type, exc, tb):
        self.events.append("settled")
        if exc_type is None and not self.navigates:
            raise timeout_error("navigation")
        return False


@pytest.fixture
def settings():
    """Settings with every humanized delay set to zero."""
    return Settings(
        typing=TypingDelays(email=NO_DELAY, password=NO_DELAY, search=NO_DELAY),
        pauses=PauseDelays(
            cookie=NO_DELAY,
            login_click=NO_DELAY,
            before_search_submit=NO_DELAY,
            between_items=NO_DELAY,
            after_contact=NO_DELAY,
        ),
        _env_file=None,
    )


@pytest.fixture
def selectors():
    return SiteSelectors()


@pytest.fixture
def credentials():
    return Credentials(username="a@b.com", password="x", _env_file=None)


@pytest.fixture
def mock_page():
    """Create a mock Playwright page where every selector resolves."""
    page = AsyncMock()
    page.url = "https://www.leboncoin.fr/recherche?category=41&sort=time"
    page.goto = AsyncMock(return_value=MagicMock(status=200))
    page.wait_for_selector = AsyncMock(return_value=AsyncMock())
    page.expect_navigation = NavigationStub()
    page.query_selector_all = AsyncMock(return_value=[])
    page.click = AsyncMock()
    page.type = AsyncMock()
    page.close = AsyncMock()
    return page


@pytest.fixture
def navigation(mock_page) -> NavigationStub:
    return mock_page.expect_navigation


@pytest.fixture
def automation(mock_page, settings):
    """AutomationSession driving the mock page."""
    return AutomationSession(mock_page, settings.timeouts)


def timeout_error(selector: str) -> PlaywrightTimeout:
    return PlaywrightTimeout(f"Timeout exceeded waiting for {selector}")


@pytest.fixture
def missing_selectors(mock_page):
    """Make some selectors time out.

    Call with selector -> number of failing waits (None = always failing).
    Returns the Counter of wait calls per selector.
    """

    def configure(failures: dict[str, int | None]) -> Counter:
        calls: Counter = Counter()

        async def wait_for_selector(selector, state="visible", timeout=None):
            calls[selector] += 1
            if selector in failures:
                limit = failures[selector]
                if limit is None or calls[selector] <= limit:
                    raise timeout_error(selector)
            return AsyncMock()

        mock_page.wait_for_selector = AsyncMock(side_effect=wait_for_selector)
        return calls

    return configure


@pytest.fixture
def make_listing(selectors):
    """Factory for mock listing cards.

    Pass None for a field to leave the matching child element out.
    """

    def create(
        title: str | None,
        price: str | None = "10\xa0€",
        href: str | None = "/ad/jouets/1",
    ):
        children = {}
        if title is not None:
            children[selectors.ad_title] = AsyncMock(
                inner_text=AsyncMock(return_value=title)
            )
        if price is not None:
            children[selectors.ad_price] = AsyncMock(
                inner_text=AsyncMock(return_value=price)
            )
        if href is not None:
            children[selectors.ad_link] = AsyncMock(
                get_attribute=AsyncMock(return_value=href)
            )

        card = AsyncMock()
        card.query_selector = AsyncMock(side_effect=lambda sel: children.get(sel))
        return card

    return create


@pytest.fixture
def patched_playwright(mock_page):
    """Patch async_playwright so BrowserManager hands out `mock_page`."""
    with patch("lbcscraper.scraper.browser.async_playwright") as mock_pw:
        mock_playwright = AsyncMock()
        mock_browser = AsyncMock()
        mock_context = AsyncMock()

        mock_pw.return_value.start = AsyncMock(return_value=mock_playwright)
        mock_playwright.chromium.launch = AsyncMock(return_value=mock_browser)
        mock_browser.new_context = AsyncMock(return_value=mock_context)
        mock_context.new_page = AsyncMock(return_value=mock_page)

        yield MagicMock(
            factory=mock_pw,
            playwright=mock_playwright,
            browser=mock_browser,
            context=mock_context,
        )
