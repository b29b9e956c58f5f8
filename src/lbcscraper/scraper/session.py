"""Thin automation seam over a Playwright page.

Every browser primitive the flows need goes through AutomationSession, which
translates Playwright failures into lbcscraper errors and turns best-effort
waits into explicit WaitOutcome values.
"""

import asyncio
import random
from typing import Awaitable, Callable
from urllib.parse import urljoin

import structlog
from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from lbcscraper.config import DelayRange, TimeoutsConfig
from lbcscraper.errors import AutomationError, ElementNotFoundError, NavigationError
from lbcscraper.models import WaitOutcome

logger = structlog.get_logger(logger_name=__name__)


async def humanized_pause(delay: DelayRange, rng: random.Random | None = None) -> None:
    """Sleep for a random duration drawn from `delay`."""
    await asyncio.sleep(delay.sample(rng))


class AutomationSession:
    """One browser tab and the primitives the flows drive it with.

    Usage:
        session = AutomationSession(page, timeouts)
        await session.open("https://www.leboncoin.fr/")
        await session.click("#didomi-notice-agree-button")
    """

    def __init__(
        self,
        page: Page,
        timeouts: TimeoutsConfig | None = None,
        rng: random.Random | None = None,
    ):
        self.page = page
        self.timeouts = timeouts or TimeoutsConfig()
        self.rng = rng
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # =========================================================================
    # Navigation
    # =========================================================================

    async def open(
        self,
        url: str,
        wait_until: str = "networkidle",
        timeout: int | None = None,
    ) -> None:
        """Navigate the tab to `url`.

        Args:
            url: Absolute URL to load
            wait_until: Playwright load state to wait for
            timeout: Milliseconds, 0 for unbounded, None for the navigation default

        Raises:
            NavigationError: on driver failure or timeout
        """
        timeout = self.timeouts.navigation if timeout is None else timeout
        try:
            response = await self.page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightTimeout as e:
            raise NavigationError(url, f"timed out after {timeout} ms") from e
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e

        # Anti-bot challenge pages answer 403 and still render
        if response is not None and response.status >= 400:
            logger.warning("Page answered with an error status", url=url, status=response.status)
        logger.debug("Page opened", url=url, wait_until=wait_until)

    async def confirm_navigation(
        self,
        action: Callable[[], Awaitable[None]],
        wait_until: str = "networkidle",
        timeout: int | None = None,
    ) -> WaitOutcome:
        """Run `action` and wait for the navigation it starts.

        The wait is armed before `action` runs, so a document that already
        reached `wait_until` does not count. Errors raised by `action`
        propagate; a navigation that never happens yields NOT_CONFIRMED.
        """
        timeout = self.timeouts.navigation if timeout is None else timeout
        try:
            async with self.page.expect_navigation(wait_until=wait_until, timeout=timeout):
                await action()
        except PlaywrightError as e:
            logger.info(
                "Navigation not confirmed, continuing", timeout=timeout, error=str(e)
            )
            return WaitOutcome.NOT_CONFIRMED
        logger.debug("Navigation confirmed", url=self.page.url)
        return WaitOutcome.CONFIRMED

    # =========================================================================
    # Elements
    # =========================================================================

    async def await_element(
        self, selector: str, visible: bool = True, timeout: int | None = None
    ) -> ElementHandle:
        """Wait until `selector` resolves to an element.

        Raises:
            ElementNotFoundError: when the timeout elapses first
        """
        timeout = self.timeouts.element if timeout is None else timeout
        state = "visible" if visible else "attached"
        try:
            handle = await self.page.wait_for_selector(
                selector, state=state, timeout=timeout
            )
        except PlaywrightTimeout as e:
            raise ElementNotFoundError(selector, timeout) from e
        except PlaywrightError as e:
            raise AutomationError(f"Waiting for {selector!r} failed: {e}") from e
        if handle is None:
            raise ElementNotFoundError(selector, timeout)
        return handle

    async def confirm_element(
        self, selector: str, visible: bool = True, timeout: int | None = None
    ) -> WaitOutcome:
        """Best-effort version of await_element."""
        try:
            await self.await_element(selector, visible=visible, timeout=timeout)
        except AutomationError as e:
            logger.info("Element not confirmed, continuing", selector=selector, error=str(e))
            return WaitOutcome.NOT_CONFIRMED
        return WaitOutcome.CONFIRMED

    async def click(self, selector: str) -> None:
        try:
            await self.page.click(selector, timeout=self.timeouts.element)
        except PlaywrightTimeout as e:
            raise ElementNotFoundError(selector, self.timeouts.element) from e
        except PlaywrightError as e:
            raise AutomationError(f"Click on {selector!r} failed: {e}") from e

    async def type_humanized(
        self, selector: str, text: str, delay: DelayRange
    ) -> None:
        """Type `text` one key event per character with random gaps.

        Each gap is drawn independently from `delay` so the page observes
        irregular keystroke timing.
        """
        await self.await_element(selector)
        try:
            for char in text:
                await self.page.type(selector, char)
                await humanized_pause(delay, self.rng)
        except PlaywrightError as e:
            raise AutomationError(f"Typing into {selector!r} failed: {e}") from e

    async def press(self, key: str) -> None:
        """Press a keyboard key on the focused element."""
        try:
            await self.page.keyboard.press(key)
        except PlaywrightError as e:
            raise AutomationError(f"Pressing {key} failed: {e}") from e

    async def pause(self, delay: DelayRange) -> None:
        await humanized_pause(delay, self.rng)

    # =========================================================================
    # Reading
    # =========================================================================

    async def query_all(self, selector: str) -> list[ElementHandle]:
        """All elements matching `selector`, in document order."""
        try:
            return await self.page.query_selector_all(selector)
        except PlaywrightError as e:
            raise AutomationError(f"Querying {selector!r} failed: {e}") from e

    async def read_text(
        self, handle: ElementHandle, inner_selector: str | None = None
    ) -> str | None:
        """Inner text of `handle`, or of its first `inner_selector` descendant.

        Returns None instead of raising when the element is missing.
        """
        try:
            target = (
                handle
                if inner_selector is None
                else await handle.query_selector(inner_selector)
            )
            if target is None:
                return None
            return await target.inner_text()
        except PlaywrightError as e:
            logger.debug("Text not readable", selector=inner_selector, error=str(e))
            return None

    async def read_link(
        self, handle: ElementHandle, inner_selector: str = "a"
    ) -> str | None:
        """Absolute href of the first `inner_selector` descendant, or None."""
        try:
            anchor = await handle.query_selector(inner_selector)
            if anchor is None:
                return None
            href = await anchor.get_attribute("href")
        except PlaywrightError as e:
            logger.debug("Link not readable", selector=inner_selector, error=str(e))
            return None
        if not href:
            return None
        # Convert relative URLs to absolute
        if not href.startswith(("http://", "https://")):
            href = urljoin(self.page.url, href)
        return href

    # =========================================================================
    # Cleanup
    # =========================================================================

    async def close(self) -> None:
        """Close the tab. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            await self.page.close()
        except PlaywrightError as e:
            logger.debug("Tab already gone", error=str(e))
