"""Playwright browser resource owned by a ScraperSession.

Provides:
- Chromium launch with anti-automation flags and a fixed viewport
- A single browser context, so cookies set while logging in are shared by
  every tab opened afterwards
- Scoped tabs, closed on exit even when the flow fails
"""

import random
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError

from lbcscraper.config import BrowserConfig, TimeoutsConfig
from lbcscraper.errors import AutomationError, BrowserNotLaunchedError, LaunchError
from lbcscraper.scraper.session import AutomationSession

logger = structlog.get_logger(logger_name=__name__)


class BrowserManager:
    """Owns one Playwright driver, browser and context.

    Usage:
        manager = BrowserManager(config)
        await manager.start()
        async with manager.open_tab() as tab:
            await tab.open(url)
        await manager.close()
    """

    def __init__(
        self,
        config: BrowserConfig | None = None,
        timeouts: TimeoutsConfig | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config or BrowserConfig()
        self.timeouts = timeouts or TimeoutsConfig()
        self.rng = rng
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    @property
    def running(self) -> bool:
        return self._context is not None

    async def start(self) -> None:
        """Launch the browser.

        Raises:
            LaunchError: if Playwright or Chromium cannot be started
        """
        if self.running:
            return
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                args=list(self.config.args),
                executable_path=self.config.executable_path,
            )
            self._context = await self._browser.new_context(
                user_agent=self.config.user_agent,
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
                java_script_enabled=True,
            )
        except (PlaywrightError, OSError) as e:
            logger.error("Failed to launch browser", error=str(e))
            await self.close()
            raise LaunchError(f"Failed to launch browser: {e}") from e

        logger.info(
            "Browser launched",
            headless=self.config.headless,
            executable_path=str(self.config.executable_path or "bundled"),
        )

    @asynccontextmanager
    async def open_tab(self) -> AsyncGenerator[AutomationSession, None]:
        """Open a new tab, closed automatically when the block exits."""
        if self._context is None:
            raise BrowserNotLaunchedError()

        try:
            page = await self._context.new_page()
        except PlaywrightError as e:
            raise AutomationError(f"Failed to open a tab: {e}") from e
        session = AutomationSession(page, self.timeouts, self.rng)
        try:
            yield session
        finally:
            await session.close()

    async def close(self) -> None:
        """Release context, browser and driver. Safe to call more than once."""
        context, browser, playwright = self._context, self._browser, self._playwright
        self._context = self._browser = self._playwright = None

        for name, resource in (("context", context), ("browser", browser)):
            if resource is None:
                continue
            try:
                await resource.close()
            except PlaywrightError as e:
                logger.warning("Failed to close browser resource", resource=name, error=str(e))
        if playwright is not None:
            try:
                await playwright.stop()
            except PlaywrightError as e:
                logger.warning("Failed to stop Playwright", error=str(e))
            logger.info("Browser closed")
