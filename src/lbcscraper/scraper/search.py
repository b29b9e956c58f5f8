"""Search the listings category and extract matching ads."""

import asyncio
from datetime import datetime, timezone

import structlog
from playwright.async_api import ElementHandle

from lbcscraper.config import Settings, SiteSelectors
from lbcscraper.errors import (
    AutomationError,
    ElementNotFoundError,
    ExtractionError,
    NoResultsError,
)
from lbcscraper.models import ListingRecord
from lbcscraper.scraper.session import AutomationSession
from lbcscraper.scraper.text import clean_price

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_LIMIT = 10
DEFAULT_SEARCH_QUERY = "fléchettes avec les fléchettes."
DEFAULT_KEYWORD = "fléchettes"


class SearchFlow:
    """Runs a search in one tab and turns the result cards into records."""

    def __init__(
        self,
        session: AutomationSession,
        settings: Settings,
        selectors: SiteSelectors,
    ):
        self.session = session
        self.settings = settings
        self.selectors = selectors

    async def run(
        self,
        limit: int = DEFAULT_LIMIT,
        search_query: str = DEFAULT_SEARCH_QUERY,
        keyword: str = DEFAULT_KEYWORD,
    ) -> list[ListingRecord]:
        """Search, filter by keyword and extract at most `limit` records.

        Args:
            limit: Maximum number of records to return
            search_query: Text typed into the search box
            keyword: Case-insensitive substring required in the title

        Returns:
            Records in document order, possibly fewer than `limit`

        Raises:
            ExtractionError: if the search could not be submitted
            NoResultsError: if no listing rendered in time
        """
        await self.submit_search(search_query)
        listings = await self.wait_for_listings()
        matched = await self.filter_by_keyword(listings, keyword)
        selected = matched[:limit]

        logger.info(
            "Listings found",
            found=len(listings),
            matched=len(matched),
            processing=len(selected),
        )

        records: list[ListingRecord] = []
        for index, listing in enumerate(selected, start=1):
            record = await self.extract_listing(listing, index)
            if record is not None:
                records.append(record)
            await self.session.pause(self.settings.pauses.between_items)

        logger.info("Listings extracted", count=len(records))
        return records

    async def submit_search(self, search_query: str) -> None:
        s = self.selectors
        try:
            # The category page can be slow with many results
            await self.session.open(self.settings.site.search_url, timeout=0)
            await self.session.type_humanized(
                s.search_input, search_query, self.settings.typing.search
            )
            await self.session.pause(self.settings.pauses.before_search_submit)
            navigation = await self.session.confirm_navigation(
                lambda: self.session.press("Enter")
            )
        except AutomationError as e:
            logger.error("Search submission failed", query=search_query, error=str(e))
            raise ExtractionError(f"Search submission failed: {e}") from e

        logger.debug("Search submitted", query=search_query, navigation=navigation.value)

    async def wait_for_listings(self) -> list[ElementHandle]:
        s = self.selectors
        timeout = self.settings.timeouts.search_results
        try:
            await self.session.await_element(s.ad_item, timeout=timeout)
        except ElementNotFoundError as e:
            logger.error("No listing rendered", timeout=timeout)
            raise NoResultsError(f"No listing rendered within {timeout} ms") from e
        except AutomationError as e:
            raise ExtractionError(f"Waiting for listings failed: {e}") from e

        try:
            return await self.session.query_all(s.ad_item)
        except AutomationError as e:
            raise ExtractionError(f"Listing enumeration failed: {e}") from e

    async def filter_by_keyword(
        self, listings: list[ElementHandle], keyword: str
    ) -> list[ElementHandle]:
        """Keep listings whose title contains `keyword`, ignoring case.

        Titles are read concurrently; the result keeps document order.
        Listings without a title are dropped.
        """
        needle = keyword.lower()
        titles = await asyncio.gather(
            *(self.session.read_text(listing, self.selectors.ad_title) for listing in listings)
        )
        return [
            listing
            for listing, title in zip(listings, titles)
            if title is not None and needle in title.lower()
        ]

    async def extract_listing(
        self, listing: ElementHandle, index: int
    ) -> ListingRecord | None:
        """Build a record from one card, or None if it lacks a title or link."""
        s = self.selectors

        title = await self.session.read_text(listing, s.ad_title)
        if not title:
            logger.warning("Error extracting data from listing", index=index, missing="title")
            return None

        price = await self.session.read_text(listing, s.ad_price)
        if price is None:
            price = self.settings.price_fallback

        link = await self.session.read_link(listing, s.ad_link)
        if not link:
            logger.warning("Error extracting data from listing", index=index, missing="link")
            return None

        return ListingRecord(
            title=title.strip(),
            price=clean_price(price),
            link=link,
            scraped_at=datetime.now(timezone.utc),
        )
