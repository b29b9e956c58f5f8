"""ScraperSession: browser lifecycle plus the login, search and contact flows.

Usage:
    async with ScraperSession() as scraper:
        await scraper.authenticate()
        records = await scraper.get_latest_listings(limit=5)
        for record in records:
            await scraper.contact(record.link)
"""

import random

import structlog

from lbcscraper.config import Credentials, Settings, cfg
from lbcscraper.errors import (
    AuthenticationError,
    AutomationError,
    BrowserNotLaunchedError,
    ExtractionError,
    LaunchError,
    NoDataError,
    NotAuthenticatedError,
)
from lbcscraper.models import (
    AuthResult,
    AuthStep,
    ContactResult,
    ListingRecord,
    SessionState,
)
from lbcscraper.scraper.auth import AuthenticationFlow
from lbcscraper.scraper.browser import BrowserManager
from lbcscraper.scraper.contact import ContactFlow
from lbcscraper.scraper.search import (
    DEFAULT_KEYWORD,
    DEFAULT_LIMIT,
    DEFAULT_SEARCH_QUERY,
    SearchFlow,
)

logger = structlog.get_logger(logger_name=__name__)


class ScraperSession:
    """Owns the browser and composes the scraping flows in order.

    State goes UNINITIALIZED -> BROWSER_LAUNCHED -> AUTHENTICATED and can
    jump to CLOSED from anywhere. CLOSED is terminal.
    """

    def __init__(
        self,
        credentials: Credentials | None = None,
        settings: Settings | None = None,
        browser: BrowserManager | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings or cfg
        # Fails fast with ConfigurationError when the environment is incomplete
        self.credentials = credentials or Credentials.from_env()
        self.selectors = self.settings.load_selectors()
        self._browser = browser or BrowserManager(
            self.settings.browser, self.settings.timeouts, rng
        )
        self._state = SessionState.UNINITIALIZED
        self._records: list[ListingRecord] | None = None
        self.last_auth: AuthResult | None = None

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    @property
    def base_url(self) -> str:
        return self.settings.site.base_url

    @property
    def records(self) -> list[ListingRecord]:
        """Records of the last successful extraction.

        Raises:
            NoDataError: if no extraction has completed yet
        """
        if self._records is None:
            raise NoDataError()
        return list(self._records)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def launch(self) -> None:
        """Start the browser.

        Raises:
            LaunchError: if the browser cannot start or the session is closed
        """
        if self._state is SessionState.CLOSED:
            raise LaunchError("Session is closed, create a new ScraperSession")
        if self._state is not SessionState.UNINITIALIZED:
            logger.debug("Browser already launched")
            return

        await self._browser.start()
        self._state = SessionState.BROWSER_LAUNCHED

    async def close(self) -> None:
        """Release the browser. Safe before launch and when called twice."""
        previous = self._state
        self._state = SessionState.CLOSED
        await self._browser.close()
        if previous is not SessionState.CLOSED:
            logger.debug("Scraper session closed", previous_state=previous.value)

    async def __aenter__(self) -> "ScraperSession":
        try:
            await self.launch()
        except LaunchError:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # =========================================================================
    # Flows
    # =========================================================================

    def _require_browser(self) -> None:
        if self._state in (SessionState.UNINITIALIZED, SessionState.CLOSED):
            raise BrowserNotLaunchedError()

    def _require_authentication(self) -> None:
        if self._state is not SessionState.AUTHENTICATED:
            raise NotAuthenticatedError()

    async def authenticate(self) -> AuthResult:
        """Log in with the session credentials.

        The session is marked authenticated even when the account marker
        did not render in time, unless require_login_verification is set.
        Inspect the returned AuthResult to tell the two cases apart.
        """
        self._require_browser()
        try:
            async with self._browser.open_tab() as tab:
                flow = AuthenticationFlow(tab, self.credentials, self.settings, self.selectors)
                result = await flow.run()
        except AutomationError as e:
            raise AuthenticationError(AuthStep.START, str(e)) from e

        self._state = SessionState.AUTHENTICATED
        self.last_auth = result
        logger.info(
            "Successfully authenticated",
            verification=result.verification.value,
        )
        return result

    async def get_latest_listings(
        self,
        limit: int = DEFAULT_LIMIT,
        search_query: str = DEFAULT_SEARCH_QUERY,
        keyword: str = DEFAULT_KEYWORD,
    ) -> list[ListingRecord]:
        """Search the category and return matching listings.

        Args:
            limit: Maximum number of records, 0 or more
            search_query: Text typed into the search box
            keyword: Case-insensitive substring required in each title

        Raises:
            NotAuthenticatedError: before a successful authenticate()
            ExtractionError: if the search could not be run
            NoResultsError: if no listing rendered in time
        """
        self._require_authentication()
        if limit < 0:
            raise ValueError(f"limit must be 0 or more, got {limit}")

        self._records = None
        try:
            async with self._browser.open_tab() as tab:
                flow = SearchFlow(tab, self.settings, self.selectors)
                records = await flow.run(limit, search_query, keyword)
        except AutomationError as e:
            raise ExtractionError(str(e)) from e

        self._records = records
        return list(records)

    async def contact(self, link: str) -> ContactResult:
        """Open the contact form of a listing. Never raises on site errors."""
        self._require_authentication()
        try:
            async with self._browser.open_tab() as tab:
                return await ContactFlow(tab, self.settings, self.selectors).run(link)
        except AutomationError as e:
            logger.error("Contact attempt failed", link=link, error=str(e))
            return ContactResult(link=link, success=False, reason=str(e))
