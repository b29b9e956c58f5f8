"""Exception hierarchy for the leboncoin scraper.

Playwright errors are translated at the automation seam, so callers only
ever deal with the classes below.
"""

from lbcscraper.models import AuthStep


class ScraperError(Exception):
    """Base class for every error raised by lbcscraper."""


class ConfigurationError(ScraperError):
    """Credentials or settings are missing or invalid."""


# =============================================================================
# Automation errors
# =============================================================================


class AutomationError(ScraperError):
    """A browser primitive failed."""


class NavigationError(AutomationError):
    """Navigation failed or exceeded its timeout."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}")


class ElementNotFoundError(AutomationError):
    """A selector did not resolve within its timeout."""

    def __init__(self, selector: str, timeout: int | None = None):
        self.selector = selector
        self.timeout = timeout
        suffix = f" within {timeout} ms" if timeout else ""
        super().__init__(f"Element {selector!r} not found{suffix}")


# =============================================================================
# Session / flow errors
# =============================================================================


class LaunchError(ScraperError):
    """The browser resource could not be acquired."""


class BrowserNotLaunchedError(LaunchError):
    """A flow was started while no browser is running."""

    def __init__(self, message: str = "Browser was not started. Call launch() first."):
        super().__init__(message)


class AuthenticationError(ScraperError):
    """A mandatory login step failed."""

    def __init__(self, step: AuthStep, reason: str):
        self.step = step
        self.reason = reason
        super().__init__(f"Login failed at step '{step.value}': {reason}")


class NotAuthenticatedError(ScraperError):
    """An operation requiring a logged-in session was called too early."""

    def __init__(self, message: str = "Please authenticate first using authenticate()"):
        super().__init__(message)


class NoResultsError(ScraperError):
    """No listing element rendered before the search-results timeout."""


class ExtractionError(ScraperError):
    """Search navigation or query submission failed before extraction."""


class NoDataError(ScraperError):
    """Records were requested before any extraction ran."""

    def __init__(
        self,
        message: str = (
            "No extraction has run yet. Call get_latest_listings() first, "
            "this accessor only returns already scraped data."
        ),
    ):
        super().__init__(message)
