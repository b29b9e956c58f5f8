"""Open a listing and start the contact flow.

Only the conversation form is opened; no message is submitted.
"""

import structlog

from lbcscraper.config import Settings, SiteSelectors
from lbcscraper.errors import AutomationError
from lbcscraper.models import ContactResult
from lbcscraper.scraper.session import AutomationSession

logger = structlog.get_logger(logger_name=__name__)


class ContactFlow:
    def __init__(
        self,
        session: AutomationSession,
        settings: Settings,
        selectors: SiteSelectors,
    ):
        self.session = session
        self.settings = settings
        self.selectors = selectors

    async def run(self, link: str) -> ContactResult:
        """Click the contact button of the listing at `link`.

        Failures are reported in the returned ContactResult, never raised.
        """
        button = self.selectors.contact_button
        try:
            await self.session.open(link)
            await self.session.await_element(button)
            navigation = await self.session.confirm_navigation(
                lambda: self.session.click(button)
            )
        except AutomationError as e:
            logger.error("Contact attempt failed", link=link, error=str(e))
            return ContactResult(link=link, success=False, reason=str(e))

        logger.info("Message ready to be sent", link=link, navigation=navigation.value)

        # Rate limiting between contacts
        await self.session.pause(self.settings.pauses.after_contact)
        return ContactResult(link=link, success=True, navigation=navigation)
