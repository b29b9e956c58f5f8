"""Login sequence for leboncoin.

The flow walks through AuthStep in order. Cookie dismissal and the final
account-marker check are best-effort; every other step raises
AuthenticationError naming the step that failed.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog

from lbcscraper.config import Credentials, Settings, SiteSelectors
from lbcscraper.errors import AuthenticationError, AutomationError
from lbcscraper.models import AuthResult, AuthStep, WaitOutcome
from lbcscraper.scraper.session import AutomationSession

logger = structlog.get_logger(logger_name=__name__)


class AuthenticationFlow:
    """Drives one tab from the home page to a logged-in state."""

    def __init__(
        self,
        session: AutomationSession,
        credentials: Credentials,
        settings: Settings,
        selectors: SiteSelectors,
    ):
        self.session = session
        self.credentials = credentials
        self.settings = settings
        self.selectors = selectors
        self.state = AuthStep.START

    @asynccontextmanager
    async def _step(self, step: AuthStep) -> AsyncGenerator[None, None]:
        """Run a mandatory step, advancing the state when it succeeds."""
        try:
            yield
        except AutomationError as e:
            logger.error("Login step failed", step=step.value, error=str(e))
            raise AuthenticationError(step, str(e)) from e
        self.state = step
        logger.debug("Login step reached", step=step.value)

    async def run(self) -> AuthResult:
        """Perform the whole login sequence.

        Returns:
            AuthResult telling whether the account marker was observed

        Raises:
            AuthenticationError: when a mandatory step fails, or when the
                marker is missing and require_login_verification is set
        """
        async with self._step(AuthStep.START):
            await self.session.open(self.settings.site.base_url)

        await self.dismiss_cookie_notice()

        async with self._step(AuthStep.LOGIN_FORM_OPENED):
            await self._open_login_form()

        async with self._step(AuthStep.CREDENTIALS_ENTERED):
            await self._enter_credentials()

        async with self._step(AuthStep.SUBMITTED):
            navigation = await self._submit()

        verification = await self.verify_login(navigation)
        return AuthResult(reached=self.state, verification=verification)

    async def dismiss_cookie_notice(self) -> WaitOutcome:
        """Accept the cookie banner if one shows up."""
        s = self.selectors
        outcome = await self.session.confirm_element(s.cookie_accept, visible=False)
        if outcome.confirmed:
            try:
                await self.session.click(s.cookie_accept)
            except AutomationError as e:
                logger.info("Cookie notice could not be clicked", error=str(e))
                outcome = WaitOutcome.NOT_CONFIRMED
            else:
                await self.session.pause(self.settings.pauses.cookie)
                logger.info("Cookie consent handled")
        else:
            logger.info("Cookie notice not found or already accepted")

        self.state = AuthStep.COOKIE_DISMISSED
        return outcome

    async def _open_login_form(self) -> None:
        s = self.selectors
        pause = self.settings.pauses.login_click

        await self.session.await_element(s.login_button)
        await self.session.click(s.login_button)
        await self.session.pause(pause)

        if (await self.session.confirm_element(s.email_input)).confirmed:
            return

        # The login entry point sometimes ignores the first click
        logger.info("Email field not found, retrying login button")
        await self.session.pause(pause)
        await self.session.click(s.login_button)
        await self.session.await_element(s.email_input)

    async def _enter_credentials(self) -> None:
        s = self.selectors
        typing = self.settings.typing

        await self.session.type_humanized(
            s.email_input, self.credentials.username, typing.email
        )
        await self.session.await_element(s.continue_button)
        await self.session.click(s.continue_button)

        await self.session.await_element(s.password_input)
        await self.session.type_humanized(
            s.password_input, self.credentials.password.get_secret_value(), typing.password
        )

    async def _submit(self) -> WaitOutcome:
        button = self.selectors.submit_button
        await self.session.await_element(button)
        return await self.session.confirm_navigation(
            lambda: self.session.click(button),
            timeout=self.settings.timeouts.account_verification,
        )

    async def verify_login(
        self, navigation: WaitOutcome = WaitOutcome.NOT_CONFIRMED
    ) -> WaitOutcome:
        """Wait for the logged-in marker without failing on timeout.

        The marker is checked even when the post-submit navigation was not
        observed.
        """
        timeout = self.settings.timeouts.account_verification
        outcome = await self.session.confirm_element(
            self.selectors.account_icon, timeout=timeout
        )

        if outcome.confirmed:
            self.state = AuthStep.VERIFIED
            logger.info("Login verified", navigation=navigation.value)
            return outcome

        logger.warning(
            "Login success verification timed out, session may not be logged in",
            timeout=timeout,
            navigation=navigation.value,
        )
        if self.settings.require_login_verification:
            raise AuthenticationError(
                AuthStep.VERIFIED, "account marker did not render"
            )
        return outcome
