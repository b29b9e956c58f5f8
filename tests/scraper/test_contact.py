"""Tests for contact.py - opening the contact form of a listing."""

from unittest.mock import AsyncMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeout

from lbcscraper.models import ContactResult, WaitOutcome
from lbcscraper.scraper.contact import ContactFlow

LINK = "https://www.leboncoin.fr/ad/jouets/2841"


@pytest.fixture
def flow(automation, settings, selectors):
    return ContactFlow(automation, settings, selectors)


class TestContactFlow:
    """Tests for ContactFlow.run."""

    async def test_opens_listing_and_clicks_contact(self, flow, mock_page, selectors):
        result = await flow.run(LINK)

        assert result == ContactResult(
            link=LINK, success=True, navigation=WaitOutcome.CONFIRMED
        )
        assert mock_page.goto.await_args.args[0] == LINK
        mock_page.click.assert_awaited_once()
        assert mock_page.click.await_args.args[0] == selectors.contact_button

    async def test_missing_contact_button_is_reported(self, flow, missing_selectors, mock_page, selectors):
        missing_selectors({selectors.contact_button: None})

        result = await flow.run(LINK)

        assert result.success is False
        assert selectors.contact_button in result.reason
        mock_page.click.assert_not_awaited()

    async def test_listing_page_failure_is_reported(self, flow, mock_page):
        mock_page.goto = AsyncMock(side_effect=PlaywrightTimeout("Timeout"))

        result = await flow.run(LINK)

        assert result.success is False
        assert LINK in result.reason

    async def test_click_without_navigation_is_reported(self, flow, navigation):
        navigation.navigates = False

        result = await flow.run(LINK)

        assert result.success is True
        assert result.navigation is WaitOutcome.NOT_CONFIRMED

    async def test_contact_click_happens_inside_navigation_wait(
        self, flow, mock_page, navigation, selectors
    ):
        async def click(selector, timeout=None):
            navigation.events.append(f"click {selector}")

        mock_page.click = AsyncMock(side_effect=click)

        await flow.run(LINK)

        assert navigation.events == ["armed", f"click {selectors.contact_button}", "settled"]
