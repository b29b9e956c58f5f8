"""Browser automation for leboncoin with four layers:
- session: AutomationSession, the Playwright primitives seam
- auth / search / contact: the site flows driving a session
- orchestrator: ScraperSession, owning the browser and running the flows
"""

from .auth import AuthenticationFlow
from .browser import BrowserManager
from .contact import ContactFlow
from .orchestrator import ScraperSession
from .search import (
    DEFAULT_KEYWORD,
    DEFAULT_LIMIT,
    DEFAULT_SEARCH_QUERY,
    SearchFlow,
)
from .session import AutomationSession, humanized_pause
from .text import clean_price

__all__ = [
    # Orchestration
    "ScraperSession",
    "BrowserManager",
    # Flows
    "AuthenticationFlow",
    "SearchFlow",
    "ContactFlow",
    "DEFAULT_LIMIT",
    "DEFAULT_SEARCH_QUERY",
    "DEFAULT_KEYWORD",
    # Primitives
    "AutomationSession",
    "humanized_pause",
    "clean_price",
]
