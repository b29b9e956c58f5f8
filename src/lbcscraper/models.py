from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# State enumerations
# =============================================================================


class SessionState(str, Enum):
    """Lifecycle of a ScraperSession. CLOSED is terminal."""

    UNINITIALIZED = "uninitialized"
    BROWSER_LAUNCHED = "browser_launched"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


class AuthStep(str, Enum):
    """Progress of the login sequence, in order."""

    START = "start"
    COOKIE_DISMISSED = "cookie_dismissed"
    LOGIN_FORM_OPENED = "login_form_opened"
    CREDENTIALS_ENTERED = "credentials_entered"
    SUBMITTED = "submitted"
    VERIFIED = "verified"


class WaitOutcome(str, Enum):
    """Result of a best-effort wait."""

    CONFIRMED = "confirmed"
    NOT_CONFIRMED = "not_confirmed"

    @property
    def confirmed(self) -> bool:
        return self is WaitOutcome.CONFIRMED


# =============================================================================
# Value objects
# =============================================================================


class ListingRecord(BaseModel):
    """One classified ad extracted from the search results."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Listing title as displayed")
    price: str = Field(..., description="Normalized display price")
    link: str = Field(..., description="Absolute URL of the listing")
    scraped_at: datetime = Field(..., description="When the record was extracted")


class AuthResult(BaseModel):
    """Outcome of the login sequence.

    `reached` is VERIFIED only when the account marker rendered; otherwise it
    stays at SUBMITTED and `verification` is NOT_CONFIRMED.
    """

    model_config = ConfigDict(frozen=True)

    reached: AuthStep
    verification: WaitOutcome


class ContactResult(BaseModel):
    """Outcome of a contact attempt. Never raised, always returned."""

    model_config = ConfigDict(frozen=True)

    link: str
    success: bool
    reason: str | None = None
    navigation: WaitOutcome = WaitOutcome.NOT_CONFIRMED
