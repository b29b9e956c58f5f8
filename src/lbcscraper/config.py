import random
from pathlib import Path
from typing import Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from lbcscraper.errors import ConfigurationError

load_dotenv()

# =============================================================================
# Credentials
# =============================================================================


class Credentials(BaseSettings):
    """Account used to log in. Read once from LBC_USERNAME / LBC_PASSWORD."""

    model_config = SettingsConfigDict(
        env_prefix="LBC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    username: str = Field(..., description="Account email address.")
    password: SecretStr = Field(..., description="Account password.")

    @field_validator("username")
    @classmethod
    def username_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("username must not be empty")
        return value

    @field_validator("password")
    @classmethod
    def password_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("password must not be empty")
        return value

    @classmethod
    def from_env(cls) -> "Credentials":
        """Load credentials, failing fast with ConfigurationError."""
        try:
            return cls()
        except ValidationError as e:
            missing = ", ".join(
                f"LBC_{str(err['loc'][0]).upper()}" for err in e.errors() if err["loc"]
            )
            raise ConfigurationError(
                f"LBC_USERNAME and LBC_PASSWORD need to be set (env or .env file): {missing}"
            ) from e


# =============================================================================
# Timing
# =============================================================================


class DelayRange(BaseModel):
    """Uniform random delay window, in milliseconds."""

    model_config = ConfigDict(frozen=True)

    min_ms: int = Field(..., ge=0)
    max_ms: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min_ms > self.max_ms:
            raise ValueError("min_ms must be lower than or equal to max_ms")
        return self

    def sample(self, rng: random.Random | None = None) -> float:
        """Draw one delay, in seconds."""
        source = rng or random
        return source.uniform(self.min_ms, self.max_ms) / 1000


class TimeoutsConfig(BaseModel):
    """Per-operation timeouts, in milliseconds. 0 means unbounded."""

    navigation: int = 10000
    element: int = 5000
    account_verification: int = 10000
    search_results: int = 10000


class TypingDelays(BaseModel):
    """Per-character delays used when typing into form fields."""

    email: DelayRange = DelayRange(min_ms=30, max_ms=60)
    password: DelayRange = DelayRange(min_ms=40, max_ms=80)
    search: DelayRange = DelayRange(min_ms=20, max_ms=90)


class PauseDelays(BaseModel):
    """Pauses inserted between steps to look less like a bot."""

    cookie: DelayRange = DelayRange(min_ms=800, max_ms=1200)
    login_click: DelayRange = DelayRange(min_ms=1000, max_ms=2000)
    before_search_submit: DelayRange = DelayRange(min_ms=1000, max_ms=2000)
    between_items: DelayRange = DelayRange(min_ms=200, max_ms=500)
    after_contact: DelayRange = DelayRange(min_ms=3000, max_ms=5000)


# =============================================================================
# Site surface
# =============================================================================


class SiteSelectors(BaseModel):
    """CSS selectors for the target site, looked up by logical name.

    Site owners change their markup often; override any entry from a YAML
    file instead of touching flow code.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    cookie_accept: str = "#didomi-notice-agree-button"
    login_button: str = '[aria-label="Se connecter"]'
    email_input: str = "#email"
    continue_button: str = '[data-testid="login-continue-button"]'
    password_input: str = "#password"
    submit_button: str = '[data-testid="submitButton"]'
    account_icon: str = '[aria-label="Mon compte"]'
    search_input: str = '[data-test-id="extendable-input"]'
    ad_item: str = '[data-test-id="ad"]'
    ad_title: str = '[data-test-id="adcard-title"]'
    ad_price: str = '[data-test-id="price"] > span'
    ad_link: str = "a"
    contact_button: str = '[data-pub-id="adview_button_contact_contact"]'

    def lookup(self, name: str) -> str:
        """Return the selector registered under `name`."""
        if name not in type(self).model_fields:
            raise KeyError(name)
        return getattr(self, name)

    @classmethod
    def from_yaml(cls, path: Path) -> "SiteSelectors":
        """Overlay the mapping stored in `path` on the default selectors."""
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read selectors file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Selectors file {path} must contain a mapping")
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid selectors file {path}: {e}") from e


class SiteConfig(BaseModel):
    """Fixed URLs of the target site."""

    base_url: str = "https://www.leboncoin.fr/"
    # category 41 is "Jouets", sort=time lists the latest ads first
    search_path: str = "recherche?category=41&sort=time"

    @property
    def search_url(self) -> str:
        return f"{self.base_url}{self.search_path}"


class BrowserConfig(BaseModel):
    """Launch options for the controlled Chromium instance."""

    headless: bool = False
    executable_path: Optional[Path] = None
    args: tuple[str, ...] = (
        "--disable-blink-features=AutomationControlled",
        "--disable-features=IsolateOrigins,site-per-process",
        "--disable-site-isolation-trials",
    )
    viewport_width: int = 1400
    viewport_height: int = 900
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/134.0.0.0 Safari/537.36"
    )


# =============================================================================
# Main Application Config
# =============================================================================


class Settings(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LBC_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    site: SiteConfig = Field(default_factory=SiteConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    typing: TypingDelays = Field(default_factory=TypingDelays)
    pauses: PauseDelays = Field(default_factory=PauseDelays)

    selectors_file: Optional[Path] = Field(
        default=None,
        description="YAML file overriding some or all site selectors.",
    )
    price_fallback: str = Field(
        default="Price not found",
        description="Price stored when a listing shows no price.",
    )
    require_login_verification: bool = Field(
        default=False,
        description="Fail authentication when the account marker never renders.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    def load_selectors(self) -> SiteSelectors:
        if self.selectors_file is None:
            return SiteSelectors()
        return SiteSelectors.from_yaml(self.selectors_file)


# Global config instance
cfg = Settings()
