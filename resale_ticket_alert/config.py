"""Configuration settings using Pydantic with environment variables."""
from pathlib import Path
from typing import Any, Optional, Union

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import AppConfig, NotificationConfig, ScraperConfig

DEFAULT_EVENT_URL = (
    "https://www.ticketmaster.co.uk/back-to-the-beginning-birmingham-05-07-2025/event/360062289EF011A5"
)
VALID_LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


class Settings(BaseSettings):
    """Application settings with environment variable loading and validation."""

    model_config = SettingsConfigDict(case_sensitive=True, extra='ignore')

    TICKETMASTER_URL: str = Field(
        DEFAULT_EVENT_URL,
        description="URL of the event page to monitor"
    )
    NTFY_URL: str = Field(
        "https://ntfy.sh/ticket-alert",
        description="ntfy topic URL notifications are posted to"
    )
    INTERVAL_MINUTES: float = Field(
        10.0,
        gt=0,
        description="Minutes between scheduled checks"
    )
    MAX_RETRIES: int = Field(
        3,
        ge=1,
        description="Attempts per scheduled check"
    )
    RETRY_DELAY: float = Field(
        5.0,
        ge=0,
        description="Seconds of backoff per failed attempt"
    )
    HEADLESS: bool = Field(
        True,
        description="Run browser in headless mode"
    )
    LOG_FILE_PATH: Path = Field(
        default_factory=lambda: Path.cwd() / 'ticketmaster_scraping_log.csv',
        description="CSV file the run log is appended to"
    )
    LOG_LEVEL: str = Field(
        "INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    TIMEZONE: str = Field(
        "Europe/Paris",
        description="Time zone used for run log timestamps"
    )
    OPEN_BROWSER: bool = Field(
        True,
        description="Open the event page locally when tickets are found"
    )

    @field_validator('TICKETMASTER_URL', 'NTFY_URL')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL is a valid logging level."""
        if v.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f'LOG_LEVEL must be one of {sorted(VALID_LOG_LEVELS)}')
        return v.upper()

    def to_app_config(self) -> AppConfig:
        return AppConfig(
            event_url=self.TICKETMASTER_URL,
            interval_minutes=self.INTERVAL_MINUTES,
            max_retries=self.MAX_RETRIES,
            retry_delay=self.RETRY_DELAY,
            log_file_path=self.LOG_FILE_PATH,
            log_level=self.LOG_LEVEL,
            timezone=self.TIMEZONE,
            scraper=ScraperConfig(headless=self.HEADLESS),
            notification=NotificationConfig(notify_url=self.NTFY_URL, open_browser=self.OPEN_BROWSER),
        )


def load_config(env_file: Optional[Union[str, Path]] = '.env', **overrides: Any) -> AppConfig:
    """Load the configuration snapshot.

    Args:
        env_file: Optional .env file loaded into the environment first.
        **overrides: Settings field values taking precedence over the
            environment, e.g. from the command line. ``None`` values are ignored.

    Raises:
        pydantic.ValidationError: If a value is invalid.
    """
    if env_file:
        load_dotenv(dotenv_path=env_file)

    values = {key: value for key, value in overrides.items() if value is not None}
    return Settings(**values).to_app_config()

