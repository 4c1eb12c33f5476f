"""Configuration for the problem tracker reminder engine using pydantic-settings."""

from functools import cached_property, lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.paths import ENV_FILE, PROJECT_ROOT

DEFAULT_DATABASE_URL = f"sqlite:///{PROJECT_ROOT / 'tracker.db'}"


class TrackerConfig(BaseSettings):
    """Configuration for the reminder engine.

    All settings are loaded from environment variables with the TRACKER_ prefix.

    :param api_base_url: Base URL of the problem tracker API.
    :param api_token: Bearer credential. Absent means the user is not signed in.
    :param request_timeout: HTTP timeout in seconds.
    :param pending_page_size: Page size for a full pending-reminder refresh.
    :param poll_interval_minutes: Minutes between background count refreshes.
    :param stale_after_minutes: Minutes after which the cache is considered stale.
    :param auto_close_seconds: Seconds before a notification closes itself.
    :param default_snooze_hours: Hours a skip pushes a reminder forward by default.
    :param default_intervals: Comma-separated spaced repetition intervals in days.
    :param database_url: SQLAlchemy URL for the local key-value store.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRACKER_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_base_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL of the problem tracker API",
    )
    api_token: str | None = Field(
        default=None,
        description="Bearer credential for the API",
    )
    request_timeout: int = Field(
        default=30,
        ge=1,
        le=120,
        description="HTTP request timeout in seconds",
    )
    pending_page_size: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Reminders fetched by a full refresh",
    )
    poll_interval_minutes: int = Field(
        default=5,
        ge=1,
        le=60,
        description="Minutes between background count refreshes",
    )
    stale_after_minutes: int = Field(
        default=10,
        ge=1,
        le=1440,
        description="Minutes before the cache is reported stale",
    )
    auto_close_seconds: int = Field(
        default=10,
        ge=1,
        le=300,
        description="Seconds before an auto-closing notification is dismissed",
    )
    default_snooze_hours: int = Field(
        default=24,
        ge=1,
        le=720,
        description="Default snooze duration in hours",
    )
    default_intervals: str = Field(
        default="1,3,7,14,30",
        description="Comma-separated spaced repetition intervals in days",
    )
    database_url: str = Field(
        default=DEFAULT_DATABASE_URL,
        description="SQLAlchemy URL for the local settings store",
    )

    @field_validator("default_intervals")
    @classmethod
    def validate_default_intervals(cls, v: str) -> str:
        """Validate that intervals are positive and strictly increasing.

        :param v: Raw comma-separated string from environment.
        :returns: The validated string.
        :raises ValueError: If the list is empty, non-numeric, or not increasing.
        """
        parts = [part.strip() for part in v.split(",") if part.strip()]
        if not parts:
            raise ValueError("At least one reminder interval must be configured")

        try:
            intervals = [int(part) for part in parts]
        except ValueError as e:
            raise ValueError(f"Reminder intervals must be integers: {v!r}") from e

        if intervals[0] < 1 or any(b <= a for a, b in zip(intervals, intervals[1:])):
            raise ValueError(f"Reminder intervals must be positive and increasing: {v!r}")
        return v

    @cached_property
    def intervals(self) -> tuple[int, ...]:
        """Get the default intervals as a tuple of day counts.

        :returns: Tuple of interval days.
        """
        return tuple(int(part) for part in self.default_intervals.split(",") if part.strip())


@lru_cache
def get_tracker_settings() -> TrackerConfig:
    """Get cached tracker settings.

    Settings are loaded once and cached for the lifetime of the process.

    :returns: Configured TrackerConfig instance.
    """
    return TrackerConfig()
