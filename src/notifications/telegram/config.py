"""Configuration for Telegram notification delivery using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.paths import ENV_FILE



class TelegramConfig(BaseSettings):
    """Configuration for Telegram notifications.

    All settings are loaded from environment variables with the TELEGRAM_ prefix.

    :param bot_token: Telegram bot token from @BotFather.
    :param chat_id: Chat that receives reminder notifications.
    :param update_poll_seconds: Seconds between checks for button presses.
    """

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    bot_token: str = Field(..., description="Bot token from @BotFather")
    chat_id: str | None = Field(
        default=None,
        description="Chat that receives reminder notifications",
    )
    update_poll_seconds: int = Field(
        default=5,
        ge=1,
        le=60,
        description="Seconds between checks for notification button presses",
    )


@lru_cache
def get_telegram_settings() -> TelegramConfig:
    """Get cached Telegram settings.

    Settings are loaded once and cached for the lifetime of the process.

    :returns: Configured TelegramConfig instance.
    :raises ValidationError: If TELEGRAM_BOT_TOKEN is not set.
    """
    return TelegramConfig()  # type: ignore[call-arg]
