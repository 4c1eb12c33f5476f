"""Telegram delivery of reminder notifications."""

from src.notifications.telegram.client import TelegramClient, TelegramClientError
from src.notifications.telegram.config import TelegramConfig, get_telegram_settings
from src.notifications.telegram.host import (
    NOTIFICATION_CALLBACK_PREFIX,
    TelegramNotification,
    TelegramNotificationHost,
    parse_notification_callback,
)
from src.notifications.telegram.models import (
    CallbackQuery,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    SendMessageResult,
    TelegramUpdate,
)

__all__ = [
    "NOTIFICATION_CALLBACK_PREFIX",
    "CallbackQuery",
    "InlineKeyboardButton",
    "InlineKeyboardMarkup",
    "SendMessageResult",
    "TelegramClient",
    "TelegramClientError",
    "TelegramConfig",
    "TelegramNotification",
    "TelegramNotificationHost",
    "TelegramUpdate",
    "get_telegram_settings",
    "parse_notification_callback",
]
