"""Pydantic models for the Telegram Bot API."""

from pydantic import BaseModel, Field


class InlineKeyboardButton(BaseModel):
    """A button shown under a message."""

    text: str
    callback_data: str | None = None
    url: str | None = None


class InlineKeyboardMarkup(BaseModel):
    """Rows of inline buttons attached to a message."""

    inline_keyboard: list[list[InlineKeyboardButton]] = Field(default_factory=list)


class CallbackQuery(BaseModel):
    """A press of an inline keyboard button."""

    id: str
    data: str | None = None


class TelegramUpdate(BaseModel):
    """Telegram update from getUpdates API."""

    update_id: int
    callback_query: CallbackQuery | None = None


class SendMessageResult(BaseModel):
    """Result of sending a message via Telegram."""

    message_id: int
    chat_id: int
