"""Telegram Bot API client for delivering reminder notifications."""

import logging
from typing import Any

import requests

from src.notifications.telegram.models import (
    InlineKeyboardMarkup,
    SendMessageResult,
    TelegramUpdate,
)

logger = logging.getLogger(__name__)

# Default API timeout in seconds
DEFAULT_REQUEST_TIMEOUT = 30

HTTP_FORBIDDEN = 403


class TelegramClientError(Exception):
    """Raised when Telegram API request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialise the error.

        :param message: Error message.
        :param status_code: Error code reported by Telegram, if any.
        """
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_forbidden(self) -> bool:
        """Check whether the bot was blocked or removed from the chat."""
        return self.status_code == HTTP_FORBIDDEN


class TelegramClient:
    """Client for the subset of the Telegram Bot API used for notifications."""

    def __init__(self, *, bot_token: str, chat_id: str | None = None) -> None:
        """Initialise the Telegram client.

        :param bot_token: Telegram bot token from @BotFather.
        :param chat_id: Default chat ID. Can be overridden per call.
        """
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._base_url = f"https://api.telegram.org/bot{self._bot_token}"
        logger.debug("TelegramClient initialised")

    @property
    def chat_id(self) -> str | None:
        """Get the configured chat ID."""
        return self._chat_id

    def send_message(
        self,
        text: str,
        chat_id: str | None = None,
        parse_mode: str = "HTML",
        reply_markup: InlineKeyboardMarkup | None = None,
        disable_notification: bool = False,
    ) -> SendMessageResult:
        """Send a text message to a chat.

        :param text: The message text to send.
        :param chat_id: Target chat ID. If not provided, uses the configured chat_id.
        :param parse_mode: Message parse mode (HTML or MarkdownV2).
        :param reply_markup: Inline keyboard to attach.
        :param disable_notification: Deliver silently.
        :returns: Result containing message_id and chat_id.
        :raises TelegramClientError: If the API request fails.
        :raises ValueError: If no chat_id is provided or configured.
        """
        target_chat_id = self._require_chat_id(chat_id)
        payload: dict[str, Any] = {
            "chat_id": target_chat_id,
            "text": text,
            "parse_mode": parse_mode,
            "disable_web_page_preview": True,
            "disable_notification": disable_notification,
        }
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup.model_dump(exclude_none=True)

        logger.info(f"Sending message to chat_id={target_chat_id}")
        message_data = self._call("sendMessage", payload)
        result = SendMessageResult(
            message_id=message_data.get("message_id"),
            chat_id=message_data.get("chat", {}).get("id"),
        )
        logger.info(f"Message sent successfully: message_id={result.message_id}")
        return result

    def delete_message(self, message_id: int, chat_id: str | None = None) -> bool:
        """Delete a previously sent message.

        :param message_id: Message to delete.
        :param chat_id: Chat the message is in.
        :returns: True if Telegram deleted it.
        :raises TelegramClientError: If the API request fails.
        """
        target_chat_id = self._require_chat_id(chat_id)
        result = self._call("deleteMessage", {"chat_id": target_chat_id, "message_id": message_id})
        return bool(result)

    def get_chat(self, chat_id: str | None = None) -> dict[str, Any]:
        """Fetch chat details, which fails if the bot cannot reach the chat.

        :param chat_id: Chat to look up.
        :returns: Chat data.
        :raises TelegramClientError: If the API request fails.
        """
        target_chat_id = self._require_chat_id(chat_id)
        return dict(self._call("getChat", {"chat_id": target_chat_id}))

    def get_updates(self, offset: int | None = None, timeout: int = 0) -> list[TelegramUpdate]:
        """Get pending button presses.

        :param offset: Identifier of the first update to be returned.
        :param timeout: Long polling timeout in seconds. Zero returns immediately.
        :returns: List of updates from Telegram.
        :raises TelegramClientError: If the API request fails.
        """
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["callback_query"]}
        if offset is not None:
            payload["offset"] = offset

        updates_data = self._call("getUpdates", payload, request_timeout=timeout + 10)
        updates = [TelegramUpdate.model_validate(u) for u in updates_data]
        if updates:
            logger.debug(f"Received {len(updates)} updates")
        return updates

    def answer_callback_query(self, callback_query_id: str, text: str | None = None) -> None:
        """Acknowledge a button press so the client stops its spinner.

        :param callback_query_id: ID of the callback query.
        :param text: Optional toast text.
        :raises TelegramClientError: If the API request fails.
        """
        payload: dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        self._call("answerCallbackQuery", payload)

    def _require_chat_id(self, chat_id: str | None) -> str:
        target_chat_id = chat_id or self._chat_id
        if not target_chat_id:
            raise ValueError(
                "No chat_id provided. Set TELEGRAM_CHAT_ID environment variable, "
                "pass chat_id to constructor, or provide chat_id parameter."
            )
        return target_chat_id

    def _call(
        self,
        method: str,
        payload: dict[str, Any],
        request_timeout: int = DEFAULT_REQUEST_TIMEOUT,
    ) -> Any:
        """Call a Bot API method and unwrap its result.

        :param method: Bot API method name.
        :param payload: JSON body.
        :param request_timeout: HTTP timeout in seconds.
        :returns: The ``result`` field of the response.
        :raises TelegramClientError: If the request fails or Telegram reports an error.
        """
        url = f"{self._base_url}/{method}"
        try:
            response = requests.post(url, json=payload, timeout=request_timeout)
            result = response.json()
        except requests.exceptions.Timeout as e:
            raise TelegramClientError(
                f"Telegram API request timed out after {request_timeout}s"
            ) from e
        except requests.exceptions.RequestException as e:
            raise TelegramClientError(f"Telegram API request failed: {e}") from e
        except ValueError as e:
            raise TelegramClientError(f"Telegram API returned invalid JSON for {method}") from e

        if not result.get("ok"):
            error_description = result.get("description", "Unknown error")
            raise TelegramClientError(
                f"Telegram API returned error: {error_description}",
                status_code=result.get("error_code"),
            )

        return result.get("result")
