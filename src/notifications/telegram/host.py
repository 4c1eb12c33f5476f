"""Telegram implementation of the notification host.

Each notification is a chat message with a "View Problem" button. Showing
a notification whose tag is still visible deletes the old message first,
and closing a notification deletes its message.
"""

import logging
import threading

from src.notifications.host import (
    ActivationCallback,
    HostNotification,
    NotificationContent,
    NotificationHost,
    NotificationHostError,
    PermissionState,
)
from src.notifications.telegram.client import TelegramClient, TelegramClientError
from src.notifications.telegram.formatting import format_message
from src.notifications.telegram.models import (
    CallbackQuery,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
)

logger = logging.getLogger(__name__)

# Callback data prefix for notification buttons
NOTIFICATION_CALLBACK_PREFIX = "notify:"

# Action sent by the "View Problem" button
OPEN_ACTION = "open"


class TelegramNotification(HostNotification):
    """A reminder notification rendered as a Telegram message."""

    def __init__(self, host: "TelegramNotificationHost", tag: str, message_id: int) -> None:
        """Initialise the notification.

        :param host: Host that sent the message.
        :param tag: Replacement tag.
        :param message_id: Telegram message ID.
        """
        super().__init__(tag)
        self.message_id = message_id
        self._host = host
        self._closed = False

    @property
    def closed(self) -> bool:
        """Check whether the notification has been closed."""
        return self._closed

    def close(self) -> None:
        """Delete the message. Closing twice is a no-op."""
        if self._closed:
            return
        self._closed = True
        self._host.dismiss(self)


def parse_notification_callback(data: str | None) -> tuple[str, str] | None:
    """Parse notification button callback data.

    Format: ``notify:action:tag``

    :param data: Callback data string.
    :returns: Tuple of (action, tag) or None if the data is not ours.
    """
    if not data or not data.startswith(NOTIFICATION_CALLBACK_PREFIX):
        return None

    parts = data.split(":", 2)
    if len(parts) != 3 or not parts[2]:
        logger.warning(f"Invalid notification callback data: {data}")
        return None
    return parts[1], parts[2]


class TelegramNotificationHost(NotificationHost):
    """Delivers notifications to a single Telegram chat.

    Permission is granted once the bot has confirmed it can reach the chat.
    If the user has blocked the bot, permission is denied until they unblock
    it in Telegram.
    """

    def __init__(self, client: TelegramClient) -> None:
        """Initialise the host.

        :param client: Telegram client with a default chat configured.
        """
        self._client = client
        self._permission = (
            PermissionState.DEFAULT if client.chat_id else PermissionState.UNSUPPORTED
        )
        self._active: dict[str, tuple[TelegramNotification, ActivationCallback]] = {}
        self._lock = threading.Lock()

    def permission_state(self) -> PermissionState:
        """Report the current notification permission."""
        return self._permission

    def request_permission(self) -> PermissionState:
        """Check that the bot can reach the configured chat.

        :returns: GRANTED if reachable, DENIED if the bot is blocked.
        :raises NotificationHostError: If Telegram cannot be contacted.
        """
        if self._permission == PermissionState.UNSUPPORTED:
            return self._permission

        try:
            self._client.get_chat()
        except TelegramClientError as e:
            if e.is_forbidden:
                logger.warning("Bot is blocked in the notification chat")
                self._permission = PermissionState.DENIED
                return self._permission
            raise NotificationHostError(f"Could not verify notification chat: {e}") from e

        self._permission = PermissionState.GRANTED
        return self._permission

    def show(
        self,
        content: NotificationContent,
        on_activate: ActivationCallback,
    ) -> HostNotification:
        """Send the notification message, replacing any with the same tag.

        :param content: What to show.
        :param on_activate: Invoked when the user presses the button.
        :returns: The shown notification.
        :raises NotificationHostError: If the message cannot be sent.
        """
        with self._lock:
            previous = self._active.pop(content.tag, None)
        if previous is not None:
            previous[0].close()

        text, parse_mode = format_message(f"**{content.title}**\n\n{content.body}")
        keyboard = InlineKeyboardMarkup(
            inline_keyboard=[
                [
                    InlineKeyboardButton(
                        text=content.actions[0] if content.actions else "Open",
                        callback_data=f"{NOTIFICATION_CALLBACK_PREFIX}{OPEN_ACTION}:{content.tag}",
                    )
                ]
            ]
        )

        try:
            result = self._client.send_message(
                text,
                parse_mode=parse_mode,
                reply_markup=keyboard,
                disable_notification=not content.require_interaction,
            )
        except (TelegramClientError, ValueError) as e:
            raise NotificationHostError(f"Failed to send notification {content.tag}: {e}") from e

        notification = TelegramNotification(self, content.tag, result.message_id)
        with self._lock:
            self._active[content.tag] = (notification, on_activate)
        return notification

    def dismiss(self, notification: TelegramNotification) -> None:
        """Delete a notification's message.

        :param notification: The notification to remove.
        """
        with self._lock:
            current = self._active.get(notification.tag)
            if current is not None and current[0] is notification:
                del self._active[notification.tag]

        try:
            self._client.delete_message(notification.message_id)
        except TelegramClientError as e:
            # Messages older than 48 hours cannot be deleted by bots
            logger.warning(f"Could not delete notification {notification.tag}: {e}")

    def handle_callback(self, query: CallbackQuery) -> bool:
        """Dispatch a button press to the notification's activation callback.

        :param query: The callback query from Telegram.
        :returns: True if the press belonged to a visible notification.
        """
        parsed = parse_notification_callback(query.data)
        if parsed is None:
            return False

        action, tag = parsed
        with self._lock:
            entry = self._active.get(tag)

        try:
            self._client.answer_callback_query(
                query.id, None if entry else "This reminder is no longer active"
            )
        except TelegramClientError as e:
            logger.warning(f"Failed to answer callback query {query.id}: {e}")

        if entry is None or action != OPEN_ACTION:
            return False

        notification, on_activate = entry
        on_activate(notification)
        return True

    def focus(self) -> None:
        """Do nothing; Telegram brings itself to the foreground on a button press."""
        logger.debug("Focus requested on Telegram host")

    def open_url(self, url: str) -> None:
        """Send the link so the user can open it from the chat.

        :param url: Link to open.
        :raises NotificationHostError: If the message cannot be sent.
        """
        text, parse_mode = format_message(f"[Open problem]({url})")
        try:
            self._client.send_message(text, parse_mode=parse_mode)
        except (TelegramClientError, ValueError) as e:
            raise NotificationHostError(f"Failed to send link: {e}") from e
