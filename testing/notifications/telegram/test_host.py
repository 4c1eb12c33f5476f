"""Tests for the Telegram notification host."""

import unittest
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

from src.api.reminders.models import Problem, Reminder
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.host import (
    NotificationContent,
    NotificationData,
    NotificationHostError,
    PermissionState,
)
from src.notifications.preferences import NotificationPreferences, NotificationPreferenceStore
from src.notifications.telegram.client import TelegramClientError
from src.notifications.telegram.host import (
    TelegramNotificationHost,
    parse_notification_callback,
)
from src.notifications.telegram.models import CallbackQuery, SendMessageResult


def _content(tag: str = "reminder-r1") -> NotificationContent:
    return NotificationContent(
        title="Review Problem: Two Sum",
        body="Time to review this Easy problem! (1 day interval)",
        tag=tag,
        data=NotificationData(reminder_id="r1", problem_id="p1", url="https://example.com"),
        actions=("View Problem",),
    )


class TestParseNotificationCallback(unittest.TestCase):
    """Tests for parse_notification_callback."""

    def test_valid(self) -> None:
        """Test action and tag are extracted."""
        self.assertEqual(
            parse_notification_callback("notify:open:reminder-r1"), ("open", "reminder-r1")
        )

    def test_other_prefix(self) -> None:
        """Test callbacks of other features are ignored."""
        self.assertIsNone(parse_notification_callback("task:done:1"))

    def test_missing_tag(self) -> None:
        """Test malformed data is rejected."""
        self.assertIsNone(parse_notification_callback("notify:open"))
        self.assertIsNone(parse_notification_callback(None))


class TestTelegramNotificationHostPermission(unittest.TestCase):
    """Tests for permission handling."""

    def test_without_chat_is_unsupported(self) -> None:
        """Test a host with no chat cannot notify."""
        mock_client = MagicMock()
        mock_client.chat_id = None

        host = TelegramNotificationHost(mock_client)

        self.assertEqual(host.permission_state(), PermissionState.UNSUPPORTED)
        self.assertEqual(host.request_permission(), PermissionState.UNSUPPORTED)
        mock_client.get_chat.assert_not_called()

    def test_reachable_chat_grants(self) -> None:
        """Test permission is granted once the chat is reachable."""
        mock_client = MagicMock()
        mock_client.chat_id = "1"
        host = TelegramNotificationHost(mock_client)

        self.assertEqual(host.permission_state(), PermissionState.DEFAULT)
        self.assertEqual(host.request_permission(), PermissionState.GRANTED)
        self.assertEqual(host.permission_state(), PermissionState.GRANTED)

    def test_blocked_bot_denies(self) -> None:
        """Test a blocked bot results in denied permission."""
        mock_client = MagicMock()
        mock_client.chat_id = "1"
        mock_client.get_chat.side_effect = TelegramClientError("Forbidden", status_code=403)
        host = TelegramNotificationHost(mock_client)

        self.assertEqual(host.request_permission(), PermissionState.DENIED)

    def test_network_error_raises(self) -> None:
        """Test other failures surface as NotificationHostError."""
        mock_client = MagicMock()
        mock_client.chat_id = "1"
        mock_client.get_chat.side_effect = TelegramClientError("timed out")
        host = TelegramNotificationHost(mock_client)

        with self.assertRaises(NotificationHostError):
            host.request_permission()
        self.assertEqual(host.permission_state(), PermissionState.DEFAULT)


@patch("src.notifications.telegram.host.format_message", lambda text: (text, "MarkdownV2"))
class TestTelegramNotificationHostShow(unittest.TestCase):
    """Tests for showing, replacing and activating notifications."""

    def setUp(self) -> None:
        """Create a host over a mocked client."""
        self.mock_client = MagicMock()
        self.mock_client.chat_id = "1"
        self.mock_client.send_message.side_effect = [
            SendMessageResult(message_id=100, chat_id=1),
            SendMessageResult(message_id=101, chat_id=1),
        ]
        self.host = TelegramNotificationHost(self.mock_client)

    def test_show_sends_message_with_button(self) -> None:
        """Test the notification becomes a message with a callback button."""
        notification = self.host.show(_content(), MagicMock())

        self.assertEqual(notification.message_id, 100)
        self.assertEqual(notification.tag, "reminder-r1")
        kwargs = self.mock_client.send_message.call_args.kwargs
        button = kwargs["reply_markup"].inline_keyboard[0][0]
        self.assertEqual(button.text, "View Problem")
        self.assertEqual(button.callback_data, "notify:open:reminder-r1")
        self.assertFalse(kwargs["disable_notification"])

    def test_same_tag_replaces_previous(self) -> None:
        """Test showing the same tag deletes the earlier message."""
        first = self.host.show(_content(), MagicMock())
        self.host.show(_content(), MagicMock())

        self.assertTrue(first.closed)
        self.mock_client.delete_message.assert_called_once_with(100)

    def test_close_is_idempotent(self) -> None:
        """Test closing twice deletes the message once."""
        notification = self.host.show(_content(), MagicMock())

        notification.close()
        notification.close()

        self.mock_client.delete_message.assert_called_once_with(100)

    def test_close_tolerates_delete_failure(self) -> None:
        """Test a message that cannot be deleted is only logged."""
        self.mock_client.delete_message.side_effect = TelegramClientError("too old")
        notification = self.host.show(_content(), MagicMock())

        notification.close()

        self.assertTrue(notification.closed)

    def test_send_failure_raises_host_error(self) -> None:
        """Test send errors surface as NotificationHostError."""
        self.mock_client.send_message.side_effect = TelegramClientError("down")

        with self.assertRaises(NotificationHostError):
            self.host.show(_content(), MagicMock())

    def test_callback_activates_notification(self) -> None:
        """Test a button press invokes the activation callback."""
        on_activate = MagicMock()
        notification = self.host.show(_content(), on_activate)

        handled = self.host.handle_callback(CallbackQuery(id="cb", data="notify:open:reminder-r1"))

        self.assertTrue(handled)
        on_activate.assert_called_once_with(notification)
        self.mock_client.answer_callback_query.assert_called_once_with("cb", None)

    def test_callback_for_closed_notification(self) -> None:
        """Test pressing a stale button only shows a toast."""
        on_activate = MagicMock()
        self.host.show(_content(), on_activate).close()

        handled = self.host.handle_callback(CallbackQuery(id="cb", data="notify:open:reminder-r1"))

        self.assertFalse(handled)
        on_activate.assert_not_called()
        self.mock_client.answer_callback_query.assert_called_once_with(
            "cb", "This reminder is no longer active"
        )

    def test_open_url_sends_link(self) -> None:
        """Test opening a URL sends it as a message."""
        self.host.open_url("https://example.com/p")

        text = self.mock_client.send_message.call_args.args[0]
        self.assertIn("https://example.com/p", text)


@patch("src.notifications.telegram.host.format_message", lambda text: (text, "MarkdownV2"))
class TestPermissionRecoveryAfterNetworkError(unittest.TestCase):
    """Tests for delivery after the startup permission check failed."""

    def test_next_notification_rechecks_the_chat(self) -> None:
        """Test a transient getChat failure does not silence later notifications."""
        mock_client = MagicMock()
        mock_client.chat_id = "1"
        mock_client.get_chat.side_effect = [TelegramClientError("timed out"), None]
        mock_client.send_message.return_value = SendMessageResult(message_id=100, chat_id=1)
        host = TelegramNotificationHost(mock_client)
        preferences = NotificationPreferenceStore(host)
        dispatcher = NotificationDispatcher(host, preferences, MagicMock())
        reminder = Reminder(
            id="r1",
            problem=Problem(id="p1", title="Two Sum"),
            reminder_date=datetime(2026, 3, 10, 9, 0, tzinfo=UTC),
            interval=1,
        )

        with patch.object(
            preferences, "load", return_value=NotificationPreferences(auto_close=False)
        ):
            self.assertFalse(preferences.request_permission())
            self.assertEqual(host.permission_state(), PermissionState.DEFAULT)

            notification = dispatcher.show_notification(reminder)

        self.assertIsNotNone(notification)
        self.assertEqual(host.permission_state(), PermissionState.GRANTED)
        mock_client.send_message.assert_called_once()


if __name__ == "__main__":
    unittest.main()
