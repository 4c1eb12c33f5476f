"""Tests for Telegram notification configuration."""

import unittest
from unittest.mock import MagicMock, patch

from pydantic import ValidationError

from src.notifications.telegram.config import TelegramConfig
from src.notifications.telegram.formatting import PARSE_MODE, format_message


class TestTelegramConfig(unittest.TestCase):
    """Tests for TelegramConfig."""

    def test_bot_token_required(self) -> None:
        """Test the bot token must be set."""
        with patch.dict("os.environ", {}, clear=True):
            with self.assertRaises(ValidationError):
                TelegramConfig(_env_file=None)

    def test_loads_from_environment(self) -> None:
        """Test values are read from TELEGRAM_ variables."""
        env = {"TELEGRAM_BOT_TOKEN": "token", "TELEGRAM_CHAT_ID": "42"}
        with patch.dict("os.environ", env, clear=True):
            config = TelegramConfig(_env_file=None)

        self.assertEqual(config.bot_token, "token")
        self.assertEqual(config.chat_id, "42")
        self.assertEqual(config.update_poll_seconds, 5)


class TestFormatMessage(unittest.TestCase):
    """Tests for format_message."""

    @patch("src.notifications.telegram.formatting.telegramify_markdown.markdownify")
    def test_converts_to_markdown_v2(self, mock_markdownify: MagicMock) -> None:
        """Test Markdown is converted and the parse mode returned."""
        mock_markdownify.return_value = "*Review*"

        text, parse_mode = format_message("**Review**")

        mock_markdownify.assert_called_once_with("**Review**")
        self.assertEqual(text, "*Review*")
        self.assertEqual(parse_mode, PARSE_MODE)


if __name__ == "__main__":
    unittest.main()
