"""Tests for Sentry initialisation."""

import unittest
from unittest.mock import MagicMock, patch

from src.observability.sentry import init_sentry


class TestInitSentry(unittest.TestCase):
    """Tests for init_sentry."""

    @patch("src.observability.sentry.sentry_sdk.init")
    def test_skipped_without_dsn(self, mock_init: MagicMock) -> None:
        """Test Sentry stays off when SENTRY_DSN is unset."""
        with patch.dict("os.environ", {}, clear=True):
            result = init_sentry()

        self.assertFalse(result)
        mock_init.assert_not_called()

    @patch("src.observability.sentry.sentry_sdk.set_tag")
    @patch("src.observability.sentry.sentry_sdk.init")
    def test_initialised_with_dsn(self, mock_init: MagicMock, mock_set_tag: MagicMock) -> None:
        """Test Sentry is initialised with the DSN and environment."""
        env = {"SENTRY_DSN": "https://key@sentry.example.com/1", "APP_ENV": "prod"}
        with patch.dict("os.environ", env, clear=True):
            result = init_sentry()

        self.assertTrue(result)
        kwargs = mock_init.call_args.kwargs
        self.assertEqual(kwargs["dsn"], "https://key@sentry.example.com/1")
        self.assertEqual(kwargs["environment"], "prod")
        self.assertFalse(kwargs["send_default_pii"])
        mock_set_tag.assert_called_once_with("service", "reminders")


if __name__ == "__main__":
    unittest.main()
