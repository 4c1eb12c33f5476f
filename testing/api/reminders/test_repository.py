"""Tests for ReminderRepository."""

import unittest
from unittest.mock import MagicMock

from src.api.client import TrackerAPIError, TrackerRateLimitError
from src.api.reminders.repository import API_PREFIX, ReminderRepository


def _reminder_data(reminder_id: str, interval: int = 1, problem: dict | None = None) -> dict:
    data = {
        "id": reminder_id,
        "reminderDate": "2026-03-11T09:00:00Z",
        "interval": interval,
        "status": "pending",
    }
    if problem is not None:
        data["problem"] = problem
    return data


class TestReminderRepository(unittest.TestCase):
    """Tests for ReminderRepository."""

    def setUp(self) -> None:
        """Create a repository over a mocked client."""
        self.mock_client = MagicMock()
        self.repository = ReminderRepository(self.mock_client)

    def test_list_pending_reads_total_from_pagination(self) -> None:
        """Test the overall total comes from the pagination block."""
        self.mock_client.get.return_value = {
            "reminders": [_reminder_data("r1", problem={"id": "p1", "title": "Two Sum"})],
            "pagination": {"totalReminders": 12},
        }

        page = self.repository.list_pending(limit=1)

        self.mock_client.get.assert_called_once_with(
            f"{API_PREFIX}/reminders/pending", params={"limit": 1}
        )
        self.assertEqual(page.total_reminders, 12)
        self.assertEqual(page.reminders[0].problem_id, "p1")

    def test_list_pending_passes_page_cursor(self) -> None:
        """Test the page cursor is forwarded."""
        self.mock_client.get.return_value = {"reminders": []}

        self.repository.list_pending(limit=20, page=3)

        self.mock_client.get.assert_called_once_with(
            f"{API_PREFIX}/reminders/pending", params={"limit": 20, "page": 3}
        )

    def test_list_pending_falls_back_to_length(self) -> None:
        """Test the total defaults to the page length without pagination."""
        self.mock_client.get.return_value = {"reminders": [_reminder_data("r1")]}

        page = self.repository.list_pending()

        self.assertEqual(page.total_reminders, 1)

    def test_list_pending_malformed_reminder_raises(self) -> None:
        """Test a malformed item surfaces as TrackerAPIError."""
        self.mock_client.get.return_value = {"reminders": [{"id": "r1"}]}

        with self.assertRaises(TrackerAPIError):
            self.repository.list_pending()

    def test_list_for_problem_attaches_problem(self) -> None:
        """Test reminders of a problem reference it."""
        self.mock_client.get.return_value = {"reminders": [_reminder_data("r1")]}

        reminders = self.repository.list_for_problem("p1")

        self.mock_client.get.assert_called_once_with(f"{API_PREFIX}/problems/p1/reminders")
        self.assertEqual(reminders[0].problem_id, "p1")

    def test_create_posts_intervals_and_attaches_problem(self) -> None:
        """Test creating a series sends intervals and returns linked reminders."""
        self.mock_client.post.return_value = {
            "problem": {"id": "p1", "title": "Two Sum", "difficulty": "Easy"},
            "reminders": [
                _reminder_data("r1", 1),
                _reminder_data("r2", 3),
                _reminder_data("r3", 7),
            ],
        }

        reminders = self.repository.create("p1", [1, 3, 7])

        self.mock_client.post.assert_called_once_with(
            f"{API_PREFIX}/problems/p1/reminders", json={"intervals": [1, 3, 7]}
        )
        self.assertEqual([r.interval for r in reminders], [1, 3, 7])
        self.assertTrue(all(r.problem.title == "Two Sum" for r in reminders))

    def test_create_rejects_invalid_intervals(self) -> None:
        """Test invalid intervals fail before any request."""
        with self.assertRaises(ValueError):
            self.repository.create("p1", [7, 3])

        self.mock_client.post.assert_not_called()

    def test_complete(self) -> None:
        """Test completing a reminder."""
        self.repository.complete("r1")

        self.mock_client.put.assert_called_once_with(f"{API_PREFIX}/reminders/r1/complete")

    def test_skip_sends_snooze_hours(self) -> None:
        """Test the snooze duration is sent in camelCase."""
        self.repository.skip("r1", snooze_hours=6)

        self.mock_client.put.assert_called_once_with(
            f"{API_PREFIX}/reminders/r1/skip", json={"snoozeHours": 6}
        )

    def test_delete_for_problem(self) -> None:
        """Test deleting a problem's reminders."""
        self.repository.delete_for_problem("p1")

        self.mock_client.delete.assert_called_once_with(f"{API_PREFIX}/problems/p1/reminders")

    def test_sync_from_source(self) -> None:
        """Test the sync summary is parsed."""
        self.mock_client.post.return_value = {"synced": 3, "message": "Synced"}

        response = self.repository.sync_from_source()

        self.mock_client.post.assert_called_once_with(f"{API_PREFIX}/sync")
        self.assertEqual(response.synced, 3)

    def test_sync_rate_limit_propagates(self) -> None:
        """Test cooldown errors are not swallowed."""
        self.mock_client.post.side_effect = TrackerRateLimitError("Too soon")

        with self.assertRaises(TrackerRateLimitError):
            self.repository.sync_from_source()

    def test_has_credential_delegates(self) -> None:
        """Test credential presence comes from the client."""
        self.mock_client.has_credential = False

        self.assertFalse(self.repository.has_credential)


if __name__ == "__main__":
    unittest.main()
