"""Tests for reminder API models."""

import unittest
from datetime import UTC, datetime, timedelta, timezone

from pydantic import ValidationError

from src.api.reminders.models import (
    CreateRemindersRequest,
    FailedUpdate,
    Reminder,
    ReminderStatus,
    SkipReminderRequest,
    SyncResponse,
    end_of_day,
    local_now,
    start_of_day,
)

NOW = datetime(2026, 3, 10, 15, 30, tzinfo=UTC)


def _reminder(reminder_date: datetime, status: ReminderStatus = ReminderStatus.PENDING) -> Reminder:
    return Reminder(id="r1", reminder_date=reminder_date, interval=1, status=status)


class TestReminderClassification(unittest.TestCase):
    """Tests for due and overdue classification."""

    def test_future_reminder_is_not_due(self) -> None:
        """Test a reminder later today is neither due nor overdue."""
        reminder = _reminder(NOW + timedelta(hours=1))

        self.assertFalse(reminder.is_due(NOW))
        self.assertFalse(reminder.is_overdue(NOW))

    def test_reminder_earlier_today_is_due_not_overdue(self) -> None:
        """Test a reminder from this morning is due but not overdue."""
        reminder = _reminder(NOW.replace(hour=8))

        self.assertTrue(reminder.is_due(NOW))
        self.assertFalse(reminder.is_overdue(NOW))

    def test_reminder_at_exactly_now_is_due(self) -> None:
        """Test the due boundary is inclusive."""
        self.assertTrue(_reminder(NOW).is_due(NOW))

    def test_reminder_from_yesterday_is_overdue(self) -> None:
        """Test a reminder before midnight today is overdue."""
        reminder = _reminder(start_of_day(NOW) - timedelta(seconds=1))

        self.assertTrue(reminder.is_due(NOW))
        self.assertTrue(reminder.is_overdue(NOW))

    def test_completed_reminder_is_never_due(self) -> None:
        """Test only pending reminders can be due."""
        reminder = _reminder(NOW - timedelta(days=3), status=ReminderStatus.COMPLETED)

        self.assertFalse(reminder.is_due(NOW))
        self.assertFalse(reminder.is_overdue(NOW))


class TestReminderParsing(unittest.TestCase):
    """Tests for parsing API payloads."""

    def test_parses_camel_case_payload(self) -> None:
        """Test API keys and numeric IDs are accepted."""
        reminder = Reminder.model_validate(
            {
                "id": 42,
                "problem": {"id": 7, "title": "Two Sum", "difficulty": "Easy"},
                "reminderDate": "2026-03-11T09:00:00Z",
                "interval": 3,
                "status": "pending",
            }
        )

        self.assertEqual(reminder.id, "42")
        self.assertEqual(reminder.problem_id, "7")
        self.assertEqual(reminder.interval, 3)
        self.assertEqual(reminder.reminder_date, datetime(2026, 3, 11, 9, tzinfo=UTC))

    def test_rejects_zero_interval(self) -> None:
        """Test intervals must be at least one day."""
        with self.assertRaises(ValidationError):
            Reminder(id="r1", reminder_date=NOW, interval=0)

    def test_problem_id_none_without_problem(self) -> None:
        """Test problem_id is None when no problem is attached."""
        self.assertIsNone(_reminder(NOW).problem_id)


class TestRequestModels(unittest.TestCase):
    """Tests for request bodies."""

    def test_create_request_defaults(self) -> None:
        """Test the default spaced repetition series."""
        self.assertEqual(CreateRemindersRequest().intervals, [1, 3, 7, 14, 30])

    def test_create_request_rejects_unordered_intervals(self) -> None:
        """Test intervals must strictly increase."""
        with self.assertRaises(ValidationError):
            CreateRemindersRequest(intervals=[3, 3, 7])

    def test_create_request_rejects_empty_intervals(self) -> None:
        """Test at least one interval is required."""
        with self.assertRaises(ValidationError):
            CreateRemindersRequest(intervals=[])

    def test_skip_request_serialises_camel_case(self) -> None:
        """Test the skip body uses the API's key."""
        body = SkipReminderRequest(snooze_hours=12).model_dump(by_alias=True)

        self.assertEqual(body, {"snoozeHours": 12})


class TestSyncResponse(unittest.TestCase):
    """Tests for SyncResponse."""

    def test_skip_response(self) -> None:
        """Test a skipped sync is recognised."""
        response = SyncResponse.model_validate(
            {
                "skipReason": "RECENT_UPDATE",
                "nextUpdateAvailable": "2026-03-10T16:00:00Z",
                "message": "Data is fresh",
            }
        )

        self.assertTrue(response.was_skipped)
        self.assertEqual(response.next_update_available, datetime(2026, 3, 10, 16, tzinfo=UTC))

    def test_update_results_accept_username_key(self) -> None:
        """Test failed entries may name the record by username."""
        response = SyncResponse.model_validate(
            {
                "synced": 2,
                "updateResults": {
                    "success": ["alice"],
                    "failed": [{"username": "bob", "reason": "Profile private"}],
                },
            }
        )

        self.assertFalse(response.was_skipped)
        self.assertEqual(
            response.update_results.failed,
            [FailedUpdate(name="bob", reason="Profile private")],
        )


class TestDayBoundaries(unittest.TestCase):
    """Tests for start_of_day and end_of_day."""

    def test_boundaries(self) -> None:
        """Test the calendar day of a timestamp."""
        self.assertEqual(start_of_day(NOW), datetime(2026, 3, 10, tzinfo=UTC))
        self.assertEqual(
            end_of_day(NOW), datetime(2026, 3, 10, 23, 59, 59, 999999, tzinfo=UTC)
        )

    def test_overdue_uses_the_local_day(self) -> None:
        """Test a reminder from late last night local time is overdue after midnight."""
        pacific = timezone(timedelta(hours=-8))
        now = datetime(2026, 3, 10, 0, 30, tzinfo=pacific)
        reminder = _reminder(datetime(2026, 3, 9, 22, 0, tzinfo=pacific))

        self.assertTrue(reminder.is_overdue(now))
        # Same instants seen from UTC fall on one calendar day
        self.assertFalse(reminder.is_overdue(now.astimezone(UTC)))

    def test_local_now_is_timezone_aware(self) -> None:
        """Test the default clock carries the host offset."""
        self.assertIsNotNone(local_now().utcoffset())


if __name__ == "__main__":
    unittest.main()
