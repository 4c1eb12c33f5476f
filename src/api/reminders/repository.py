"""Request layer for the reminder CRUD and sync endpoints."""

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from src.api.client import TrackerAPIClient, TrackerAPIError
from src.api.reminders.models import (
    DEFAULT_INTERVALS,
    CreateRemindersRequest,
    PendingRemindersPage,
    Problem,
    Reminder,
    SkipReminderRequest,
    SyncResponse,
)

logger = logging.getLogger(__name__)

# API prefix of the problem tracker routes
API_PREFIX = "/leetcode-tracker"


class ReminderRepository:
    """Thin wrapper around the reminder endpoints.

    Every method may raise a :class:`TrackerAPIError` subclass. Nothing is
    retried or swallowed here.
    """

    def __init__(self, client: TrackerAPIClient) -> None:
        """Initialise the repository.

        :param client: HTTP client used for all requests.
        """
        self._client = client

    @property
    def has_credential(self) -> bool:
        """Check whether the underlying client is authenticated."""
        return self._client.has_credential

    def list_pending(self, limit: int = 20, page: int | None = None) -> PendingRemindersPage:
        """Fetch a page of pending reminders.

        :param limit: Maximum reminders to return.
        :param page: 1-based page cursor. Omitted means the first page.
        :returns: The page plus the overall pending total.
        :raises TrackerAPIError: If the request fails or the body is malformed.
        """
        params: dict[str, Any] = {"limit": limit}
        if page is not None:
            params["page"] = page

        response = self._client.get(f"{API_PREFIX}/reminders/pending", params=params)
        reminders = self._parse_reminders(response.get("reminders", []))
        pagination = response.get("pagination") or {}
        total = pagination.get("totalReminders")

        return PendingRemindersPage(
            reminders=reminders,
            total_reminders=int(total) if total is not None else len(reminders),
        )

    def list_for_problem(self, problem_id: str) -> list[Reminder]:
        """Fetch every reminder of one problem, in any status.

        :param problem_id: Tracked problem ID.
        :returns: The problem's reminders ordered by date.
        :raises TrackerAPIError: If the request fails.
        """
        response = self._client.get(f"{API_PREFIX}/problems/{problem_id}/reminders")
        reminders = self._parse_reminders(response.get("reminders", []))
        return [self._with_problem(r, Problem(id=problem_id, title="")) for r in reminders]

    def create(
        self,
        problem_id: str,
        intervals: Sequence[int] = DEFAULT_INTERVALS,
    ) -> list[Reminder]:
        """Create a reminder series for a problem.

        The server replaces any existing reminders of the problem.

        :param problem_id: Tracked problem ID.
        :param intervals: Days after today for each reminder.
        :returns: The created reminders, each referencing the problem.
        :raises ValueError: If intervals are not positive and increasing.
        :raises TrackerAPIError: If the request fails.
        """
        request = CreateRemindersRequest(intervals=list(intervals))
        response = self._client.post(
            f"{API_PREFIX}/problems/{problem_id}/reminders",
            json=request.model_dump(),
        )

        problem_data = response.get("problem") or {"id": problem_id, "title": ""}
        problem = Problem.model_validate(problem_data)
        reminders = self._parse_reminders(response.get("reminders", []))

        logger.info(f"Created {len(reminders)} reminders for problem_id={problem_id}")
        return [self._with_problem(r, problem) for r in reminders]

    def complete(self, reminder_id: str) -> None:
        """Mark a reminder as completed.

        :param reminder_id: Reminder ID.
        :raises TrackerAPIError: If the request fails.
        """
        self._client.put(f"{API_PREFIX}/reminders/{reminder_id}/complete")
        logger.info(f"Completed reminder_id={reminder_id}")

    def skip(self, reminder_id: str, snooze_hours: int = 24) -> None:
        """Snooze a reminder; it stays pending with a later date.

        :param reminder_id: Reminder ID.
        :param snooze_hours: Hours to push the reminder forward.
        :raises TrackerAPIError: If the request fails.
        """
        request = SkipReminderRequest(snooze_hours=snooze_hours)
        self._client.put(
            f"{API_PREFIX}/reminders/{reminder_id}/skip",
            json=request.model_dump(by_alias=True),
        )
        logger.info(f"Skipped reminder_id={reminder_id} for {snooze_hours}h")

    def delete_for_problem(self, problem_id: str) -> None:
        """Delete every reminder of a problem.

        :param problem_id: Tracked problem ID.
        :raises TrackerAPIError: If the request fails.
        """
        self._client.delete(f"{API_PREFIX}/problems/{problem_id}/reminders")
        logger.info(f"Deleted reminders for problem_id={problem_id}")

    def sync_from_source(self) -> SyncResponse:
        """Trigger a sync of solved problems from the source platform.

        :returns: The sync summary, possibly a skip outcome.
        :raises TrackerRateLimitError: If the sync is in cooldown.
        :raises TrackerAPIError: If the request fails.
        """
        response = self._client.post(f"{API_PREFIX}/sync")
        try:
            return SyncResponse.model_validate(response)
        except ValidationError as e:
            raise TrackerAPIError(f"Malformed sync response: {e}") from e

    @staticmethod
    def _parse_reminders(items: list[dict[str, Any]]) -> list[Reminder]:
        """Validate raw reminder dicts.

        :param items: Reminder dicts from the API.
        :returns: Parsed reminders.
        :raises TrackerAPIError: If any item is malformed.
        """
        try:
            return [Reminder.model_validate(item) for item in items]
        except ValidationError as e:
            raise TrackerAPIError(f"Malformed reminder in response: {e}") from e

    @staticmethod
    def _with_problem(reminder: Reminder, problem: Problem) -> Reminder:
        if reminder.problem is not None:
            return reminder
        return reminder.model_copy(update={"problem": problem})
