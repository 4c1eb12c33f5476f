"""Public reminder operations: create, complete, skip and delete.

Each operation calls the API first and only updates the local cache once
the call has succeeded. Failures leave the cache untouched and are raised
for the caller to report.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timedelta

from src.api.reminders.models import DEFAULT_INTERVALS, Reminder, local_now
from src.api.reminders.repository import ReminderRepository
from src.notifications.dispatcher import ClickHandler, NotificationDispatcher, ScheduledTimerHandle
from src.reminders.cache import ReminderStateCache

logger = logging.getLogger(__name__)

DEFAULT_SNOOZE_HOURS = 24


class ReminderBusyError(Exception):
    """Raised when an operation is already in flight for the same reminder."""

    def __init__(self, key: str) -> None:
        """Initialise the error.

        :param key: The reminder or problem being processed.
        """
        super().__init__(f"An operation is already in progress for {key}")
        self.key = key


class ReminderLifecycle:
    """Composes the request layer, the cache and notification timers.

    Only one operation at a time may run per reminder (and per problem for
    bulk operations); a second concurrent call raises
    :class:`ReminderBusyError` instead of racing. Operations on different
    reminders run independently.
    """

    def __init__(
        self,
        repository: ReminderRepository,
        cache: ReminderStateCache,
        dispatcher: NotificationDispatcher | None = None,
        *,
        default_snooze_hours: int = DEFAULT_SNOOZE_HOURS,
        default_intervals: Sequence[int] = DEFAULT_INTERVALS,
        on_click: ClickHandler | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialise the façade.

        :param repository: Reminder API request layer.
        :param cache: The shared reminder cache.
        :param dispatcher: Dispatcher for deferred notifications. None disables them.
        :param default_snooze_hours: Snooze used when none is given.
        :param default_intervals: Intervals used when none are given.
        :param on_click: Called with a reminder when its notification is activated.
        :param clock: Returns the current time. Defaults to local now.
        """
        self._repository = repository
        self._cache = cache
        self._dispatcher = dispatcher
        self._default_snooze_hours = default_snooze_hours
        self._default_intervals = tuple(default_intervals)
        self._on_click = on_click
        self._clock = clock or local_now

        self._processing: set[str] = set()
        self._processing_lock = threading.Lock()
        self._timers: dict[str, list[ScheduledTimerHandle]] = {}
        self._timers_lock = threading.Lock()

    @property
    def processing(self) -> frozenset[str]:
        """Get the reminder and problem keys with an operation in flight."""
        with self._processing_lock:
            return frozenset(self._processing)

    def is_processing(self, reminder_id: str) -> bool:
        """Check whether an operation is in flight for a reminder.

        :param reminder_id: Reminder ID.
        :returns: True if busy.
        """
        return reminder_id in self.processing

    def create_reminders(
        self,
        problem_id: str,
        intervals: Sequence[int] | None = None,
    ) -> list[Reminder]:
        """Create a spaced repetition series for a problem.

        The server replaces any existing series, so cached reminders of the
        problem are dropped before the new ones are added.

        :param problem_id: Tracked problem ID.
        :param intervals: Days after today for each reminder.
        :returns: The created reminders.
        :raises ReminderBusyError: If the problem is already being processed.
        :raises TrackerAPIError: If the API call fails.
        """
        with self._guard(f"problem:{problem_id}"):
            created = self._repository.create(
                problem_id, intervals if intervals is not None else self._default_intervals
            )

        replaced = self._cache.remove_for_problem(problem_id)
        if replaced:
            self._disarm(r.id for r in replaced)
            self._cache.adjust_pending_count(-len(replaced))

        self._cache.add_reminders(created)
        self.arm_notifications(created)

        logger.info(
            f"Created {len(created)} reminders for problem_id={problem_id} "
            f"(replaced {len(replaced)})"
        )
        return created

    def complete_reminder(self, reminder_id: str) -> None:
        """Mark a reminder as reviewed and drop it from the pending cache.

        :param reminder_id: Reminder ID.
        :raises ReminderBusyError: If the reminder is already being processed.
        :raises TrackerAPIError: If the API call fails.
        """
        with self._guard(reminder_id):
            self._repository.complete(reminder_id)

        self._disarm([reminder_id])
        self._cache.remove_reminder(reminder_id)
        logger.info(f"Completed reminder_id={reminder_id}")

    def skip_reminder(self, reminder_id: str, snooze_hours: int | None = None) -> Reminder | None:
        """Snooze a reminder; it stays pending with a later date.

        :param reminder_id: Reminder ID.
        :param snooze_hours: Hours to push the reminder forward.
        :returns: The rescheduled cached reminder, or None if it was not cached.
        :raises ReminderBusyError: If the reminder is already being processed.
        :raises TrackerAPIError: If the API call fails.
        """
        hours = snooze_hours if snooze_hours is not None else self._default_snooze_hours
        with self._guard(reminder_id):
            self._repository.skip(reminder_id, hours)

        new_date = self._clock() + timedelta(hours=hours)
        self._disarm([reminder_id])
        updated = self._cache.reschedule_reminder(reminder_id, new_date)
        if updated is not None:
            self.arm_notifications([updated])

        logger.info(f"Snoozed reminder_id={reminder_id} until {new_date.isoformat()}")
        return updated

    def delete_reminders_for_problem(self, problem_id: str) -> list[Reminder]:
        """Delete every reminder of a problem, then re-read the pending count.

        :param problem_id: Tracked problem ID.
        :returns: The cached reminders that were removed.
        :raises ReminderBusyError: If the problem is already being processed.
        :raises TrackerAPIError: If the API call fails.
        """
        with self._guard(f"problem:{problem_id}"):
            self._repository.delete_for_problem(problem_id)

        removed = self._cache.remove_for_problem(problem_id)
        self._disarm(r.id for r in removed)
        self._cache.refresh_count_only()

        logger.info(f"Deleted reminders for problem_id={problem_id} (cached: {len(removed)})")
        return removed

    def arm_notifications(self, reminders: Iterable[Reminder]) -> int:
        """Schedule a notification for each reminder not already armed.

        Reminders that are already due are shown straight away.

        :param reminders: Pending reminders.
        :returns: Number of deferred notifications scheduled.
        """
        if self._dispatcher is None:
            return 0

        now = self._clock()
        scheduled = 0
        for reminder in reminders:
            with self._timers_lock:
                if reminder.id in self._timers:
                    continue
                self._timers[reminder.id] = []

            if reminder.is_due(now):
                # Shown once, subject to the due/overdue preferences
                self._dispatcher.check_due_reminders([reminder], self._on_click)
                continue

            handle = self._dispatcher.schedule_future(reminder, self._on_click)
            if handle is None:
                continue
            with self._timers_lock:
                self._timers.setdefault(reminder.id, []).append(handle)
            scheduled += 1
        return scheduled

    def reconcile_notifications(self, reminders: Iterable[Reminder]) -> None:
        """Match armed notifications to the current pending reminders.

        Timers of reminders that are no longer pending are cancelled, timers
        whose reminder moved to another date are re-armed, and new reminders
        are armed.

        :param reminders: The current pending reminders.
        """
        current = {r.id: r for r in reminders}
        with self._timers_lock:
            gone = [rid for rid in self._timers if rid not in current]
            moved = [
                rid
                for rid, handles in self._timers.items()
                if rid in current
                and any(h.fire_at != current[rid].reminder_date for h in handles)
            ]

        self._disarm(gone + moved)
        self.arm_notifications(current.values())

    def disarm_all(self) -> int:
        """Cancel every deferred notification armed by this façade.

        :returns: Number of notifications cancelled.
        """
        with self._timers_lock:
            reminder_ids = list(self._timers)
        return self._disarm(reminder_ids)

    def _disarm(self, reminder_ids: Iterable[str]) -> int:
        reminder_ids = list(reminder_ids)
        with self._timers_lock:
            handles = [h for rid in reminder_ids for h in self._timers.pop(rid, [])]
        if self._dispatcher is None:
            return 0
        self._dispatcher.forget(reminder_ids)
        if not handles:
            return 0
        return self._dispatcher.clear_scheduled(handles)

    @contextmanager
    def _guard(self, key: str) -> Iterator[None]:
        with self._processing_lock:
            if key in self._processing:
                raise ReminderBusyError(key)
            self._processing.add(key)
        try:
            yield
        finally:
            with self._processing_lock:
                self._processing.discard(key)
