"""Client-side mirror of pending reminders and the pending badge count.

Read paths never raise: a signed-out user or an unreachable API shows an
empty cache instead of an error. Writes come only from refreshes and from
the lifecycle façade after a remote call has succeeded.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.api.client import TrackerAPIError, TrackerAuthError
from src.api.reminders.models import Reminder, ReminderStatus, end_of_day, local_now
from src.api.reminders.repository import ReminderRepository

logger = logging.getLogger(__name__)

# Reminders fetched by a full refresh
DEFAULT_PAGE_SIZE = 50

# Minutes between background count refreshes
DEFAULT_POLL_INTERVAL_MINUTES = 5

# Age after which the cache is reported stale
DEFAULT_STALE_AFTER = timedelta(minutes=10)

# Scheduler job ID of the recurring count refresh
POLL_JOB_ID = "reminder-count-poll"


@dataclass(frozen=True)
class ReminderCacheSnapshot:
    """Immutable view of the cache at one instant."""

    reminders: tuple[Reminder, ...]
    pending_count: int
    last_updated: datetime | None
    error: TrackerAPIError | None = None

    def is_stale(self, now: datetime, stale_after: timedelta = DEFAULT_STALE_AFTER) -> bool:
        """Check whether the cache has not been refreshed recently.

        :param now: Current time.
        :param stale_after: Maximum age of a fresh cache.
        :returns: True if never refreshed or older than ``stale_after``.
        """
        return self.last_updated is None or now - self.last_updated > stale_after

    def today_reminders(self, now: datetime) -> list[Reminder]:
        """Get reminders dated up to the end of today, overdue ones included.

        :param now: Current time.
        :returns: Matching reminders.
        """
        cutoff = end_of_day(now)
        return [r for r in self.reminders if r.reminder_date <= cutoff]

    def overdue_reminders(self, now: datetime) -> list[Reminder]:
        """Get reminders dated before today.

        :param now: Current time.
        :returns: Matching reminders.
        """
        return [r for r in self.reminders if r.is_overdue(now)]

    def due_reminders(self, now: datetime) -> list[Reminder]:
        """Get reminders whose date has passed.

        :param now: Current time.
        :returns: Matching reminders.
        """
        return [r for r in self.reminders if r.is_due(now)]


# Called with a fresh snapshot after every change
CacheListener = Callable[[ReminderCacheSnapshot], None]


class ReminderStateCache:
    """Owns the pending reminder list, the pending count and their freshness."""

    def __init__(
        self,
        repository: ReminderRepository,
        scheduler: BaseScheduler,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        poll_interval_minutes: int = DEFAULT_POLL_INTERVAL_MINUTES,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialise an empty cache.

        :param repository: Reminder API request layer.
        :param scheduler: Scheduler running the recurring count refresh.
        :param page_size: Reminders fetched by a full refresh.
        :param poll_interval_minutes: Minutes between background count refreshes.
        :param stale_after: Age after which the cache is reported stale.
        :param clock: Returns the current time. Defaults to local now.
        """
        self._repository = repository
        self._scheduler = scheduler
        self._page_size = page_size
        self._poll_interval_minutes = poll_interval_minutes
        self._stale_after = stale_after
        self._clock = clock or local_now

        self._lock = threading.RLock()
        self._reminders: dict[str, Reminder] = {}
        self._pending_count = 0
        self._last_updated: datetime | None = None
        self._error: TrackerAPIError | None = None
        self._visible = True
        self._closed = False
        self._listeners: list[CacheListener] = []

    @property
    def reminders(self) -> list[Reminder]:
        """Get the cached pending reminders."""
        with self._lock:
            return list(self._reminders.values())

    @property
    def pending_count(self) -> int:
        """Get the pending reminder count shown on the badge."""
        with self._lock:
            return self._pending_count

    @property
    def last_updated(self) -> datetime | None:
        """Get when the cache was last refreshed from the API."""
        with self._lock:
            return self._last_updated

    @property
    def error(self) -> TrackerAPIError | None:
        """Get the last non-authorisation refresh error, if any."""
        with self._lock:
            return self._error

    @property
    def is_stale(self) -> bool:
        """Check whether the cache needs a refresh."""
        return self.snapshot().is_stale(self._clock(), self._stale_after)

    def snapshot(self) -> ReminderCacheSnapshot:
        """Take an immutable view of the cache.

        :returns: The snapshot.
        """
        with self._lock:
            return ReminderCacheSnapshot(
                reminders=tuple(self._reminders.values()),
                pending_count=self._pending_count,
                last_updated=self._last_updated,
                error=self._error,
            )

    def get(self, reminder_id: str) -> Reminder | None:
        """Look up a cached reminder.

        :param reminder_id: Reminder ID.
        :returns: The reminder, or None if not cached.
        """
        with self._lock:
            return self._reminders.get(reminder_id)

    def add_listener(self, listener: CacheListener) -> None:
        """Register a callback invoked after every change.

        :param listener: Callback receiving the new snapshot.
        """
        self._listeners.append(listener)

    def refresh_all(self) -> bool:
        """Replace the cache with the first page of pending reminders.

        :returns: True if the API answered, False if the cache was emptied
            because of an error.
        """
        try:
            page = self._repository.list_pending(limit=self._page_size)
        except TrackerAuthError:
            logger.info("Not authenticated, treating pending reminders as empty")
            self._apply(reminders=[], pending_count=0, error=None)
            return False
        except TrackerAPIError as e:
            logger.warning(f"Failed to refresh pending reminders: {e}")
            self._apply(reminders=[], pending_count=0, error=e)
            return False

        self._apply(
            reminders=page.reminders,
            pending_count=page.total_reminders,
            error=None,
            last_updated=self._clock(),
        )
        logger.info(
            f"Refreshed reminders: cached={len(page.reminders)}, pending={page.total_reminders}"
        )
        return True

    def refresh_count_only(self) -> int:
        """Refresh just the pending count using a one-item page.

        :returns: The pending count after the refresh.
        """
        try:
            page = self._repository.list_pending(limit=1)
        except TrackerAuthError:
            logger.info("Not authenticated, treating pending count as zero")
            self._apply(pending_count=0)
            return 0
        except TrackerAPIError as e:
            logger.warning(f"Failed to refresh pending count: {e}")
            return self.pending_count

        self._apply(pending_count=page.total_reminders, last_updated=self._clock())
        logger.debug(f"Refreshed pending count: {page.total_reminders}")
        return page.total_reminders

    def mount(self) -> bool:
        """Load the cache for the first time if the user is signed in.

        :returns: True if a refresh was attempted.
        """
        if not self._repository.has_credential:
            logger.info("No API credential configured, skipping initial reminder load")
            return False
        self.refresh_all()
        return True

    def start_polling(self) -> None:
        """Refresh the count on a fixed interval until :meth:`stop_polling`."""
        self._scheduler.add_job(
            self._poll,
            trigger=IntervalTrigger(minutes=self._poll_interval_minutes),
            id=POLL_JOB_ID,
            name="Refresh pending reminder count",
            replace_existing=True,
        )
        logger.info(f"Started reminder count polling (every {self._poll_interval_minutes}m)")

    def stop_polling(self) -> None:
        """Stop the recurring count refresh."""
        try:
            self._scheduler.remove_job(POLL_JOB_ID)
        except JobLookupError:
            return
        logger.info("Stopped reminder count polling")

    def handle_visibility_change(self, visible: bool) -> None:
        """Refresh the count when the app goes from hidden to visible.

        :param visible: Whether the app is now visible.
        """
        with self._lock:
            became_visible = visible and not self._visible
            self._visible = visible

        if became_visible:
            self._poll()

    def close(self) -> None:
        """Stop polling and ignore any refresh that completes afterwards."""
        self.stop_polling()
        with self._lock:
            self._closed = True

    def add_reminders(self, reminders: Iterable[Reminder]) -> int:
        """Append newly created reminders and raise the count.

        :param reminders: Reminders confirmed by the API.
        :returns: Number of reminders added.
        """
        with self._lock:
            added = 0
            for reminder in reminders:
                if reminder.id not in self._reminders:
                    added += 1
                self._reminders[reminder.id] = reminder
            self._pending_count += added
        self._notify()
        return added

    def remove_reminder(self, reminder_id: str) -> Reminder | None:
        """Drop a resolved reminder and lower the count by one.

        The count is lowered even if the reminder was outside the cached page.

        :param reminder_id: Reminder ID.
        :returns: The removed reminder, or None if it was not cached.
        """
        with self._lock:
            removed = self._reminders.pop(reminder_id, None)
            self._pending_count = max(0, self._pending_count - 1)
        self._notify()
        return removed

    def reschedule_reminder(self, reminder_id: str, reminder_date: datetime) -> Reminder | None:
        """Move a cached reminder to a new date, keeping it pending.

        :param reminder_id: Reminder ID.
        :param reminder_date: New due date.
        :returns: The updated reminder, or None if it was not cached.
        """
        with self._lock:
            current = self._reminders.get(reminder_id)
            if current is None:
                return None
            updated = current.model_copy(
                update={"reminder_date": reminder_date, "status": ReminderStatus.PENDING}
            )
            self._reminders[reminder_id] = updated
        self._notify()
        return updated

    def remove_for_problem(self, problem_id: str) -> list[Reminder]:
        """Drop every cached reminder of a problem without touching the count.

        :param problem_id: Tracked problem ID.
        :returns: The removed reminders.
        """
        with self._lock:
            removed = [r for r in self._reminders.values() if r.problem_id == problem_id]
            for reminder in removed:
                del self._reminders[reminder.id]
        if removed:
            self._notify()
        return removed

    def adjust_pending_count(self, delta: int) -> int:
        """Shift the pending count, clamped at zero.

        :param delta: Amount to add (negative to subtract).
        :returns: The new count.
        """
        with self._lock:
            self._pending_count = max(0, self._pending_count + delta)
            count = self._pending_count
        self._notify()
        return count

    def _poll(self) -> None:
        if not self._repository.has_credential:
            return
        self.refresh_count_only()

    def _apply(
        self,
        *,
        reminders: Iterable[Reminder] | None = None,
        pending_count: int | None = None,
        error: TrackerAPIError | None = None,
        last_updated: datetime | None = None,
    ) -> None:
        with self._lock:
            if self._closed:
                logger.debug("Cache closed, dropping refresh result")
                return
            if reminders is not None:
                self._reminders = {r.id: r for r in reminders}
                self._error = error
            if pending_count is not None:
                self._pending_count = pending_count
            if last_updated is not None:
                self._last_updated = last_updated
        self._notify()

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Reminder cache listener failed")
