"""Turns due reminders into on-device notifications.

Delivery is best-effort: every failure to show a notification is logged
and swallowed so it never reaches the caller. Scheduled notifications live
only in memory and are lost when the process exits.
"""

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from src.api.reminders.models import Reminder, local_now
from src.notifications.host import (
    HostNotification,
    NotificationContent,
    NotificationData,
    NotificationHost,
    PermissionState,
)
from src.notifications.preferences import NotificationPreferences, NotificationPreferenceStore

logger = logging.getLogger(__name__)

# Seconds before an auto-closing notification is dismissed
DEFAULT_AUTO_CLOSE_SECONDS = 10

# Prefix of the replacement tag shown with each reminder notification
TAG_PREFIX = "reminder-"

# Prefix of scheduler job IDs for deferred notifications
JOB_ID_PREFIX = "notify:"

DEFAULT_ICON = "/favicon.ico"

# Invoked with the reminder when the user activates its notification
ClickHandler = Callable[[Reminder], None]


@dataclass(frozen=True)
class ScheduledTimerHandle:
    """Cancellation token for a deferred notification."""

    job_id: str
    reminder_id: str
    fire_at: datetime


@dataclass(frozen=True)
class NotificationStatus:
    """Snapshot of whether notifications can currently be delivered."""

    supported: bool
    permission: PermissionState
    enabled: bool
    preferences: NotificationPreferences


def notification_tag(reminder_id: str) -> str:
    """Build the replacement tag for a reminder's notification.

    :param reminder_id: Reminder ID.
    :returns: Tag string.
    """
    return f"{TAG_PREFIX}{reminder_id}"


def build_notification_content(
    reminder: Reminder,
    icon: str | None = DEFAULT_ICON,
) -> NotificationContent:
    """Derive the notification for a reminder.

    Pure function of the reminder.

    :param reminder: Reminder with its problem attached.
    :param icon: Icon URL shown with the notification.
    :returns: The notification content.
    :raises ValueError: If the reminder has no problem.
    """
    problem = reminder.problem
    if problem is None:
        raise ValueError(f"Reminder {reminder.id} has no problem attached")

    difficulty = problem.difficulty or "unrated"
    return NotificationContent(
        title=f"Review Problem: {problem.title}",
        body=f"Time to review this {difficulty} problem! ({reminder.interval} day interval)",
        tag=notification_tag(reminder.id),
        data=NotificationData(reminder_id=reminder.id, problem_id=problem.id, url=problem.url),
        icon=icon,
        require_interaction=True,
        actions=("View Problem",),
    )


class NotificationDispatcher:
    """Shows, schedules and cancels reminder notifications.

    Callers own scheduled handles: a reminder that is completed, skipped or
    deleted before it fires must be cancelled by the caller.
    """

    def __init__(
        self,
        host: NotificationHost,
        preferences: NotificationPreferenceStore,
        scheduler: BaseScheduler,
        *,
        auto_close_seconds: int = DEFAULT_AUTO_CLOSE_SECONDS,
        icon: str | None = DEFAULT_ICON,
        dedupe: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialise the dispatcher.

        :param host: Notification surface.
        :param preferences: Preference store consulted on every delivery.
        :param scheduler: Scheduler running deferred and auto-close jobs.
        :param auto_close_seconds: Seconds before auto-closing a notification.
        :param icon: Icon shown with notifications.
        :param dedupe: Skip reminders already shown by this dispatcher instead
            of relying only on the host's tag replacement.
        :param clock: Returns the current time. Defaults to local now.
        """
        self._host = host
        self._preferences = preferences
        self._scheduler = scheduler
        self._auto_close_seconds = auto_close_seconds
        self._icon = icon
        self._dedupe = dedupe
        self._clock = clock or local_now
        self._shown: set[str] = set()
        self._handles: dict[str, ScheduledTimerHandle] = {}

    @property
    def scheduled_handles(self) -> list[ScheduledTimerHandle]:
        """Get handles of deferred notifications that have not fired yet."""
        return list(self._handles.values())

    def show_notification(
        self,
        reminder: Reminder,
        on_click: ClickHandler | None = None,
        *,
        replace: bool = False,
    ) -> HostNotification | None:
        """Show a notification for a reminder now.

        :param reminder: The reminder to notify about.
        :param on_click: Called with the reminder on activation. Defaults to
            opening the problem URL.
        :param replace: Show again even if deduplication already saw this reminder.
        :returns: The shown notification, or None if nothing was shown.
        """
        if reminder.problem is None:
            logger.debug(f"Not notifying for reminder_id={reminder.id}: no problem attached")
            return None

        permission = self._preferences.probe_permission()
        if permission == PermissionState.DEFAULT and self._preferences.load().enabled:
            # Undecided after a failed prompt, so ask again
            if self._preferences.request_permission():
                permission = PermissionState.GRANTED
        if permission != PermissionState.GRANTED:
            logger.debug(f"Not notifying for reminder_id={reminder.id}: permission={permission}")
            return None

        if self._dedupe and not replace and reminder.id in self._shown:
            logger.debug(f"Already notified for reminder_id={reminder.id}")
            return None

        try:
            content = build_notification_content(reminder, icon=self._icon)
            notification = self._host.show(
                content, lambda shown: self._activate(shown, reminder, on_click)
            )
        except Exception:
            logger.exception(f"Failed to show notification for reminder_id={reminder.id}")
            return None

        if self._dedupe:
            self._shown.add(reminder.id)
        logger.info(f"Notification shown: tag={content.tag}")

        if self._preferences.load().auto_close:
            self._arm_auto_close(notification)

        return notification

    def schedule_future(
        self,
        reminder: Reminder,
        on_click: ClickHandler | None = None,
    ) -> ScheduledTimerHandle | None:
        """Show a notification when the reminder becomes due.

        A reminder that is already due is shown immediately and no handle is
        returned.

        :param reminder: The reminder to notify about.
        :param on_click: Called with the reminder on activation.
        :returns: Handle for cancelling the deferred notification, or None.
        """
        delay = reminder.reminder_date - self._clock()
        if delay <= timedelta(0):
            self.show_notification(reminder, on_click)
            return None

        job_id = f"{JOB_ID_PREFIX}{reminder.id}:{uuid.uuid4().hex[:8]}"
        handle = ScheduledTimerHandle(
            job_id=job_id,
            reminder_id=reminder.id,
            fire_at=reminder.reminder_date,
        )
        self._scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=reminder.reminder_date),
            args=[handle, reminder, on_click],
            id=job_id,
            name=f"notify:{reminder.id}",
            misfire_grace_time=None,
        )
        self._handles[job_id] = handle

        logger.info(f"Scheduled notification for reminder_id={reminder.id} in {delay}")
        return handle

    def cancel(self, handle: ScheduledTimerHandle) -> bool:
        """Cancel a deferred notification.

        :param handle: Handle returned by :meth:`schedule_future`.
        :returns: True if the notification was still pending.
        """
        self._handles.pop(handle.job_id, None)
        try:
            self._scheduler.remove_job(handle.job_id)
        except JobLookupError:
            logger.debug(f"Notification job already gone: {handle.job_id}")
            return False

        logger.info(f"Cancelled notification for reminder_id={handle.reminder_id}")
        return True

    def clear_scheduled(self, handles: Iterable[ScheduledTimerHandle] | None = None) -> int:
        """Cancel several deferred notifications.

        :param handles: Handles to cancel. Defaults to every pending handle.
        :returns: Number of notifications actually cancelled.
        """
        targets = list(handles) if handles is not None else self.scheduled_handles
        return sum(1 for handle in targets if self.cancel(handle))

    def forget(self, reminder_ids: Iterable[str]) -> None:
        """Drop reminders from the deduplication record.

        :param reminder_ids: Reminders whose notifications were disarmed.
        """
        self._shown.difference_update(reminder_ids)

    def check_due_reminders(
        self,
        reminders: Iterable[Reminder],
        on_click: ClickHandler | None = None,
    ) -> int:
        """Notify for every due reminder the preferences allow.

        :param reminders: Candidate reminders.
        :param on_click: Called with a reminder when its notification is activated.
        :returns: Number of due reminders found.
        """
        now = self._clock()
        due = [r for r in reminders if r.is_due(now)]
        if not due:
            return 0

        preferences = self._preferences.load()
        for reminder in due:
            if self._allowed(reminder, preferences, now):
                self.show_notification(reminder, on_click)

        return len(due)

    def notification_status(self) -> NotificationStatus:
        """Report whether notifications can currently be delivered.

        :returns: Status snapshot.
        """
        permission = self._preferences.probe_permission()
        preferences = self._preferences.load()
        supported = permission != PermissionState.UNSUPPORTED
        return NotificationStatus(
            supported=supported,
            permission=permission,
            enabled=supported and permission == PermissionState.GRANTED and preferences.enabled,
            preferences=preferences,
        )

    def _fire(
        self,
        handle: ScheduledTimerHandle,
        reminder: Reminder,
        on_click: ClickHandler | None,
    ) -> None:
        self._handles.pop(handle.job_id, None)
        if not self._allowed(reminder, self._preferences.load(), self._clock()):
            logger.info(f"Scheduled notification suppressed by preferences: {reminder.id}")
            return
        self.show_notification(reminder, on_click)

    @staticmethod
    def _allowed(reminder: Reminder, preferences: NotificationPreferences, now: datetime) -> bool:
        if not preferences.enabled:
            return False
        if reminder.is_overdue(now):
            return preferences.show_on_overdue
        return preferences.show_on_due

    def _activate(
        self,
        notification: HostNotification,
        reminder: Reminder,
        on_click: ClickHandler | None,
    ) -> None:
        try:
            self._host.focus()
            if on_click is not None:
                on_click(reminder)
            elif reminder.problem is not None and reminder.problem.url:
                self._host.open_url(reminder.problem.url)
        except Exception:
            logger.exception(f"Notification click handler failed for reminder_id={reminder.id}")
        finally:
            self._close_quietly(notification)

    def _arm_auto_close(self, notification: HostNotification) -> None:
        run_at = self._clock() + timedelta(seconds=self._auto_close_seconds)
        try:
            self._scheduler.add_job(
                self._close_quietly,
                trigger=DateTrigger(run_date=run_at),
                args=[notification],
                name=f"autoclose:{notification.tag}",
            )
        except Exception:
            logger.exception(f"Failed to arm auto-close for {notification.tag}")

    @staticmethod
    def _close_quietly(notification: HostNotification) -> None:
        try:
            notification.close()
        except Exception:
            logger.exception(f"Failed to close notification {notification.tag}")
