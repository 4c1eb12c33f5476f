"""Models and request layer for the reminder endpoints."""

from src.api.reminders.models import (
    DEFAULT_INTERVALS,
    SKIP_REASON_RECENT_UPDATE,
    FailedUpdate,
    PendingRemindersPage,
    Problem,
    Reminder,
    ReminderStatus,
    SyncResponse,
    UpdateResults,
    end_of_day,
    local_now,
    start_of_day,
)
from src.api.reminders.repository import ReminderRepository

__all__ = [
    "DEFAULT_INTERVALS",
    "SKIP_REASON_RECENT_UPDATE",
    "FailedUpdate",
    "PendingRemindersPage",
    "Problem",
    "Reminder",
    "ReminderRepository",
    "ReminderStatus",
    "SyncResponse",
    "UpdateResults",
    "end_of_day",
    "local_now",
    "start_of_day",
]
