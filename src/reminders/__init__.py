"""Reminder state, lifecycle operations and sync handling."""

from src.reminders.cache import ReminderCacheSnapshot, ReminderStateCache
from src.reminders.formatting import format_reminder_date
from src.reminders.lifecycle import ReminderBusyError, ReminderLifecycle
from src.reminders.sync import (
    SyncConfigurationError,
    SyncHandler,
    SyncOutcome,
    SyncOutcomeKind,
    format_wait_time,
)

__all__ = [
    "ReminderBusyError",
    "ReminderCacheSnapshot",
    "ReminderLifecycle",
    "ReminderStateCache",
    "SyncConfigurationError",
    "SyncHandler",
    "SyncOutcome",
    "SyncOutcomeKind",
    "format_reminder_date",
    "format_wait_time",
]
