"""On-device reminder notifications and their preferences."""

from src.notifications.dispatcher import (
    NotificationDispatcher,
    NotificationStatus,
    ScheduledTimerHandle,
    build_notification_content,
    notification_tag,
)
from src.notifications.host import (
    HostNotification,
    NotificationContent,
    NotificationData,
    NotificationHost,
    NotificationHostError,
    PermissionState,
    UnsupportedNotificationHost,
)
from src.notifications.preferences import (
    NotificationPreferences,
    NotificationPreferenceStore,
    PreferenceSaveResult,
)

__all__ = [
    "HostNotification",
    "NotificationContent",
    "NotificationData",
    "NotificationDispatcher",
    "NotificationHost",
    "NotificationHostError",
    "NotificationPreferenceStore",
    "NotificationPreferences",
    "NotificationStatus",
    "PermissionState",
    "PreferenceSaveResult",
    "ScheduledTimerHandle",
    "UnsupportedNotificationHost",
    "build_notification_content",
    "notification_tag",
]
