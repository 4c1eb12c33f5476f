"""Abstract interface to the on-device notification surface.

Provides the seam between the dispatcher and the platform that actually
renders notifications, so the platform can be swapped (e.g. Telegram to a
desktop notifier) without changing call sites.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

logger = logging.getLogger(__name__)


class PermissionState(StrEnum):
    """Whether the host lets us show notifications."""

    UNSUPPORTED = "unsupported"  # Host has no notification surface
    DEFAULT = "default"  # Not yet asked
    DENIED = "denied"  # Refused, can only be changed in host settings
    GRANTED = "granted"


class NotificationHostError(Exception):
    """Raised when the host fails to render or manage a notification."""

    pass


@dataclass(frozen=True)
class NotificationData:
    """Payload attached to a notification for the click handler."""

    reminder_id: str
    problem_id: str
    url: str | None = None


@dataclass(frozen=True)
class NotificationContent:
    """Everything the host needs to render one notification."""

    title: str
    body: str
    tag: str
    data: NotificationData
    icon: str | None = None
    require_interaction: bool = True
    actions: tuple[str, ...] = field(default_factory=tuple)


class HostNotification(ABC):
    """A notification currently shown by the host."""

    def __init__(self, tag: str) -> None:
        """Initialise the notification.

        :param tag: Replacement tag the notification was shown with.
        """
        self.tag = tag

    @abstractmethod
    def close(self) -> None:
        """Dismiss the notification. Closing twice is a no-op."""
        ...


# Called by the host when the user activates a notification
ActivationCallback = Callable[[HostNotification], None]


class NotificationHost(ABC):
    """Abstract base class for notification surfaces.

    Implementations must replace any visible notification that carries the
    same tag instead of showing a duplicate.
    """

    @abstractmethod
    def permission_state(self) -> PermissionState:
        """Report the current notification permission.

        :returns: The permission state.
        """
        ...

    @abstractmethod
    def request_permission(self) -> PermissionState:
        """Ask the user for permission to show notifications.

        :returns: The permission state after the prompt.
        """
        ...

    @abstractmethod
    def show(
        self,
        content: NotificationContent,
        on_activate: ActivationCallback,
    ) -> HostNotification:
        """Render a notification.

        :param content: What to show.
        :param on_activate: Invoked with the notification when the user activates it.
        :returns: Handle to the shown notification.
        :raises NotificationHostError: If the notification cannot be shown.
        """
        ...

    @abstractmethod
    def focus(self) -> None:
        """Bring the application to the foreground."""
        ...

    @abstractmethod
    def open_url(self, url: str) -> None:
        """Open a link for the user.

        :param url: Link to open.
        """
        ...


class UnsupportedNotificationHost(NotificationHost):
    """Host used when no notification surface is configured."""

    def permission_state(self) -> PermissionState:
        """Always report that notifications are unsupported."""
        return PermissionState.UNSUPPORTED

    def request_permission(self) -> PermissionState:
        """Always report that notifications are unsupported."""
        logger.warning("Notification permission requested but no notification host is configured")
        return PermissionState.UNSUPPORTED

    def show(
        self,
        content: NotificationContent,
        on_activate: ActivationCallback,
    ) -> HostNotification:
        """Refuse to show anything.

        :raises NotificationHostError: Always.
        """
        raise NotificationHostError("No notification host configured")

    def focus(self) -> None:
        """Do nothing."""

    def open_url(self, url: str) -> None:
        """Do nothing."""
