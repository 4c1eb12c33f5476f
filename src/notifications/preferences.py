"""Persisted notification preferences and permission probing."""

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.database.connection import get_session
from src.database.settings import get_setting, set_setting
from src.notifications.host import NotificationHost, PermissionState

logger = logging.getLogger(__name__)

# Key under which the serialised preferences are stored
PREFERENCES_KEY = "notification_preferences"


class NotificationPreferences(BaseModel):
    """User notification settings.

    Serialised with camelCase keys, e.g. ``{"enabled": true, "showOnDue": true}``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    enabled: bool = Field(True, description="Show reminder notifications at all")
    show_on_due: bool = Field(True, description="Notify when a reminder becomes due")
    show_on_overdue: bool = Field(True, description="Notify for reminders from previous days")
    auto_close: bool = Field(True, description="Dismiss notifications automatically")


class PreferenceSaveResult(StrEnum):
    """Outcome of saving preferences that may need a permission prompt."""

    SAVED = "saved"
    PERMISSION_DENIED = "permission_denied"  # User must fix this in host settings
    UNSUPPORTED = "unsupported"


class NotificationPreferenceStore:
    """Loads and saves preferences and reports host permission state."""

    def __init__(
        self,
        host: NotificationHost,
        session_factory: Callable[[], AbstractContextManager[Session]] = get_session,
        key: str = PREFERENCES_KEY,
    ) -> None:
        """Initialise the store.

        :param host: Notification surface whose permission is probed.
        :param session_factory: Context manager factory yielding database sessions.
        :param key: Settings key holding the serialised preferences.
        """
        self._host = host
        self._session_factory = session_factory
        self._key = key

    def load(self) -> NotificationPreferences:
        """Load the saved preferences.

        Missing, unreadable, or malformed values all resolve to the defaults.

        :returns: The preferences.
        """
        try:
            with self._session_factory() as session:
                raw = get_setting(session, self._key)
        except SQLAlchemyError:
            logger.warning("Could not read notification preferences, using defaults")
            return NotificationPreferences()

        if raw is None:
            return NotificationPreferences()

        try:
            return NotificationPreferences.model_validate_json(raw)
        except ValidationError:
            logger.warning("Stored notification preferences are malformed, using defaults")
            return NotificationPreferences()

    def save(self, preferences: NotificationPreferences) -> None:
        """Overwrite the saved preferences.

        :param preferences: The complete preferences to persist.
        :raises SQLAlchemyError: If the store cannot be written.
        """
        with self._session_factory() as session:
            set_setting(session, self._key, preferences.model_dump_json(by_alias=True))
        logger.info(f"Saved notification preferences: {preferences.model_dump()}")

    def update(self, **changes: Any) -> NotificationPreferences:
        """Merge changes into the saved preferences and save the result.

        :param changes: Field values to change, by snake_case name.
        :returns: The saved preferences.
        :raises ValidationError: If a change is not a valid preference.
        """
        merged = NotificationPreferences.model_validate(
            {**self.load().model_dump(), **changes}
        )
        self.save(merged)
        return merged

    def probe_permission(self) -> PermissionState:
        """Report the host's notification permission.

        :returns: The permission state, UNSUPPORTED if the host cannot tell.
        """
        try:
            return self._host.permission_state()
        except Exception:
            logger.exception("Failed to probe notification permission")
            return PermissionState.UNSUPPORTED

    def request_permission(self) -> bool:
        """Prompt the user for notification permission if needed.

        A denied permission cannot be re-prompted; the user has to change it in
        the host's own settings.

        :returns: True if permission is granted afterwards.
        """
        state = self.probe_permission()
        if state == PermissionState.GRANTED:
            return True
        if state in (PermissionState.DENIED, PermissionState.UNSUPPORTED):
            logger.info(f"Not prompting for notification permission: state={state}")
            return False

        try:
            state = self._host.request_permission()
        except Exception:
            logger.exception("Error requesting notification permission")
            return False

        logger.info(f"Notification permission after prompt: {state}")
        return state == PermissionState.GRANTED

    def save_with_permission(self, preferences: NotificationPreferences) -> PreferenceSaveResult:
        """Save preferences, asking for permission first when enabling.

        Nothing is saved if notifications are being enabled and the user does
        not grant permission.

        :param preferences: The preferences to save.
        :returns: What happened.
        """
        if preferences.enabled and self.probe_permission() != PermissionState.GRANTED:
            if not self.request_permission():
                if self.probe_permission() == PermissionState.UNSUPPORTED:
                    return PreferenceSaveResult.UNSUPPORTED
                return PreferenceSaveResult.PERMISSION_DENIED

        self.save(preferences)
        return PreferenceSaveResult.SAVED
