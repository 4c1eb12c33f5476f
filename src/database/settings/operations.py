"""Database operations for the key-value settings store."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from src.database.settings.models import AppSetting

logger = logging.getLogger(__name__)


def get_setting(session: Session, key: str) -> str | None:
    """Get the raw value stored under a key.

    :param session: The database session.
    :param key: Setting key.
    :returns: The stored value, or None if the key is absent.
    """
    setting = session.query(AppSetting).filter(AppSetting.key == key).first()

    if setting is None:
        logger.debug(f"No setting found for key: {key}")
        return None

    return setting.value


def set_setting(session: Session, key: str, value: str) -> None:
    """Overwrite the value stored under a key.

    Creates the record if it doesn't exist. The previous value is replaced
    wholesale.

    :param session: The database session.
    :param key: Setting key.
    :param value: Serialised value.
    """
    setting = session.query(AppSetting).filter(AppSetting.key == key).first()

    if setting is None:
        session.add(AppSetting(key=key, value=value))
        logger.info(f"Created setting: {key}")
    else:
        setting.value = value
        setting.updated_at = datetime.now(UTC)
        logger.info(f"Updated setting: {key}")

    session.flush()


def delete_setting(session: Session, key: str) -> bool:
    """Delete the value stored under a key.

    :param session: The database session.
    :param key: Setting key.
    :returns: True if a record was deleted.
    """
    deleted = session.query(AppSetting).filter(AppSetting.key == key).delete()
    session.flush()
    return bool(deleted)
