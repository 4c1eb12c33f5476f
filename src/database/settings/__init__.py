"""Key-value settings database models and operations."""

from src.database.settings.models import AppSetting
from src.database.settings.operations import delete_setting, get_setting, set_setting

__all__ = [
    "AppSetting",
    "delete_setting",
    "get_setting",
    "set_setting",
]
