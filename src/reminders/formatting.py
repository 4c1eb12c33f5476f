"""Display helpers for reminder dates."""

import math
from datetime import datetime

SECONDS_PER_DAY = 86400


def format_reminder_date(reminder_date: datetime, now: datetime) -> str:
    """Describe when a reminder is due relative to now.

    Day differences are rounded up: a reminder due within the past day reads
    "Today" and one due within the next day reads "Tomorrow".

    :param reminder_date: When the reminder is due.
    :param now: Current time.
    :returns: "Today", "Tomorrow", "Yesterday", "In N days" or "N days overdue".
    """
    diff_days = math.ceil((reminder_date - now).total_seconds() / SECONDS_PER_DAY)

    if diff_days == 0:
        return "Today"
    if diff_days == -1:
        return "Yesterday"
    if diff_days < 0:
        return f"{abs(diff_days)} days overdue"
    if diff_days == 1:
        return "Tomorrow"
    return f"In {diff_days} days"
