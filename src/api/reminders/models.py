"""Pydantic models for the problem tracker reminder API."""

from datetime import datetime, timedelta
from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Default spaced repetition intervals in days
DEFAULT_INTERVALS: tuple[int, ...] = (1, 3, 7, 14, 30)

# Server-side skip reason when the source data was refreshed recently
SKIP_REASON_RECENT_UPDATE = "RECENT_UPDATE"


class _APIModel(BaseModel):
    """Base model accepting the API's camelCase keys and snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReminderStatus(StrEnum):
    """Status of a review reminder."""

    PENDING = "pending"  # Waiting for review, also after a skip
    COMPLETED = "completed"  # Reviewed, terminal
    SKIPPED = "skipped"


class Problem(_APIModel):
    """A solved problem referenced by reminders. Owned by the API."""

    id: str = Field(..., description="Tracked problem ID")
    title: str = Field(..., description="Problem title")
    url: str | None = Field(None, description="Link to the problem on the source platform")
    difficulty: str | None = Field(None, description="Difficulty label (Easy/Medium/Hard)")
    solved_at: datetime | None = Field(None, description="When the problem was solved")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> str:
        """Accept numeric or ObjectId-like IDs as strings.

        :param v: Raw ID value.
        :returns: The ID as a string.
        """
        return str(v)


class Reminder(_APIModel):
    """A scheduled review of a solved problem."""

    id: str = Field(..., description="Reminder ID")
    problem: Problem | None = Field(None, description="The problem this reminder refers to")
    reminder_date: datetime = Field(..., description="When the reminder becomes due")
    interval: int = Field(..., ge=1, description="Days after solving")
    status: ReminderStatus = Field(ReminderStatus.PENDING, description="Lifecycle status")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> str:
        """Accept numeric or ObjectId-like IDs as strings.

        :param v: Raw ID value.
        :returns: The ID as a string.
        """
        return str(v)

    @property
    def problem_id(self) -> str | None:
        """Get the ID of the referenced problem, if any."""
        return self.problem.id if self.problem else None

    def is_due(self, now: datetime) -> bool:
        """Check whether the reminder is pending and its date has passed.

        :param now: Current time.
        :returns: True if due.
        """
        return self.status == ReminderStatus.PENDING and self.reminder_date <= now

    def is_overdue(self, now: datetime) -> bool:
        """Check whether the reminder is due and dated before today.

        :param now: Current time. Its timezone defines the calendar day.
        :returns: True if overdue.
        """
        return self.is_due(now) and self.reminder_date < start_of_day(now)


class PendingRemindersPage(BaseModel):
    """One page of pending reminders plus the overall pending total."""

    reminders: list[Reminder] = Field(default_factory=list)
    total_reminders: int = Field(0, ge=0)


class CreateRemindersRequest(BaseModel):
    """Request body for creating reminders for a problem."""

    intervals: list[int] = Field(
        default_factory=lambda: list(DEFAULT_INTERVALS),
        min_length=1,
        description="Days after today at which each reminder fires",
    )

    @field_validator("intervals")
    @classmethod
    def validate_intervals(cls, v: list[int]) -> list[int]:
        """Validate that intervals are positive and strictly increasing.

        :param v: Interval list.
        :returns: The validated list.
        :raises ValueError: If any interval is invalid.
        """
        if v[0] < 1 or any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError("Intervals must be positive and strictly increasing")
        return v


class SkipReminderRequest(_APIModel):
    """Request body for snoozing a reminder."""

    snooze_hours: int = Field(24, ge=1, le=720, description="Hours to push the reminder forward")


class FailedUpdate(BaseModel):
    """A source record that could not be refreshed during sync."""

    name: str = Field(..., validation_alias=AliasChoices("name", "username", "title"))
    reason: str = Field("Update failed")


class UpdateResults(BaseModel):
    """Per-record summary of a sync run."""

    success: list[str] = Field(default_factory=list)
    failed: list[FailedUpdate] = Field(default_factory=list)


class SyncResponse(_APIModel):
    """Response of the sync-from-source endpoint."""

    synced: int = Field(0, ge=0, description="Number of problems synced")
    message: str | None = Field(None, description="Server message")
    skip_reason: str | None = Field(None, description="Why the sync was skipped")
    next_update_available: datetime | None = Field(
        None, description="When a skipped sync can run again"
    )
    update_results: UpdateResults | None = Field(None, description="Per-record results")
    problems: list[Problem] = Field(default_factory=list, description="Synced problems")

    @property
    def was_skipped(self) -> bool:
        """Check whether the server skipped the sync."""
        return self.skip_reason is not None


def start_of_day(now: datetime) -> datetime:
    """Get midnight at the start of the calendar day containing ``now``.

    :param now: Reference time.
    :returns: Midnight in the same timezone.
    """
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(now: datetime) -> datetime:
    """Get the last instant of the calendar day containing ``now``.

    :param now: Reference time.
    :returns: 23:59:59.999999 in the same timezone.
    """
    return start_of_day(now) + timedelta(days=1, microseconds=-1)


def local_now() -> datetime:
    """Get the current time in the host's local timezone.

    Day boundaries follow the user's calendar, not UTC.
    """
    return datetime.now().astimezone()
