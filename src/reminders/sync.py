"""Cooldown-aware wrapper around the sync-from-source call.

A sync either updates, is skipped because the data is fresh, or is refused
because of a cooldown. None of these are errors; only a missing source
account (which needs the user to change settings) and transport failures
are raised.
"""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

from src.api.client import HTTP_NOT_FOUND, TrackerAPIError, TrackerRateLimitError
from src.api.reminders.models import FailedUpdate, SyncResponse, local_now
from src.api.reminders.repository import ReminderRepository
from src.reminders.cache import ReminderStateCache

logger = logging.getLogger(__name__)

HTTP_BAD_REQUEST = 400

# Marker in the server message when no source account is linked
NOT_CONFIGURED_MARKER = "not configured"

SECONDS_PER_MINUTE = 60


class SyncOutcomeKind(StrEnum):
    """What a sync request resulted in."""

    UPDATED = "updated"
    SKIPPED = "skipped"  # Data was refreshed recently, nothing to do
    COOLDOWN = "cooldown"  # Rate limited, retry after the wait


class SyncConfigurationError(Exception):
    """Raised when syncing needs the user to link a source account first.

    Retrying does not help until the user changes their settings.
    """

    retryable = False


@dataclass(frozen=True)
class SyncOutcome:
    """Result of a sync request, shown to the user as information."""

    kind: SyncOutcomeKind
    message: str
    synced: int = 0
    success: list[str] = field(default_factory=list)
    failed: list[FailedUpdate] = field(default_factory=list)
    next_available: datetime | None = None
    wait_seconds: int | None = None

    @property
    def retryable(self) -> bool:
        """Check whether the same request will work after waiting."""
        return self.kind == SyncOutcomeKind.COOLDOWN

    @property
    def wait_time(self) -> str | None:
        """Get the wait as ``Xm Ys`` or ``Ys``, if there is one."""
        if self.wait_seconds is None:
            return None
        return format_wait_time(self.wait_seconds)


def format_wait_time(seconds: int) -> str:
    """Format a wait in seconds for display.

    :param seconds: Seconds to wait. Negative values count as zero.
    :returns: ``"Xm Ys"`` when at least a minute, otherwise ``"Ys"``.
    """
    seconds = max(0, int(seconds))
    minutes, remainder = divmod(seconds, SECONDS_PER_MINUTE)
    if minutes > 0:
        return f"{minutes}m {remainder}s"
    return f"{remainder}s"


def seconds_until(target: datetime, now: datetime) -> int:
    """Whole seconds from ``now`` until ``target``, rounded up, never negative.

    :param target: Future instant.
    :param now: Current time.
    :returns: Seconds remaining.
    """
    return max(0, math.ceil((target - now).total_seconds()))


class SyncHandler:
    """Runs syncs and interprets skips and cooldowns.

    After a cooldown is reported, further syncs are refused locally until it
    has elapsed instead of hitting the server again.
    """

    def __init__(
        self,
        repository: ReminderRepository,
        cache: ReminderStateCache | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialise the handler.

        :param repository: Reminder API request layer.
        :param cache: Cache to reload after a sync that updated data.
        :param clock: Returns the current time. Defaults to local now.
        """
        self._repository = repository
        self._cache = cache
        self._clock = clock or local_now
        self._cooldown_until: datetime | None = None

    @property
    def cooldown_until(self) -> datetime | None:
        """Get when the last reported cooldown ends, if still active."""
        if self._cooldown_until is not None and self._cooldown_until <= self._clock():
            self._cooldown_until = None
        return self._cooldown_until

    def sync(self) -> SyncOutcome:
        """Sync solved problems from the source platform.

        :returns: The outcome.
        :raises SyncConfigurationError: If no source account is linked.
        :raises TrackerAPIError: If the request fails for any other reason.
        """
        now = self._clock()
        cooldown_until = self.cooldown_until
        if cooldown_until is not None:
            logger.info(f"Sync refused locally, cooldown until {cooldown_until.isoformat()}")
            return self._cooldown_outcome(seconds_until(cooldown_until, now), cooldown_until)

        try:
            response = self._repository.sync_from_source()
        except TrackerRateLimitError as e:
            return self._handle_rate_limit(e, now)
        except TrackerAPIError as e:
            if e.status_code in (HTTP_BAD_REQUEST, HTTP_NOT_FOUND) and (
                NOT_CONFIGURED_MARKER in str(e).lower()
            ):
                logger.warning(f"Sync needs configuration: {e}")
                raise SyncConfigurationError(str(e)) from e
            raise

        if response.was_skipped:
            return self._skipped_outcome(response, now)
        return self._updated_outcome(response)

    def _handle_rate_limit(self, error: TrackerRateLimitError, now: datetime) -> SyncOutcome:
        next_allowed: datetime | None = None
        if error.next_sync_allowed:
            try:
                next_allowed = datetime.fromisoformat(error.next_sync_allowed)
            except ValueError:
                logger.debug(f"Unparseable nextSyncAllowed: {error.next_sync_allowed!r}")

        if error.cooldown_seconds is not None:
            wait_seconds = max(0, error.cooldown_seconds)
        elif next_allowed is not None:
            wait_seconds = seconds_until(next_allowed, now)
        else:
            wait_seconds = 0

        self._cooldown_until = now + timedelta(seconds=wait_seconds)
        logger.info(f"Sync rate limited for {format_wait_time(wait_seconds)}")
        return self._cooldown_outcome(wait_seconds, next_allowed or self._cooldown_until)

    @staticmethod
    def _cooldown_outcome(wait_seconds: int, next_available: datetime) -> SyncOutcome:
        return SyncOutcome(
            kind=SyncOutcomeKind.COOLDOWN,
            message=f"Please wait {format_wait_time(wait_seconds)} before syncing again",
            next_available=next_available,
            wait_seconds=wait_seconds,
        )

    @staticmethod
    def _skipped_outcome(response: SyncResponse, now: datetime) -> SyncOutcome:
        next_available = response.next_update_available
        wait_seconds = seconds_until(next_available, now) if next_available else None
        logger.info(f"Sync skipped: reason={response.skip_reason}")
        return SyncOutcome(
            kind=SyncOutcomeKind.SKIPPED,
            message=response.message or "Data was updated recently",
            next_available=next_available,
            wait_seconds=wait_seconds,
        )

    def _updated_outcome(self, response: SyncResponse) -> SyncOutcome:
        if response.update_results is not None:
            success = list(response.update_results.success)
            failed = list(response.update_results.failed)
        else:
            success = [problem.title for problem in response.problems]
            failed = []

        synced = response.synced or len(success)
        logger.info(f"Sync completed: synced={synced}, failed={len(failed)}")

        if self._cache is not None:
            self._cache.refresh_all()

        return SyncOutcome(
            kind=SyncOutcomeKind.UPDATED,
            message=response.message or f"Synced {synced} problems",
            synced=synced,
            success=success,
            failed=failed,
        )
