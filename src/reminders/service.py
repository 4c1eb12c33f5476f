"""Long-running reminder service.

Wires the request layer, cache, dispatcher and façade together, keeps the
pending count fresh, and delivers review notifications until stopped.
"""

import logging
import signal
import threading
from datetime import timedelta
from types import FrameType

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from pydantic import ValidationError

from src.api.client import TrackerAPIClient
from src.api.reminders.repository import ReminderRepository
from src.database.connection import create_tables, dispose_engine
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.host import NotificationHost, PermissionState, UnsupportedNotificationHost
from src.notifications.preferences import NotificationPreferenceStore
from src.notifications.telegram import (
    TelegramClient,
    TelegramClientError,
    TelegramNotificationHost,
    get_telegram_settings,
)
from src.observability.sentry import init_sentry
from src.paths import ENV_FILE
from src.reminders.cache import ReminderCacheSnapshot, ReminderStateCache
from src.reminders.lifecycle import ReminderLifecycle
from src.reminders.sync import SyncHandler
from src.utils.config import TrackerConfig, get_tracker_settings
from src.utils.logging import configure_logging

logger = logging.getLogger(__name__)

# Scheduler job ID of the Telegram button-press poll
CALLBACK_POLL_JOB_ID = "telegram-callback-poll"


def build_notification_host() -> tuple[NotificationHost, TelegramClient | None, int]:
    """Create the notification host from the environment.

    Falls back to a host that reports notifications as unsupported when
    Telegram is not configured.

    :returns: Tuple of (host, telegram_client, callback_poll_seconds).
    """
    try:
        telegram_settings = get_telegram_settings()
    except ValidationError:
        logger.warning("TELEGRAM_BOT_TOKEN not set, notifications are disabled")
        return UnsupportedNotificationHost(), None, 0

    client = TelegramClient(
        bot_token=telegram_settings.bot_token,
        chat_id=telegram_settings.chat_id,
    )
    return TelegramNotificationHost(client), client, telegram_settings.update_poll_seconds


class ReminderService:
    """Runs the reminder engine in the background until stopped."""

    def __init__(
        self,
        settings: TrackerConfig | None = None,
        scheduler: BackgroundScheduler | None = None,
        host: NotificationHost | None = None,
        telegram_client: TelegramClient | None = None,
        callback_poll_seconds: int = 0,
    ) -> None:
        """Initialise the service and all of its components.

        :param settings: Tracker settings. If not provided, loads from env.
        :param scheduler: Scheduler for timers. If not provided, creates one.
        :param host: Notification host. If not provided, builds one from env.
        :param telegram_client: Telegram client used to poll button presses.
        :param callback_poll_seconds: Seconds between button-press polls.
        """
        self._settings = settings or get_tracker_settings()
        self._scheduler = scheduler or BackgroundScheduler(timezone="UTC")

        if host is None:
            host, telegram_client, callback_poll_seconds = build_notification_host()
        self._host = host
        self._telegram_client = telegram_client
        self._callback_poll_seconds = callback_poll_seconds
        self._update_offset: int | None = None

        self.api_client = TrackerAPIClient(settings=self._settings)
        self.repository = ReminderRepository(self.api_client)
        self.preferences = NotificationPreferenceStore(host)
        self.dispatcher = NotificationDispatcher(
            host,
            self.preferences,
            self._scheduler,
            auto_close_seconds=self._settings.auto_close_seconds,
        )
        self.cache = ReminderStateCache(
            self.repository,
            self._scheduler,
            page_size=self._settings.pending_page_size,
            poll_interval_minutes=self._settings.poll_interval_minutes,
            stale_after=timedelta(minutes=self._settings.stale_after_minutes),
        )
        self.lifecycle = ReminderLifecycle(
            self.repository,
            self.cache,
            self.dispatcher,
            default_snooze_hours=self._settings.default_snooze_hours,
            default_intervals=self._settings.intervals,
        )
        self.sync_handler = SyncHandler(self.repository, cache=self.cache)

        self._stop_event = threading.Event()

    def start(self) -> None:
        """Start timers, load the cache and arm notifications."""
        create_tables()
        self._scheduler.start()
        self.cache.add_listener(self._on_cache_change)

        if (
            self.preferences.probe_permission() == PermissionState.DEFAULT
            and self.preferences.load().enabled
        ):
            self.preferences.request_permission()

        self.cache.mount()
        self.cache.start_polling()

        if self._telegram_client is not None and self._callback_poll_seconds > 0:
            self._scheduler.add_job(
                self._poll_callbacks,
                trigger="interval",
                seconds=self._callback_poll_seconds,
                id=CALLBACK_POLL_JOB_ID,
                name="Poll notification button presses",
                replace_existing=True,
                max_instances=1,
            )

        status = self.dispatcher.notification_status()
        logger.info(
            f"Reminder service started: pending={self.cache.pending_count}, "
            f"notifications={'on' if status.enabled else 'off'} ({status.permission})"
        )

    def stop(self) -> None:
        """Cancel timers and release resources."""
        self.cache.close()
        cancelled = self.lifecycle.disarm_all()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self.api_client.close()
        dispose_engine()
        logger.info(f"Reminder service stopped (cancelled {cancelled} notifications)")

    def run(self) -> None:
        """Start the service and block until SIGINT/SIGTERM."""
        self._setup_signal_handlers()
        self.start()
        try:
            self._stop_event.wait()
        finally:
            self.stop()

    def request_stop(self) -> None:
        """Signal :meth:`run` to return."""
        logger.info("Stopping reminder service...")
        self._stop_event.set()

    def _setup_signal_handlers(self) -> None:
        def signal_handler(signum: int, frame: FrameType | None) -> None:
            logger.info(f"Received shutdown signal: {signal.Signals(signum).name}")
            self.request_stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, signal_handler)

    def _on_cache_change(self, snapshot: ReminderCacheSnapshot) -> None:
        self.lifecycle.reconcile_notifications(snapshot.reminders)

    def _poll_callbacks(self) -> None:
        """Dispatch Telegram button presses and track user activity.

        Activity after a quiet poll counts as the app becoming visible.
        """
        if self._telegram_client is None or not isinstance(self._host, TelegramNotificationHost):
            return

        try:
            updates = self._telegram_client.get_updates(offset=self._update_offset)
        except TelegramClientError as e:
            logger.warning(f"Failed to poll Telegram updates: {e}")
            return

        for update in updates:
            self._update_offset = update.update_id + 1
            if update.callback_query is not None:
                self._host.handle_callback(update.callback_query)

        self.cache.handle_visibility_change(bool(updates))


def main() -> None:
    """Entry point for running the reminder service."""
    load_dotenv(ENV_FILE)
    configure_logging()
    init_sentry()
    ReminderService().run()


if __name__ == "__main__":
    main()
