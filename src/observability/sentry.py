"""Sentry error reporting for the reminder service."""

import logging
import os

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

DEFAULT_SERVICE_NAME = "reminders"


def init_sentry(service: str = DEFAULT_SERVICE_NAME) -> bool:
    """Initialise Sentry if a DSN is configured.

    Failed API calls and notification errors are logged at ERROR by their
    callers, so the logging integration is what turns them into events.

    :param service: Value of the ``service`` tag on every event.
    :returns: True if Sentry was initialised.
    """
    dsn = os.environ.get("SENTRY_DSN")
    if not dsn:
        return False

    logging_integration = LoggingIntegration(
        level=logging.INFO,  # breadcrumbs
        event_level=logging.ERROR,  # events
    )

    sentry_sdk.init(
        dsn=dsn,
        integrations=[logging_integration],
        environment=os.environ.get("APP_ENV", "local"),
        release=os.environ.get("APP_RELEASE"),
        send_default_pii=False,
        traces_sample_rate=0,
    )
    sentry_sdk.set_tag("service", service)
    return True
