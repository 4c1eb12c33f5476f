"""Logging configuration for the reminder service."""

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_LOG_LEVEL = "INFO"

# HTTP and scheduler libraries log every request or job run at DEBUG
NOISY_LOGGERS = ("urllib3", "apscheduler", "apscheduler.scheduler", "apscheduler.executors")


def _parse_level(level: str) -> int:
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    return numeric_level


def configure_logging(level: str | None = None) -> None:
    """Send all logs to stdout through a single handler.

    Scheduler jobs log from worker threads, so the thread name is part of
    every line.

    :param level: DEBUG/INFO/WARNING/ERROR/CRITICAL. Defaults to LOG_LEVEL,
        then INFO.
    :raises ValueError: If the level name is unknown.
    """
    level_name = (level or os.environ.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    numeric_level = _parse_level(level_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(handler)

    # Library loggers propagate to root and never go below INFO
    for name in NOISY_LOGGERS:
        lib_logger = logging.getLogger(name)
        lib_logger.handlers.clear()
        lib_logger.propagate = True
        lib_logger.setLevel(max(numeric_level, logging.INFO))

    logging.getLogger(__name__).info(f"Logging configured: level={level_name}")
