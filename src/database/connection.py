"""Engine and session management for the local settings store."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from src.database.core import Base
from src.utils.config import get_tracker_settings

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Get the database URL for the local settings store.

    :returns: The SQLAlchemy URL from TRACKER_DATABASE_URL.
    """
    return get_tracker_settings().database_url


def create_db_engine(url: str | None = None, *, echo: bool = False) -> Engine:
    """Create a SQLAlchemy engine for the settings store.

    SQLite connections are shared with scheduler worker threads, and the
    directory holding a SQLite file is created if missing.

    :param url: Database URL. Defaults to :func:`get_database_url`.
    :param echo: If True, log all SQL statements.
    :returns: A configured SQLAlchemy engine.
    """
    parsed = make_url(url or get_database_url())
    connect_args: dict[str, Any] = {}

    if parsed.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    logger.debug(f"Creating database engine: backend={parsed.get_backend_name()}")
    return create_engine(parsed, echo=echo, connect_args=connect_args)


@dataclass
class _DatabaseState:
    """Lazily created engine and session factory."""

    engine: Engine | None = field(default=None)
    session_factory: sessionmaker[Session] | None = field(default=None)


_state = _DatabaseState()


def get_engine() -> Engine:
    """Get or create the process-wide engine.

    :returns: The database engine.
    """
    if _state.engine is None:
        _state.engine = create_db_engine()
    return _state.engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the process-wide session factory.

    :returns: A sessionmaker bound to the engine.
    """
    if _state.session_factory is None:
        _state.session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _state.session_factory


@contextmanager
def get_session() -> Iterator[Session]:
    """Open a session that commits on success and rolls back on error.

    :yields: A database session.
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create any missing tables for the settings store.

    The store is local to this process, so the schema is created on startup
    instead of through migrations.
    """
    # Registers the models on the metadata
    from src.database.settings import models  # noqa: F401

    Base.metadata.create_all(get_engine())
    logger.info("Settings store tables ready")


def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    if _state.engine is not None:
        _state.engine.dispose()
    _state.engine = None
    _state.session_factory = None
