"""Declarative base for the local settings store."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for the ORM models created by ``create_tables``."""
