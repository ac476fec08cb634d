"""SQLAlchemy adapter package for stepsync."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, session_profile_table, start_mappers
from .repositories import SqlAlchemySessionProfileRepository
from .session_store import SqlAlchemySessionStore, UnknownIdentityError
from .unit_of_work import SqlAlchemyUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemySessionProfileRepository",
    "SqlAlchemySessionStore",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "UnknownIdentityError",
    "create_all_tables",
    "mapper_registry",
    "session_profile_table",
    "shutdown",
    "start_mappers",
    "startup",
]
