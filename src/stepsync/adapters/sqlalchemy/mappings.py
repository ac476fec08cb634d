"""Imperative SQLAlchemy mapping of session profiles."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Column, DateTime, Dialect, Index, Integer, String, Table, orm
from sqlalchemy.types import TypeDecorator

from stepsync.domain.model import SessionProfile
from stepsync.domain.time_windows import ensure_aware

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    """Aware timestamps stored as UTC.

    SQLite drops the offset on write, so values read back are re-attached to UTC.
    Naive values are rejected on write.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        del dialect
        return None if value is None else ensure_aware(value)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        del dialect
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


mapper_registry = orm.registry()

session_profile_table = Table(
    "session_profile",
    mapper_registry.metadata,
    Column("identity", String(255), primary_key=True),
    Column("last_sync_time", UTCDateTime(), nullable=True),
    Column("steps_banked", Integer, nullable=False, default=0),
    Column("is_current", Boolean, nullable=False, default=False),
    Index("ix_session_profile_is_current", "is_current"),
)


@cache
def start_mappers() -> orm.registry:
    """Map ``SessionProfile`` onto ``session_profile``; safe to call repeatedly."""

    log.info("Mapping session profiles")
    mapper_registry.map_imperatively(SessionProfile, session_profile_table)
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    mapper_registry.metadata.create_all(engine)
