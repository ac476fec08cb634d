"""Engine lifetime and unit of work for the session store."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from stepsync.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from stepsync.adapters.sqlalchemy.repositories import SqlAlchemySessionProfileRepository
from stepsync.config.storage import get_database_config

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the session store is used before ``startup`` or bound twice."""


@dataclass(slots=True, frozen=True)
class _BoundDatabase:
    engine: Engine
    sessions: sessionmaker[Session]


@dataclass(slots=True)
class _AdapterState:
    bound: _BoundDatabase | None = None

    def require(self) -> _BoundDatabase:
        if self.bound is None:
            raise StartupError(
                "Session store not initialised; call "
                "stepsync.adapters.sqlalchemy.startup() before opening a unit of work."
            )
        return self.bound


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Bind the session store to ``engine`` (or a new one) and create its tables."""

    if _STATE.bound is not None and not force:
        raise StartupError("Session store already initialised. Pass force=True to rebind.")

    if engine is None:
        engine = create_engine(database_uri or get_database_config().uri)
    start_mappers()
    create_all_tables(engine)
    _STATE.bound = _BoundDatabase(
        engine=engine,
        sessions=sessionmaker(bind=engine, expire_on_commit=False),
    )
    log.debug("Session store bound to %s", engine.url)
    return engine


def configured_engine() -> Engine | None:
    return _STATE.bound.engine if _STATE.bound is not None else None


def is_started() -> bool:
    return _STATE.bound is not None


def shutdown() -> None:
    """Dispose the bound engine, if any (primarily for tests)."""

    bound, _STATE.bound = _STATE.bound, None
    if bound is not None:
        bound.engine.dispose()


class SqlAlchemyUnitOfWork:
    """One session-profile transaction; changes are kept only on ``commit``."""

    def __init__(self) -> None:
        self._sessions = _STATE.require().sessions
        self._session: Session | None = None
        self._profiles: SqlAlchemySessionProfileRepository | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self._session = self._sessions()
        self._profiles = SqlAlchemySessionProfileRepository(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        session, self._session, self._profiles = self._session, None, None
        if session is None:
            return
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def profiles(self) -> SqlAlchemySessionProfileRepository:
        if self._profiles is None:
            raise StartupError("Unit of work used outside its `with` block")
        return self._profiles

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work used outside its `with` block")
        return self._session
