"""Session collaborator persisted through SQLAlchemy."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from stepsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
from stepsync.domain.model import SessionProfile
from stepsync.domain.time_windows import ensure_aware

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from stepsync.domain.ports.session import ActivityLedger, SessionProvider
    from stepsync.domain.types import Identity

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], SqlAlchemyUnitOfWork]


class UnknownIdentityError(LookupError):
    """Raised when writing state for an identity that has never signed in."""


class SqlAlchemySessionStore:
    """Implements ``SessionProvider`` and ``ActivityLedger`` on ``session_profile`` rows."""

    def __init__(self, unit_of_work_factory: UnitOfWorkFactory = SqlAlchemyUnitOfWork) -> None:
        self._uow_factory = unit_of_work_factory

    def login(self, identity: Identity, *, baseline: datetime | None = None) -> SessionProfile:
        """Mark ``identity`` as the signed-in session, creating its profile if needed.

        ``baseline`` seeds ``last_sync_time`` for a profile that has none yet.
        """

        with self._uow_factory() as uow:
            uow.profiles.clear_current()
            profile = uow.profiles.get(identity)
            if profile is None:
                profile = SessionProfile(identity=identity)
                uow.profiles.add(profile)
            if baseline is not None and profile.last_sync_time is None:
                profile.last_sync_time = ensure_aware(baseline)
            profile.is_current = True
            uow.commit()
            log.info("Signed in as %s", identity)
            return profile

    def logout(self) -> Identity | None:
        with self._uow_factory() as uow:
            current = uow.profiles.current()
            if current is None:
                return None
            uow.profiles.clear_current()
            uow.commit()
            log.info("Signed out %s", current.identity)
            return current.identity

    def profile(self, identity: Identity) -> SessionProfile | None:
        with self._uow_factory() as uow:
            return uow.profiles.get(identity)

    def current_identity(self) -> Identity | None:
        with self._uow_factory() as uow:
            current = uow.profiles.current()
            return current.identity if current is not None else None

    def last_sync_timestamp(self, identity: Identity) -> datetime | None:
        with self._uow_factory() as uow:
            profile = uow.profiles.get(identity)
            return profile.last_sync_time if profile is not None else None

    def persist_sync_timestamp(self, identity: Identity, timestamp: datetime) -> None:
        with self._uow_factory() as uow:
            profile = self._require(uow, identity)
            profile.last_sync_time = ensure_aware(timestamp)
            uow.commit()

    def credit(self, identity: Identity, count: int) -> None:
        with self._uow_factory() as uow:
            profile = self._require(uow, identity)
            total = profile.bank(count)
            uow.commit()
            log.info("Banked %s events for %s (total %s)", count, identity, total)

    @staticmethod
    def _require(uow: SqlAlchemyUnitOfWork, identity: Identity) -> SessionProfile:
        profile = uow.profiles.get(identity)
        if profile is None:
            raise UnknownIdentityError(f"No session profile for {identity!r}")
        return profile


if TYPE_CHECKING:
    _provider_check: SessionProvider = SqlAlchemySessionStore()
    _ledger_check: ActivityLedger = SqlAlchemySessionStore()
