"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from stepsync.adapters.sqlalchemy.mappings import session_profile_table
from stepsync.domain.model import SessionProfile

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from stepsync.domain.types import Identity


class SqlAlchemySessionProfileRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: SessionProfile) -> None:
        self.session.add(entity)

    def get(self, identity: Identity) -> SessionProfile | None:
        return self.session.get(SessionProfile, identity)

    def current(self) -> SessionProfile | None:
        stmt = (
            select(SessionProfile)
            .where(session_profile_table.c.is_current.is_(True))
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def clear_current(self) -> None:
        stmt = select(SessionProfile).where(session_profile_table.c.is_current.is_(True))
        for profile in self.session.execute(stmt).scalars():
            profile.is_current = False
