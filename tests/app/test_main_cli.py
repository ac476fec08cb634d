from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from stepsync.domain.types import Decision, Identity, ReconciliationRun, RunOutcome
from stepsync.ui import cli as cli_module

if TYPE_CHECKING:
    from stepsync.adapters.sqlalchemy import SqlAlchemySessionStore


@pytest.fixture
def patched_store(
    monkeypatch: pytest.MonkeyPatch, session_store: SqlAlchemySessionStore
) -> SqlAlchemySessionStore:
    monkeypatch.setattr(cli_module, "open_session_store", lambda **_: session_store)
    return session_store


def test_login_seeds_baseline(patched_store: SqlAlchemySessionStore) -> None:
    cli_module.main(["login", "alice", "--baseline", "2025-01-01T03:00:00+03:00"])

    assert patched_store.current_identity() == "alice"
    assert patched_store.last_sync_timestamp(Identity("alice")) == datetime(
        2025, 1, 1, 0, 0, tzinfo=UTC
    )


def test_logout_signs_out(patched_store: SqlAlchemySessionStore) -> None:
    patched_store.login(Identity("alice"))

    cli_module.main(["logout"])

    assert patched_store.current_identity() is None


def test_invalid_baseline_exits_with_validation_error(
    patched_store: SqlAlchemySessionStore,
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["login", "alice", "--baseline", "not-a-date"])

    assert excinfo.value.code == 2
    assert patched_store.current_identity() is None


def test_blank_identity_is_rejected(patched_store: SqlAlchemySessionStore) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["login", "   "])

    assert excinfo.value.code == 2


@pytest.mark.parametrize(
    ("flags", "expected"),
    [([], None), (["--accept"], Decision.ACCEPT), (["--discard"], Decision.DISCARD)],
)
def test_check_forwards_decision(
    monkeypatch: pytest.MonkeyPatch,
    patched_store: SqlAlchemySessionStore,
    flags: list[str],
    expected: Decision | None,
) -> None:
    captured: dict[str, object] = {}

    def fake_check(**kwargs: object) -> tuple[ReconciliationRun, None]:
        captured.update(kwargs)
        return ReconciliationRun(outcome=RunOutcome.NO_IDENTITY), None

    monkeypatch.setattr(cli_module, "check_offline_activity", fake_check)

    cli_module.main(["check", *flags])

    assert captured["decision"] == expected
    assert captured["store"] is patched_store


def test_check_rejects_conflicting_decisions(patched_store: SqlAlchemySessionStore) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["check", "--accept", "--discard"])

    assert excinfo.value.code == 2


def test_unexpected_failure_exits_with_error(
    monkeypatch: pytest.MonkeyPatch, patched_store: SqlAlchemySessionStore
) -> None:
    def broken_check(**_: object) -> None:
        raise RuntimeError("sensor service offline")

    monkeypatch.setattr(cli_module, "check_offline_activity", broken_check)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["check"])

    assert excinfo.value.code == 1


def test_status_reports_current_identity(
    patched_store: SqlAlchemySessionStore, caplog: pytest.LogCaptureFixture
) -> None:
    patched_store.login(Identity("alice"), baseline=datetime(2025, 1, 1, tzinfo=UTC))
    patched_store.credit(Identity("alice"), 300)

    with caplog.at_level(logging.INFO, logger="stepsync.ui.cli"):
        cli_module.main(["status"])

    assert "Signed in as alice" in caplog.text
    assert "300 steps banked" in caplog.text
