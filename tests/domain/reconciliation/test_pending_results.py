from __future__ import annotations

from datetime import timedelta

import pytest

from stepsync.domain.reconciliation import PendingResultStore
from stepsync.domain.types import Decision, Identity, PendingResult, ReconciliationWindow
from tests.helpers.fakes import ALICE, BOB, T0


def _result(count: int, *, hours: int = 1, identity: Identity = ALICE) -> PendingResult:
    end = T0 + timedelta(hours=hours)
    return PendingResult(
        identity=identity,
        window=ReconciliationWindow(start=T0, end=end),
        count=count,
        created_at=end,
    )


def test_publish_replaces_previous_result_for_identity() -> None:
    store = PendingResultStore()
    first = _result(80)
    second = _result(130, hours=2)

    assert store.publish(first) is None
    assert store.publish(second) == first
    assert store.peek(ALICE) == second


def test_slots_are_per_identity() -> None:
    store = PendingResultStore()
    store.publish(_result(80))
    store.publish(_result(90, identity=BOB))

    store.acknowledge(ALICE)

    assert store.peek(ALICE) is None
    bob_result = store.peek(BOB)
    assert bob_result is not None
    assert bob_result.count == 90


def test_acknowledge_notifies_listeners_once() -> None:
    store = PendingResultStore()
    seen: list[tuple[int, Decision]] = []
    store.add_listener(lambda result, decision: seen.append((result.count, decision)))
    store.publish(_result(80))

    acknowledged = store.acknowledge(ALICE, Decision.DISCARD)
    repeated = store.acknowledge(ALICE, Decision.DISCARD)

    assert acknowledged is not None
    assert repeated is None
    assert seen == [(80, Decision.DISCARD)]


def test_removed_listener_is_not_notified() -> None:
    store = PendingResultStore()
    seen: list[PendingResult] = []

    def listener(result: PendingResult, _decision: Decision) -> None:
        seen.append(result)

    store.add_listener(listener)
    store.remove_listener(listener)
    store.publish(_result(80))
    store.acknowledge(ALICE)

    assert seen == []


def test_failing_listener_puts_result_back() -> None:
    store = PendingResultStore()
    result = _result(80)

    def listener(_result: PendingResult, _decision: Decision) -> None:
        raise OSError("write failed")

    store.add_listener(listener)
    store.publish(result)

    with pytest.raises(OSError, match="write failed"):
        store.acknowledge(ALICE)

    assert store.peek(ALICE) == result


def test_failing_listener_does_not_overwrite_newer_result() -> None:
    store = PendingResultStore()
    newer = _result(150, hours=3)

    def listener(_result: PendingResult, _decision: Decision) -> None:
        store.publish(newer)
        raise OSError("write failed")

    store.add_listener(listener)
    store.publish(_result(80))

    with pytest.raises(OSError):
        store.acknowledge(ALICE)

    assert store.peek(ALICE) == newer
