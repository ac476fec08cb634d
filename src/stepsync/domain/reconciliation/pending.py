"""Single-slot holder for unacknowledged reconciliation results."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from stepsync.domain.types import Decision

if TYPE_CHECKING:
    from collections.abc import Callable

    from stepsync.domain.types import Identity, PendingResult

log = getLogger(__name__)

type AcknowledgeListener = Callable[[PendingResult, Decision], None]


class PendingResultStore:
    """At most one pending result per identity; last write wins.

    The UI collaborator reads with ``peek`` and resolves with ``acknowledge``. Every
    registered listener is notified synchronously after the slot is cleared.
    """

    def __init__(self) -> None:
        self._slots: dict[Identity, PendingResult] = {}
        self._listeners: list[AcknowledgeListener] = []

    def add_listener(self, listener: AcknowledgeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: AcknowledgeListener) -> None:
        self._listeners.remove(listener)

    def publish(self, result: PendingResult) -> PendingResult | None:
        """Store ``result``, returning the unacknowledged result it replaced (if any)."""

        previous = self._slots.get(result.identity)
        self._slots[result.identity] = result
        if previous is not None:
            log.info(
                "Superseded pending result for %s: %s -> %s events",
                result.identity,
                previous.count,
                result.count,
            )
        return previous

    def peek(self, identity: Identity) -> PendingResult | None:
        return self._slots.get(identity)

    def acknowledge(
        self,
        identity: Identity,
        decision: Decision = Decision.ACCEPT,
    ) -> PendingResult | None:
        """Clear the slot for ``identity``; a second call is a no-op returning ``None``.

        If a listener raises, the result is put back so the decision can be retried.
        """

        result = self._slots.pop(identity, None)
        if result is None:
            return None
        try:
            for listener in list(self._listeners):
                listener(result, decision)
        except Exception:
            self._slots.setdefault(identity, result)
            raise
        return result
