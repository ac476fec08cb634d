"""Reconciliation policy defaults."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .env import optional_bool, optional_float, optional_int

DEFAULT_SIGNIFICANCE_THRESHOLD = 50
DEFAULT_DEBOUNCE_SECONDS = 1.0


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    """Tuning knobs for offline activity reconciliation.

    ``significance_threshold`` is the minimum count that must be *exceeded* before a
    result is surfaced; smaller counts are treated as sensor noise and reconciled
    silently. ``establish_baseline`` controls what happens when an identity has no
    recorded sync timestamp at all: record ``now`` as the starting cursor, or leave
    the identity untracked until something else writes one.
    """

    significance_threshold: int = DEFAULT_SIGNIFICANCE_THRESHOLD
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    establish_baseline: bool = True

    def __post_init__(self) -> None:
        if self.significance_threshold < 0:
            raise ValueError("Significance threshold must be non-negative")
        if self.debounce_seconds < 0:
            raise ValueError("Debounce interval must be non-negative")

    @property
    def debounce(self) -> timedelta:
        return timedelta(seconds=self.debounce_seconds)


def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig(
        significance_threshold=optional_int(
            "STEPSYNC_SIGNIFICANCE_THRESHOLD", DEFAULT_SIGNIFICANCE_THRESHOLD, minimum=0
        ),
        debounce_seconds=optional_float(
            "STEPSYNC_DEBOUNCE_SECONDS", DEFAULT_DEBOUNCE_SECONDS, minimum=0.0
        ),
        establish_baseline=optional_bool("STEPSYNC_ESTABLISH_BASELINE", default=True),
    )
