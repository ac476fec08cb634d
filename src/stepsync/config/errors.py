"""Errors raised while loading stepsync settings from the environment."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConfigurationError(RuntimeError):
    """A ``STEPSYNC_*`` or ``DATABASE_URI`` value is present but cannot be used."""


class MissingConfigurationError(ConfigurationError):
    """Required settings, such as ``STEPSYNC_SENSOR_URL``, are unset or blank.

    ``names`` lists the offending environment variables in sorted order.
    """

    def __init__(self, names: Iterable[str]) -> None:
        self.names = tuple(sorted(names))
        super().__init__(f"Missing configuration for: {', '.join(self.names)}")
