"""Logging setup for the stepsync command line."""

from __future__ import annotations

import logging

# Libraries that log every request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger with a terse CLI format.

    HTTP client loggers are held at WARNING unless ``level`` asks for DEBUG output.
    Pass ``force=True`` to replace handlers installed earlier (tests, embedding apps).
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)
