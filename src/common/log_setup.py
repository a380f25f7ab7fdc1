"""Logging bootstrap for the command-line entry points.

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
attached here, once, by whichever CLI is running.
"""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Attach a stderr handler to the root logger at *level*.

    Unknown level names fall back to ``INFO`` instead of failing the CLI.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=_FORMAT, force=True)
