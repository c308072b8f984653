"""
Logging helpers.

Every module takes its logger from ``logging.getLogger(__name__)``.
``print[...]`` in scripts writes to the ``shapescript.script`` logger.
"""

from __future__ import annotations

import logging

SCRIPT_LOGGER = "shapescript.script"


def setup_default_logging(level: int | str = "INFO") -> None:
    """Apply a minimal logging configuration once.

    Does nothing if the root logger already has handlers; meant to be
    called from the CLI or another top-level runner.
    """
    if isinstance(level, str):
        lvl = getattr(logging, level.upper(), logging.INFO)
    else:
        lvl = int(level)

    root = logging.getLogger()
    if root.handlers:
        # Assume the app has configured logging
        return
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def script_logger() -> logging.Logger:
    return logging.getLogger(SCRIPT_LOGGER)


__all__ = ["setup_default_logging", "script_logger", "SCRIPT_LOGGER"]
