"""Logging configuration for the ``finquest`` package.

Entrypoints (the CLI, a host web app) call :func:`configure_logging` once.
Library modules only ever call ``get_logger("finquest.<module>")`` and never
attach handlers themselves; until configuration runs, the package logger
carries a ``NullHandler`` so importing ``finquest`` stays silent.

Environment
-----------
- ``FINQUEST_LOG_LEVEL``: level name (``DEBUG``/``INFO``/...) or number used
  when no explicit level is passed. Defaults to ``INFO``.
- ``FINQUEST_LOG_FORMAT``: optional ``logging.Formatter`` format string.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PKG_LOGGER_NAME = "finquest"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_handler: logging.Handler | None = None


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        level = os.getenv("FINQUEST_LOG_LEVEL")
        if not level:
            return logging.INFO
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    # getLevelName returns "Level X" for unknown names
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> logging.Logger:
    """Attach a single ``StreamHandler`` to the package logger (idempotent).

    Repeated calls are no-ops so an embedding app and the CLI can both call
    this safely. Returns the package logger.
    """

    global _handler
    logger = logging.getLogger(PKG_LOGGER_NAME)
    if _handler is not None:
        return logger

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(
        logging.Formatter(fmt or os.getenv("FINQUEST_LOG_FORMAT") or _DEFAULT_FORMAT)
    )
    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False
    _handler = handler
    return logger


def reset_logging() -> None:
    """Detach the handler installed by :func:`configure_logging`."""

    global _handler
    logger = logging.getLogger(PKG_LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger, keeping the package silent until configured."""

    pkg_logger = logging.getLogger(PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
