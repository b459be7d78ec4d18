"""
Logging setup for the ShareBook service.

Call ``configure_logging()`` once at startup (``main.py`` does it in the
lifespan hook); everything else just uses ``logging.getLogger(__name__)``.
"""

from __future__ import annotations

import logging
from typing import Optional

from settings import get_settings

DEFAULT_LOGGER_NAME = "sharebook"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _parse_level(value: Optional[str]) -> int:
    """Map 'debug' / 'INFO' / ... to a logging constant, defaulting to INFO."""
    if not value:
        return logging.INFO
    level = getattr(logging, value.strip().upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[str] = None, *, force: bool = False) -> logging.Logger:
    """
    Initialize root logging and return the service logger.

    Args:
        level: Level name overriding ``Settings.log_level``.
        force: Reconfigure even if handlers are already installed.
    """
    root = logging.getLogger()
    if root.handlers and not force:
        return logging.getLogger(DEFAULT_LOGGER_NAME)

    logging.basicConfig(
        level=_parse_level(level or get_settings().log_level),
        format=LOG_FORMAT,
        force=force,
    )
    # SQL echo is handled by the engine; keep aiosqlite's debug chatter out
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    return logging.getLogger(DEFAULT_LOGGER_NAME)
