"""
Logging setup for the library's ``framework_common`` logger tree.

Modules log through ``logging.getLogger(__name__)``; the host application owns
handlers. ``configure_logging`` only applies the level from settings and, when
nothing is attached yet, a stderr handler.
"""

import logging

from framework_common.core.config import get_settings

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """Set the package logger level (default: ``Settings.LOG_LEVEL``) and return it."""
    logger = logging.getLogger("framework_common")
    if level is None:
        level = get_settings().LOG_LEVEL
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
    return logger
