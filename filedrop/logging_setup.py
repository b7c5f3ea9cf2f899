"""Logging configuration for the FileDrop server.

Configured once at startup from ``settings.log_level``; repeated calls only
adjust the level so reloads do not stack handlers.
"""

from __future__ import annotations

import logging

_LOGGER_NAME = 'filedrop'
_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'
_configured = False


def parse_level(level_name: str | None) -> int:
    value = (level_name or '').strip().upper()
    if value in ('CRITICAL', 'FATAL'):
        return logging.CRITICAL
    if value == 'ERROR':
        return logging.ERROR
    if value in ('WARN', 'WARNING'):
        return logging.WARNING
    if value == 'DEBUG':
        return logging.DEBUG
    return logging.INFO


def configure_logging(level_name: str | None = None) -> logging.Logger:
    global _configured

    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(parse_level(level_name))
    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
        _configured = True
    return logger
