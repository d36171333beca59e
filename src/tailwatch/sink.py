"""Forwarding of parsed log entries to the downstream sink."""

from __future__ import annotations

import logging
from typing import Protocol

from .logging_manager import SINK_LOGGER_NAME, LoggerLike
from .models import LogEntry

# PSR-3 / syslog style level names mapped onto the logging module
LEVEL_MAP = {
    "emergency": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "notice": logging.INFO,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def map_level(level: str) -> int:
    """Return the logging level for a level name; unknown names map to INFO."""
    return LEVEL_MAP.get(level.lower(), logging.INFO)


class LogSink(Protocol):
    """Receives entries extracted from tailed files."""

    def log_entry(self, entry: LogEntry) -> None: ...


class LoggerSink:
    """Sink that emits entries on a logger.

    Delivery and formatting are left to the handlers attached to the
    logger (see LoggingManager).
    """

    def __init__(self, logger: LoggerLike | None = None):
        self._logger = logger or logging.getLogger(SINK_LOGGER_NAME)

    def log_entry(self, entry: LogEntry) -> None:
        extra = {
            "source_file": entry.source_file,
            "timestamp": entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        }
        if entry.metadata is not None:
            extra["metadata"] = entry.metadata

        self._logger.log(map_level(entry.level), entry.message, extra=extra)
