"""Logging setup for tailwatch.

Two logger trees are configured:

* ``tailwatch``: the engine's own diagnostics, human readable on the console
  and optionally as JSON lines in a rotating file.
* ``tailwatch.sink``: the forwarded log entries, written as JSON lines to
  stdout and optionally to a dated file and a TCP socket.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

LoggerLike = logging.Logger | logging.LoggerAdapter

APP_LOGGER_NAME = "tailwatch"
SINK_LOGGER_NAME = "tailwatch.sink"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "asctime",
        "taskName",
    }
)


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Collect the ``extra`` fields of a record, stringifying unserializable values."""
    extras: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RESERVED_RECORD_ATTRS:
            continue
        try:
            json.dumps(value)
            extras[key] = value
        except (TypeError, ValueError):
            extras[key] = str(value)
    return extras


class JsonLineFormatter(logging.Formatter):
    """Formats each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_obj.update(record_extras(record))
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


class JsonSocketHandler(logging.handlers.SocketHandler):
    """Sends records to a TCP endpoint as newline-delimited JSON.

    Connection problems are reported once per failed record on stderr and
    never interrupt the caller.
    """

    def __init__(self, host: str, port: int):
        super().__init__(host, port)
        self.setFormatter(JsonLineFormatter())

    def makePickle(self, record: logging.LogRecord) -> bytes:
        return (self.format(record) + "\n").encode("utf-8")

    def handleError(self, record: logging.LogRecord) -> None:
        if self.sock:
            self.sock.close()
            self.sock = None
        exc = sys.exc_info()[1]
        sys.stderr.write(f"Sink connection error ({self.host}:{self.port}): {exc}\n")


class ProjectLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds project context to all log messages."""

    def process(self, msg, kwargs):
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return f"[{self.extra['project']}] {msg}", kwargs


class LoggingManager:
    """Configures diagnostic and sink logging for one process."""

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: str | Path | None = None,
        sink_log_path: str | None = None,
        sink_host: str | None = None,
        sink_port: int = 9913,
        sink_stream: Any = None,
    ):
        """Initialize logging manager.

        Args:
            log_level: Level of the console diagnostics.
            log_dir: Directory for the rotating JSON diagnostics file; None
                disables it.
            sink_log_path: Path of the sink's JSON file; a ``%s`` in it is
                replaced by today's date. None disables the file sink.
            sink_host: Host for the TCP sink; None disables it.
            sink_port: Port for the TCP sink.
            sink_stream: Stream for the sink's JSON lines (default stdout).
        """
        self.log_level = getattr(logging, log_level.upper(), logging.INFO)
        self.log_dir = Path(log_dir) if log_dir else None
        self._project_loggers: dict[str, ProjectLoggerAdapter] = {}

        self.app_logger = self._setup_app_logger()
        self.sink_logger = self._setup_sink_logger(sink_log_path, sink_host, sink_port, sink_stream)

    def _setup_app_logger(self) -> logging.Logger:
        logger = logging.getLogger(APP_LOGGER_NAME)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        logger.handlers.clear()

        # Console handler - human readable, on stderr so stdout stays JSON
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(console_handler)

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / "tailwatch.log",
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(JsonLineFormatter())
            logger.addHandler(file_handler)

        return logger

    def _setup_sink_logger(
        self,
        sink_log_path: str | None,
        sink_host: str | None,
        sink_port: int,
        sink_stream: Any,
    ) -> logging.Logger:
        logger = logging.getLogger(SINK_LOGGER_NAME)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        logger.handlers.clear()

        stream_handler = logging.StreamHandler(sink_stream or sys.stdout)
        stream_handler.setLevel(logging.INFO)
        stream_handler.setFormatter(JsonLineFormatter())
        logger.addHandler(stream_handler)

        if sink_log_path:
            path = Path(sink_log_path.replace("%s", datetime.now().strftime("%Y-%m-%d")))
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(JsonLineFormatter())
            logger.addHandler(file_handler)

        if sink_host:
            socket_handler = JsonSocketHandler(sink_host, sink_port)
            socket_handler.setLevel(logging.INFO)
            logger.addHandler(socket_handler)

        return logger

    def get_project_logger(self, project_name: str) -> ProjectLoggerAdapter:
        """Get or create a diagnostics logger carrying the project name."""
        adapter = self._project_loggers.get(project_name)
        if adapter is None:
            logger = logging.getLogger(f"{APP_LOGGER_NAME}.project.{project_name}")
            adapter = ProjectLoggerAdapter(logger, {"project": project_name})
            self._project_loggers[project_name] = adapter
        return adapter

    def shutdown(self) -> None:
        """Flush and close every handler installed by this manager."""
        for logger in (self.sink_logger, self.app_logger):
            for handler in list(logger.handlers):
                try:
                    handler.flush()
                    handler.close()
                except (OSError, ValueError):
                    pass
                logger.removeHandler(handler)
            logger.propagate = True
