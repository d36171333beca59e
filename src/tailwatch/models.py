"""Data models for the log tailing engine.

This module defines the core data structures used throughout tailwatch:
snapshots of discovered log files, persisted read positions, and parsed
log entries handed to the sink.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

# Wire format of FilePosition.last_updated in position files
POSITION_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Format of the "@timestamp" field written by logstash-style JSON loggers
ENTRY_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def position_key(file_path: str, project_name: str) -> str:
    """Key identifying the position of ``file_path`` for ``project_name``."""
    return f"{project_name}:{file_path}"


@dataclass(frozen=True)
class LogFile:
    """Immutable snapshot of a log file taken during a directory scan.

    Attributes:
        path: Full path to the file.
        filename: Base name of the file.
        modified_at: Modification time at scan time.
        size: Size in bytes at scan time.
    """

    path: str
    filename: str
    modified_at: datetime
    size: int

    def is_newer_than(self, other: LogFile) -> bool:
        """Return True if this file was modified strictly after ``other``."""
        return self.modified_at > other.modified_at


@dataclass(frozen=True)
class FilePosition:
    """Byte offset already consumed from a file for one project.

    Instances are never mutated; a new position replaces the old one every
    time content is consumed.

    Attributes:
        file_path: Path of the tracked log file.
        offset: Number of bytes already consumed (>= 0).
        last_updated: When the offset was recorded.
        project_name: Project that owns this position.

    Raises:
        ValueError: If file_path or project_name is empty, or offset < 0.
    """

    file_path: str
    offset: int
    last_updated: datetime
    project_name: str

    def __post_init__(self) -> None:
        if not self.file_path:
            raise ValueError("File path cannot be empty")
        if self.offset < 0:
            raise ValueError("Position cannot be negative")
        if not self.project_name:
            raise ValueError("Project name cannot be empty")

    @property
    def key(self) -> str:
        """Cache key identifying this position: ``project:path``."""
        return position_key(self.file_path, self.project_name)

    def is_for_project(self, project_name: str) -> bool:
        return self.project_name == project_name

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk JSON structure."""
        return {
            "file_path": self.file_path,
            "position": self.offset,
            "last_updated": self.last_updated.strftime(POSITION_TIMESTAMP_FORMAT),
            "project_name": self.project_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FilePosition:
        """Deserialize from the on-disk JSON structure.

        Raises:
            ValueError: If a field is missing, has the wrong type, or the
                timestamp does not match ``YYYY-MM-DD HH:MM:SS``.
        """
        if not isinstance(data, dict):
            raise ValueError("Position data must be a JSON object")

        file_path = data.get("file_path")
        if not isinstance(file_path, str):
            raise ValueError("file_path must be a string")

        position = data.get("position")
        # bool is an int subclass; reject it explicitly
        if not isinstance(position, int) or isinstance(position, bool):
            raise ValueError("position must be an integer")

        last_updated = data.get("last_updated")
        if not isinstance(last_updated, str):
            raise ValueError("last_updated must be a string")

        project_name = data.get("project_name")
        if not isinstance(project_name, str):
            raise ValueError("project_name must be a string")

        try:
            timestamp = datetime.strptime(last_updated, POSITION_TIMESTAMP_FORMAT)
        except ValueError as e:
            raise ValueError(f"Invalid date format for last_updated: {last_updated}") from e

        return cls(
            file_path=file_path,
            offset=position,
            last_updated=timestamp,
            project_name=project_name,
        )


@dataclass(frozen=True)
class LogEntry:
    """A single log record forwarded to the sink.

    Attributes:
        content: Raw line as read from the file.
        source_file: Name of the file the line came from ("monitor" for
            entries produced by the engine itself).
        timestamp: Event time, taken from ``@timestamp`` when available.
        metadata: Decoded JSON object, or None for engine-generated entries.
    """

    content: str
    source_file: str
    timestamp: datetime
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_json_line(cls, line: str, source_file: str) -> LogEntry | None:
        """Parse a JSON-object line; return None if the line is not one."""
        try:
            data = json.loads(line)
        except (json.JSONDecodeError, ValueError):
            return None

        if not isinstance(data, dict):
            return None

        timestamp = datetime.now()
        raw_timestamp = data.get("@timestamp")
        if isinstance(raw_timestamp, str):
            try:
                timestamp = datetime.strptime(raw_timestamp, ENTRY_TIMESTAMP_FORMAT)
            except ValueError:
                pass

        return cls(content=line, source_file=source_file, timestamp=timestamp, metadata=data)

    @property
    def level(self) -> str:
        if self.metadata is None:
            return "info"
        level = self.metadata.get("level")
        return level if isinstance(level, str) else "info"

    @property
    def message(self) -> str:
        if self.metadata is None:
            return self.content
        message = self.metadata.get("message")
        return message if isinstance(message, str) else self.content
