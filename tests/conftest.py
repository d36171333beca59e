"""Shared fixtures for tailwatch tests."""

import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest

from src.tailwatch.models import FilePosition, LogEntry, LogFile


class RecordingSink:
    """Sink that keeps every entry it receives."""

    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    def log_entry(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    @property
    def messages(self) -> list[str]:
        return [entry.message for entry in self.entries]

    def from_source(self, source_file: str) -> list[LogEntry]:
        return [entry for entry in self.entries if entry.source_file == source_file]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def set(self, value: float) -> None:
        self.now = value


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def positions_dir(tmp_path: Path) -> Path:
    """Directory for position files (not created up front)."""
    return tmp_path / "positions"


@pytest.fixture
def make_log_file() -> Callable[..., Path]:
    """Return a helper writing a file and optionally pinning its mtime."""

    def _make(path: Path, content: str | bytes = "", mtime: float | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _make


@pytest.fixture
def snapshot() -> Callable[[Path], LogFile]:
    """Return a helper building a LogFile from the current state of a path."""

    def _snapshot(path: Path) -> LogFile:
        stat = path.stat()
        return LogFile(
            path=str(path),
            filename=path.name,
            modified_at=datetime.fromtimestamp(stat.st_mtime),
            size=stat.st_size,
        )

    return _snapshot


@pytest.fixture
def sample_position() -> FilePosition:
    return FilePosition(
        file_path="/var/log/app/logstash-2024-01-15.json",
        offset=1024,
        last_updated=datetime(2024, 1, 15, 10, 30, 0),
        project_name="app",
    )
