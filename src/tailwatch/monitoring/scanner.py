"""Discovery of candidate log files and selection of the one to follow."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable
from datetime import datetime

from ..logging_manager import LoggerLike
from ..models import LogFile


class PatternMatcher:
    """Matches file names against a glob-style pattern.

    Only ``*`` is special (any run of characters, including none); every
    other character matches itself and the whole name must match.
    """

    def __init__(self, pattern: str):
        self.pattern = pattern
        self._regex = re.compile(".*".join(re.escape(part) for part in pattern.split("*")))

    def matches(self, filename: str) -> bool:
        return self._regex.fullmatch(filename) is not None


class DirectoryScanner:
    """Lists a directory and returns the regular files matching a pattern.

    Scanning never raises: a missing or unreadable directory is logged and
    produces no candidates, so one unavailable directory does not stop the
    others from being monitored.
    """

    def __init__(self, logger: LoggerLike | None = None):
        self._logger = logger or logging.getLogger(__name__)
        self._matchers: dict[str, PatternMatcher] = {}

    def _matcher(self, pattern: str) -> PatternMatcher:
        matcher = self._matchers.get(pattern)
        if matcher is None:
            matcher = self._matchers[pattern] = PatternMatcher(pattern)
        return matcher

    def scan(self, directory: str, pattern: str) -> list[LogFile]:
        """Return matching regular files in ``directory`` sorted by name."""
        matcher = self._matcher(pattern)
        files: list[LogFile] = []

        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    if not matcher.matches(entry.name):
                        continue
                    try:
                        # Follows symlinks: links to directories are skipped
                        if not entry.is_file():
                            continue
                        stat = entry.stat()
                    except OSError as e:
                        # Removed between listing and stat
                        self._logger.debug(f"Skipping {entry.path}: {e}")
                        continue

                    files.append(
                        LogFile(
                            path=entry.path,
                            filename=entry.name,
                            modified_at=datetime.fromtimestamp(stat.st_mtime),
                            size=stat.st_size,
                        )
                    )
        except FileNotFoundError:
            self._logger.warning(f"Log directory does not exist: {directory}")
            return []
        except OSError as e:
            self._logger.warning(f"Failed to scan log directory {directory}: {e}")
            return []

        files.sort(key=lambda log_file: log_file.filename)
        for log_file in files:
            self._logger.debug(
                f"  - {log_file.filename} (size: {log_file.size} bytes, "
                f"modified: {log_file.modified_at:%Y-%m-%d %H:%M:%S})"
            )
        return files

    def scan_all(self, directories: Iterable[str], pattern: str) -> list[LogFile]:
        """Scan several directories, keeping their order in the result."""
        files: list[LogFile] = []
        for directory in directories:
            files.extend(self.scan(directory, pattern))
        return files


class LatestFileSelector:
    """Picks the most recently modified file."""

    def select(self, files: Iterable[LogFile]) -> LogFile | None:
        """Return the file with the greatest modification time.

        Ties keep the first file in input order. Returns None for no input.
        """
        latest: LogFile | None = None
        for log_file in files:
            if latest is None or log_file.is_newer_than(latest):
                latest = log_file
        return latest
