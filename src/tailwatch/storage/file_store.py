"""Blocking file-based position storage.

Each (project, file) pair is stored in its own JSON file so that a
corrupted record only affects one tracked file. Writes go to a temporary
file first and are then atomically renamed into place.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
from pathlib import Path

from ..logging_manager import LoggerLike
from ..models import FilePosition
from .base import PositionStore


def position_filename(file_path: str, project_name: str) -> str:
    """Return the storage file name for a tracked path.

    The path is hashed so separators in it never leak into the file name.
    """
    digest = hashlib.md5(file_path.encode("utf-8")).hexdigest()
    return f"{project_name}_{digest}.json"


def is_project_file(filename: str, project_name: str) -> bool:
    """Return True if ``filename`` is a position file of exactly this project.

    A plain "app_*.json" glob would also match files of a project named "app_x".
    """
    return re.fullmatch(re.escape(project_name) + r"_[0-9a-f]{32}\.json", filename) is not None


def encode_position(position: FilePosition) -> str:
    return json.dumps(position.to_dict(), indent=4)


def decode_position(raw: str, source: Path | str, log: LoggerLike) -> FilePosition | None:
    """Decode a position file body, returning None for corrupt content."""
    try:
        return FilePosition.from_dict(json.loads(raw))
    except json.JSONDecodeError as e:
        log.error(f"Failed to parse position file {source}: {e}")
    except ValueError as e:
        log.error(f"Invalid position data in {source}: {e}")
    return None


class SyncFileStore(PositionStore):
    """Stores positions as one JSON file per tracked path using blocking I/O.

    Attributes:
        storage_dir: Directory holding the position files.
    """

    def __init__(self, storage_dir: str | Path, logger: LoggerLike | None = None):
        """Initialize the store.

        Args:
            storage_dir: Directory for position files, created on first save.
            logger: Logger to report through; defaults to the module logger.
        """
        self.storage_dir = Path(storage_dir)
        self._logger = logger or logging.getLogger(__name__)

    def _path_for(self, file_path: str, project_name: str) -> Path:
        return self.storage_dir / position_filename(file_path, project_name)

    def _project_files(self, project_name: str) -> list[Path]:
        if not self.storage_dir.is_dir():
            return []
        return sorted(
            path
            for path in self.storage_dir.iterdir()
            if is_project_file(path.name, project_name)
        )

    async def save(self, position: FilePosition) -> None:
        target = self._path_for(position.file_path, position.project_name)
        temp_file = target.with_suffix(".tmp")
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            with temp_file.open("w", encoding="utf-8") as f:
                f.write(encode_position(position))
                f.flush()
                os.fsync(f.fileno())
            # Atomic rename to replace old file
            temp_file.replace(target)
        except OSError as e:
            self._logger.error(f"Failed to save position for {position.file_path}: {e}")
            raise

        self._logger.debug(f"Saved position for {position.file_path}: {position.offset}")

    async def load(self, file_path: str, project_name: str) -> FilePosition | None:
        source = self._path_for(file_path, project_name)
        if not source.exists():
            self._logger.debug(f"No stored position for {file_path}")
            return None

        try:
            raw = source.read_text(encoding="utf-8")
        except OSError as e:
            self._logger.error(f"Failed to read position file {source}: {e}")
            return None

        return decode_position(raw, source, self._logger)

    async def load_all(self, project_name: str) -> list[FilePosition]:
        positions: list[FilePosition] = []
        for source in self._project_files(project_name):
            try:
                raw = source.read_text(encoding="utf-8")
            except OSError as e:
                self._logger.warning(f"Failed to read position file {source}: {e}")
                continue

            position = decode_position(raw, source, self._logger)
            if position is not None:
                positions.append(position)

        self._logger.debug(f"Loaded {len(positions)} positions for project {project_name}")
        return positions

    async def delete(self, file_path: str, project_name: str) -> None:
        target = self._path_for(file_path, project_name)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            self._logger.error(f"Failed to delete position file {target}: {e}")

    async def delete_all(self, project_name: str) -> None:
        deleted = 0
        for path in self._project_files(project_name):
            try:
                path.unlink()
                deleted += 1
            except OSError as e:
                self._logger.warning(f"Failed to delete position file {path}: {e}")

        self._logger.info(f"Deleted {deleted} position files for project {project_name}")

    async def has(self, file_path: str, project_name: str) -> bool:
        return self._path_for(file_path, project_name).exists()
