"""Non-blocking file-based position storage built on aiofiles.

Uses the same on-disk layout as SyncFileStore, so the two backends can
read each other's files.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from ..logging_manager import LoggerLike
from ..models import FilePosition
from .base import PositionStore
from .file_store import decode_position, encode_position, is_project_file, position_filename


class AsyncFileStore(PositionStore):
    """Stores positions as one JSON file per tracked path without blocking the event loop.

    Attributes:
        storage_dir: Directory holding the position files.
    """

    def __init__(self, storage_dir: str | Path, logger: LoggerLike | None = None):
        self.storage_dir = Path(storage_dir)
        self._logger = logger or logging.getLogger(__name__)
        self._dir_ready = False

    def _path_for(self, file_path: str, project_name: str) -> Path:
        return self.storage_dir / position_filename(file_path, project_name)

    async def _ensure_storage_dir(self) -> None:
        if not self._dir_ready:
            await aiofiles.os.makedirs(self.storage_dir, exist_ok=True)
            self._dir_ready = True

    async def _project_files(self, project_name: str) -> list[Path]:
        if not await aiofiles.os.path.isdir(self.storage_dir):
            return []
        names = await aiofiles.os.listdir(self.storage_dir)
        return [self.storage_dir / name for name in sorted(names) if is_project_file(name, project_name)]

    async def _read(self, source: Path) -> str | None:
        try:
            async with aiofiles.open(source, "r", encoding="utf-8") as f:
                return await f.read()
        except OSError as e:
            self._logger.warning(f"Failed to read position file {source}: {e}")
            return None

    async def save(self, position: FilePosition) -> None:
        target = self._path_for(position.file_path, position.project_name)
        temp_file = target.with_suffix(".tmp")
        try:
            await self._ensure_storage_dir()
            async with aiofiles.open(temp_file, "w", encoding="utf-8") as f:
                await f.write(encode_position(position))
                await f.flush()
            await aiofiles.os.replace(temp_file, target)
        except OSError as e:
            # The directory may have been removed underneath us
            self._dir_ready = False
            self._logger.error(f"Failed to save position for {position.file_path}: {e}")
            raise

        self._logger.debug(f"Saved position for {position.file_path}: {position.offset}")

    async def load(self, file_path: str, project_name: str) -> FilePosition | None:
        source = self._path_for(file_path, project_name)
        if not await aiofiles.os.path.exists(source):
            self._logger.debug(f"No stored position for {file_path}")
            return None

        raw = await self._read(source)
        if raw is None:
            return None
        return decode_position(raw, source, self._logger)

    async def load_all(self, project_name: str) -> list[FilePosition]:
        positions: list[FilePosition] = []
        for source in await self._project_files(project_name):
            raw = await self._read(source)
            if raw is None:
                continue
            position = decode_position(raw, source, self._logger)
            if position is not None:
                positions.append(position)

        self._logger.debug(f"Loaded {len(positions)} positions for project {project_name}")
        return positions

    async def delete(self, file_path: str, project_name: str) -> None:
        target = self._path_for(file_path, project_name)
        try:
            await aiofiles.os.remove(target)
        except FileNotFoundError:
            pass
        except OSError as e:
            self._logger.error(f"Failed to delete position file {target}: {e}")

    async def delete_all(self, project_name: str) -> None:
        deleted = 0
        for path in await self._project_files(project_name):
            try:
                await aiofiles.os.remove(path)
                deleted += 1
            except OSError as e:
                self._logger.warning(f"Failed to delete position file {path}: {e}")

        self._logger.info(f"Deleted {deleted} position files for project {project_name}")

    async def has(self, file_path: str, project_name: str) -> bool:
        return await aiofiles.os.path.exists(self._path_for(file_path, project_name))
