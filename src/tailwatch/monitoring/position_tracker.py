"""Per-project position tracking on top of a PositionStore.

PositionTracker is the only interface the monitor loop uses to read and
record offsets. It binds a store to one project name and decides whether a
stored offset can still be trusted for the file about to be tailed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from ..logging_manager import LoggerLike
from ..models import FilePosition, LogFile
from ..storage.base import Flushable, PositionStore

# Stored offsets older than this are not trusted after a restart
DEFAULT_MAX_POSITION_AGE = timedelta(hours=24)


class PositionTracker:
    """Reads and records byte offsets for one project.

    Attributes:
        store: Backend persisting the positions.
        project_name: Project whose positions this tracker owns.
        max_position_age: Age after which a stored position is ignored.
    """

    def __init__(
        self,
        store: PositionStore,
        project_name: str,
        max_position_age: timedelta = DEFAULT_MAX_POSITION_AGE,
        logger: LoggerLike | None = None,
    ):
        self.store = store
        self.project_name = project_name
        self.max_position_age = max_position_age
        self._logger = logger or logging.getLogger(__name__)

    async def get_position(self, file_path: str) -> int:
        """Return the stored offset for a file, or 0 if none is stored."""
        position = await self.store.load(file_path, self.project_name)
        return position.offset if position is not None else 0

    async def get_valid_position(self, log_file: LogFile) -> int:
        """Return the stored offset for a file about to be tailed.

        Positions that fail :meth:`is_position_valid` are treated as absent.
        """
        position = await self.store.load(log_file.path, self.project_name)
        if position is None:
            return 0

        if not self.is_position_valid(position, log_file):
            self._logger.warning(
                f"Ignoring stale position {position.offset} for {log_file.filename} "
                f"(size: {log_file.size}, last updated: {position.last_updated:%Y-%m-%d %H:%M:%S})"
            )
            return 0

        return position.offset

    async def update_position(self, file_path: str, offset: int) -> None:
        position = FilePosition(
            file_path=file_path,
            offset=offset,
            last_updated=datetime.now(),
            project_name=self.project_name,
        )
        await self.store.save(position)

    async def load_all_positions(self) -> list[FilePosition]:
        return await self.store.load_all(self.project_name)

    async def has_position(self, file_path: str) -> bool:
        return await self.store.has(file_path, self.project_name)

    async def delete_position(self, file_path: str) -> None:
        await self.store.delete(file_path, self.project_name)

    async def delete_all_positions(self) -> None:
        await self.store.delete_all(self.project_name)

    def is_position_valid(self, position: FilePosition, log_file: LogFile) -> bool:
        """Check whether a stored position still applies to ``log_file``.

        A position is valid when it belongs to the same path, does not point
        past the end of the file (the file was not truncated while we were
        down), and was recorded within ``max_position_age``.
        """
        if position.file_path != log_file.path:
            return False

        if position.offset > log_file.size:
            return False

        cutoff = datetime.now() - self.max_position_age
        return position.last_updated >= cutoff

    async def force_save(self) -> None:
        """Flush pending writes if the store batches them."""
        if isinstance(self.store, Flushable):
            await self.store.force_flush()
