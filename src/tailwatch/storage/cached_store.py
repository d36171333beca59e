"""In-memory position cache with periodic flushes to a backing store.

Tailing a busy log updates its offset on every poll. Persisting each update
would turn every read into a write, so CachedStore keeps positions in memory,
marks changed entries dirty, and writes them through to the wrapped store at
most once per save interval, or immediately when force_flush() is called
(e.g. on shutdown).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ..logging_manager import LoggerLike
from ..models import FilePosition, position_key
from .base import Flushable, PositionStore


class CachedStore(PositionStore, Flushable):
    """Write-behind cache in front of another PositionStore.

    Once a key is cached the cache is authoritative for it; the wrapped store
    is only consulted for keys the cache has never seen.

    Attributes:
        wrapped: Durable store that receives flushed positions.
    """

    def __init__(
        self,
        wrapped: PositionStore,
        save_interval_seconds: int = 30,
        clock: Callable[[], float] = time.monotonic,
        logger: LoggerLike | None = None,
    ):
        """Initialize the cache.

        Args:
            wrapped: Store receiving flushed positions.
            save_interval_seconds: Minimum time between automatic flushes.
            clock: Monotonic time source, injectable for tests.
            logger: Logger to report through; defaults to the module logger.
        """
        self.wrapped = wrapped
        self._save_interval_seconds = save_interval_seconds
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)

        self._cache: dict[str, FilePosition] = {}
        self._dirty: set[str] = set()
        self._last_flush_time: float | None = None

    # ------------------------------------------------------------------
    # PositionStore
    # ------------------------------------------------------------------

    async def save(self, position: FilePosition) -> None:
        key = position.key
        self._cache[key] = position
        self._dirty.add(key)
        self._logger.debug(f"Cached position for {position.file_path}: {position.offset}")

        await self.maybe_flush()

    async def load(self, file_path: str, project_name: str) -> FilePosition | None:
        key = position_key(file_path, project_name)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        position = await self.wrapped.load(file_path, project_name)
        if position is not None:
            self._cache[key] = position
        return position

    async def load_all(self, project_name: str) -> list[FilePosition]:
        merged: dict[str, FilePosition] = {}
        for position in await self.wrapped.load_all(project_name):
            key = position.key
            # Unseen keys are cached; cached ones win over what is on disk
            self._cache.setdefault(key, position)
            merged[key] = position

        for key, position in self._cache.items():
            if position.is_for_project(project_name):
                merged[key] = position

        return list(merged.values())

    async def delete(self, file_path: str, project_name: str) -> None:
        key = position_key(file_path, project_name)
        self._cache.pop(key, None)
        self._dirty.discard(key)
        await self.wrapped.delete(file_path, project_name)

    async def delete_all(self, project_name: str) -> None:
        keys = [key for key, position in self._cache.items() if position.is_for_project(project_name)]
        for key in keys:
            del self._cache[key]
            self._dirty.discard(key)
        await self.wrapped.delete_all(project_name)

    async def has(self, file_path: str, project_name: str) -> bool:
        if position_key(file_path, project_name) in self._cache:
            return True
        return await self.wrapped.has(file_path, project_name)

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    async def maybe_flush(self) -> None:
        """Flush if the save interval has elapsed since the timer was seeded.

        The first call after construction or after a flush only starts the
        timer.
        """
        now = self._clock()
        if self._last_flush_time is None:
            self._last_flush_time = now
            return

        if now - self._last_flush_time >= self._save_interval_seconds:
            self._logger.debug(
                f"Save interval reached ({self._save_interval_seconds}s), persisting positions"
            )
            await self.force_flush()

    async def force_flush(self) -> None:
        """Write every dirty position through to the wrapped store.

        Failed writes are logged and stay dirty for the next flush; nothing
        is raised to the caller.
        """
        for key in sorted(self._dirty):
            position = self._cache.get(key)
            if position is None:
                self._dirty.discard(key)
                continue

            try:
                await self.wrapped.save(position)
            except Exception as e:
                self._logger.error(f"Failed to save position for {position.file_path}: {e}")
                continue
            self._dirty.discard(key)

        self._last_flush_time = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def save_interval_seconds(self) -> int:
        return self._save_interval_seconds

    @save_interval_seconds.setter
    def save_interval_seconds(self, seconds: int) -> None:
        self._save_interval_seconds = seconds

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    @property
    def dirty_count(self) -> int:
        return len(self._dirty)
