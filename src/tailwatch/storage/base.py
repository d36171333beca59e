"""Position store interfaces.

Every backend exposes the same coroutine-based API so that the caching
layer can wrap either a blocking or a non-blocking file store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import FilePosition


class PositionStore(ABC):
    """Durable mapping from (project, file path) to the last read offset."""

    @abstractmethod
    async def save(self, position: FilePosition) -> None:
        """Insert or replace the position keyed by its project and path."""

    @abstractmethod
    async def load(self, file_path: str, project_name: str) -> FilePosition | None:
        """Return the stored position, or None if absent or unreadable."""

    @abstractmethod
    async def load_all(self, project_name: str) -> list[FilePosition]:
        """Return every stored position for a project."""

    @abstractmethod
    async def delete(self, file_path: str, project_name: str) -> None:
        """Remove the stored position for one file, if any."""

    @abstractmethod
    async def delete_all(self, project_name: str) -> None:
        """Remove every stored position for a project."""

    @abstractmethod
    async def has(self, file_path: str, project_name: str) -> bool:
        """Return True if a position is stored for the file."""


class Flushable(ABC):
    """Capability of stores that batch writes and can be flushed on demand."""

    @abstractmethod
    async def force_flush(self) -> None:
        """Persist every pending write now."""
