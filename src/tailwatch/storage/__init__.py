"""Pluggable persistence for read positions.

Key Components:
    - base: PositionStore interface and the Flushable capability
    - file_store: blocking one-file-per-position JSON store
    - async_file_store: the same layout written through aiofiles
    - cached_store: in-memory write-behind cache with periodic flushes
    - factory: builds a store from PositionStorageConfig
"""

from __future__ import annotations

from .async_file_store import AsyncFileStore
from .base import Flushable, PositionStore
from .cached_store import CachedStore
from .factory import create_position_store
from .file_store import SyncFileStore, position_filename

__all__ = [
    "PositionStore",
    "Flushable",
    "SyncFileStore",
    "AsyncFileStore",
    "CachedStore",
    "create_position_store",
    "position_filename",
]
