"""Builds position stores from configuration."""

from __future__ import annotations

import logging

from ..config import ConfigurationError, PositionStorageConfig
from ..logging_manager import LoggerLike
from .async_file_store import AsyncFileStore
from .base import PositionStore
from .cached_store import CachedStore
from .file_store import SyncFileStore


def create_position_store(
    config: PositionStorageConfig,
    logger: LoggerLike | None = None,
) -> PositionStore:
    """Create the position store described by ``config``.

    The cached store writes through an AsyncFileStore so that periodic
    flushes do not stall other projects.

    Raises:
        ConfigurationError: If the storage type is not supported.
    """
    log = logger or logging.getLogger(__name__)
    log.debug(
        f"Creating position store (type: {config.type}, path: {config.path}, "
        f"save interval: {config.save_interval_seconds}s)"
    )

    if config.type == "file":
        return SyncFileStore(config.path, logger=log)
    if config.type == "async-file":
        return AsyncFileStore(config.path, logger=log)
    if config.type == "cached":
        return CachedStore(
            AsyncFileStore(config.path, logger=log),
            save_interval_seconds=config.save_interval_seconds,
            logger=log,
        )

    raise ConfigurationError(f"Unsupported position storage type: {config.type}")
