"""Shared fixtures for monitoring tests."""

from pathlib import Path

import pytest

from src.tailwatch.config import PositionStorageConfig, ProjectConfig
from src.tailwatch.monitoring.position_tracker import PositionTracker
from src.tailwatch.storage.file_store import SyncFileStore


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    """Create temporary log directory for tests."""
    directory = tmp_path / "logs"
    directory.mkdir()
    return directory


@pytest.fixture
def file_store(positions_dir: Path) -> SyncFileStore:
    return SyncFileStore(positions_dir)


@pytest.fixture
def position_tracker(file_store: SyncFileStore) -> PositionTracker:
    """Create PositionTracker over a temporary file store."""
    return PositionTracker(file_store, "app")


@pytest.fixture
def project(log_dir: Path, positions_dir: Path) -> ProjectConfig:
    """Project watching ``log_dir`` with file position storage."""
    return ProjectConfig(
        name="app",
        directories=[str(log_dir)],
        position_storage=PositionStorageConfig(type="file", path=str(positions_dir)),
    )


@pytest.fixture
def untracked_project(log_dir: Path) -> ProjectConfig:
    return ProjectConfig(name="app", directories=[str(log_dir)])
