"""Tests for PositionTracker."""

from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from src.tailwatch.models import FilePosition, LogFile
from src.tailwatch.monitoring.position_tracker import DEFAULT_MAX_POSITION_AGE, PositionTracker
from src.tailwatch.storage.base import PositionStore
from src.tailwatch.storage.cached_store import CachedStore
from src.tailwatch.storage.file_store import SyncFileStore


def _log_file(path: str = "/var/log/app.log", size: int = 1000) -> LogFile:
    return LogFile(path=path, filename=Path(path).name, modified_at=datetime.now(), size=size)


def _position(path: str = "/var/log/app.log", offset: int = 500, age: timedelta = timedelta()) -> FilePosition:
    return FilePosition(
        file_path=path, offset=offset, last_updated=datetime.now() - age, project_name="app"
    )


class TestPositionTrackerBasicCRUD:
    """Tests for basic CRUD operations."""

    @pytest.mark.asyncio
    async def test_get_position_not_found(self, position_tracker: PositionTracker) -> None:
        """Unseen files start at offset 0."""
        assert await position_tracker.get_position("/never/seen.log") == 0

    @pytest.mark.asyncio
    async def test_update_and_get_position(self, position_tracker: PositionTracker) -> None:
        await position_tracker.update_position("/var/log/app.log", 1234)

        assert await position_tracker.get_position("/var/log/app.log") == 1234
        assert await position_tracker.has_position("/var/log/app.log")

    @pytest.mark.asyncio
    async def test_update_existing_position(self, position_tracker: PositionTracker) -> None:
        await position_tracker.update_position("/var/log/app.log", 100)
        await position_tracker.update_position("/var/log/app.log", 200)

        assert await position_tracker.get_position("/var/log/app.log") == 200

    @pytest.mark.asyncio
    async def test_positions_are_scoped_to_project(self, file_store: SyncFileStore) -> None:
        first = PositionTracker(file_store, "first")
        second = PositionTracker(file_store, "second")

        await first.update_position("/shared.log", 10)

        assert await first.get_position("/shared.log") == 10
        assert await second.get_position("/shared.log") == 0

    @pytest.mark.asyncio
    async def test_load_all_positions(self, position_tracker: PositionTracker) -> None:
        await position_tracker.update_position("/a.log", 1)
        await position_tracker.update_position("/b.log", 2)

        positions = await position_tracker.load_all_positions()
        assert sorted((p.file_path, p.offset) for p in positions) == [("/a.log", 1), ("/b.log", 2)]

    @pytest.mark.asyncio
    async def test_delete_position(self, position_tracker: PositionTracker) -> None:
        await position_tracker.update_position("/a.log", 1)
        await position_tracker.delete_position("/a.log")

        assert not await position_tracker.has_position("/a.log")
        assert await position_tracker.get_position("/a.log") == 0

    @pytest.mark.asyncio
    async def test_delete_all_positions(self, position_tracker: PositionTracker) -> None:
        await position_tracker.update_position("/a.log", 1)
        await position_tracker.update_position("/b.log", 2)

        await position_tracker.delete_all_positions()

        assert await position_tracker.load_all_positions() == []


class TestPositionValidity:
    """Tests for the load-time validity guard."""

    def test_default_max_age(self, position_tracker: PositionTracker) -> None:
        assert position_tracker.max_position_age == DEFAULT_MAX_POSITION_AGE == timedelta(hours=24)

    def test_valid_position(self, position_tracker: PositionTracker) -> None:
        assert position_tracker.is_position_valid(_position(offset=500), _log_file(size=1000))

    def test_offset_equal_to_size_is_valid(self, position_tracker: PositionTracker) -> None:
        assert position_tracker.is_position_valid(_position(offset=1000), _log_file(size=1000))

    def test_offset_past_size_is_invalid(self, position_tracker: PositionTracker) -> None:
        assert not position_tracker.is_position_valid(_position(offset=500), _log_file(size=300))

    def test_other_path_is_invalid(self, position_tracker: PositionTracker) -> None:
        assert not position_tracker.is_position_valid(
            _position(path="/var/log/other.log"), _log_file(path="/var/log/app.log")
        )

    def test_stale_position_is_invalid(self, position_tracker: PositionTracker) -> None:
        assert not position_tracker.is_position_valid(_position(age=timedelta(hours=25)), _log_file())

    def test_custom_max_age(self, file_store: SyncFileStore) -> None:
        tracker = PositionTracker(file_store, "app", max_position_age=timedelta(minutes=5))

        assert tracker.is_position_valid(_position(age=timedelta(minutes=1)), _log_file())
        assert not tracker.is_position_valid(_position(age=timedelta(minutes=10)), _log_file())

    @pytest.mark.asyncio
    async def test_get_valid_position_resets_oversized_offset(
        self, position_tracker: PositionTracker
    ) -> None:
        """A stored offset of 500 for a file now 300 bytes long resumes from 0."""
        await position_tracker.update_position("/var/log/app.log", 500)

        assert await position_tracker.get_valid_position(_log_file(size=300)) == 0
        assert await position_tracker.get_position("/var/log/app.log") == 500

    @pytest.mark.asyncio
    async def test_get_valid_position_resets_stale_offset(self, file_store: SyncFileStore) -> None:
        await file_store.save(_position(offset=100, age=timedelta(days=2)))
        tracker = PositionTracker(file_store, "app")

        assert await tracker.get_valid_position(_log_file(size=1000)) == 0

    @pytest.mark.asyncio
    async def test_get_valid_position_returns_stored_offset(
        self, position_tracker: PositionTracker
    ) -> None:
        await position_tracker.update_position("/var/log/app.log", 400)

        assert await position_tracker.get_valid_position(_log_file(size=1000)) == 400

    @pytest.mark.asyncio
    async def test_get_valid_position_without_record(self, position_tracker: PositionTracker) -> None:
        assert await position_tracker.get_valid_position(_log_file()) == 0


class TestForceSave:
    """Tests for flushing batching stores."""

    @pytest.mark.asyncio
    async def test_force_save_flushes_cached_store(self, file_store: SyncFileStore, fake_clock) -> None:
        tracker = PositionTracker(CachedStore(file_store, clock=fake_clock), "app")
        await tracker.update_position("/a.log", 42)
        assert await file_store.load("/a.log", "app") is None

        await tracker.force_save()

        assert (await file_store.load("/a.log", "app")).offset == 42

    @pytest.mark.asyncio
    async def test_force_save_is_noop_for_plain_store(self) -> None:
        store = AsyncMock(spec=PositionStore)
        tracker = PositionTracker(store, "app")

        await tracker.force_save()

        store.save.assert_not_awaited()
        assert not hasattr(store, "force_flush")
