"""Per-project tailing loop.

MonitorLoop follows the newest matching file across a project's directories,
forwards every newly appended JSON line to the sink and records how far it
has read so a restart resumes where the previous run stopped.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from enum import Enum

from ..config import ProjectConfig
from ..logging_manager import LoggerLike
from ..models import LogEntry, LogFile
from ..sink import LogSink
from .position_tracker import PositionTracker
from .scanner import DirectoryScanner, LatestFileSelector
from .tail_reader import TailReader

MONITOR_SOURCE = "monitor"


class MonitorState(str, Enum):
    """Whether the loop currently holds a file to tail."""

    NO_FILE = "no_file"
    TRACKING = "tracking"


class MonitorLoop:
    """Polls one project's log directories and tails the latest file.

    Each tick either looks for a file to follow or reads what was appended to
    the file it already follows. Ticks are serialized, so a slow read never
    overlaps the next poll or a shutdown save.

    Attributes:
        project: Configuration of the monitored project.
        interval: Seconds between two ticks.
    """

    def __init__(
        self,
        project: ProjectConfig,
        scanner: DirectoryScanner,
        reader: TailReader,
        sink: LogSink,
        tracker: PositionTracker | None = None,
        interval: float = 1.0,
        selector: LatestFileSelector | None = None,
        logger: LoggerLike | None = None,
    ):
        """Initialize the loop.

        Args:
            project: Project whose directories are monitored.
            scanner: Lists candidate files in a directory.
            reader: Reads appended lines and probes file sizes.
            sink: Receives parsed entries and monitor notices.
            tracker: Persists offsets; None disables position tracking.
            interval: Poll interval in seconds.
            selector: Picks the file to follow among the candidates.
            logger: Logger to report through; defaults to the module logger.
        """
        self.project = project
        self.interval = interval
        self._scanner = scanner
        self._reader = reader
        self._sink = sink
        self._tracker = tracker
        self._selector = selector or LatestFileSelector()
        self._logger = logger or logging.getLogger(__name__)

        self._current_file: LogFile | None = None
        self._last_offset = 0

        self._tick_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Select the initial file and start polling in a background task.

        Raises:
            RuntimeError: If the loop is already running.
        """
        if self._running:
            raise RuntimeError(f"MonitorLoop for {self.project.name} is already running")

        self._logger.info(f"Starting monitor for project {self.project.name}")
        self._logger.debug(f"Monitored directories: {', '.join(self.project.directories)}")
        self._logger.debug(
            f"Position tracking is {'enabled' if self._tracker is not None else 'disabled'}"
        )

        if self._tracker is not None:
            positions = await self._tracker.load_all_positions()
            self._logger.debug(f"Loaded {len(positions)} saved position(s)")

        async with self._tick_lock:
            await self._find_and_switch_to_latest_file()

        if self._current_file is None:
            self._logger.warning("No log files found during initialization")
        else:
            self._logger.info(f"Initialized with log file: {self._current_file.filename}")

        self._stop_event.clear()
        self._running = True
        self._task = asyncio.create_task(self._run(), name=f"monitor-{self.project.name}")

        self._logger.info(f"Monitor started (poll interval: {self.interval}s)")

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop polling, letting a tick in progress finish first.

        Args:
            timeout: Seconds to wait for the task before cancelling it.
        """
        if not self._running:
            return

        self._logger.info(f"Stopping monitor for project {self.project.name}")
        self._running = False
        self._stop_event.set()

        if self._task is not None:
            try:
                await asyncio.wait_for(self._task, timeout=timeout)
            except TimeoutError:
                self._logger.warning("Monitor task did not stop within timeout, cancelled")
            except asyncio.CancelledError:
                self._logger.info("Monitor task cancelled")
            self._task = None

        self._logger.info(f"Monitor stopped for project {self.project.name}")

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except TimeoutError:
                pass

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def tick(self) -> None:
        """Run one poll. Errors are logged and reported to the sink, never raised."""
        async with self._tick_lock:
            try:
                await self._step()
            except Exception as e:
                self._logger.error(f"Error in monitoring cycle: {e}", exc_info=True)
                self._sink.log_entry(
                    LogEntry(
                        content=f"Monitoring error: {e}",
                        source_file=MONITOR_SOURCE,
                        timestamp=datetime.now(),
                        metadata={"level": "error", "message": f"Monitoring error: {e}", "error": str(e)},
                    )
                )

    async def _step(self) -> None:
        if self._current_file is not None and not await self._is_current_file_accessible():
            await self._recover_inaccessible_file()
        elif self._current_file is None:
            self._logger.debug("No current file, searching for latest log file")
            await self._find_and_switch_to_latest_file()

        if self._current_file is not None:
            await self._monitor_current_file()

    async def _is_current_file_accessible(self) -> bool:
        try:
            await asyncio.to_thread(self._reader.get_size, self._current_file)
        except OSError as e:
            self._logger.warning(
                f"Current file is no longer accessible: {self._current_file.filename} - {e}"
            )
            return False
        return True

    async def _recover_inaccessible_file(self) -> None:
        lost = self._current_file
        latest = await self._find_latest_file()

        if latest is None:
            self._logger.warning(f"No log files found after losing {lost.filename}")
            self._current_file = None
            self._last_offset = 0
            return

        if latest.is_newer_than(lost) or latest.path != lost.path:
            await self._switch_to(latest)
        else:
            # Same file is back; keep the offset
            self._current_file = latest

    async def _find_latest_file(self) -> LogFile | None:
        files = await asyncio.to_thread(
            self._scanner.scan_all, self.project.directories, self.project.log_pattern
        )
        return self._selector.select(files)

    async def _find_and_switch_to_latest_file(self) -> None:
        latest = await self._find_latest_file()

        if latest is None:
            self._logger.debug("No log files found in any monitored directory")
            self._current_file = None
            self._last_offset = 0
            return

        self._logger.debug(
            f"Latest log file: {latest.filename} (size: {latest.size} bytes, "
            f"modified: {latest.modified_at:%Y-%m-%d %H:%M:%S})"
        )

        if self._current_file is None or latest.is_newer_than(self._current_file):
            await self._switch_to(latest)

    async def _switch_to(self, log_file: LogFile) -> None:
        previous = self._current_file
        if previous is not None:
            message = f"Switching from {previous.filename} to {log_file.filename}"
            self._logger.info(message)
            self._sink.log_entry(
                LogEntry(
                    content=message,
                    source_file=MONITOR_SOURCE,
                    timestamp=datetime.now(),
                    metadata={
                        "level": "info",
                        "message": message,
                        "old_file": previous.filename,
                        "new_file": log_file.filename,
                    },
                )
            )

        self._current_file = log_file
        if self._tracker is not None:
            self._last_offset = await self._tracker.get_valid_position(log_file)
            self._logger.debug(f"Loaded saved position for {log_file.filename}: {self._last_offset}")
        else:
            self._last_offset = 0

        self._logger.info(f"Now following {log_file.path} from offset {self._last_offset}")

    async def _monitor_current_file(self) -> None:
        log_file = self._current_file
        size = await asyncio.to_thread(self._reader.get_size, log_file)

        if size < self._last_offset:
            self._logger.warning(
                f"{log_file.filename} shrank from {self._last_offset} to {size} bytes, "
                f"reading from the start"
            )
            self._last_offset = 0

        if size == self._last_offset:
            return

        self._logger.debug(f"File has grown by {size - self._last_offset} bytes")
        lines, end_offset = await asyncio.to_thread(
            self._reader.read_new, log_file, self._last_offset, size
        )

        for line in lines:
            entry = LogEntry.from_json_line(line, log_file.filename)
            if entry is None:
                self._logger.debug(f"Invalid log entry format, skipping: {line[:200]}")
                continue
            self._sink.log_entry(entry)

        # Stops before an unfinished last line
        if end_offset == self._last_offset:
            return
        self._last_offset = end_offset

        if self._tracker is not None:
            await self._tracker.update_position(log_file.path, end_offset)

    # ------------------------------------------------------------------
    # Shutdown support
    # ------------------------------------------------------------------

    async def force_save_position(self) -> None:
        """Persist the current offset immediately, bypassing any save interval."""
        async with self._tick_lock:
            if self._tracker is None or self._current_file is None:
                return

            self._logger.info(
                f"Saving position {self._last_offset} for {self._current_file.filename}"
            )
            await self._tracker.update_position(self._current_file.path, self._last_offset)
            await self._tracker.force_save()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    @property
    def state(self) -> MonitorState:
        return MonitorState.TRACKING if self._current_file is not None else MonitorState.NO_FILE

    @property
    def current_file(self) -> LogFile | None:
        return self._current_file

    @property
    def last_offset(self) -> int:
        return self._last_offset
