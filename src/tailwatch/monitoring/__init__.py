"""Log tailing for tailwatch.

Key Components:
    - scanner: file discovery and selection of the newest file
    - tail_reader: incremental reading of appended lines
    - position_tracker: per-project offsets with a staleness guard
    - monitor_loop: the per-project polling loop
    - shutdown: signal-driven stop and position flush
"""

from __future__ import annotations

from .monitor_loop import MonitorLoop, MonitorState
from .position_tracker import DEFAULT_MAX_POSITION_AGE, PositionTracker
from .scanner import DirectoryScanner, LatestFileSelector, PatternMatcher
from .shutdown import ShutdownCoordinator
from .tail_reader import TailReader

__all__ = [
    "DirectoryScanner",
    "PatternMatcher",
    "LatestFileSelector",
    "TailReader",
    "PositionTracker",
    "DEFAULT_MAX_POSITION_AGE",
    "MonitorLoop",
    "MonitorState",
    "ShutdownCoordinator",
]
