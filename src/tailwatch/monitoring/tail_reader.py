"""Incremental reading of appended log content.

Reads only the bytes appended since a known offset, so each poll costs a
seek and a read of the new data rather than a full scan of the file.
"""

from __future__ import annotations

import logging
import os

from ..logging_manager import LoggerLike
from ..models import LogFile


class TailReader:
    """Reads newly appended, non-blank lines from a log file."""

    def __init__(self, logger: LoggerLike | None = None):
        self._logger = logger or logging.getLogger(__name__)

    def read_new(
        self, log_file: LogFile, from_offset: int, to_offset: int | None = None
    ) -> tuple[list[str], int]:
        """Return the complete, non-blank lines after ``from_offset``.

        Only bytes up to the last newline are consumed. A trailing fragment
        the writer has not finished yet is left for the next read.

        Args:
            log_file: File to read.
            from_offset: Byte offset already consumed.
            to_offset: Stop reading at this offset instead of end of file.
                Bytes appended after the caller measured the size are then
                left for the next read.

        Returns:
            The lines without their line terminators, and the offset just
            past the last complete line. If there is nothing new or the
            file could not be read, the lines are empty and the offset is
            ``from_offset``.
        """
        try:
            with open(log_file.path, "rb") as f:
                f.seek(from_offset)
                if to_offset is None:
                    data = f.read()
                else:
                    data = f.read(max(to_offset - from_offset, 0))
        except OSError as e:
            self._logger.warning(f"Failed to read {log_file.path} from offset {from_offset}: {e}")
            return [], from_offset

        end = data.rfind(b"\n")
        if end < 0:
            if data:
                self._logger.debug(f"Waiting for the rest of a partial line in {log_file.filename}")
            return [], from_offset

        text = data[: end + 1].decode("utf-8", errors="replace")
        lines = [line.rstrip("\r") for line in text.split("\n") if line.strip()]
        return lines, from_offset + end + 1

    def get_size(self, log_file: LogFile) -> int:
        """Return the current size of the file, re-stat'ed on every call.

        Raises:
            OSError: If the file no longer exists or cannot be stat'ed.
        """
        return os.stat(log_file.path).st_size
