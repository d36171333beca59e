"""Graceful shutdown of the running monitor loops.

On SIGINT, SIGTERM or SIGTSTP every loop is stopped and its current offset
is written out before the process is allowed to exit, so the next run
resumes exactly where this one stopped.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Iterable

from ..logging_manager import LoggerLike
from .monitor_loop import MonitorLoop

SHUTDOWN_SIGNALS = ("SIGINT", "SIGTERM", "SIGTSTP")


class ShutdownCoordinator:
    """Stops registered loops and flushes their positions exactly once.

    Attributes:
        shutdown_event: Set once every loop has been stopped and saved.
    """

    def __init__(self, loops: Iterable[MonitorLoop] = (), logger: LoggerLike | None = None):
        self._loops: list[MonitorLoop] = list(loops)
        self._logger = logger or logging.getLogger(__name__)
        self.shutdown_event = asyncio.Event()
        self._shutdown_requested = False
        self._shutdown_task: asyncio.Task | None = None

    def register(self, loop: MonitorLoop) -> None:
        self._loops.append(loop)

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    def request_shutdown(self, reason: str = "shutdown requested") -> None:
        """Schedule :meth:`shutdown` on the running event loop.

        Only the first request has an effect.
        """
        if self._shutdown_requested:
            self._logger.debug(f"Shutdown already in progress, ignoring: {reason}")
            return

        self._shutdown_requested = True
        self._logger.info(f"Received {reason}, initiating graceful shutdown...")
        self._shutdown_task = asyncio.get_running_loop().create_task(self.shutdown())

    async def shutdown(self) -> None:
        """Stop every loop, then force-save its position.

        A failure in one loop is logged and the remaining loops are still
        processed. The shutdown event is set in every case.
        """
        self._shutdown_requested = True
        try:
            for loop in self._loops:
                name = loop.project.name
                try:
                    await loop.stop()
                    await loop.force_save_position()
                    self._logger.info(f"Stopped monitor for project {name}")
                except Exception as e:
                    self._logger.error(f"Error stopping monitor for project {name}: {e}")
        finally:
            self._logger.info("Graceful shutdown completed")
            self.shutdown_event.set()

    async def wait(self) -> None:
        await self.shutdown_event.wait()

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop | None = None) -> list[str]:
        """Route the shutdown signals to :meth:`request_shutdown`.

        Uses ``loop.add_signal_handler`` and falls back to ``signal.signal``
        where the event loop does not support it. Signals the platform lacks
        are skipped.

        Returns:
            Names of the signals that were installed.
        """
        loop = loop or asyncio.get_running_loop()
        installed: list[str] = []

        for name in SHUTDOWN_SIGNALS:
            signum = getattr(signal, name, None)
            if signum is None:
                self._logger.debug(f"{name} is not available on this platform")
                continue

            try:
                loop.add_signal_handler(signum, self.request_shutdown, name)
            except NotImplementedError:
                # Event loops without signal support (e.g. Windows)
                try:
                    signal.signal(
                        signum,
                        lambda sig, frame, name=name: loop.call_soon_threadsafe(
                            self.request_shutdown, name
                        ),
                    )
                except (OSError, ValueError, RuntimeError) as e:
                    self._logger.warning(f"Could not install handler for {name}: {e}")
                    continue
            except (OSError, ValueError, RuntimeError) as e:
                self._logger.warning(f"Could not install handler for {name}: {e}")
                continue

            installed.append(name)

        self._logger.debug(f"Installed signal handlers: {', '.join(installed) or 'none'}")
        return installed

    def remove_signal_handlers(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        loop = loop or asyncio.get_running_loop()
        for name in SHUTDOWN_SIGNALS:
            signum = getattr(signal, name, None)
            if signum is None:
                continue
            try:
                loop.remove_signal_handler(signum)
            except (NotImplementedError, ValueError, RuntimeError):
                signal.signal(signum, signal.default_int_handler if name == "SIGINT" else signal.SIG_DFL)
