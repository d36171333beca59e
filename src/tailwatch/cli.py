"""Command line entry point: ``tailwatch CONFIG [-p PROJECT] [-i SECONDS] [-d]``."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Mapping, Sequence

from .config import ConfigurationError, EnvironmentSettings, MonitorConfig, ProjectConfig, load_config
from .logging_manager import LoggingManager
from .monitoring import DirectoryScanner, MonitorLoop, PositionTracker, ShutdownCoordinator, TailReader
from .sink import LoggerSink, LogSink
from .storage import create_position_store

EXIT_OK = 0
EXIT_FAILURE = 1


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"interval must be positive, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tailwatch",
        description="Tail the newest JSON log file of each project and forward new entries.",
    )
    parser.add_argument("config", help="Path to the YAML configuration file.")
    parser.add_argument("-p", "--project", help="Monitor only this project.")
    parser.add_argument(
        "-i",
        "--interval",
        type=_positive_float,
        default=1.0,
        help="Scan interval in seconds (default: 1.0).",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug output.")
    return parser


def select_projects(config: MonitorConfig, project_name: str | None) -> list[ProjectConfig]:
    """Return the projects to monitor.

    Raises:
        ConfigurationError: If ``project_name`` is not configured or there
            is nothing to monitor.
    """
    if project_name is not None:
        project = config.get_project(project_name)
        if project is None:
            raise ConfigurationError(f"Project '{project_name}' not found in configuration")
        return [project]

    projects = list(config.projects.values())
    if not projects:
        raise ConfigurationError("No projects to monitor")
    return projects


def build_monitor(
    project: ProjectConfig,
    sink: LogSink,
    interval: float,
    logging_manager: LoggingManager,
) -> MonitorLoop:
    """Wire a MonitorLoop for one project, with its own position store."""
    project_logger = logging_manager.get_project_logger(project.name)

    tracker = None
    if project.position_storage is not None:
        store = create_position_store(project.position_storage, logger=project_logger)
        tracker = PositionTracker(store, project.name, logger=project_logger)

    return MonitorLoop(
        project,
        scanner=DirectoryScanner(logger=project_logger),
        reader=TailReader(logger=project_logger),
        sink=sink,
        tracker=tracker,
        interval=interval,
        logger=project_logger,
    )


async def run(
    args: argparse.Namespace,
    environ: Mapping[str, str] | None = None,
    coordinator: ShutdownCoordinator | None = None,
) -> int:
    """Load configuration, run the monitors until shutdown and return the exit code."""
    try:
        settings = EnvironmentSettings.from_env(environ)
        config = load_config(args.config)
        projects = select_projects(config, args.project)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        logging_manager = LoggingManager(
            log_level="DEBUG" if args.debug else settings.log_level,
            log_dir=settings.log_dir,
            sink_log_path=settings.log_path,
            sink_host=settings.sink_host,
            sink_port=settings.sink_port,
        )
    except OSError as e:
        print(f"Error: Failed to set up logging: {e}", file=sys.stderr)
        return EXIT_FAILURE
    logger = logging_manager.app_logger
    coordinator = coordinator or ShutdownCoordinator(logger=logger)

    try:
        sink = LoggerSink(logging_manager.sink_logger)
        monitors = [build_monitor(project, sink, args.interval, logging_manager) for project in projects]
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        logging_manager.shutdown()
        return EXIT_FAILURE

    print("Starting log monitoring...", file=sys.stderr)
    print(f"Monitoring {len(monitors)} project(s)", file=sys.stderr)
    print("Press Ctrl+C to stop", file=sys.stderr)

    loop = asyncio.get_running_loop()
    coordinator.install_signal_handlers(loop)
    for monitor in monitors:
        coordinator.register(monitor)

    try:
        for monitor in monitors:
            if coordinator.shutdown_requested:
                logger.info("Shutdown requested, not starting remaining monitors")
                break
            await monitor.start()

        await coordinator.wait()
    finally:
        # A monitor whose start was in progress during shutdown is still running
        if not coordinator.shutdown_event.is_set() or any(m.is_running for m in monitors):
            await coordinator.shutdown()
        coordinator.remove_signal_handlers(loop)
        logger.info("Log monitoring stopped")
        logging_manager.shutdown()

    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """Console script entry point."""
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
