"""Tail rotating JSON log files and forward new entries to a log sink."""

from .config import ConfigurationError, MonitorConfig, ProjectConfig, load_config
from .models import FilePosition, LogEntry, LogFile

__all__ = [
    "ConfigurationError",
    "MonitorConfig",
    "ProjectConfig",
    "load_config",
    "LogFile",
    "FilePosition",
    "LogEntry",
]

__version__ = "0.1.0"
