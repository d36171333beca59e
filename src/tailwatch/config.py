"""Project configuration for tailwatch.

Projects are declared in a YAML file and validated with pydantic. Runtime
settings for the log sink come from the environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATTERN = "logstash-*.json"


class ConfigurationError(ValueError):
    """Raised when the configuration cannot be loaded or is invalid."""


class PositionStorageConfig(BaseModel):
    """Where and how read positions are persisted."""

    type: Literal["file", "async-file", "cached"] = "file"
    path: str = Field(default="var/positions", min_length=1)
    save_interval_seconds: int = Field(default=30, ge=1)


class ProjectConfig(BaseModel):
    """A named set of directories whose newest matching file is tailed."""

    name: str = Field(min_length=1)
    directories: list[str] = Field(min_length=1)
    log_pattern: str = Field(default=DEFAULT_LOG_PATTERN, min_length=1)
    position_storage: PositionStorageConfig | None = None

    @field_validator("directories")
    @classmethod
    def _no_blank_directories(cls, value: list[str]) -> list[str]:
        for directory in value:
            if not directory.strip():
                raise ValueError("Monitored directory cannot be empty")
        return value

    @field_validator("position_storage", mode="before")
    @classmethod
    def _empty_storage_disables_tracking(cls, value: Any) -> Any:
        # An empty mapping means "no position tracking"
        if value is None or (isinstance(value, Mapping) and not value):
            return None
        return value

    @property
    def position_tracking_enabled(self) -> bool:
        return self.position_storage is not None

    def missing_directories(self) -> list[str]:
        return [directory for directory in self.directories if not Path(directory).is_dir()]


class MonitorConfig(BaseModel):
    """All configured projects, keyed by name."""

    projects: dict[str, ProjectConfig] = Field(default_factory=dict)

    @property
    def project_names(self) -> list[str]:
        return list(self.projects)

    def get_project(self, name: str) -> ProjectConfig | None:
        return self.projects.get(name)

    def has_project(self, name: str) -> bool:
        return name in self.projects


class EnvironmentSettings(BaseModel):
    """Runtime settings read from environment variables.

    Attributes:
        log_level: Level of tailwatch's own diagnostics (LOG_LEVEL).
        log_dir: Directory for tailwatch's rotating JSON log (LOG_DIR).
        log_path: Sink file path pattern; ``%s`` is replaced by the date (LOG_PATH).
        sink_host: Host receiving entries as JSON lines over TCP (SINK_HOST).
        sink_port: Port for the TCP sink (SINK_PORT).
    """

    log_level: str = "INFO"
    log_dir: str | None = None
    log_path: str | None = None
    sink_host: str | None = None
    sink_port: int = 9913

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EnvironmentSettings:
        env = os.environ if environ is None else environ
        try:
            return cls(
                log_level=env.get("LOG_LEVEL", "INFO"),
                log_dir=env.get("LOG_DIR") or None,
                log_path=env.get("LOG_PATH") or None,
                sink_host=env.get("SINK_HOST") or None,
                sink_port=int(env.get("SINK_PORT", "9913")),
            )
        except (ValueError, ValidationError) as e:
            raise ConfigurationError(f"Invalid environment settings: {e}") from e


def parse_config(data: Any) -> MonitorConfig:
    """Validate an already-decoded configuration document.

    Raises:
        ConfigurationError: If the document does not describe valid projects.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError("Invalid configuration format: expected a mapping")

    projects_data = data.get("projects") or {}
    if not isinstance(projects_data, dict):
        raise ConfigurationError("Invalid projects configuration: expected a mapping")

    projects: dict[str, ProjectConfig] = {}
    for name, project_data in projects_data.items():
        if not isinstance(name, str):
            raise ConfigurationError(f"Project name must be a string, got {name!r}")
        if not isinstance(project_data, dict):
            raise ConfigurationError(f"Project '{name}' configuration must be a mapping")

        bad_keys = [key for key in project_data if not isinstance(key, str)]
        if bad_keys:
            raise ConfigurationError(
                f"Invalid configuration for project '{name}': setting names must be strings, got {bad_keys!r}"
            )

        try:
            projects[name] = ProjectConfig.model_validate({**project_data, "name": name})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration for project '{name}': {e}") from e

    return MonitorConfig(projects=projects)


def load_config(config_path: str | Path) -> MonitorConfig:
    """Load and validate the project configuration YAML file.

    Raises:
        ConfigurationError: If the file is missing, is not valid YAML, or
            fails validation.
    """
    path = Path(config_path)
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse configuration YAML: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read configuration file {path}: {e}") from e

    config = parse_config(data)
    logger.debug(f"Loaded {len(config.projects)} project(s) from {path}")

    for project in config.projects.values():
        for directory in project.missing_directories():
            logger.warning(f"Project '{project.name}': directory does not exist yet: {directory}")

    return config
