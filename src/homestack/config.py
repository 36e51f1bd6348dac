"""Bootstrap configuration.

Settings live in ``<project>/homestack.yaml`` and can be overridden with
``HOMESTACK_*`` environment variables. They only seed generated artifacts:
once ``.env`` exists, the values stored there win.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .shared.logging import get_logger
from .shared.paths import StackLayout

logger = get_logger(__name__)

# Default values
DEFAULT_TIMEZONE = "Europe/Brussels"
DEFAULT_INFLUXDB_USER = "admin"
DEFAULT_INFLUXDB_PASSWORD = "adminpassword"
DEFAULT_INFLUXDB_ORG = "homestack"
DEFAULT_INFLUXDB_BUCKET = "home"
DEFAULT_CONTAINER_UID = 1000
DEFAULT_CONTAINER_GID = 1000

ENV_PREFIX = "HOMESTACK_"

# Keys that may be set from the config file or environment
CONFIG_KEYS = (
    "data_dir",
    "timezone",
    "influxdb_user",
    "influxdb_password",
    "influxdb_org",
    "influxdb_bucket",
    "container_uid",
    "container_gid",
)


@dataclass
class StackConfig:
    """Bootstrap settings for one project directory."""

    project_dir: Path
    data_dir: Path | None = None
    timezone: str = DEFAULT_TIMEZONE
    influxdb_user: str = DEFAULT_INFLUXDB_USER
    influxdb_password: str = DEFAULT_INFLUXDB_PASSWORD
    influxdb_org: str = DEFAULT_INFLUXDB_ORG
    influxdb_bucket: str = DEFAULT_INFLUXDB_BUCKET
    container_uid: int = DEFAULT_CONTAINER_UID
    container_gid: int = DEFAULT_CONTAINER_GID

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict)

    @property
    def layout(self) -> StackLayout:
        return StackLayout.for_project(self.project_dir, self.data_dir)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")


def _coerce(key: str, value: Any, project_dir: Path) -> Any:
    types = {f.name: f.type for f in fields(StackConfig)}
    if key == "data_dir":
        path = Path(str(value)).expanduser()
        return path if path.is_absolute() else project_dir / path
    if types[key] in (int, "int"):
        return int(value)
    return str(value)


def load_config(project_dir: Path | str | None = None) -> StackConfig:
    """Load bootstrap configuration.

    Precedence (highest to lowest):
    1. Environment variables (HOMESTACK_<KEY>)
    2. Config file (<project>/homestack.yaml)
    3. Defaults

    Args:
        project_dir: Project directory (default: current directory)

    Returns:
        StackConfig with values and sources
    """
    project_dir = Path(project_dir or Path.cwd()).resolve()
    config = StackConfig(project_dir=project_dir)
    sources: dict[str, str] = {key: "default" for key in CONFIG_KEYS}

    config_path = config.layout.config_file
    if config_path.exists():
        try:
            with open(config_path) as f:
                file_config = yaml.safe_load(f) or {}
            if not isinstance(file_config, dict):
                raise ValueError("top level must be a mapping")
        except (OSError, yaml.YAMLError, ValueError) as e:
            logger.warning("config_file_ignored", path=str(config_path), error=str(e))
            file_config = {}

        for key in CONFIG_KEYS:
            if key not in file_config:
                continue
            try:
                setattr(config, key, _coerce(key, file_config[key], project_dir))
                sources[key] = "config file"
            except (TypeError, ValueError):
                logger.warning("config_value_ignored", key=key, value=file_config[key])

    for key in CONFIG_KEYS:
        env_value = os.environ.get(ENV_PREFIX + key.upper())
        if not env_value:
            continue
        try:
            setattr(config, key, _coerce(key, env_value, project_dir))
            sources[key] = "environment"
        except ValueError:
            logger.warning("config_value_ignored", key=key, value=env_value)

    config._sources = sources
    return config
