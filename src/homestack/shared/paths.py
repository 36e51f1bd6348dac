"""Path management for homestack.

Every managed path is derived from two roots: the project directory (the
checkout holding ``docker-compose.yml`` and the optional companion files)
and the data directory mounted into the containers.
"""

from dataclasses import dataclass
from pathlib import Path

COMPOSE_FILE_NAME = "docker-compose.yml"
CONFIG_FILE_NAME = "homestack.yaml"
ENV_FILE_NAME = ".env"
DATA_DIR_NAME = "data"


@dataclass(frozen=True)
class StackLayout:
    """On-disk layout of one homestack project."""

    project_dir: Path
    data_dir: Path

    @classmethod
    def for_project(cls, project_dir: Path, data_dir: Path | None = None) -> "StackLayout":
        project_dir = Path(project_dir)
        return cls(project_dir, Path(data_dir) if data_dir else project_dir / DATA_DIR_NAME)

    # Project-level files

    @property
    def compose_file(self) -> Path:
        return self.project_dir / COMPOSE_FILE_NAME

    @property
    def config_file(self) -> Path:
        return self.project_dir / CONFIG_FILE_NAME

    @property
    def env_file(self) -> Path:
        return self.project_dir / ENV_FILE_NAME

    @property
    def nginx_conf(self) -> Path:
        return self.project_dir / "laravel" / "nginx.conf"

    @property
    def laravel_dockerfile(self) -> Path:
        return self.project_dir / "laravel" / "Dockerfile"

    @property
    def influxdb_entrypoint(self) -> Path:
        return self.project_dir / "influxdb" / "entrypoint.sh"

    # Companion files shipped with the project

    @property
    def mosquitto_companion(self) -> Path:
        return self.project_dir / "mosquitto" / "mosquitto.conf"

    @property
    def flows_companion(self) -> Path:
        return self.project_dir / "nodered" / "flows.json"

    @property
    def nodered_package_companion(self) -> Path:
        return self.project_dir / "nodered" / "package.json"

    @property
    def dashboards_companion(self) -> Path:
        return self.project_dir / "homeassistant" / "dashboards"

    # Data directory

    @property
    def homeassistant_dir(self) -> Path:
        return self.data_dir / "homeassistant"

    @property
    def nodered_dir(self) -> Path:
        return self.data_dir / "nodered"

    @property
    def influxdb_dir(self) -> Path:
        return self.data_dir / "influxdb"

    @property
    def mosquitto_dir(self) -> Path:
        return self.data_dir / "mosquitto"

    @property
    def laravel_app_dir(self) -> Path:
        return self.data_dir / "laravel" / "app"

    @property
    def mosquitto_conf(self) -> Path:
        return self.mosquitto_dir / "config" / "mosquitto.conf"

    @property
    def ha_configuration(self) -> Path:
        return self.homeassistant_dir / "configuration.yaml"

    @property
    def ha_secrets(self) -> Path:
        return self.homeassistant_dir / "secrets.yaml"

    @property
    def ha_dashboards_dir(self) -> Path:
        return self.homeassistant_dir / "dashboards"

    @property
    def data_directories(self) -> list[Path]:
        """Directories mounted into containers, created on every run."""
        return [
            self.homeassistant_dir,
            self.nodered_dir,
            self.influxdb_dir,
            self.mosquitto_dir / "config",
            self.mosquitto_dir / "data",
            self.mosquitto_dir / "log",
            self.laravel_app_dir,
        ]

    @property
    def container_owned_directories(self) -> list[Path]:
        """Directories re-owned to the unprivileged container user."""
        return [self.nodered_dir, self.influxdb_dir]

    # Init markers, written by the services themselves

    @property
    def store_marker(self) -> Path:
        return self.influxdb_dir / "influxd.bolt"

    @property
    def webapp_marker(self) -> Path:
        return self.laravel_app_dir / "artisan"
