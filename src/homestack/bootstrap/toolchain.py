"""Container toolchain detection and installation.

Produces a :class:`ToolchainBinding`, the docker and compose invocations
every later step uses, installing Docker and Compose from the distribution
repositories when they are missing.
"""

from __future__ import annotations

import grp
import os
import shlex
import shutil
from dataclasses import dataclass
from pathlib import Path

from ..errors import PreconditionError, ToolchainError
from ..shared.logging import get_logger
from . import process

logger = get_logger(__name__)

OS_RELEASE = Path("/etc/os-release")
APT_SOURCES_FILE = Path("/etc/apt/sources.list")
APT_SOURCES_DIR = Path("/etc/apt/sources.list.d")
DOCKER_KEYRING = Path("/etc/apt/keyrings/docker.gpg")

# Docker's Ubuntu repository breaks apt on Debian releases it does not know
BAD_REPO_PATTERN = "download.docker.com/linux/ubuntu"

ENGINE_PACKAGE = "docker.io"
COMPOSE_PACKAGES = ("docker-compose-v2", "docker-compose")

PROBE_TIMEOUT = 30
INSTALL_TIMEOUT = 1800


@dataclass(frozen=True)
class ToolchainBinding:
    """Resolved docker and compose invocations."""

    engine: tuple[str, ...]
    compose: tuple[str, ...] | None = None

    @property
    def elevated(self) -> bool:
        return len(self.engine) > 1

    @property
    def engine_invocation(self) -> str:
        return shlex.join(self.engine)

    @property
    def compose_invocation(self) -> str | None:
        return shlex.join(self.compose) if self.compose else None

    def require_compose(self) -> tuple[str, ...]:
        """Compose argv, or fail if none was resolved."""
        if not self.compose:
            raise ToolchainError(
                "Docker Compose is not available",
                remediation="Install Docker Compose manually, then re-run",
            )
        return self.compose


def read_os_release(path: Path = OS_RELEASE) -> dict[str, str]:
    """Parse an os-release file into a dict.

    Raises:
        PreconditionError: The file is missing or unreadable
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PreconditionError(
            f"{path} not found; cannot detect distro",
            remediation="This bootstrap supports Debian-family hosts only",
        ) from e

    info: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value]
        info[key] = parts[0] if parts else ""
    return info


class ToolchainResolver:
    """Detect, install and normalize Docker Engine and Compose."""

    def __init__(
        self,
        os_release: Path = OS_RELEASE,
        sources_file: Path = APT_SOURCES_FILE,
        sources_dir: Path = APT_SOURCES_DIR,
        keyring: Path = DOCKER_KEYRING,
        user: str | None = None,
    ):
        self.os_release = os_release
        self.sources_file = sources_file
        self.sources_dir = sources_dir
        self.keyring = keyring
        self.user = user or os.environ.get("USER") or os.environ.get("LOGNAME")
        self._index_updated = False
        self._distro: dict[str, str] = {}

    def resolve(self) -> ToolchainBinding:
        """Resolve a working engine and compose invocation.

        Raises:
            PreconditionError: No os-release file or no apt-get
            ToolchainError: Install failed or compose still unavailable
        """
        self._distro = read_os_release(self.os_release)
        if not shutil.which("apt-get"):
            raise PreconditionError(
                "apt-get not found",
                remediation="Install Docker and Docker Compose manually, then re-run",
            )

        if shutil.which("docker"):
            version = process.run(["docker", "--version"], timeout=PROBE_TIMEOUT)
            logger.info("docker_present", version=version.stdout.strip() or None)
        else:
            self.install_engine()

        self.ensure_group_membership()
        engine = self.detect_engine()

        compose = self.detect_compose(engine)
        if compose is None:
            self.install_compose()
            compose = self.detect_compose(engine)
        if compose is None:
            raise ToolchainError(
                "Docker Compose is still not available after installation",
                remediation="Install Docker Compose manually, then re-run",
            )

        binding = ToolchainBinding(engine=engine, compose=compose)
        logger.info(
            "toolchain_resolved",
            engine=binding.engine_invocation,
            compose=binding.compose_invocation,
        )
        return binding

    # Detection

    def detect_engine(self, interactive: bool = True) -> tuple[str, ...]:
        """``docker`` if usable unprivileged, else the elevated form.

        With ``interactive=False`` the elevated form is ``sudo -n docker``,
        which fails instead of waiting at a password prompt.
        """
        if process.succeeds(["docker", "ps"], timeout=PROBE_TIMEOUT):
            return ("docker",)
        prefix = process.elevation_prefix(interactive)
        if prefix:
            logger.info("docker_needs_elevation", reason="docker group not active in this session")
        return tuple(prefix + ["docker"])

    def detect_compose(self, engine: tuple[str, ...]) -> tuple[str, ...] | None:
        """Compose plugin first, then the standalone legacy binary."""
        if process.succeeds([*engine, "compose", "version"], timeout=PROBE_TIMEOUT):
            return (*engine, "compose")
        if shutil.which("docker-compose"):
            legacy = (*engine[:-1], "docker-compose")
            if process.succeeds([*legacy, "version"], timeout=PROBE_TIMEOUT):
                return legacy
        return None

    # Installation

    def purge_bad_repositories(self) -> list[Path]:
        """Remove apt source files pointing at Docker's Ubuntu repository.

        Returns:
            Source files removed

        Raises:
            ToolchainError: The entry is in the protected sources.list
        """
        hits = [p for p in self._source_files() if self._mentions_bad_repo(p)]
        if not hits:
            return []

        logger.warning("bad_docker_repo_found", files=[str(p) for p in hits])
        removed = []
        for path in hits:
            if path == self.sources_file:
                continue
            result = process.run(process.privileged(["rm", "-f", str(path)]))
            if result.returncode != 0:
                raise ToolchainError(
                    f"Could not remove broken repo file {path}: {process.describe_failure(result)}",
                    remediation=f"Remove {path} manually, then re-run",
                )
            logger.info("bad_docker_repo_removed", path=str(path))
            removed.append(path)

        if removed and self.keyring.exists():
            process.run(process.privileged(["rm", "-f", str(self.keyring)]))

        if self.sources_file in hits:
            raise ToolchainError(
                f"{self.sources_file} references {BAD_REPO_PATTERN}, which breaks apt on this release",
                remediation=f"Remove that line from {self.sources_file} manually, then re-run",
            )
        return removed

    def _source_files(self) -> list[Path]:
        paths = []
        if self.sources_file.is_file():
            paths.append(self.sources_file)
        if self.sources_dir.is_dir():
            paths.extend(sorted(p for p in self.sources_dir.iterdir() if p.is_file()))
        return paths

    @staticmethod
    def _mentions_bad_repo(path: Path) -> bool:
        try:
            return BAD_REPO_PATTERN in path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return False

    def _update_index(self) -> None:
        if self._index_updated:
            return
        if self._distro.get("ID") == "debian":
            self.purge_bad_repositories()
        logger.info("apt_update")
        result = process.run(process.privileged(["apt-get", "update"]), timeout=INSTALL_TIMEOUT)
        if result.returncode != 0:
            raise ToolchainError(
                f"apt-get update failed: {process.describe_failure(result)}",
                remediation="Fix the package sources, then re-run",
            )
        self._index_updated = True

    def _apt_install(self, package: str) -> bool:
        result = process.run(
            process.privileged(["apt-get", "install", "-y", package]),
            timeout=INSTALL_TIMEOUT,
        )
        if result.returncode != 0:
            logger.info("apt_install_failed", package=package, reason=process.describe_failure(result))
            return False
        return True

    def install_engine(self) -> None:
        """Install Docker Engine from the OS repositories."""
        self._update_index()
        logger.info("installing_docker", package=ENGINE_PACKAGE)
        if not self._apt_install(ENGINE_PACKAGE):
            raise ToolchainError(
                f"Could not install {ENGINE_PACKAGE}",
                remediation="Install Docker Engine manually, then re-run",
            )
        result = process.run(process.privileged(["systemctl", "enable", "--now", "docker"]))
        if result.returncode != 0:
            logger.warning("docker_service_not_enabled", reason=process.describe_failure(result))

    def install_compose(self) -> str:
        """Install Compose under the first package name that works.

        Returns:
            Name of the installed package
        """
        self._update_index()
        for package in COMPOSE_PACKAGES:
            logger.info("installing_compose", package=package)
            if self._apt_install(package):
                return package
        raise ToolchainError(
            "Could not install Docker Compose from apt",
            remediation="Install Docker Compose manually, then re-run",
        )

    def ensure_group_membership(self) -> None:
        """Add the user to the docker group; effective from the next login."""
        if not self.user or self.user == "root":
            return
        try:
            if self.user in grp.getgrnam("docker").gr_mem:
                return
        except KeyError:
            pass  # Group is created by the docker package
        result = process.run(process.privileged(["usermod", "-aG", "docker", self.user]))
        if result.returncode != 0:
            logger.warning("docker_group_not_added", user=self.user)
