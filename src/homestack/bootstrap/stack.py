"""Compose stack lifecycle and startup ordering.

The InfluxDB image's first-run setup is not idempotent: if the container
restarts mid-setup it loops forever. The wrapper entrypoint in
``influxdb/entrypoint.sh`` clears that partial state, but only a
recreated container picks it up, so the store is force-recreated on its
own before the rest of the stack comes up.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..errors import OrchestratorError, PreconditionError
from ..shared.logging import get_logger
from ..shared.paths import StackLayout
from . import process
from .toolchain import ToolchainBinding

logger = get_logger(__name__)

STORE_SERVICE = "influxdb"
WEBAPP_SERVICE = "laravel-php"
AUTOMATION_SERVICE = "homeassistant"

UP_TIMEOUT = 1800
EXEC_TIMEOUT = 900
RESTART_TIMEOUT = 300

WEBAPP_SCAFFOLD_SCRIPT = (
    "composer create-project laravel/laravel /tmp/laravel --prefer-dist --quiet && "
    "cp -r /tmp/laravel/. /var/www/html/ && "
    "chown -R www-data:www-data /var/www/html"
)


class StackState(Enum):
    """State of the docker-compose stack."""

    NOT_FOUND = "not_found"  # No compose file
    STOPPED = "stopped"  # Compose file exists, services down
    PARTIAL = "partial"  # Some services running
    RUNNING = "running"  # All services running


@dataclass
class StackStatus:
    """Status of the docker-compose stack."""

    state: StackState
    running_services: list[str] = field(default_factory=list)
    stopped_services: list[str] = field(default_factory=list)
    message: str = ""


class Orchestrator:
    """Thin wrapper over the resolved compose invocation."""

    def __init__(self, binding: ToolchainBinding, compose_file: Path):
        """Initialize orchestrator.

        Args:
            binding: Resolved toolchain; must carry a compose invocation
            compose_file: The stack's docker-compose.yml
        """
        self.compose = binding.require_compose()
        self.compose_file = compose_file
        self.compose_dir = compose_file.parent

    def _run(self, args: list[str], timeout: float) -> tuple[bool, str]:
        if not self.compose_file.exists():
            return False, f"No {self.compose_file.name} found"
        cmd = [*self.compose, "-f", str(self.compose_file), *args]
        result = process.run(cmd, cwd=self.compose_dir, timeout=timeout)
        if result.returncode != 0:
            return False, process.describe_failure(result)
        return True, result.stdout

    def up(self, service: str | None = None, force_recreate: bool = False) -> tuple[bool, str]:
        """``up -d --remove-orphans``, optionally recreating one service."""
        args = ["up", "-d", "--remove-orphans"]
        if force_recreate:
            args.append("--force-recreate")
        if service:
            args.append(service)
        return self._run(args, UP_TIMEOUT)

    def exec(self, service: str, command: list[str]) -> tuple[bool, str]:
        """Run a command inside a running service container."""
        return self._run(["exec", "-T", service, *command], EXEC_TIMEOUT)

    def restart(self, service: str) -> tuple[bool, str]:
        return self._run(["restart", service], RESTART_TIMEOUT)

    def status(self) -> StackStatus:
        """Get current stack status from ``ps --format json``."""
        if not self.compose_file.exists():
            return StackStatus(StackState.NOT_FOUND, message=f"No {self.compose_file.name} found")

        ok, output = self._run(["ps", "--all", "--format", "json"], timeout=60)
        if not ok:
            return StackStatus(StackState.STOPPED, message=output or "Stack not running")

        services = _parse_ps_output(output)
        if not services:
            return StackStatus(StackState.STOPPED, message="No services found")

        running = [
            s.get("Service", s.get("Name", "unknown"))
            for s in services
            if s.get("State") == "running"
        ]
        stopped = [
            s.get("Service", s.get("Name", "unknown"))
            for s in services
            if s.get("State") != "running"
        ]

        if len(running) == 0:
            state = StackState.STOPPED
        elif len(stopped) == 0:
            state = StackState.RUNNING
        else:
            state = StackState.PARTIAL
        return StackStatus(state, running, stopped)


def _parse_ps_output(output: str) -> list[dict]:
    """Parse ``ps --format json``: one object per line, or one JSON array."""
    output = output.strip()
    if not output:
        return []
    if output.startswith("["):
        try:
            data = json.loads(output)
            return [s for s in data if isinstance(s, dict)]
        except json.JSONDecodeError:
            return []
    services = []
    for line in output.splitlines():
        if line.strip():
            try:
                services.append(json.loads(line))
            except json.JSONDecodeError:
                pass
    return services


class SequencerState(Enum):
    """Progress of the startup sequence."""

    NOT_STARTED = "not_started"
    STORE_READY = "store_ready"
    ALL_UP = "all_up"
    READY = "ready"


@dataclass
class StartupReport:
    """Result of a startup sequence."""

    state: SequencerState = SequencerState.NOT_STARTED
    webapp_scaffolded: bool = False
    warnings: list[str] = field(default_factory=list)


class StartupSequencer:
    """Bring the stack up in dependency-safe order."""

    def __init__(self, orchestrator: Orchestrator, layout: StackLayout):
        self.orchestrator = orchestrator
        self.layout = layout

    def run(self) -> StartupReport:
        """Run the full sequence.

        Raises:
            PreconditionError: docker-compose.yml is missing
            OrchestratorError: Either ``up`` step failed
        """
        report = StartupReport()
        if not self.orchestrator.compose_file.exists():
            raise PreconditionError(
                f"{self.orchestrator.compose_file} not found",
                remediation="Place docker-compose.yml in the project directory",
            )

        self.start_store()
        report.state = SequencerState.STORE_READY

        self.start_all()
        report.state = SequencerState.ALL_UP

        report.webapp_scaffolded = self.scaffold_webapp(report)
        self.restart_automation(report)
        report.state = SequencerState.READY
        return report

    def start_store(self) -> None:
        logger.info("starting_store", service=STORE_SERVICE)
        ok, output = self.orchestrator.up(STORE_SERVICE, force_recreate=True)
        if not ok:
            raise OrchestratorError(
                f"Could not recreate {STORE_SERVICE}: {output}",
                remediation="Check `docker compose logs influxdb`, then re-run",
                output=output,
            )

    def start_all(self) -> None:
        logger.info("starting_stack")
        ok, output = self.orchestrator.up()
        if not ok:
            raise OrchestratorError(
                f"Could not start the stack: {output}",
                remediation="Check `docker compose logs`, then re-run",
                output=output,
            )
        logger.info("stack_started")

    def scaffold_webapp(self, report: StartupReport | None = None) -> bool:
        """One-time Laravel project creation inside the PHP container.

        Returns:
            True if scaffolding ran and succeeded in this call
        """
        if self.layout.webapp_marker.exists():
            logger.info("webapp_already_initialized", marker=str(self.layout.webapp_marker))
            return False

        logger.info("initializing_webapp", service=WEBAPP_SERVICE)
        ok, output = self.orchestrator.exec(WEBAPP_SERVICE, ["bash", "-c", WEBAPP_SCAFFOLD_SCRIPT])
        if not ok:
            message = "Laravel init failed (container may still be building); re-run setup later"
            logger.warning("webapp_init_failed", reason=output)
            if report is not None:
                report.warnings.append(message)
            return False
        return True

    def restart_automation(self, report: StartupReport | None = None) -> bool:
        """Restart Home Assistant so it loads appended configuration."""
        logger.info("restarting_service", service=AUTOMATION_SERVICE)
        ok, output = self.orchestrator.restart(AUTOMATION_SERVICE)
        if not ok:
            logger.warning("restart_failed", service=AUTOMATION_SERVICE, reason=output)
            if report is not None:
                report.warnings.append(
                    f"Could not restart {AUTOMATION_SERVICE}; its config is applied on next restart"
                )
        return ok
