"""The full bootstrap pass.

Phases run in a fixed order, each relying on what the previous one set
up: toolchain, filesystem, token, integration, startup. A fatal error
stops the pass where it is; re-running converges because every phase is
idempotent.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from ..config import StackConfig
from ..errors import PreconditionError
from ..shared.logging import get_logger
from .envstore import EnvStore
from .filesystem import FilesystemReconciler, ReconcileReport
from .injector import ConfigInjector, InjectionResult
from .secret_store import SecretStore
from .stack import Orchestrator, SequencerState, StartupReport, StartupSequencer
from .toolchain import ToolchainBinding, ToolchainResolver

logger = get_logger(__name__)

OrchestratorFactory = Callable[[ToolchainBinding, Path], Orchestrator]


@dataclass
class BootstrapResult:
    """Result of a bootstrap pass."""

    binding: ToolchainBinding | None = None
    token: str | None = None
    reconcile: ReconcileReport | None = None
    injection: InjectionResult | None = None
    startup: StartupReport | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def state(self) -> SequencerState:
        return self.startup.state if self.startup else SequencerState.NOT_STARTED


class Bootstrapper:
    """Run the bootstrap phases against one project."""

    def __init__(
        self,
        config: StackConfig,
        resolver: ToolchainResolver | None = None,
        orchestrator_factory: OrchestratorFactory | None = None,
        on_step: Callable[[str], None] | None = None,
    ):
        """Initialize bootstrapper.

        Args:
            config: Stack configuration
            resolver: Toolchain resolver (default: host resolver)
            orchestrator_factory: Builds the orchestrator from the binding
            on_step: Called with a label as each phase starts
        """
        self.config = config
        self.layout = config.layout
        self.resolver = resolver or ToolchainResolver()
        self.orchestrator_factory = orchestrator_factory or Orchestrator
        self.on_step = on_step or (lambda label: None)

    def preflight(self) -> None:
        if not self.layout.compose_file.exists():
            raise PreconditionError(
                f"{self.layout.compose_file.name} not found in {self.layout.project_dir}",
                remediation="Run homestack from the directory holding docker-compose.yml",
            )

    def run(self, start: bool = True) -> BootstrapResult:
        """Run all phases.

        Args:
            start: Also bring the stack up; False stops after config

        Raises:
            BootstrapError: On any fatal failure
        """
        result = BootstrapResult()
        self.preflight()

        self.on_step("Toolchain")
        result.binding = self.resolver.resolve()

        self.on_step("Files")
        result.reconcile = FilesystemReconciler(self.config).reconcile()
        result.warnings.extend(result.reconcile.warnings)

        self.on_step("Secrets")
        secret_store = SecretStore(EnvStore(self.layout.env_file), self.layout.store_marker)
        result.token = secret_store.ensure_token()

        self.on_step("Integration")
        injector = ConfigInjector(self.layout.ha_configuration, self.layout.ha_secrets)
        result.injection = injector.inject(secret_store.integration_values())

        if start:
            self.on_step("Startup")
            orchestrator = self.orchestrator_factory(result.binding, self.layout.compose_file)
            result.startup = StartupSequencer(orchestrator, self.layout).run()
            result.warnings.extend(result.startup.warnings)

        logger.info("bootstrap_complete", state=result.state.value, warnings=len(result.warnings))
        return result
