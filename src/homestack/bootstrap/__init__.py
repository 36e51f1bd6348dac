"""Bootstrap package for provisioning the homestack services.

This package provides the `homestack setup` pass which:
1. Resolves a working Docker and Compose invocation, installing them if needed
2. Creates the data layout and seed config files without clobbering edits
3. Generates the shared InfluxDB token on first run only
4. Wires Home Assistant to InfluxDB through secrets.yaml
5. Starts the stack with the store recreated first
"""

from .envstore import EnvStore
from .filesystem import (
    ArtifactOutcome,
    ConfigArtifact,
    FilesystemReconciler,
    PresenceRule,
    ReconcileReport,
    build_artifacts,
)
from .injector import ConfigInjector, InjectionResult, ensure_integration
from .pipeline import Bootstrapper, BootstrapResult
from .secret_store import (
    PLACEHOLDER_TOKEN,
    IntegrationValues,
    SecretStore,
    TokenState,
    ensure_token,
    generate_token,
)
from .stack import (
    Orchestrator,
    SequencerState,
    StackState,
    StackStatus,
    StartupReport,
    StartupSequencer,
)
from .state import InstallState, TokenStatus, detect_state
from .toolchain import ToolchainBinding, ToolchainResolver

__all__ = [
    # Toolchain
    "ToolchainBinding",
    "ToolchainResolver",
    # Filesystem
    "ArtifactOutcome",
    "ConfigArtifact",
    "FilesystemReconciler",
    "PresenceRule",
    "ReconcileReport",
    "build_artifacts",
    # Secrets
    "EnvStore",
    "IntegrationValues",
    "PLACEHOLDER_TOKEN",
    "SecretStore",
    "TokenState",
    "ensure_token",
    "generate_token",
    # Integration
    "ConfigInjector",
    "InjectionResult",
    "ensure_integration",
    # Startup
    "Orchestrator",
    "SequencerState",
    "StackState",
    "StackStatus",
    "StartupReport",
    "StartupSequencer",
    # State
    "InstallState",
    "TokenStatus",
    "detect_state",
    # Pipeline
    "Bootstrapper",
    "BootstrapResult",
]
