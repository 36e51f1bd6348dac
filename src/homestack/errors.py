"""Fatal bootstrap errors.

Anything raised from here aborts the whole run. Recoverable problems are
logged as warnings by the step that hit them and never reach this module.
"""

from dataclasses import dataclass

EXIT_FATAL = 1


@dataclass
class BootstrapError(Exception):
    """Base error for fatal bootstrap failures."""

    message: str
    remediation: str | None = None
    exit_code: int = EXIT_FATAL

    def __str__(self) -> str:
        if self.remediation:
            return f"{self.message} ({self.remediation})"
        return self.message


@dataclass
class PreconditionError(BootstrapError):
    """Host precondition missing (distro file, package manager, compose file)."""


@dataclass
class ToolchainError(BootstrapError):
    """No usable container engine or compose invocation."""


@dataclass
class PathCollisionError(BootstrapError):
    """A managed path exists with the wrong type (file vs directory)."""

    path: str = ""


@dataclass
class FileWriteError(BootstrapError):
    """A managed file could not be written, even with elevation."""

    path: str = ""


@dataclass
class OrchestratorError(BootstrapError):
    """A required orchestrator verb failed."""

    output: str = ""
