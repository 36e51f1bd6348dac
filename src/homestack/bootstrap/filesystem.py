"""Data directories and seed configuration files.

Each managed file is a :class:`ConfigArtifact` with a presence rule that
decides whether it may be written. Nothing that already exists is ever
replaced, with one exception: a companion file shipped in the project
checkout is the user's own copy and is mirrored verbatim.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..config import StackConfig
from ..errors import PathCollisionError
from ..shared.logging import get_logger
from . import blocks, files, process, templates

logger = get_logger(__name__)


class PresenceRule(Enum):
    """When an artifact may be written."""

    SKIP_IF_EXISTS = "skip_if_exists"
    # Not used by build_artifacts: the Home Assistant influxdb block also
    # needs secrets.yaml edits and goes through ConfigInjector. Available
    # to artifact lists passed to FilesystemReconciler directly.
    SKIP_IF_BLOCK_PRESENT = "skip_if_block_present"
    COMPANION_OVERWRITES = "companion_overwrites"


class ArtifactOutcome(Enum):
    """What reconciling one artifact did."""

    CREATED = "created"  # Default content written
    COPIED = "copied"  # Companion mirrored
    APPENDED = "appended"  # Missing block added
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"  # Nothing to write (no companion, no default)


@dataclass
class ConfigArtifact:
    """One managed file."""

    path: Path
    render: Callable[[], str] | None = None
    rule: PresenceRule = PresenceRule.SKIP_IF_EXISTS
    companion: Path | None = None
    block: str | None = None  # Key checked by SKIP_IF_BLOCK_PRESENT
    mode: int | None = None
    warn_on_create: str | None = None
    warn_if_skipped: str | None = None


@dataclass
class ReconcileReport:
    """Result of a reconcile pass."""

    outcomes: dict[Path, ArtifactOutcome] = field(default_factory=dict)
    directories_created: list[Path] = field(default_factory=list)
    permissions_fixed: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def paths_with(self, outcome: ArtifactOutcome) -> list[Path]:
        return [p for p, o in self.outcomes.items() if o is outcome]

    @property
    def changed(self) -> bool:
        return bool(self.directories_created) or any(
            o not in (ArtifactOutcome.UNCHANGED, ArtifactOutcome.SKIPPED)
            for o in self.outcomes.values()
        )


def _constant(text: str) -> Callable[[], str]:
    return lambda: text


def build_artifacts(config: StackConfig) -> list[ConfigArtifact]:
    """The full artifact catalog for a project."""
    layout = config.layout
    artifacts = [
        ConfigArtifact(
            layout.mosquitto_conf,
            render=_constant(templates.MOSQUITTO_CONF),
            rule=PresenceRule.COMPANION_OVERWRITES,
            companion=layout.mosquitto_companion,
        ),
        ConfigArtifact(layout.nginx_conf, render=_constant(templates.NGINX_CONF)),
        ConfigArtifact(layout.laravel_dockerfile, render=_constant(templates.LARAVEL_DOCKERFILE)),
        ConfigArtifact(
            layout.influxdb_entrypoint,
            render=_constant(templates.INFLUXDB_ENTRYPOINT),
            mode=0o755,
        ),
        ConfigArtifact(
            layout.ha_configuration,
            render=lambda: templates.render_ha_configuration(config),
        ),
        ConfigArtifact(
            layout.env_file,
            render=lambda: templates.render_env(config),
            warn_on_create="Default credentials written to .env; change them before "
            "exposing the stack to the internet",
        ),
        ConfigArtifact(
            layout.nodered_dir / "flows.json",
            rule=PresenceRule.COMPANION_OVERWRITES,
            companion=layout.flows_companion,
            warn_if_skipped="nodered/flows.json not found in project; Node-RED will start empty",
        ),
        ConfigArtifact(
            layout.nodered_dir / "package.json",
            rule=PresenceRule.COMPANION_OVERWRITES,
            companion=layout.nodered_package_companion,
        ),
        ConfigArtifact(layout.ha_secrets, render=_constant(templates.HA_SECRETS)),
    ]
    artifacts.extend(_dashboard_artifacts(config))
    return artifacts


def _dashboard_artifacts(config: StackConfig) -> list[ConfigArtifact]:
    layout = config.layout
    source = layout.dashboards_companion
    if source.is_dir():
        return [
            ConfigArtifact(
                layout.ha_dashboards_dir / companion.relative_to(source),
                rule=PresenceRule.COMPANION_OVERWRITES,
                companion=companion,
            )
            for companion in sorted(source.rglob("*"))
            if companion.is_file()
        ]
    logger.info("dashboards_companion_missing", path=str(source))
    return [
        ConfigArtifact(
            layout.ha_dashboards_dir / "main_dash.yaml",
            render=_constant(templates.PLACEHOLDER_DASHBOARD),
        )
    ]


def ensure_directory(path: Path) -> bool:
    """Create ``path`` and its parents.

    Returns:
        True if the directory was created

    Raises:
        PathCollisionError: ``path`` or a parent is a regular file
    """
    if path.is_dir():
        return False
    if path.exists():
        raise PathCollisionError(
            f"{path} exists but is not a directory",
            remediation="Move the file out of the way and re-run; it is not deleted automatically",
            path=str(path),
        )
    try:
        path.mkdir(parents=True, exist_ok=True)
    except (FileExistsError, NotADirectoryError) as e:
        raise PathCollisionError(
            f"Cannot create directory {path}: a parent path is a regular file",
            remediation="Move the file out of the way and re-run; it is not deleted automatically",
            path=str(path),
        ) from e
    return True


def _tree_matches(root: Path, uid: int, gid: int) -> bool:
    """True if everything under ``root`` already has the wanted owner and bits."""
    for dirpath, dirnames, filenames in os.walk(root):
        for name in [None, *dirnames, *filenames]:
            path = os.path.join(dirpath, name) if name else dirpath
            try:
                st = os.lstat(path)
            except OSError:
                return False
            if st.st_uid != uid or st.st_gid != gid:
                return False
            if st.st_mode & 0o660 != 0o660:
                return False
    return True


class FilesystemReconciler:
    """Bring the data layout and seed files to their desired state."""

    def __init__(self, config: StackConfig, artifacts: list[ConfigArtifact] | None = None):
        """Initialize reconciler.

        Args:
            config: Stack configuration
            artifacts: Artifact catalog (default: build_artifacts(config))
        """
        self.config = config
        self.layout = config.layout
        self._artifacts = artifacts

    @property
    def artifacts(self) -> list[ConfigArtifact]:
        if self._artifacts is None:
            self._artifacts = build_artifacts(self.config)
        return self._artifacts

    def reconcile(self) -> ReconcileReport:
        """Create directories, write artifacts, then fix ownership."""
        report = ReconcileReport()

        for directory in self.layout.data_directories:
            if ensure_directory(directory):
                report.directories_created.append(directory)

        for artifact in self.artifacts:
            outcome = self.reconcile_artifact(artifact, report)
            report.outcomes[artifact.path] = outcome

        self.fix_permissions(report)
        return report

    def reconcile_artifact(
        self, artifact: ConfigArtifact, report: ReconcileReport | None = None
    ) -> ArtifactOutcome:
        """Apply one artifact's presence rule."""
        path = artifact.path
        if path.is_dir():
            raise PathCollisionError(
                f"{path} is a directory but a file is expected",
                remediation="Move the directory out of the way and re-run",
                path=str(path),
            )
        if ensure_directory(path.parent) and report is not None:
            report.directories_created.append(path.parent)

        if artifact.companion is not None and artifact.companion.is_file():
            return self._mirror_companion(artifact)

        if artifact.render is None:
            if artifact.warn_if_skipped:
                logger.warning("artifact_skipped", path=str(path), reason=artifact.warn_if_skipped)
                if report is not None:
                    report.warnings.append(artifact.warn_if_skipped)
            return ArtifactOutcome.SKIPPED

        if artifact.rule is PresenceRule.SKIP_IF_BLOCK_PRESENT:
            existed = path.exists()
            if not blocks.ensure_block(path, artifact.block or "", artifact.render()):
                logger.debug("artifact_block_present", path=str(path), block=artifact.block)
                return ArtifactOutcome.UNCHANGED
            logger.info("artifact_block_appended", path=str(path), block=artifact.block)
            return ArtifactOutcome.APPENDED if existed else ArtifactOutcome.CREATED

        # SKIP_IF_EXISTS, and COMPANION_OVERWRITES without a companion
        if path.exists():
            logger.debug("artifact_present", path=str(path))
            return ArtifactOutcome.UNCHANGED

        files.write_text(path, artifact.render())
        if artifact.mode is not None:
            files.chmod(path, artifact.mode)
        logger.info("artifact_created", path=str(path))
        if artifact.warn_on_create:
            logger.warning("artifact_defaults", path=str(path), detail=artifact.warn_on_create)
            if report is not None:
                report.warnings.append(artifact.warn_on_create)
        return ArtifactOutcome.CREATED

    def _mirror_companion(self, artifact: ConfigArtifact) -> ArtifactOutcome:
        companion = artifact.companion
        path = artifact.path
        if files.same_content(companion, path):
            logger.debug("artifact_matches_companion", path=str(path))
            return ArtifactOutcome.UNCHANGED
        files.copy_file(companion, path)
        logger.info("artifact_copied", path=str(path), companion=str(companion))
        return ArtifactOutcome.COPIED

    def fix_permissions(self, report: ReconcileReport | None = None) -> list[Path]:
        """Re-own container data directories; failures are only warnings."""
        uid, gid = self.config.container_uid, self.config.container_gid
        fixed: list[Path] = []

        for directory in self.layout.container_owned_directories:
            if _tree_matches(directory, uid, gid):
                logger.debug("permissions_ok", path=str(directory))
                continue
            for args in (
                ["chown", "-R", f"{uid}:{gid}", str(directory)],
                ["chmod", "-R", "u+rwX,g+rwX", str(directory)],
            ):
                result = process.run(process.privileged(args))
                if result.returncode != 0:
                    message = (
                        f"Could not {args[0]} {directory}: {process.describe_failure(result)}"
                    )
                    logger.warning("permission_fixup_failed", path=str(directory), command=args[0])
                    if report is not None:
                        report.warnings.append(message)
                    break
            else:
                logger.info("permissions_fixed", path=str(directory), uid=uid, gid=gid)
                fixed.append(directory)

        if report is not None:
            report.permissions_fixed.extend(fixed)
        return fixed
