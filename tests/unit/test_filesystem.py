"""Unit tests for the filesystem reconciler."""

from __future__ import annotations

import pytest

from homestack.bootstrap import (
    ArtifactOutcome,
    ConfigArtifact,
    FilesystemReconciler,
    PresenceRule,
    build_artifacts,
)
from homestack.bootstrap.filesystem import ensure_directory
from homestack.errors import PathCollisionError


def _snapshot(root):
    return {
        p.relative_to(root): (p.read_bytes(), p.stat().st_mtime_ns)
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


class TestEnsureDirectory:
    """Tests for ensure_directory."""

    def test_creates_parents(self, tmp_path):
        target = tmp_path / "a" / "b"
        assert ensure_directory(target) is True
        assert target.is_dir()
        assert ensure_directory(target) is False

    def test_file_in_the_way(self, tmp_path):
        target = tmp_path / "data"
        target.write_text("user data")

        with pytest.raises(PathCollisionError) as exc_info:
            ensure_directory(target)

        assert exc_info.value.path == str(target)
        assert target.read_text() == "user data"

    def test_file_as_parent(self, tmp_path):
        (tmp_path / "data").write_text("user data")
        with pytest.raises(PathCollisionError):
            ensure_directory(tmp_path / "data" / "nodered")


class TestPresenceRules:
    """Tests for single-artifact reconciliation."""

    @pytest.fixture
    def reconciler(self, config):
        return FilesystemReconciler(config, artifacts=[])

    def test_skip_if_exists_creates(self, reconciler, tmp_path):
        artifact = ConfigArtifact(tmp_path / "out" / "a.conf", render=lambda: "default\n")
        assert reconciler.reconcile_artifact(artifact) is ArtifactOutcome.CREATED
        assert artifact.path.read_text() == "default\n"

    def test_skip_if_exists_keeps_empty_file(self, reconciler, tmp_path):
        path = tmp_path / "a.conf"
        path.write_text("")
        artifact = ConfigArtifact(path, render=lambda: "default\n")

        assert reconciler.reconcile_artifact(artifact) is ArtifactOutcome.UNCHANGED
        assert path.read_text() == ""

    def test_skip_if_block_present_appends(self, reconciler, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("logger:\n  default: info\n")
        artifact = ConfigArtifact(
            path,
            render=lambda: "recorder:\n  purge_keep_days: 30\n",
            rule=PresenceRule.SKIP_IF_BLOCK_PRESENT,
            block="recorder",
        )

        assert reconciler.reconcile_artifact(artifact) is ArtifactOutcome.APPENDED
        assert reconciler.reconcile_artifact(artifact) is ArtifactOutcome.UNCHANGED
        assert path.read_text() == "logger:\n  default: info\n\nrecorder:\n  purge_keep_days: 30\n"

    def test_companion_copied_verbatim(self, reconciler, tmp_path):
        companion = tmp_path / "repo.conf"
        companion.write_text("listener 1883\n")
        dest = tmp_path / "data" / "dest.conf"
        dest.parent.mkdir()
        dest.write_text("stale\n")
        artifact = ConfigArtifact(
            dest,
            render=lambda: "default\n",
            rule=PresenceRule.COMPANION_OVERWRITES,
            companion=companion,
        )

        assert reconciler.reconcile_artifact(artifact) is ArtifactOutcome.COPIED
        assert dest.read_text() == "listener 1883\n"
        assert reconciler.reconcile_artifact(artifact) is ArtifactOutcome.UNCHANGED

    def test_companion_missing_falls_back_to_default(self, reconciler, tmp_path):
        artifact = ConfigArtifact(
            tmp_path / "dest.conf",
            render=lambda: "default\n",
            rule=PresenceRule.COMPANION_OVERWRITES,
            companion=tmp_path / "missing.conf",
        )
        assert reconciler.reconcile_artifact(artifact) is ArtifactOutcome.CREATED
        assert artifact.path.read_text() == "default\n"

    def test_companion_only_skipped(self, reconciler, tmp_path):
        artifact = ConfigArtifact(
            tmp_path / "flows.json",
            rule=PresenceRule.COMPANION_OVERWRITES,
            companion=tmp_path / "missing.json",
            warn_if_skipped="will start empty",
        )
        assert reconciler.reconcile_artifact(artifact) is ArtifactOutcome.SKIPPED
        assert not artifact.path.exists()

    def test_directory_where_file_expected(self, reconciler, tmp_path):
        path = tmp_path / "a.conf"
        path.mkdir()
        with pytest.raises(PathCollisionError):
            reconciler.reconcile_artifact(ConfigArtifact(path, render=lambda: "x"))

    def test_mode_applied(self, reconciler, tmp_path):
        artifact = ConfigArtifact(tmp_path / "entrypoint.sh", render=lambda: "#!/bin/sh\n", mode=0o755)
        reconciler.reconcile_artifact(artifact)
        assert artifact.path.stat().st_mode & 0o777 == 0o755


class TestFilesystemReconciler:
    """Tests for the full reconcile pass."""

    def test_fresh_project(self, host, config):
        report = FilesystemReconciler(config).reconcile()
        layout = config.layout

        for directory in layout.data_directories:
            assert directory.is_dir()
        assert layout.mosquitto_conf.read_text().startswith("listener 1883")
        assert "time_zone: Europe/Brussels" in layout.ha_configuration.read_text()
        assert "INFLUXDB_TOKEN=changeme-token" in layout.env_file.read_text()
        assert (layout.ha_dashboards_dir / "main_dash.yaml").exists()
        assert layout.influxdb_entrypoint.stat().st_mode & 0o111
        assert not (layout.nodered_dir / "flows.json").exists()
        assert any("Default credentials" in w for w in report.warnings)
        assert any("Node-RED will start empty" in w for w in report.warnings)

    def test_second_pass_writes_nothing(self, host, config):
        FilesystemReconciler(config).reconcile()
        before = _snapshot(config.project_dir)

        report = FilesystemReconciler(config).reconcile()

        assert _snapshot(config.project_dir) == before
        assert not report.changed

    def test_user_edits_survive(self, host, config):
        FilesystemReconciler(config).reconcile()
        ha_config = config.layout.ha_configuration
        ha_config.write_text("homeassistant:\n  name: Cabin\n")

        FilesystemReconciler(config).reconcile()

        assert ha_config.read_text() == "homeassistant:\n  name: Cabin\n"

    def test_companions_used(self, host, config):
        project = config.project_dir
        (project / "mosquitto").mkdir()
        (project / "mosquitto" / "mosquitto.conf").write_text("listener 8883\n")
        (project / "nodered").mkdir()
        (project / "nodered" / "flows.json").write_text("[]")
        dashboards = project / "homeassistant" / "dashboards"
        (dashboards / "rooms").mkdir(parents=True)
        (dashboards / "main_dash.yaml").write_text("views: []\n")
        (dashboards / "rooms" / "kitchen.yaml").write_text("views: []\n")

        report = FilesystemReconciler(config).reconcile()
        layout = config.layout

        assert layout.mosquitto_conf.read_text() == "listener 8883\n"
        assert (layout.nodered_dir / "flows.json").read_text() == "[]"
        assert (layout.ha_dashboards_dir / "rooms" / "kitchen.yaml").exists()
        assert layout.mosquitto_conf in report.paths_with(ArtifactOutcome.COPIED)

    def test_config_values_seed_env(self, host, config):
        config.timezone = "UTC"
        config.influxdb_org = "cabin"
        FilesystemReconciler(config).reconcile()

        env = config.layout.env_file.read_text()
        assert "TZ=UTC\n" in env
        assert "INFLUXDB_ORG=cabin\n" in env

    def test_data_dir_collision(self, host, config):
        (config.project_dir / "data").write_text("not a directory")
        with pytest.raises(PathCollisionError):
            FilesystemReconciler(config).reconcile()

    def test_catalog_paths_unique(self, config):
        paths = [a.path for a in build_artifacts(config)]
        assert len(paths) == len(set(paths))


class TestFixPermissions:
    """Tests for the container-owned directory fix-up."""

    @pytest.fixture(autouse=True)
    def foreign_owner(self, monkeypatch):
        monkeypatch.setattr(
            "homestack.bootstrap.filesystem._tree_matches", lambda root, uid, gid: False
        )

    def test_chown_and_chmod_run(self, host, config):
        FilesystemReconciler(config, artifacts=[]).reconcile()

        for directory in config.layout.container_owned_directories:
            assert ["chown", "-R", "1000:1000", str(directory)] in host.calls
            assert ["chmod", "-R", "u+rwX,g+rwX", str(directory)] in host.calls

    def test_only_container_directories(self, host, config):
        FilesystemReconciler(config, artifacts=[]).reconcile()
        owned = {str(d) for d in config.layout.container_owned_directories}
        assert {c[-1] for c in host.calls_with("chown")} <= owned

    def test_elevated_when_not_root(self, host, non_root, config):
        FilesystemReconciler(config, artifacts=[]).reconcile()
        assert ["sudo", "chown", "-R", "1000:1000", str(config.layout.nodered_dir)] in host.raw_calls

    def test_refused_chown_is_warning(self, host, config):
        host.fail("chown", stderr="Operation not permitted")

        report = FilesystemReconciler(config, artifacts=[]).reconcile()

        assert report.permissions_fixed == []
        assert len([w for w in report.warnings if "Could not chown" in w]) == 2
        assert not host.ran("chmod")

    def test_matching_tree_skipped(self, host, config, monkeypatch):
        monkeypatch.setattr(
            "homestack.bootstrap.filesystem._tree_matches", lambda root, uid, gid: True
        )
        FilesystemReconciler(config, artifacts=[]).reconcile()
        assert not host.ran("chown")
