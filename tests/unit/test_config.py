"""Unit tests for configuration loading."""

from __future__ import annotations

import pytest

from homestack.config import DEFAULT_TIMEZONE, StackConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("TIMEZONE", "DATA_DIR", "INFLUXDB_ORG", "CONTAINER_UID"):
        monkeypatch.delenv(f"HOMESTACK_{key}", raising=False)


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, project):
        config = load_config(project)

        assert config.project_dir == project.resolve()
        assert config.timezone == DEFAULT_TIMEZONE
        assert config.layout.data_dir == project.resolve() / "data"
        assert config.get_source("timezone") == "default"

    def test_config_file(self, project):
        (project / "homestack.yaml").write_text(
            "timezone: UTC\ninfluxdb_org: cabin\ncontainer_uid: 1001\n"
        )

        config = load_config(project)

        assert config.timezone == "UTC"
        assert config.influxdb_org == "cabin"
        assert config.container_uid == 1001
        assert config.get_source("influxdb_org") == "config file"

    def test_env_overrides_file(self, project, monkeypatch):
        (project / "homestack.yaml").write_text("timezone: UTC\n")
        monkeypatch.setenv("HOMESTACK_TIMEZONE", "America/Chicago")

        config = load_config(project)

        assert config.timezone == "America/Chicago"
        assert config.get_source("timezone") == "environment"

    def test_relative_data_dir(self, project, monkeypatch):
        monkeypatch.setenv("HOMESTACK_DATA_DIR", "volumes")
        config = load_config(project)
        assert config.layout.data_dir == project.resolve() / "volumes"

    def test_absolute_data_dir(self, project, tmp_path):
        (project / "homestack.yaml").write_text(f"data_dir: {tmp_path / 'elsewhere'}\n")
        assert load_config(project).data_dir == tmp_path / "elsewhere"

    def test_invalid_yaml_ignored(self, project):
        (project / "homestack.yaml").write_text("timezone: [unclosed\n")
        assert load_config(project).timezone == DEFAULT_TIMEZONE

    def test_non_mapping_ignored(self, project):
        (project / "homestack.yaml").write_text("- a\n- b\n")
        assert load_config(project).timezone == DEFAULT_TIMEZONE

    def test_bad_integer_ignored(self, project, monkeypatch):
        monkeypatch.setenv("HOMESTACK_CONTAINER_UID", "nobody")
        assert load_config(project).container_uid == 1000

    def test_unknown_keys_ignored(self, project):
        (project / "homestack.yaml").write_text("compose_file: other.yml\n")
        config = load_config(project)
        assert not hasattr(config, "compose_file")


class TestStackConfig:
    """Tests for StackConfig."""

    def test_layout_follows_data_dir(self, tmp_path):
        config = StackConfig(project_dir=tmp_path, data_dir=tmp_path / "d")
        assert config.layout.nodered_dir == tmp_path / "d" / "nodered"
