"""Shared test fixtures for homestack tests.

- FakeHost: scripted stand-in for every host command (subprocess.run) and
  binary lookup (shutil.which), recording what the bootstrap ran
- project: a temporary project directory with a docker-compose.yml
- resolver: a ToolchainResolver pointed at temporary apt/os-release files
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from unittest.mock import patch

import pytest

from homestack.bootstrap import ToolchainResolver
from homestack.bootstrap import process
from homestack.config import StackConfig

COMPOSE_YML = """\
services:
  influxdb:
    image: influxdb:2
  homeassistant:
    image: ghcr.io/home-assistant/home-assistant:stable
"""

DEBIAN_OS_RELEASE = 'PRETTY_NAME="Debian GNU/Linux 13 (trixie)"\nID=debian\nVERSION_ID="13"\n'


@dataclass
class Rule:
    prefix: tuple[str, ...]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    then: int | None = None  # Exit status for every call after the first

    def next_returncode(self) -> int:
        code = self.returncode
        if self.then is not None:
            self.returncode = self.then
        return code


@dataclass
class FakeHost:
    """Scripted host: command prefix -> exit status and output.

    Commands are matched after dropping a leading ``sudo`` or ``sudo -n``;
    the most recently added matching rule wins and unmatched commands
    succeed.
    """

    binaries: set[str] = field(default_factory=set)
    rules: list[Rule] = field(default_factory=list)
    calls: list[list[str]] = field(default_factory=list)
    raw_calls: list[list[str]] = field(default_factory=list)
    inputs: list[str | None] = field(default_factory=list)

    def respond(
        self,
        *prefix: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        then: int | None = None,
    ):
        self.rules.append(Rule(tuple(prefix), returncode, stdout, stderr, then))

    def fail(self, *prefix: str, stderr: str = "failed"):
        self.respond(*prefix, returncode=1, stderr=stderr)

    def run(self, args, *unused, **kwargs):
        args = list(args)
        self.raw_calls.append(args)
        cmd = args[1:] if args and args[0] == "sudo" else args
        if args[:1] == ["sudo"] and cmd[:1] == ["-n"]:
            cmd = cmd[1:]
        self.calls.append(cmd)
        self.inputs.append(kwargs.get("input"))
        for rule in reversed(self.rules):
            if tuple(cmd[: len(rule.prefix)]) == rule.prefix:
                return subprocess.CompletedProcess(
                    args, rule.next_returncode(), rule.stdout, rule.stderr
                )
        return subprocess.CompletedProcess(args, 0, "", "")

    def which(self, name, *unused, **kwargs):
        return f"/usr/bin/{name}" if name in self.binaries else None

    def ran(self, *prefix: str) -> bool:
        return any(tuple(c[: len(prefix)]) == prefix for c in self.calls)

    def calls_with(self, *prefix: str) -> list[list[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]


@pytest.fixture
def host():
    """Fake host with apt-get and a working docker + compose plugin."""
    fake = FakeHost(binaries={"apt-get", "docker"})
    with patch("subprocess.run", side_effect=fake.run):
        with patch("shutil.which", side_effect=fake.which):
            yield fake


@pytest.fixture
def non_root(monkeypatch):
    """Pretend the bootstrap runs as an unprivileged user."""
    monkeypatch.setattr(process.os, "geteuid", lambda: 1000)


@pytest.fixture
def project(tmp_path) -> Path:
    """Project directory holding a docker-compose.yml."""
    project_dir = tmp_path / "homestack"
    project_dir.mkdir()
    (project_dir / "docker-compose.yml").write_text(COMPOSE_YML)
    return project_dir


@pytest.fixture
def config(project) -> StackConfig:
    return StackConfig(project_dir=project)


@pytest.fixture
def apt_root(tmp_path) -> Path:
    """Fake /etc with os-release and apt sources."""
    etc = tmp_path / "etc"
    (etc / "apt" / "sources.list.d").mkdir(parents=True)
    (etc / "apt" / "keyrings").mkdir()
    (etc / "os-release").write_text(DEBIAN_OS_RELEASE)
    (etc / "apt" / "sources.list").write_text(
        "deb http://deb.debian.org/debian trixie main\n"
    )
    return etc


@pytest.fixture
def resolver(apt_root) -> ToolchainResolver:
    return ToolchainResolver(
        os_release=apt_root / "os-release",
        sources_file=apt_root / "apt" / "sources.list",
        sources_dir=apt_root / "apt" / "sources.list.d",
        keyring=apt_root / "apt" / "keyrings" / "docker.gpg",
        user="root",
    )
