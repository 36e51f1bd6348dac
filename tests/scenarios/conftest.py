"""Fixtures for bootstrap scenarios."""

from __future__ import annotations

import pytest

from homestack.bootstrap import Bootstrapper


@pytest.fixture
def bootstrapper(host, resolver, config):
    """Bootstrapper wired to the scripted host."""
    return Bootstrapper(config, resolver=resolver)


@pytest.fixture
def fresh_host(host):
    """Debian host with apt but no docker or compose."""
    host.binaries.discard("docker")
    host.respond("docker", "compose", "version", returncode=1, then=0)
    return host
