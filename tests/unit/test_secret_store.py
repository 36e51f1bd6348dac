"""Unit tests for the shared token store."""

from __future__ import annotations

import re
from unittest.mock import patch

import pytest

from homestack.bootstrap import (
    PLACEHOLDER_TOKEN,
    EnvStore,
    SecretStore,
    TokenState,
    ensure_token,
    generate_token,
)

HEX64 = re.compile(r"^[0-9a-f]{64}$")


@pytest.fixture
def env_store(tmp_path):
    path = tmp_path / ".env"
    path.write_text(f"INFLUXDB_ORG=homestack\nINFLUXDB_TOKEN={PLACEHOLDER_TOKEN}\nTZ=UTC\n")
    return EnvStore(path)


@pytest.fixture
def marker(tmp_path):
    return tmp_path / "data" / "influxdb" / "influxd.bolt"


def _initialize(marker):
    marker.parent.mkdir(parents=True, exist_ok=True)
    marker.write_bytes(b"")


class TestGenerateToken:
    """Tests for generate_token."""

    def test_format(self):
        assert HEX64.match(generate_token())

    def test_uniqueness(self):
        tokens = {generate_token() for _ in range(50)}
        assert len(tokens) == 50

    def test_fallback_without_entropy_source(self):
        with patch("secrets.token_hex", side_effect=NotImplementedError):
            assert HEX64.match(generate_token())


class TestEnsureTokenUninitialized:
    """Marker absent: generate only when missing or placeholder."""

    def test_placeholder_replaced(self, env_store, marker):
        token = ensure_token(env_store, marker)

        assert HEX64.match(token)
        assert token != PLACEHOLDER_TOKEN
        assert env_store.get("INFLUXDB_TOKEN") == token

    def test_only_token_line_changes(self, env_store, marker):
        token = ensure_token(env_store, marker)
        assert env_store.path.read_text() == (
            f"INFLUXDB_ORG=homestack\nINFLUXDB_TOKEN={token}\nTZ=UTC\n"
        )

    def test_second_call_returns_same_token(self, env_store, marker):
        first = ensure_token(env_store, marker)
        second = ensure_token(env_store, marker)
        assert first == second

    def test_missing_token_generated(self, tmp_path, marker):
        store = EnvStore(tmp_path / "empty.env")
        token = ensure_token(store, marker)
        assert HEX64.match(token)
        assert store.get("INFLUXDB_TOKEN") == token

    def test_real_token_kept(self, env_store, marker):
        env_store.set("INFLUXDB_TOKEN", "operator-chosen")
        assert ensure_token(env_store, marker) == "operator-chosen"


class TestEnsureTokenInitialized:
    """Marker present: the stored value is final."""

    @pytest.mark.parametrize(
        "stored",
        [PLACEHOLDER_TOKEN, "a" * 64, "hand-edited value", ""],
    )
    def test_stored_value_returned(self, env_store, marker, stored):
        env_store.set("INFLUXDB_TOKEN", stored)
        before = env_store.path.read_text()
        _initialize(marker)

        assert ensure_token(env_store, marker) == stored
        assert env_store.path.read_text() == before

    def test_missing_token_not_generated(self, tmp_path, marker):
        store = EnvStore(tmp_path / "empty.env")
        _initialize(marker)

        assert ensure_token(store, marker) is None
        assert not store.path.exists()


class TestSecretStore:
    """Tests for SecretStore."""

    def test_state(self, env_store, marker):
        store = SecretStore(env_store, marker)
        assert store.state is TokenState.UNINITIALIZED
        _initialize(marker)
        assert store.state is TokenState.INITIALIZED

    def test_integration_values(self, env_store, marker):
        store = SecretStore(env_store, marker)
        token = store.ensure_token()

        values = store.integration_values()
        assert values.token == token
        assert values.org == "homestack"
        assert values.bucket == "home"  # Default when missing from .env
