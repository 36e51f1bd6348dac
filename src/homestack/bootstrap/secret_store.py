"""Shared InfluxDB token management.

The token is generated once, before the store initializes. After the
store has written its own state (the init marker), the value already in
``.env`` is what the store authenticated with, so it is returned as-is
forever, even when it still looks like the placeholder.
"""

from __future__ import annotations

import random
import secrets
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..shared.logging import get_logger
from .envstore import EnvStore

logger = get_logger(__name__)

TOKEN_KEY = "INFLUXDB_TOKEN"
ORG_KEY = "INFLUXDB_ORG"
BUCKET_KEY = "INFLUXDB_BUCKET"

PLACEHOLDER_TOKEN = "changeme-token"
TOKEN_BYTES = 32  # 64 hex characters

DEFAULT_ORG = "homestack"
DEFAULT_BUCKET = "home"


class TokenState(Enum):
    """Init state of the store the token belongs to."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"  # Terminal


@dataclass
class IntegrationValues:
    """Values the automation engine needs to reach the store."""

    token: str | None
    org: str
    bucket: str


def generate_token() -> str:
    """Generate a new 64-character hex token."""
    try:
        return secrets.token_hex(TOKEN_BYTES)
    except NotImplementedError:
        # No OS entropy source
        logger.warning("weak_token_source")
        return f"{random.getrandbits(TOKEN_BYTES * 8):0{TOKEN_BYTES * 2}x}"


def token_state(marker_path: Path) -> TokenState:
    if marker_path.exists():
        return TokenState.INITIALIZED
    return TokenState.UNINITIALIZED


def ensure_token(env_store: EnvStore, marker_path: Path) -> str | None:
    """Return the shared token, generating it on first run only.

    Args:
        env_store: Store holding ``INFLUXDB_TOKEN``
        marker_path: Store init marker

    Returns:
        The token in effect; None only if the store is initialized and no
        token was ever stored.
    """
    stored = env_store.get(TOKEN_KEY)

    if token_state(marker_path) is TokenState.INITIALIZED:
        if stored is None or stored == PLACEHOLDER_TOKEN:
            logger.warning(
                "token_kept_after_init",
                marker=str(marker_path),
                stored="missing" if stored is None else "placeholder",
            )
        else:
            logger.debug("token_kept_after_init", marker=str(marker_path))
        return stored

    if stored is not None and stored != PLACEHOLDER_TOKEN:
        logger.debug("token_present", path=str(env_store.path))
        return stored

    token = generate_token()
    env_store.set(TOKEN_KEY, token)
    logger.info("token_generated", path=str(env_store.path))
    return token


class SecretStore:
    """Token and related store settings kept in ``.env``."""

    def __init__(self, env_store: EnvStore, marker_path: Path):
        self.env_store = env_store
        self.marker_path = marker_path

    @property
    def state(self) -> TokenState:
        return token_state(self.marker_path)

    def ensure_token(self) -> str | None:
        return ensure_token(self.env_store, self.marker_path)

    def integration_values(self) -> IntegrationValues:
        """Current token, organization and bucket from ``.env``."""
        return IntegrationValues(
            token=self.env_store.get(TOKEN_KEY),
            org=self.env_store.get(ORG_KEY) or DEFAULT_ORG,
            bucket=self.env_store.get(BUCKET_KEY) or DEFAULT_BUCKET,
        )
