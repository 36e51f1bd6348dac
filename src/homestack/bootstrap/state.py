"""Install state detection.

Read-only view of a project used by ``homestack status``: which
artifacts exist, which one-time initializations already ran, and
whether the token is still a placeholder.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..shared.paths import StackLayout
from . import blocks, files
from .envstore import EnvStore
from .injector import INTEGRATION_KEY
from .secret_store import PLACEHOLDER_TOKEN, TOKEN_KEY, TokenState, token_state


class TokenStatus(Enum):
    MISSING = "missing"
    PLACEHOLDER = "placeholder"
    SET = "set"


@dataclass
class InstallState:
    """Current state of a homestack project."""

    has_compose_file: bool = False
    has_env_file: bool = False
    token_status: TokenStatus = TokenStatus.MISSING
    store_state: TokenState = TokenState.UNINITIALIZED
    webapp_scaffolded: bool = False
    integration_present: bool = False

    @property
    def fresh(self) -> bool:
        return not self.has_env_file and self.store_state is TokenState.UNINITIALIZED


def detect_state(layout: StackLayout) -> InstallState:
    """Detect the install state of a project.

    Args:
        layout: Project layout

    Returns:
        InstallState with current status
    """
    env_store = EnvStore(layout.env_file)
    token = env_store.get(TOKEN_KEY)
    if token is None:
        token_status = TokenStatus.MISSING
    elif token == PLACEHOLDER_TOKEN:
        token_status = TokenStatus.PLACEHOLDER
    else:
        token_status = TokenStatus.SET

    return InstallState(
        has_compose_file=layout.compose_file.exists(),
        has_env_file=env_store.exists(),
        token_status=token_status,
        store_state=token_state(layout.store_marker),
        webapp_scaffolded=layout.webapp_marker.exists(),
        integration_present=blocks.has_block(
            files.read_text(layout.ha_configuration), INTEGRATION_KEY
        ),
    )
