"""Shared modules for homestack.

- paths: project/data layout and init markers
- logging: structlog configuration
"""

from .logging import configure_logging, get_logger, level_for_verbosity
from .paths import (
    COMPOSE_FILE_NAME,
    CONFIG_FILE_NAME,
    ENV_FILE_NAME,
    StackLayout,
)

__all__ = [
    # Paths
    "COMPOSE_FILE_NAME",
    "CONFIG_FILE_NAME",
    "ENV_FILE_NAME",
    "StackLayout",
    # Logging
    "configure_logging",
    "get_logger",
    "level_for_verbosity",
]
