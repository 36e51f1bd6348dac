"""Logging configuration for homestack.

Events go to stderr so they never mix with the setup summary printed on
stdout. Interactive runs get structlog's console renderer (colored only
on a terminal, no timestamps); ``--json-logs`` switches to one JSON object
per line with an ISO timestamp for provisioning tools that collect them.
"""

import logging
import sys

import structlog

VERBOSITY_LEVELS = ("warning", "info", "debug")


def level_for_verbosity(verbose: int, default: str = "info") -> str:
    """Map a ``-v`` count onto a log level name.

    No flag keeps ``default``; each ``-v`` steps one level more verbose.
    """
    start = VERBOSITY_LEVELS.index(default) if default in VERBOSITY_LEVELS else 0
    return VERBOSITY_LEVELS[min(start + verbose, len(VERBOSITY_LEVELS) - 1)]


def configure_logging(verbose: int = 0, quiet: bool = False, json_output: bool = False) -> None:
    """Configure stdlib logging and structlog once per CLI invocation.

    Args:
        verbose: Number of ``-v`` flags
        quiet: Only warnings and errors; wins over ``verbose``
        json_output: Render JSON lines instead of console output
    """
    level = "warning" if quiet else level_for_verbosity(verbose)
    log_level = getattr(logging, level.upper())

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    logging.basicConfig(level=log_level, handlers=[handler], format="%(message)s", force=True)

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors += [
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger named after the calling module."""
    return structlog.get_logger(name)
