"""InfluxDB integration for Home Assistant.

Appends the ``influxdb:`` block to ``configuration.yaml`` and keeps the
three values it references in ``secrets.yaml``. The block only holds
``!secret`` indirections, so ``configuration.yaml`` can be committed while
``secrets.yaml`` stays host-local.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..shared.logging import get_logger
from . import blocks, files
from .secret_store import PLACEHOLDER_TOKEN, IntegrationValues

logger = get_logger(__name__)

INTEGRATION_KEY = "influxdb"

TOKEN_SECRET = "influxdb_token"
ORG_SECRET = "influxdb_org"
BUCKET_SECRET = "influxdb_bucket"
SECRET_NAMES = (TOKEN_SECRET, ORG_SECRET, BUCKET_SECRET)

INTEGRATION_BLOCK = f"""\
{INTEGRATION_KEY}:
  api_version: 2
  host: 127.0.0.1
  port: 8086
  ssl: false
  token: !secret {TOKEN_SECRET}
  organization: !secret {ORG_SECRET}
  bucket: !secret {BUCKET_SECRET}
"""


@dataclass
class InjectionResult:
    """What ensure_integration changed."""

    block_appended: bool = False
    secrets_written: list[str] = field(default_factory=list)
    secrets_missing: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.block_appended or bool(self.secrets_written)


def _secret_values(values: IntegrationValues) -> dict[str, str | None]:
    return {
        TOKEN_SECRET: values.token,
        ORG_SECRET: values.org,
        BUCKET_SECRET: values.bucket,
    }


def ensure_secrets(secrets_file: Path, wanted: dict[str, str | None]) -> InjectionResult:
    """Make sure each name has a ``name: "value"`` line in ``secrets_file``.

    Existing lines are kept unless their value is the placeholder token,
    in which case every line for that name is replaced by the live value.
    """
    result = InjectionResult()
    text = files.read_text(secrets_file)
    lines = text.splitlines() if text else []
    original = list(lines)

    for name, value in wanted.items():
        indexes = blocks.find_key(lines, name)
        is_placeholder = any(
            blocks.read_value(lines[i]) == PLACEHOLDER_TOKEN for i in indexes
        )
        if indexes and not is_placeholder:
            continue
        if value is None:
            logger.warning("secret_value_unknown", path=str(secrets_file), name=name)
            result.secrets_missing.append(name)
            continue
        if is_placeholder:
            lines = [line for i, line in enumerate(lines) if i not in indexes]
            logger.info("secret_placeholder_replaced", path=str(secrets_file), name=name)
        lines.append(blocks.quoted_line(name, value))
        result.secrets_written.append(name)

    if lines != original:
        files.write_text(secrets_file, files.join_lines(lines))
    return result


def ensure_integration(
    target_config: Path,
    secrets_file: Path,
    values: IntegrationValues,
) -> InjectionResult:
    """Wire Home Assistant to InfluxDB without touching unrelated content.

    Args:
        target_config: Home Assistant ``configuration.yaml``
        secrets_file: Home Assistant ``secrets.yaml``
        values: Token, organization and bucket to publish

    Returns:
        InjectionResult describing the writes made
    """
    block_appended = blocks.ensure_block(target_config, INTEGRATION_KEY, INTEGRATION_BLOCK)
    if block_appended:
        logger.info("integration_block_appended", path=str(target_config))
    else:
        logger.debug("integration_block_present", path=str(target_config))

    result = ensure_secrets(secrets_file, _secret_values(values))
    result.block_appended = block_appended
    return result


class ConfigInjector:
    """Manager for the Home Assistant side of the InfluxDB integration."""

    def __init__(self, target_config: Path, secrets_file: Path):
        """Initialize injector.

        Args:
            target_config: Home Assistant ``configuration.yaml``
            secrets_file: Home Assistant ``secrets.yaml``
        """
        self.target_config = target_config
        self.secrets_file = secrets_file

    def inject(self, values: IntegrationValues) -> InjectionResult:
        return ensure_integration(self.target_config, self.secrets_file, values)

    @property
    def is_injected(self) -> bool:
        """Check if the integration block is already present."""
        return blocks.has_block(files.read_text(self.target_config), INTEGRATION_KEY)
