"""Flat ``KEY=value`` environment file store.

The compose stack reads its settings from ``.env``. Edits replace only the
line of the key being written; every other line, comments included, is
kept byte-for-byte and in order.
"""

from __future__ import annotations

from pathlib import Path

from ..shared.logging import get_logger
from . import files

logger = get_logger(__name__)


def parse_line(line: str) -> tuple[str, str] | None:
    """Split a ``KEY=value`` line, None for comments and blank lines."""
    stripped = line.strip()
    if not stripped or stripped.startswith("#") or "=" not in line:
        return None
    key, value = line.split("=", 1)
    key = key.strip()
    if not key:
        return None
    return key, value.rstrip("\r\n")


class EnvStore:
    """Ordered key/value store backed by one ``.env`` file."""

    def __init__(self, path: Path):
        """Initialize store.

        Args:
            path: Backing file; it need not exist yet
        """
        self.path = Path(path)

    def _lines(self) -> list[str]:
        text = files.read_text(self.path)
        if text is None:
            return []
        return text.splitlines()

    def exists(self) -> bool:
        return self.path.is_file()

    def get(self, key: str) -> str | None:
        """Value for ``key``, None if the key or the file is absent."""
        for line in self._lines():
            parsed = parse_line(line)
            if parsed and parsed[0] == key:
                return parsed[1]
        return None

    def items(self) -> dict[str, str]:
        """All keys in file order; the first occurrence of a key wins."""
        result: dict[str, str] = {}
        for line in self._lines():
            parsed = parse_line(line)
            if parsed and parsed[0] not in result:
                result[parsed[0]] = parsed[1]
        return result

    def set(self, key: str, value: str) -> bool:
        """Write ``key=value``.

        An existing line is replaced in place (later duplicates of the key
        are dropped); a new key is appended as one line.

        Returns:
            True if the file changed
        """
        lines = self._lines()
        new_line = f"{key}={value}"
        updated: list[str] = []
        found = False

        for line in lines:
            parsed = parse_line(line)
            if parsed and parsed[0] == key:
                if not found:
                    updated.append(new_line)
                    found = True
                continue
            updated.append(line)

        if not found:
            updated.append(new_line)

        if updated == lines:
            return False

        files.write_text(self.path, files.join_lines(updated))
        logger.debug("env_key_written", path=str(self.path), key=key)
        return True
