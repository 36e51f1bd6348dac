"""Line-based edits of YAML-like config files.

Blocks and keys are found with start-of-line, whitespace-tolerant key
matches rather than a YAML parse. Home Assistant configs use custom tags
(``!secret``, ``!include``) and hand formatting that a load/dump round
trip would lose, so unrelated content is never touched.
"""

from __future__ import annotations

import re
from pathlib import Path

from ..errors import FileWriteError
from . import files


def key_pattern(key: str) -> re.Pattern[str]:
    """Pattern matching ``key:`` at the start of a line, indentation allowed."""
    return re.compile(rf"^[ \t]*{re.escape(key)}[ \t]*:", re.MULTILINE)


def has_block(text: str | None, key: str) -> bool:
    """True if ``text`` contains a ``key:`` line."""
    if not text:
        return False
    return key_pattern(key).search(text) is not None


def append_block(text: str, block: str) -> str:
    """Return ``text`` with ``block`` appended after one blank line."""
    block = block.strip("\n") + "\n"
    if not text:
        return block
    if not text.endswith("\n"):
        text += "\n"
    if not text.endswith("\n\n"):
        text += "\n"
    return text + block


def ensure_block(path: Path, key: str, block: str) -> bool:
    """Append ``block`` to ``path`` unless a ``key:`` line already exists.

    A missing or empty file is written holding just the block; otherwise
    only the new lines are appended and existing bytes are left as they are.

    Returns:
        True if the file was written
    """
    text = files.read_text(path)
    if has_block(text, key):
        return False
    if text is None and path.exists():
        raise FileWriteError(
            f"Cannot read {path}",
            remediation=f"Fix the ownership of {path} and re-run",
            path=str(path),
        )
    if not text:
        files.write_text(path, append_block("", block))
    else:
        files.append_text(path, append_block(text, block)[len(text):])
    return True


_VALUE_PATTERN = re.compile(r"^[ \t]*([^\s#:][^:]*?)[ \t]*:[ \t]*(.*?)[ \t]*$")


def parse_value(raw: str) -> str:
    """Strip one level of matching quotes from a scalar value."""
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ("'", '"'):
        return raw[1:-1]
    return raw


def find_key(lines: list[str], key: str) -> list[int]:
    """Indexes of non-comment lines assigning ``key``."""
    pattern = key_pattern(key)
    return [
        i
        for i, line in enumerate(lines)
        if not line.lstrip().startswith("#") and pattern.match(line)
    ]


def read_value(line: str) -> str | None:
    """Value of a ``key: value`` line, None if the line is not one."""
    match = _VALUE_PATTERN.match(line)
    if not match:
        return None
    return parse_value(match.group(2))


def quoted_line(key: str, value: str) -> str:
    """Render a ``key: "value"`` line."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'{key}: "{escaped}"'
