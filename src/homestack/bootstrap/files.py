"""File read/write helpers with elevated fallback.

Managed files can end up owned by root (containers running as root write
into the same data directory). Writes retry through ``tee`` with
elevation for just that one file instead of elevating the whole process.

Text is read as UTF-8 with ``surrogateescape``: bytes that are not UTF-8
(a Latin-1 ``configuration.yaml``) survive a read/write round trip.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from ..errors import FileWriteError
from ..shared.logging import get_logger
from . import process

logger = get_logger(__name__)

ENCODING = process.ENCODING
ENCODING_ERRORS = process.ENCODING_ERRORS


def _write_failed(path: Path, action: str, result) -> FileWriteError:
    return FileWriteError(
        f"Cannot {action} {path}: {process.describe_failure(result)}",
        remediation=f"Fix the ownership of {path} and re-run",
        path=str(path),
    )


def read_text(path: Path) -> str | None:
    """Read a text file, None if it does not exist or cannot be read."""
    try:
        return path.read_text(encoding=ENCODING, errors=ENCODING_ERRORS)
    except FileNotFoundError:
        return None
    except (IsADirectoryError, NotADirectoryError):
        return None
    except PermissionError:
        result = process.run(process.privileged(["cat", str(path)]))
        if result.returncode != 0:
            logger.warning("file_unreadable", path=str(path), reason=process.describe_failure(result))
            return None
        return result.stdout


def write_text(path: Path, content: str) -> None:
    """Replace a file's content, elevating only this write if needed."""
    try:
        path.write_text(content, encoding=ENCODING, errors=ENCODING_ERRORS)
        return
    except PermissionError:
        logger.info("elevated_write", path=str(path))

    result = process.run(process.privileged(["tee", str(path)]), input=content)
    if result.returncode != 0:
        raise _write_failed(path, "write", result)


def append_text(path: Path, content: str) -> None:
    """Append to a file, elevating only this write if needed."""
    try:
        with open(path, "a", encoding=ENCODING, errors=ENCODING_ERRORS) as f:
            f.write(content)
        return
    except PermissionError:
        logger.info("elevated_append", path=str(path))

    result = process.run(process.privileged(["tee", "-a", str(path)]), input=content)
    if result.returncode != 0:
        raise _write_failed(path, "append to", result)


def copy_file(source: Path, path: Path) -> None:
    """Copy ``source`` over ``path`` byte for byte, elevating if needed."""
    try:
        shutil.copyfile(source, path)
        return
    except PermissionError:
        logger.info("elevated_copy", path=str(path), source=str(source))

    result = process.run(process.privileged(["cp", str(source), str(path)]))
    if result.returncode != 0:
        raise _write_failed(path, "copy to", result)


def same_content(source: Path, path: Path) -> bool:
    """True if ``path`` exists with exactly the bytes of ``source``."""
    try:
        return path.is_file() and path.read_bytes() == source.read_bytes()
    except PermissionError:
        return process.run(process.privileged(["cmp", "-s", str(source), str(path)])).returncode == 0


def chmod(path: Path, mode: int) -> None:
    """Set ``path``'s mode, elevating if the file is not ours."""
    try:
        path.chmod(mode)
        return
    except PermissionError:
        logger.info("elevated_chmod", path=str(path), mode=f"{mode:o}")

    result = process.run(process.privileged(["chmod", f"{mode:o}", str(path)]))
    if result.returncode != 0:
        raise _write_failed(path, "set the mode of", result)


def join_lines(lines: list[str]) -> str:
    """Join lines back into file content with a trailing newline."""
    if not lines:
        return ""
    return "\n".join(lines) + "\n"
