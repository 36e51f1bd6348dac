"""External process helpers.

Every host command the bootstrap runs goes through :func:`run`, which
never raises: a missing binary is reported as exit status 127 and a
timeout as 124, so callers only ever look at ``returncode``.

Output and input are decoded as UTF-8 with ``surrogateescape``, the same
as :mod:`homestack.bootstrap.files`, so bytes that are not UTF-8 pass
through ``cat``/``tee`` unchanged.
"""

from __future__ import annotations

import os
import shlex
import subprocess

EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124

ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"


def elevation_prefix(interactive: bool = True) -> list[str]:
    """Prefix needed to run a command with root privileges.

    With ``interactive=False`` sudo fails instead of prompting for a
    password.
    """
    if os.geteuid() == 0:
        return []
    return ["sudo"] if interactive else ["sudo", "-n"]


def privileged(args: list[str]) -> list[str]:
    """Return ``args`` wrapped in the elevation prefix."""
    return elevation_prefix() + list(args)


def run(
    args: list[str],
    input: str | None = None,
    cwd: str | os.PathLike | None = None,
    timeout: float | None = None,
) -> subprocess.CompletedProcess:
    """Run a command to completion, capturing text output."""
    try:
        return subprocess.run(
            args,
            input=input,
            cwd=cwd,
            capture_output=True,
            encoding=ENCODING,
            errors=ENCODING_ERRORS,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        return subprocess.CompletedProcess(args, EXIT_NOT_FOUND, "", str(e))
    except subprocess.TimeoutExpired:
        return subprocess.CompletedProcess(
            args, EXIT_TIMEOUT, "", f"timed out after {timeout}s: {shlex.join(args)}"
        )


def succeeds(args: list[str], timeout: float | None = 30) -> bool:
    """Probe a command, True if it exits 0."""
    return run(args, timeout=timeout).returncode == 0


def describe_failure(result: subprocess.CompletedProcess) -> str:
    """Short human-readable reason for a failed command."""
    output = (result.stderr or result.stdout or "").strip()
    if output:
        return output.splitlines()[-1]
    return f"exit status {result.returncode}"
