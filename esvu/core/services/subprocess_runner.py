"""
Entry-point runner — the single place installed engines are executed.

Smoke tests run the freshly registered entry point with a tiny
program and compare stdout against a literal.  Every failure mode
(missing file, non-zero exit, timeout) surfaces as ``SmokeTestError``.
"""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path

from esvu.core.errors import SmokeTestError

logger = logging.getLogger(__name__)


def run_entry_point(
    entry: Path,
    args: list[str] | None = None,
    *,
    stdin: str | None = None,
    timeout: int = 30,
    cwd: Path | None = None,
) -> str:
    """Run ``entry`` and return its stdout with the trailing newline removed.

    Args:
        entry: Entry point in the shared bin directory.
        args: Command-line arguments.
        stdin: Text piped to the process.
        timeout: Seconds before the run is abandoned.
        cwd: Working directory.

    Raises:
        SmokeTestError: If the process cannot start, times out, or exits non-zero.
    """
    cmd = [str(entry), *(args or [])]
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            input=stdin,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired as e:
        raise SmokeTestError(f"{entry.name} timed out after {timeout}s") from e
    except OSError as e:
        raise SmokeTestError(f"Cannot run {entry}: {e}") from e

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.debug("%s exited %d in %dms", cmd, result.returncode, elapsed_ms)

    if result.returncode != 0:
        stderr = (result.stderr or "")[-500:].strip()
        raise SmokeTestError(
            f"{entry.name} exited with status {result.returncode}"
            + (f": {stderr}" if stderr else "")
        )

    stdout = result.stdout or ""
    # Strip exactly one trailing line ending.
    if stdout.endswith("\r\n"):
        stdout = stdout[:-2]
    elif stdout.endswith("\n"):
        stdout = stdout[:-1]
    return stdout


def expect_output(
    entry: Path,
    expected: str,
    args: list[str] | None = None,
    *,
    stdin: str | None = None,
    timeout: int = 30,
) -> None:
    """Run ``entry`` and raise ``SmokeTestError`` unless stdout equals ``expected``."""
    actual = run_entry_point(entry, args, stdin=stdin, timeout=timeout)
    if actual.replace("\r\n", "\n") != expected:
        raise SmokeTestError(
            f"{entry.name} printed {actual!r}, expected {expected!r}"
        )
