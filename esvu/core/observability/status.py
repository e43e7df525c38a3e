"""
Status reporting — the per-engine progress collaborator.

The orchestrator and installers talk to a ``StatusReporter``; they
never print.  The base class here routes everything to ``logging``
(used by tests and by library callers); the CLI swaps in
``ConsoleStatus`` (``esvu.ui.cli.console``) which renders lines and a
progress bar with click.

Interface::

    status.info("Checking version...")
    status.warn("needs Node.js")
    status.succeed("Installed 1.2.3")
    status.fail("Download failed")
    bar = status.progress(total_bytes)
    bar.update(done_bytes)
    bar.stop()
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class ProgressHandle:
    """Byte-level progress for one download.  ``update`` takes the absolute count."""

    def __init__(self, total: int):
        self.total = total
        self.current = 0

    def update(self, n: int) -> None:
        self.current = n

    def stop(self) -> None:
        logger.debug("progress stopped at %d/%d", self.current, self.total)


class StatusReporter:
    """Logging-backed reporter, prefixed with the engine's display name."""

    def __init__(self, prefix: str = "esvu"):
        self.prefix = prefix

    def info(self, message: str) -> None:
        logger.info("%s ❯ %s", self.prefix, message)

    def warn(self, message: str) -> None:
        logger.warning("%s ! %s", self.prefix, message)

    def succeed(self, message: str) -> None:
        logger.info("%s ✔ %s", self.prefix, message)

    def fail(self, message: str) -> None:
        logger.error("%s ✖ %s", self.prefix, message)

    def progress(self, total: int) -> ProgressHandle:
        return ProgressHandle(total)

    def child(self, prefix: str) -> StatusReporter:
        """A reporter of the same kind for another engine."""
        return type(self)(prefix)
