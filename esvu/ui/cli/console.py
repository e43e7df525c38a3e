"""
Console status reporter — renders engine progress in the terminal.

One line per event, prefixed with the engine name::

    QuickJS ❯ Downloading https://bellard.org/...
    QuickJS ✔ Installed version 2024-01-13 with entries: quickjs, ...

Downloads get a ``click.progressbar``.
"""

from __future__ import annotations

from contextlib import ExitStack

import click

from esvu.core.observability.status import ProgressHandle, StatusReporter


class ConsoleProgress(ProgressHandle):
    """A click progress bar driven by absolute byte counts."""

    def __init__(self, total: int, label: str):
        super().__init__(total)
        self._stack = ExitStack()
        self._bar = self._stack.enter_context(
            click.progressbar(length=total, label=label, show_percent=True, width=30)
        )

    def update(self, n: int) -> None:
        self._bar.update(n - self.current)
        self.current = n

    def stop(self) -> None:
        self._stack.close()


class ConsoleStatus(StatusReporter):
    """Status reporter that prints to the terminal with click."""

    def __init__(self, prefix: str = "esvu", quiet: bool = False):
        super().__init__(prefix)
        self.quiet = quiet

    def _line(self, symbol: str, message: str, **style) -> str:
        return f"{click.style(self.prefix, bold=True)} {click.style(symbol, **style)} {message}"

    def info(self, message: str) -> None:
        if not self.quiet:
            click.echo(self._line("❯", message, fg="cyan"))

    def warn(self, message: str) -> None:
        click.echo(self._line("!", message, fg="yellow"), err=True)

    def succeed(self, message: str) -> None:
        if not self.quiet:
            click.echo(self._line("✔", message, fg="green"))

    def fail(self, message: str) -> None:
        click.echo(self._line("✖", message, fg="red"), err=True)

    def progress(self, total: int) -> ProgressHandle:
        if self.quiet:
            return super().progress(total)
        return ConsoleProgress(total, label=f"{self.prefix} ❯ Downloading")

    def child(self, prefix: str) -> ConsoleStatus:
        return type(self)(prefix, quiet=self.quiet)
