"""
Logging configuration — set up once by the CLI entrypoint.

Diagnostics go to stderr through ``logging``; user-facing status lines
go to stdout through the status reporter.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    --debug  >  --verbose  >  --quiet  >  ESVU_LOG_LEVEL  >  WARNING

Optional file output via ESVU_LOG_FILE / ESVU_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import os
import sys

import click

LEVEL_ENV_VAR = "ESVU_LOG_LEVEL"
FILE_ENV_VAR = "ESVU_LOG_FILE"
FILE_LEVEL_ENV_VAR = "ESVU_LOG_FILE_LEVEL"

# (format, datefmt) by verbosity: WARNING+, INFO, DEBUG
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.WARNING: ("%(message)s", None),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
}

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_LEVEL_COLOURS = {
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


class _ColourFormatter(logging.Formatter):
    """Colour WARNING and above when stderr is a terminal."""

    def __init__(self, fmt: str, datefmt: str | None, colour: bool):
        super().__init__(fmt, datefmt=datefmt)
        self._colour = colour

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        colour = _LEVEL_COLOURS.get(record.levelno)
        if self._colour and colour:
            return click.style(text, fg=colour)
        return text


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level name from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LEVEL_ENV_VAR, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional log file path (default: ``$ESVU_LOG_FILE``).
        log_file_level: Level for the log file (default: ``$ESVU_LOG_FILE_LEVEL``,
            then the console level).
    """
    numeric_level = _parse_level(level)
    log_file = log_file or os.environ.get(FILE_ENV_VAR)
    log_file_level = log_file_level or os.environ.get(FILE_LEVEL_ENV_VAR)

    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _CONSOLE_FORMATS[logging.DEBUG]
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _CONSOLE_FORMATS[logging.INFO]
    else:
        fmt, datefmt = _CONSOLE_FORMATS[logging.WARNING]

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(_ColourFormatter(fmt, datefmt, colour=sys.stderr.isatty()))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective_level = numeric_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
