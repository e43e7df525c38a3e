"""
Home context — the single source of truth for "where does esvu live."

Every core service that needs the esvu home directory imports from
here.  The home is set ONCE at startup by the CLI entry point:

    - CLI:    main.py   → context.set_home(home)
    - Tests:  conftest  → context.set_home(tmp_path)

When nothing has been set, ``get_home()`` falls back to
``default_home()`` (``$ESVU_PATH`` or ``~/.esvu``).

Layout under the home directory::

    <home>/
        bin/            shared entry points (add this to PATH)
        engines/        one install directory per slot
        status.json     persisted installation state
        config.yml      optional user configuration
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

HOME_ENV_VAR = "ESVU_PATH"
STATE_FILE = "status.json"
CONFIG_FILE = "config.yml"

_home: Optional[Path] = None


def default_home() -> Path:
    """Return ``$ESVU_PATH`` if set, else ``~/.esvu``."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".esvu"


def set_home(home: Path | None) -> None:
    """Register the home directory for the current process (None resets)."""
    global _home
    _home = home


def get_home() -> Path:
    """Return the registered home directory, or the default one."""
    return _home if _home is not None else default_home()


def bin_dir() -> Path:
    return get_home() / "bin"


def engines_dir() -> Path:
    return get_home() / "engines"


def state_path() -> Path:
    return get_home() / STATE_FILE


def config_path() -> Path:
    return get_home() / CONFIG_FILE
