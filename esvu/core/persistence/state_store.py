"""
StateStore — the single owner of the in-memory InstallationState.

Loaded lazily on first access, mutated by the orchestrators for the
whole run, flushed to disk exactly once: at normal interpreter exit or
on SIGINT, whichever comes first.

    store = StateStore.get_instance()
    store.install_exit_hooks()
    state = store.state          # loads (or seeds) on first access
    ...                          # orchestrators mutate ``state``
    # → flushed by atexit / SIGINT

The process is single-threaded with respect to state mutation; the
only guard needed is the flush-once flag.
"""

from __future__ import annotations

import atexit
import logging
import signal
import sys
from pathlib import Path
from typing import Callable, Optional

from esvu.core import context
from esvu.core.models.state import InstallationState
from esvu.core.persistence.state_file import load_state, save_state

logger = logging.getLogger(__name__)

# Produces the initial ``selected_engines`` when no state file exists.
SelectionSeed = Callable[[], list[str]]


class StateStore:
    """Lazily loaded, flush-once owner of the installation state."""

    _instance: Optional[StateStore] = None

    def __init__(self, path: Path | None = None, seed: SelectionSeed | None = None):
        self._path = path
        self._seed = seed
        self._state: InstallationState | None = None
        self._fresh = False
        self._flushed = False
        self._hooks_installed = False

    @classmethod
    def get_instance(cls) -> StateStore:
        """Get the process-wide store (created on first call)."""
        if cls._instance is None:
            cls._instance = StateStore()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Forget the process-wide store (tests, re-configured home)."""
        cls._instance = None

    @property
    def path(self) -> Path:
        return self._path or context.state_path()

    @property
    def loaded(self) -> bool:
        return self._state is not None

    @property
    def fresh(self) -> bool:
        """True if the state was constructed rather than read from disk."""
        self.state  # noqa: B018  (forces the lazy load)
        return self._fresh

    def set_seed(self, seed: SelectionSeed | None) -> None:
        """Set the selection seed used if the state has not been loaded yet."""
        self._seed = seed

    @property
    def state(self) -> InstallationState:
        if self._state is None:
            self._state = self._load()
        return self._state

    def _load(self) -> InstallationState:
        state = load_state(self.path)
        if state is not None:
            return state

        self._fresh = True
        selected: list[str] = []
        if self._seed is not None:
            selected = list(dict.fromkeys(self._seed()))
        logger.info("New state with %d selected engine(s)", len(selected))
        return InstallationState(selected_engines=selected)

    # ── Persistence ──────────────────────────────────────────────

    def flush(self) -> bool:
        """Write the state to disk once.  Later calls are no-ops.

        Returns:
            True if this call wrote the file.
        """
        if self._flushed:
            return False
        self._flushed = True
        if self._state is None:
            logger.debug("State never loaded — nothing to flush")
            return False
        save_state(self._state, self.path)
        return True

    def install_exit_hooks(self) -> None:
        """Flush on normal interpreter exit and on SIGINT."""
        if self._hooks_installed:
            return
        self._hooks_installed = True
        atexit.register(self.flush_quietly)
        signal.signal(signal.SIGINT, self._on_interrupt)

    def flush_quietly(self) -> None:
        """Like ``flush``, but a write failure is logged instead of raised."""
        try:
            self.flush()
        except OSError as e:
            logger.error("Could not write state file %s: %s", self.path, e)

    def _on_interrupt(self, signum, _frame) -> None:
        logger.warning("Interrupted — saving state")
        self.flush_quietly()
        sys.exit(128 + signum)
