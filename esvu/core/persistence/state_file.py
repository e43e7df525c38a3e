"""
State file persistence — atomic read/write for InstallationState.

State is stored as JSON in ``<home>/status.json``.  Writes are atomic
(write to temp file, then rename) so a crash mid-write never leaves a
half-written state file behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from esvu.core.models.state import InstallationState

logger = logging.getLogger(__name__)


def load_state(path: Path) -> InstallationState | None:
    """Load installation state from a JSON file.

    Args:
        path: Path to the state JSON file.

    Returns:
        The parsed state, or None if the file is missing or unusable
        (the caller decides how to build a fresh one).
    """
    if not path.is_file():
        logger.info("No state file at %s — starting fresh", path)
        return None

    try:
        raw = path.read_text(encoding="utf-8")
        data = json.loads(raw)
        state = InstallationState.model_validate(data)
        logger.debug(
            "Loaded state from %s (%d selected, %d installed)",
            path, len(state.selected_engines), len(state.installed),
        )
        return state
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s: %s — starting fresh", path, e)
        return None
    except Exception as e:
        logger.warning("Cannot load state from %s: %s — starting fresh", path, e)
        return None


def save_state(state: InstallationState, path: Path) -> None:
    """Save installation state to a JSON file (atomic write).

    Uses write-to-temp-then-rename to prevent corruption.

    Args:
        state: The state to save.
        path: Target path for the state file.
    """
    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    content = json.dumps(state.to_json_dict(), indent=2, ensure_ascii=False) + "\n"

    # Atomic write: temp file in same directory, then rename
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=".status_",
            suffix=".tmp",
        )
        os.close(fd)
        tmp = Path(tmp_path)
        try:
            tmp.write_text(content, encoding="utf-8")
            tmp.replace(path)
            logger.debug("State saved to %s", path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
    except Exception as e:
        logger.error("Failed to save state to %s: %s", path, e)
        raise
