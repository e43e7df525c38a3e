"""
Filesystem utilities — the side-effecting helpers the installers use.

Directory creation, existence checks, symlink replacement, recursive
removal, and archive extraction dispatch (zip / tar).

``symlink()`` is the ONLY place an entry-point link is replaced.  An
older version's link may already sit at the destination; it is removed
first (a missing destination is fine) and the new link takes its place.
"""

from __future__ import annotations

import logging
import lzma
import os
import shutil
import stat
import tarfile
import zipfile
import zlib
from pathlib import Path

from esvu.core.errors import ExtractionError

logger = logging.getLogger(__name__)

# Raised by the decompressors for damaged streams or unsupported members.
_DECODE_ERRORS = (zlib.error, lzma.LZMAError, NotImplementedError, RuntimeError)

_TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.xz", ".txz", ".tar.bz2", ".tbz2", ".gz", ".xz", ".bz2")


def file_exists(path: Path) -> bool:
    """True if anything (file, dir, or symlink — even dangling) is at ``path``."""
    return path.exists() or path.is_symlink()


def ensure_directory(path: Path) -> Path:
    """Create ``path`` (and parents) if missing; return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def remove_file(path: Path) -> bool:
    """Delete a file or symlink.  Returns False if it did not exist."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug("Removed %s", path)
    return True


def remove_tree(path: Path) -> bool:
    """Recursively delete a directory.  Returns False if it did not exist."""
    if path.is_symlink() or path.is_file():
        return remove_file(path)
    if not file_exists(path):
        return False
    shutil.rmtree(path, onexc=_retry_writable)
    logger.debug("Removed tree %s", path)
    return True


def _retry_writable(func, target, _exc) -> None:
    # Read-only files (common in extracted archives on Windows) block rmtree.
    os.chmod(target, stat.S_IWRITE)
    func(target)


def symlink(target: Path, dest: Path) -> Path:
    """Point ``dest`` at ``target``, replacing whatever was there."""
    remove_file(dest)
    os.symlink(target, dest)
    logger.debug("Linked %s → %s", dest, target)
    return dest


def copy_file(src: Path, dest: Path) -> Path:
    """Copy one file (with permission bits), creating parent directories."""
    ensure_directory(dest.parent)
    # dest may be a symlink left by an older layout; never write through it.
    remove_file(dest)
    shutil.copy2(src, dest)
    return dest


def write_executable(path: Path, content: str) -> Path:
    """Write a text file and mark it executable (0755)."""
    ensure_directory(path.parent)
    remove_file(path)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)
    os.chmod(path, 0o755)
    return path


def make_executable(path: Path) -> None:
    mode = path.stat().st_mode
    os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def expand_glob(root: Path, pattern: str) -> list[Path]:
    """Files under ``root`` matching ``pattern`` (``**`` recurses), sorted."""
    return sorted(p for p in root.glob(pattern) if p.is_file())


# ── Archive extraction ─────────────────────────────────────────


def unzip(archive: Path, dest: Path) -> Path:
    """Extract a zip archive into ``dest`` (replaced if it already exists).

    Unix permission bits stored in the archive are re-applied; the
    stdlib ``zipfile`` drops them, and engine binaries need their
    executable bit.
    """
    _reset_directory(dest)
    try:
        with zipfile.ZipFile(archive, "r") as zf:
            for info in zf.infolist():
                extracted = Path(zf.extract(info, dest))
                mode = (info.external_attr >> 16) & 0o777
                if mode and not info.is_dir():
                    os.chmod(extracted, mode)
    except (zipfile.BadZipFile, OSError, EOFError, *_DECODE_ERRORS) as e:
        raise ExtractionError(f"Cannot unzip {archive}: {e}") from e
    logger.debug("Unzipped %s → %s", archive, dest)
    return dest


def untar(archive: Path, dest: Path) -> Path:
    """Extract a (possibly compressed) tarball into ``dest`` (replaced if present)."""
    _reset_directory(dest)
    try:
        with tarfile.open(archive, "r:*") as tf:
            tf.extractall(dest, filter="tar")
    except (tarfile.TarError, OSError, EOFError, *_DECODE_ERRORS) as e:
        raise ExtractionError(f"Cannot untar {archive}: {e}") from e
    logger.debug("Untarred %s → %s", archive, dest)
    return dest


def extract_archive(archive: Path, dest: Path) -> Path:
    """Dispatch to ``unzip`` or ``untar`` based on the archive's name."""
    name = archive.name.lower()
    if name.endswith(".zip"):
        return unzip(archive, dest)
    if name.endswith(_TAR_SUFFIXES):
        return untar(archive, dest)
    if zipfile.is_zipfile(archive):
        return unzip(archive, dest)
    if tarfile.is_tarfile(archive):
        return untar(archive, dest)
    raise ExtractionError(f"Unrecognised archive format: {archive}")


def _reset_directory(path: Path) -> None:
    # Stale extractions from an interrupted run are overwritten, never merged.
    remove_tree(path)
    ensure_directory(path)
