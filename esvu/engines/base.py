"""
Engine installer base — the contract every engine implements.

The orchestrator only talks to engines through this interface, never
to a specific distribution's layout.  One subclass per engine supplies:

    _resolve_version(requested)   "latest" → concrete version (classmethod)
    get_download_url(version)     artifact URL for this platform
    extract()                     download_path → extracted_path
    install()                     extracted_path → install_path + entry points
    test()                        run the entry point, compare stdout

To add an engine:
    1. Subclass EngineInstaller in a new module under ``esvu/engines/``
    2. Set ``descriptor`` and implement the five methods above
    3. Nothing else — the catalog discovers it at startup

Entry points land in the shared bin directory.  A "latest" slot uses
natural names (``v8``); a pinned slot appends its version (``v8-11.2.214``)
so it can sit next to the "latest" slot and other pinned versions.
"""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

from esvu.core import context
from esvu.core.errors import (
    ExtractionError,
    UnsupportedPlatformError,
    VersionResolutionError,
)
from esvu.core.models.engine import EngineDescriptor, ExternalRequirement
from esvu.core.models.state import LATEST, slot_key
from esvu.core.observability.status import StatusReporter
from esvu.core.services import fs_ops
from esvu.core.services.platform_detect import current_platform, is_windows
from esvu.core.services.subprocess_runner import expect_output

logger = logging.getLogger(__name__)

# Extensions kept at the end of an entry name when a version suffix is added.
_ENTRY_EXTENSIONS = (".exe", ".cmd", ".bat")


class EngineInstaller(ABC):
    """Abstract base class for all engine installers.

    An instance is one install operation for one slot: it owns the
    temp download/extraction paths, the slot's install directory, and
    the entry points registered so far.  It is discarded after cleanup.
    """

    descriptor: ClassVar[EngineDescriptor]

    def __init__(
        self,
        version: str,
        status: StatusReporter | None = None,
        *,
        pinned: bool = False,
        test_timeout: int = 30,
    ):
        self.version = version
        self.pinned = pinned
        self.status = status or StatusReporter(self.descriptor.display_name)
        self.test_timeout = test_timeout

        self.download_path: Path | None = None
        self.extracted_path: Path | None = None
        self.install_path = context.engines_dir() / self.slot
        self.bin_dir = context.bin_dir()

        self.bin_entries: list[str] = []
        self.bin_path: Path | None = None
        self.test_programs: list[Path] = []

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} slot={self.slot!r}>"

    @property
    def slot(self) -> str:
        return slot_key(self.descriptor.id, self.version if self.pinned else LATEST)

    # ── Capability (class level) ────────────────────────────────

    @classmethod
    def platform(cls) -> str:
        return current_platform()

    @classmethod
    def is_supported(cls) -> bool:
        return cls.descriptor.supports(cls.platform())

    @classmethod
    def install_by_default(cls) -> bool:
        """Whether a bulk "all engines" selection includes this engine."""
        return cls.is_supported()

    @classmethod
    def external_requirements(cls) -> tuple[ExternalRequirement, ...]:
        """Advisory requirements that apply on the current platform."""
        return cls.descriptor.external_requirements

    @classmethod
    def resolve_version(cls, requested: str) -> str:
        """Turn ``"latest"`` or a partial version into a concrete version.

        Raises:
            VersionResolutionError: No build for this platform, upstream
                unreachable, or upstream metadata in an unexpected shape.
        """
        name = cls.descriptor.display_name
        try:
            version = cls._resolve_version(requested)
        except VersionResolutionError:
            raise
        except UnsupportedPlatformError as e:
            raise VersionResolutionError(str(e)) from e
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise VersionResolutionError(
                f"Unexpected version metadata for {name}: {e!r}"
            ) from e

        version = str(version).strip() if version is not None else ""
        if not version or version == LATEST:
            raise VersionResolutionError(f"Could not resolve a concrete {name} version")
        return version

    @classmethod
    @abstractmethod
    def _resolve_version(cls, requested: str) -> str:
        """Engine-specific version lookup (may raise anything; wrapped above)."""

    # ── Lifecycle ───────────────────────────────────────────────

    @abstractmethod
    def get_download_url(self, version: str) -> str:
        """Artifact URL for ``version`` on the current platform.

        Raises:
            UnsupportedPlatformError: No artifact for this platform/version.
        """

    @abstractmethod
    def extract(self) -> None:
        """Expand ``download_path`` into ``extracted_path`` (replacing it)."""

    @abstractmethod
    def install(self) -> None:
        """Copy files into ``install_path`` and register entry points."""

    @abstractmethod
    def test(self) -> None:
        """Run the installed entry point; raise ``SmokeTestError`` on bad output."""

    def cleanup(self) -> None:
        """Delete the temp archive, extraction directory and test programs.  Best-effort."""
        for path in (self.download_path, self.extracted_path, *self.test_programs):
            if path is None:
                continue
            try:
                fs_ops.remove_tree(path)
            except OSError as e:
                logger.warning("Cleanup of %s failed: %s", path, e)

    # ── Platform helpers ────────────────────────────────────────

    @classmethod
    def unsupported(cls, detail: str = "") -> UnsupportedPlatformError:
        msg = f"No {cls.descriptor.display_name} builds available for {cls.platform()}"
        return UnsupportedPlatformError(f"{msg} ({detail})" if detail else msg)

    @property
    def on_windows(self) -> bool:
        return is_windows(self.platform())

    # ── Registration ────────────────────────────────────────────

    def entry_name(self, name: str) -> str:
        """Entry-point name for this slot (version-suffixed when pinned)."""
        if not self.pinned:
            return name
        suffix = self.version.replace("/", "-").replace("\\", "-")
        stem, ext = os.path.splitext(name)
        if ext.lower() in _ENTRY_EXTENSIONS:
            return f"{stem}-{suffix}{ext}"
        return f"{name}-{suffix}"

    def _require_extracted(self) -> Path:
        if self.extracted_path is None:
            raise ExtractionError(f"{self.descriptor.display_name}: nothing extracted yet")
        return self.extracted_path

    def register_asset(self, name: str) -> Path:
        """Copy ``name`` from the extraction to the same path under ``install_path``."""
        self.status.info(f"Registering asset {name}")
        src = self._require_extracted() / name
        if not src.is_file():
            raise ExtractionError(
                f"{self.descriptor.display_name} archive has no {name!r}"
            )
        return fs_ops.copy_file(src, self.install_path / name)

    def register_assets(self, pattern: str) -> list[Path]:
        """Register every extracted file matching ``pattern``."""
        root = self._require_extracted()
        return [
            self.register_asset(match.relative_to(root).as_posix())
            for match in fs_ops.expand_glob(root, pattern)
        ]

    def register_binary(self, name: str, alias: str | None = None) -> Path:
        """Register ``name`` as an asset and expose it as entry point ``alias``."""
        installed = self.register_asset(name)
        fs_ops.make_executable(installed)
        return self.link_binary(installed, os.path.basename(alias or name))

    def link_binary(self, target: Path, alias: str) -> Path:
        """Expose an already-installed file as entry point ``alias``."""
        entry = self.entry_name(alias)
        self.status.info(f"Registering binary {entry}")
        fs_ops.ensure_directory(self.bin_dir)
        link = fs_ops.symlink(target, self.bin_dir / entry)
        self._record_entry(entry)
        return link

    def register_script(self, name: str, body: str) -> Path:
        """Write a launcher that runs ``body`` with the caller's arguments."""
        if self.on_windows:
            entry = self.entry_name(f"{name}.cmd")
            source = f"@echo off\r\n{body} %*\r\n"
        else:
            entry = self.entry_name(name)
            source = f'#!/usr/bin/env bash\n{body} "$@"\n'
        self.status.info(f"Registering script {entry}")
        path = fs_ops.write_executable(self.bin_dir / entry, source)
        self._record_entry(entry)
        return path

    def _record_entry(self, entry: str) -> None:
        if entry not in self.bin_entries:
            self.bin_entries.append(entry)

    # ── Smoke-test helpers ──────────────────────────────────────

    def expect(
        self,
        expected: str,
        args: list[str] | None = None,
        *,
        stdin: str | None = None,
        entry: Path | None = None,
    ) -> None:
        """Run the entry point (default ``bin_path``) and compare stdout."""
        target = entry or self.bin_path
        if target is None:
            raise ExtractionError(f"{self.descriptor.display_name} registered no entry point")
        expect_output(target, expected, args, stdin=stdin, timeout=self.test_timeout)

    def write_test_program(self, program: str) -> Path:
        """Write ``program`` to a temp ``.js`` file for engines that only run files."""
        path = Path(tempfile.gettempdir()) / f"esvu_{self.descriptor.id}_test.js"
        path.write_text(program, encoding="utf-8")
        self.test_programs.append(path)
        return path
