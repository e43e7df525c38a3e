"""
Install / update / uninstall orchestration — the engine lifecycle.

Every engine install walks the same state machine::

    resolving_version → checking_up_to_date → downloading → extracting
        → installing → testing → committing → cleaning_up → done

with ``failed`` as the terminal state for any error.  The slot's record
is written only after the smoke test passes; a failed install leaves
the previous record (and state) untouched.  Errors never escape an
operation: they are logged, reported on the status reporter, and
returned in an ``OperationResult``.

Bulk updates run the selected engines strictly one after another; one
engine's failure never stops the rest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from esvu.core import context
from esvu.core.config.loader import Settings
from esvu.core.errors import EsvuError, NotInstalledError, UnknownEngineError
from esvu.core.models.state import LATEST, InstallationState, slot_key
from esvu.core.observability.status import StatusReporter
from esvu.core.services import fs_ops
from esvu.core.services.download import download_artifact
from esvu.engines.base import EngineInstaller
from esvu.engines.registry import EngineCatalog, get_catalog

logger = logging.getLogger(__name__)


class InstallStage(StrEnum):
    """Where an install operation is (or stopped)."""

    RESOLVING_VERSION = "resolving_version"
    CHECKING_UP_TO_DATE = "checking_up_to_date"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    INSTALLING = "installing"
    TESTING = "testing"
    COMMITTING = "committing"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


def parse_identifier(identifier: str) -> tuple[str, str]:
    """Split ``name[@version]`` into ``(name, version)``.

    >>> parse_identifier("v8@11.2")
    ('v8', '11.2')
    >>> parse_identifier("quickjs")
    ('quickjs', 'latest')
    """
    name, sep, version = identifier.strip().partition("@")
    return name, (version if sep and version else LATEST)


@dataclass
class OperationResult:
    """Outcome of one install / update / uninstall of one slot."""

    engine: str
    operation: str
    requested: str = LATEST
    slot: str | None = None
    version: str | None = None
    bin_entries: list[str] = field(default_factory=list)
    stage: InstallStage = InstallStage.RESOLVING_VERSION
    failed_stage: InstallStage | None = None
    up_to_date: bool = False
    error: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.stage == InstallStage.DONE

    def to_dict(self) -> dict:
        result: dict = {
            "engine": self.engine,
            "operation": self.operation,
            "requested": self.requested,
            "ok": self.ok,
            "stage": self.stage.value,
        }
        if self.slot:
            result["slot"] = self.slot
        if self.version:
            result["version"] = self.version
        if self.bin_entries:
            result["bin_entries"] = list(self.bin_entries)
        if self.up_to_date:
            result["up_to_date"] = True
        if self.error:
            result["error"] = self.error
            result["error_type"] = self.error_type
            if self.failed_stage:
                result["failed_stage"] = self.failed_stage.value
        return result


@dataclass
class BatchReport:
    """Outcome of a bulk update over the selected engines."""

    results: list[OperationResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict:
        return {
            "status": "ok" if self.ok else ("partial" if self.succeeded else "failed"),
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


# ── Helpers ─────────────────────────────────────────────────────


def _lookup(name: str, catalog: EngineCatalog | None) -> type[EngineInstaller]:
    installer = (catalog or get_catalog()).get(name)
    if installer is None:
        raise UnknownEngineError(f"Engine {name!r} not recognized")
    return installer


def _fail(result: OperationResult, status: StatusReporter, error: Exception) -> OperationResult:
    result.failed_stage = result.stage
    result.stage = InstallStage.FAILED
    result.error = str(error) or error.__class__.__name__
    result.error_type = error.__class__.__name__
    logger.debug("%s %s failed at %s", result.operation, result.engine, result.failed_stage,
                 exc_info=error)
    status.fail(f"{result.error_type}: {result.error}")
    return result


def _locate_slot(
    installer: type[EngineInstaller],
    version: str,
    state: InstallationState,
) -> str | None:
    """Key of the installed slot addressed by ``version``, resolving if needed."""
    engine_id = installer.descriptor.id
    key = slot_key(engine_id, version)
    if state.get_record(key) is not None:
        return key
    if version == LATEST:
        return None
    resolved = slot_key(engine_id, installer.resolve_version(version))
    return resolved if state.get_record(resolved) is not None else None


def _remove_entries(entries: list[str]) -> None:
    bin_dir = context.bin_dir()
    for entry in entries:
        if not fs_ops.remove_file(bin_dir / entry):
            logger.debug("Bin entry %s already gone", entry)


# ── Install / update ────────────────────────────────────────────


def install(
    identifier: str,
    state: InstallationState,
    *,
    status: StatusReporter | None = None,
    settings: Settings | None = None,
    catalog: EngineCatalog | None = None,
) -> OperationResult:
    """Install ``name[@version]`` into its slot (no-op if already current).

    Args:
        identifier: Engine id or display name, optionally ``@version``.
        state: Installation state to commit into.
        status: Reporter; each engine gets a child prefixed with its name.
        settings: Timeouts (defaults if None).
        catalog: Engine catalog (the discovered one if None).

    Returns:
        OperationResult (never raises for engine or filesystem errors).
    """
    return _install_or_update(
        identifier, state, "install",
        status=status, settings=settings, catalog=catalog,
    )


def update(
    identifier: str,
    state: InstallationState,
    *,
    status: StatusReporter | None = None,
    settings: Settings | None = None,
    catalog: EngineCatalog | None = None,
) -> OperationResult:
    """Like ``install``, but the slot must already be installed."""
    return _install_or_update(
        identifier, state, "update",
        status=status, settings=settings, catalog=catalog,
    )


def _install_or_update(
    identifier: str,
    state: InstallationState,
    operation: str,
    *,
    status: StatusReporter | None,
    settings: Settings | None,
    catalog: EngineCatalog | None,
) -> OperationResult:
    name, version = parse_identifier(identifier)
    status = status or StatusReporter()
    result = OperationResult(engine=name, operation=operation, requested=version)

    try:
        installer = _lookup(name, catalog)
    except UnknownEngineError as e:
        return _fail(result, status.child(name), e)

    result.engine = installer.descriptor.id
    reporter = status.child(installer.descriptor.display_name)

    if operation == "update":
        try:
            if _locate_slot(installer, version, state) is None:
                raise NotInstalledError(f"{identifier} is not installed")
        except EsvuError as e:
            return _fail(result, reporter, e)

    return _run_install(installer, version, state, reporter, settings or Settings(), result)


def _run_install(
    installer_cls: type[EngineInstaller],
    requested: str,
    state: InstallationState,
    status: StatusReporter,
    settings: Settings,
    result: OperationResult,
) -> OperationResult:
    descriptor = installer_cls.descriptor
    pinned = requested != LATEST

    try:
        # ── Resolve ──────────────────────────────────────────────
        result.stage = InstallStage.RESOLVING_VERSION
        status.info("Checking version...")
        version = installer_cls.resolve_version(requested)
        key = slot_key(descriptor.id, version if pinned else LATEST)
        result.slot = key
        result.version = version

        # ── Up to date? ──────────────────────────────────────────
        result.stage = InstallStage.CHECKING_UP_TO_DATE
        previous = state.get_record(key)
        if previous is not None and previous.version == version:
            result.up_to_date = True
            result.bin_entries = list(previous.bin_entries)
            result.stage = InstallStage.DONE
            status.succeed(f"Version {version} is already installed")
            return result

        if previous is not None:
            status.info(f"Updating from {previous.version} to {version}")
        else:
            status.info(f"Installing version {version}")

        for req in installer_cls.external_requirements():
            status.warn(
                f"{descriptor.display_name} requires {req.name} to be installed ({req.url})"
            )

        installer = installer_cls(
            version, status, pinned=pinned, test_timeout=settings.test_timeout,
        )

        succeeded = False
        try:
            # ── Download ─────────────────────────────────────────
            result.stage = InstallStage.DOWNLOADING
            url = installer.get_download_url(version)
            status.info(f"Downloading {url}")
            installer.download_path = download_artifact(
                url, status, timeout=settings.download_timeout,
            )
            installer.extracted_path = installer.download_path.with_name(
                f"{installer.download_path.name}-extracted"
            )

            # ── Extract ──────────────────────────────────────────
            result.stage = InstallStage.EXTRACTING
            fs_ops.ensure_directory(installer.install_path)
            fs_ops.ensure_directory(installer.bin_dir)
            status.info(f"Extracting {installer.download_path}")
            installer.extract()

            # ── Install ──────────────────────────────────────────
            result.stage = InstallStage.INSTALLING
            status.info(f"Installing into {installer.install_path}")
            installer.install()

            # ── Smoke test ───────────────────────────────────────
            result.stage = InstallStage.TESTING
            status.info("Testing...")
            installer.test()

            # ── Commit ───────────────────────────────────────────
            result.stage = InstallStage.COMMITTING
            if previous is not None:
                stale = [e for e in previous.bin_entries if e not in installer.bin_entries]
                if stale:
                    logger.info("Pruning stale entries of %s: %s", key, stale)
                    _remove_entries(stale)
            state.set_record(key, version, installer.bin_entries)
            if not pinned:
                state.select(descriptor.id)
            result.bin_entries = list(installer.bin_entries)
            succeeded = True
        finally:
            # ── Clean up ─────────────────────────────────────────
            if succeeded:
                result.stage = InstallStage.CLEANING_UP
            installer.cleanup()

    except (EsvuError, OSError) as e:
        return _fail(result, status, e)
    except Exception as e:
        logger.exception("Unexpected error installing %s", descriptor.id)
        return _fail(result, status, e)

    result.stage = InstallStage.DONE
    entries = ", ".join(result.bin_entries) or "(none)"
    status.succeed(f"Installed version {result.version} with entries: {entries}")
    return result


# ── Uninstall ───────────────────────────────────────────────────


def uninstall(
    identifier: str,
    state: InstallationState,
    *,
    status: StatusReporter | None = None,
    catalog: EngineCatalog | None = None,
) -> OperationResult:
    """Remove the slot addressed by ``name[@version]``: entries, files, record.

    An engine no longer in the catalog can still be uninstalled by its
    exact slot key.
    """
    name, version = parse_identifier(identifier)
    status = status or StatusReporter()
    result = OperationResult(engine=name, operation="uninstall", requested=version)
    reporter = status.child(name)

    try:
        installer = (catalog or get_catalog()).get(name)
        if installer is not None:
            engine_id = installer.descriptor.id
            reporter = status.child(installer.descriptor.display_name)
            key = _locate_slot(installer, version, state)
        else:
            engine_id = name
            key = slot_key(name, version)
            if state.get_record(key) is None:
                raise UnknownEngineError(f"Engine {name!r} not recognized")

        result.engine = engine_id
        if key is None:
            raise NotInstalledError(f"{identifier} is not installed")
        record = state.get_record(key)
        if record is None:
            raise NotInstalledError(f"{identifier} is not installed")

        result.slot = key
        result.version = record.version
        result.bin_entries = list(record.bin_entries)

        reporter.info(f"Removing {key} ({record.version})")
        _remove_entries(record.bin_entries)
        fs_ops.remove_tree(context.engines_dir() / key)

        if key == engine_id:
            state.deselect(engine_id)
        state.remove_record(key)
    except (EsvuError, OSError) as e:
        return _fail(result, reporter, e)

    result.stage = InstallStage.DONE
    reporter.succeed(f"Uninstalled {key}")
    return result


# ── Bulk ────────────────────────────────────────────────────────


def update_all(
    state: InstallationState,
    *,
    status: StatusReporter | None = None,
    settings: Settings | None = None,
    catalog: EngineCatalog | None = None,
) -> BatchReport:
    """Install or update the "latest" slot of every selected engine, in order."""
    status = status or StatusReporter()
    report = BatchReport()

    for engine_id in list(state.selected_engines):
        try:
            result = install(
                engine_id, state, status=status, settings=settings, catalog=catalog,
            )
        except Exception as e:
            # One broken engine must not stop the rest of the batch.
            logger.exception("Unexpected error updating %s", engine_id)
            result = _fail(
                OperationResult(engine=engine_id, operation="install"),
                status.child(engine_id),
                e,
            )
        report.results.append(result)

    logger.info(
        "Bulk update finished: %d succeeded, %d failed", report.succeeded, report.failed,
    )
    return report
