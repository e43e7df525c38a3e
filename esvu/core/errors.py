"""
Error taxonomy for engine operations.

Every error raised inside an install/update/uninstall lifecycle
derives from ``EsvuError``.  The orchestrator catches them at the
single-engine boundary, reports them, and turns them into a failed
``OperationResult`` — they never abort sibling engines in a batch.
"""

from __future__ import annotations


class EsvuError(Exception):
    """Base class for all expected engine-operation failures."""


class UnsupportedPlatformError(EsvuError):
    """No artifact exists for this OS/arch (or this version on it)."""


class VersionResolutionError(EsvuError):
    """Upstream version metadata is unreachable or unparsable."""


class DownloadError(EsvuError):
    """Non-success HTTP status or a broken download stream."""


class ExtractionError(EsvuError):
    """Corrupt archive or unexpected archive layout."""


class SmokeTestError(EsvuError):
    """The freshly installed entry point produced the wrong output."""


class NotInstalledError(EsvuError):
    """An operation targeted a slot with no installed record."""


class UnknownEngineError(EsvuError):
    """The requested engine is not in the catalog."""
