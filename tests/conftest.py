"""
Shared test fixtures and configuration.

Every test gets its own esvu home under ``tmp_path`` and a fresh
state store.  Exit hooks are neutralised so nothing is written at
interpreter exit.
"""

import logging
import zipfile
from pathlib import Path

import pytest

from esvu.core import context
from esvu.core.models.engine import EngineDescriptor
from esvu.core.observability.status import StatusReporter
from esvu.core.persistence import state_store
from esvu.core.persistence.state_store import StateStore
from esvu.core.services import fs_ops
from esvu.core.services.download import url_hash
from esvu.engines.base import EngineInstaller
from esvu.engines.registry import EngineCatalog


@pytest.fixture(autouse=True)
def esvu_home(tmp_path: Path, monkeypatch):
    """Point esvu at a throwaway home directory."""
    home = tmp_path / "esvu-home"
    context.set_home(home)
    StateStore.reset_instance()
    monkeypatch.delenv("ESVU_PATH", raising=False)
    monkeypatch.setattr(state_store.atexit, "register", lambda fn: None)
    monkeypatch.setattr(state_store.signal, "signal", lambda signum, handler: None)
    yield home
    context.set_home(None)
    StateStore.reset_instance()


@pytest.fixture(autouse=True)
def _restore_logging():
    """Undo any logging setup done by CLI invocations."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def set_platform(monkeypatch):
    """Pretend to run on the given ``<os>-<arch>`` token."""

    def _set(token: str) -> None:
        monkeypatch.setattr("esvu.engines.base.current_platform", lambda: token)

    return _set


# ── Recording status reporter ───────────────────────────────────


class RecordingStatus(StatusReporter):
    """Collects (kind, prefix, message) tuples instead of logging."""

    def __init__(self, prefix: str = "esvu", events: list | None = None):
        super().__init__(prefix)
        self.events = events if events is not None else []

    def info(self, message: str) -> None:
        self.events.append(("info", self.prefix, message))

    def warn(self, message: str) -> None:
        self.events.append(("warn", self.prefix, message))

    def succeed(self, message: str) -> None:
        self.events.append(("succeed", self.prefix, message))

    def fail(self, message: str) -> None:
        self.events.append(("fail", self.prefix, message))

    def child(self, prefix: str) -> "RecordingStatus":
        return RecordingStatus(prefix, self.events)

    def messages(self, kind: str) -> list[str]:
        return [m for k, _, m in self.events if k == kind]


@pytest.fixture
def status() -> RecordingStatus:
    return RecordingStatus()


# ── Fake engine ─────────────────────────────────────────────────


def make_engine_zip(path: Path, output: str = "42", exit_code: int = 0) -> Path:
    """Build an archive laid out like a small engine distribution."""
    path.parent.mkdir(parents=True, exist_ok=True)
    script = f"#!/bin/sh\necho {output}\nexit {exit_code}\n"
    with zipfile.ZipFile(path, "w") as zf:
        info = zipfile.ZipInfo("bin/fakejs")
        info.external_attr = 0o100755 << 16
        zf.writestr(info, script)
        zf.writestr("lib/runtime.txt", "runtime data\n")
    return path


class FakeInstaller(EngineInstaller):
    """An engine that installs from a local zip and runs a shell script."""

    descriptor = EngineDescriptor(id="fakejs", display_name="FakeJS")

    latest = "1.0.0"
    output = "42"
    exit_code = 0
    fail_resolve = False

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if cls.fail_resolve:
            raise KeyError("version")
        if requested == "latest":
            return cls.latest
        if requested.count(".") == 1:
            return f"{requested}.7"
        return requested

    def get_download_url(self, version: str) -> str:
        return f"https://downloads.example.invalid/fakejs-{version}.zip"

    def extract(self) -> None:
        fs_ops.unzip(self.download_path, self.extracted_path)

    def install(self) -> None:
        self.register_asset("lib/runtime.txt")
        binary = self.register_binary("bin/fakejs", "fakejs")
        self.bin_path = binary
        self.register_script("fakejs-shell", f'"{self.install_path / "bin" / "fakejs"}"')

    def test(self) -> None:
        self.expect("42", ["-e", 'print("42");'])


@pytest.fixture
def fake_engine(monkeypatch):
    """The fake installer class; attribute changes are undone after the test."""
    for attr in ("latest", "output", "exit_code", "fail_resolve"):
        monkeypatch.setattr(FakeInstaller, attr, getattr(FakeInstaller, attr))
    return FakeInstaller


@pytest.fixture
def catalog(fake_engine) -> EngineCatalog:
    cat = EngineCatalog()
    cat.register(fake_engine)
    return cat


@pytest.fixture
def downloads(tmp_path: Path, monkeypatch, fake_engine) -> list[str]:
    """Replace the network download with a locally built archive.

    Returns the list of URLs "downloaded", in order.
    """
    seen: list[str] = []
    dl_dir = tmp_path / "downloads"

    def fake_download(url, status, *, timeout=60, temp_dir=None):
        seen.append(url)
        dest = dl_dir / f"{url_hash(url)}.zip"
        return make_engine_zip(dest, output=fake_engine.output, exit_code=fake_engine.exit_code)

    monkeypatch.setattr("esvu.core.services.orchestrator.download_artifact", fake_download)
    return seen
