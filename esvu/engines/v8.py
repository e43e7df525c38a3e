"""V8 — official canary ``d8`` builds from the chromium-v8 bucket."""

from __future__ import annotations

import re

from esvu.core.errors import VersionResolutionError
from esvu.core.models.engine import EngineDescriptor
from esvu.core.services import fs_ops
from esvu.core.services.http_fetch import fetch_json, fetch_text
from esvu.engines.base import EngineInstaller

_BUCKET = "https://storage.googleapis.com/chromium-v8/official/canary"
_VERSION_HEADER = "https://raw.githubusercontent.com/v8/v8/{major}.{minor}-lkgr/include/v8-version.h"
_BUILD_NUMBER_RE = re.compile(r"#define V8_BUILD_NUMBER (\d+)")

_FILENAMES = {
    "linux-ia32": "linux32",
    "linux-x64": "linux64",
    "win32-ia32": "win32",
    "win32-x64": "win64",
    "darwin-x64": "mac64",
    "darwin-arm64": "mac-arm64",
}

# Builds older than this need natives_blob.bin and must run from their directory.
_NATIVES_BLOB_BEFORE_MAJOR = 7


class V8Installer(EngineInstaller):
    descriptor = EngineDescriptor(
        id="v8",
        display_name="V8",
        supported_platforms=frozenset(_FILENAMES),
    )

    @classmethod
    def _filename(cls) -> str:
        try:
            return _FILENAMES[cls.platform()]
        except KeyError:
            raise cls.unsupported() from None

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if requested == "latest":
            body = fetch_json(f"{_BUCKET}/v8-{cls._filename()}-rel-latest.json")
            return body["version"]

        parts = requested.split(".")
        if len(parts) >= 3:
            return requested
        if len(parts) != 2:
            raise VersionResolutionError(f"Invalid V8 version {requested!r}")

        # major.minor → last known good build of that branch
        major, minor = parts
        header = fetch_text(_VERSION_HEADER.format(major=major, minor=minor))
        match = _BUILD_NUMBER_RE.search(header)
        if not match:
            raise VersionResolutionError(f"No V8 build number for branch {requested}")
        return f"{major}.{minor}.{match.group(1)}"

    def get_download_url(self, version: str) -> str:
        return f"{_BUCKET}/v8-{self._filename()}-rel-{version}.zip"

    def extract(self) -> None:
        fs_ops.unzip(self.download_path, self.extracted_path)

    def install(self) -> None:
        self.register_asset("icudtl.dat")
        snapshot = self.register_asset("snapshot_blob.bin")
        d8 = self.register_asset("d8.exe" if self.on_windows else "d8")
        fs_ops.make_executable(d8)

        if self._major() < _NATIVES_BLOB_BEFORE_MAJOR:
            self.register_asset("natives_blob.bin")
            self.bin_path = self.register_script("v8", f'cd "{self.install_path}"\n./d8')
        else:
            self.bin_path = self.register_script("v8", f'"{d8}" --snapshot_blob="{snapshot}"')

    def _major(self) -> int:
        try:
            return int(self.version.split(".")[0])
        except ValueError:
            return _NATIVES_BLOB_BEFORE_MAJOR

    def test(self) -> None:
        self.expect("42", ["-e", 'print("42");'])
