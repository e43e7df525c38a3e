"""QuickJS — Fabrice Bellard's binary releases, plus community builds."""

from __future__ import annotations

from esvu.core.models.engine import EngineDescriptor
from esvu.core.services import fs_ops
from esvu.core.services.http_fetch import fetch_json, github_releases
from esvu.engines.base import EngineInstaller

_BELLARD_RELEASES = "https://bellard.org/quickjs/binary_releases"
_COMMUNITY_REPO = "napi-bindings/quickjs-build"

_BELLARD_FILENAMES = {
    "linux-x64": "linux-x86_64",
    "linux-ia32": "linux-i686",
    "win32-x64": "win-x86_64",
    "win32-ia32": "win-i686",
}

# Platforms without an official build use the community release archives.
_COMMUNITY_FILENAMES = {
    "darwin-x64": "qjs-macOS.zip",
    "darwin-arm64": "qjs-macOS-arm64.zip",
    "linux-arm64": "qjs-linux-arm64.zip",
}


class QuickJSInstaller(EngineInstaller):
    descriptor = EngineDescriptor(
        id="quickjs",
        display_name="QuickJS",
        supported_platforms=frozenset(_BELLARD_FILENAMES) | frozenset(_COMMUNITY_FILENAMES),
    )

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if cls.platform() in _COMMUNITY_FILENAMES:
            if requested != "latest":
                return requested
            return github_releases(_COMMUNITY_REPO)[0]["tag_name"]
        if cls.platform() not in _BELLARD_FILENAMES:
            raise cls.unsupported()
        if requested == "latest":
            return fetch_json(f"{_BELLARD_RELEASES}/LATEST.json")["version"]
        return requested

    def get_download_url(self, version: str) -> str:
        plat = self.platform()
        if plat in _COMMUNITY_FILENAMES:
            return (
                f"https://github.com/{_COMMUNITY_REPO}/releases/download/"
                f"{version}/{_COMMUNITY_FILENAMES[plat]}"
            )
        if plat not in _BELLARD_FILENAMES:
            raise self.unsupported()
        return f"{_BELLARD_RELEASES}/quickjs-{_BELLARD_FILENAMES[plat]}-{version}.zip"

    def extract(self) -> None:
        fs_ops.unzip(self.download_path, self.extracted_path)

    def install(self) -> None:
        plat = self.platform()
        if plat in _COMMUNITY_FILENAMES:
            self.bin_path = self.register_binary("quickjs")
            self.register_binary("run-test262", "quickjs-run-test262")
        elif self.on_windows:
            self.register_asset("libwinpthread-1.dll")
            qjs = self.register_asset("qjs.exe")
            self.bin_path = self.register_script("quickjs", f'"{qjs}"')
        else:
            self.bin_path = self.register_binary("qjs", "quickjs")
            self.register_binary("run-test262", "quickjs-run-test262")

    def test(self) -> None:
        self.expect("42", ["-e", 'print("42");'])
