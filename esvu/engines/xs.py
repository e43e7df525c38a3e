"""XS — Moddable's engine, via the ``xst`` test-runner builds."""

from __future__ import annotations

from esvu.core.errors import VersionResolutionError
from esvu.core.models.engine import EngineDescriptor
from esvu.core.services import fs_ops
from esvu.core.services.http_fetch import github_releases
from esvu.engines.base import EngineInstaller

_REPO = "Moddable-OpenSource/moddable-xst"

_FILENAMES = {
    "darwin-x64": "mac",
    "darwin-arm64": "mac",
    "linux-ia32": "lin32",
    "linux-x64": "lin64",
    "win32-ia32": "win",
    "win32-x64": "win",
}


class XSInstaller(EngineInstaller):
    descriptor = EngineDescriptor(
        id="xs",
        display_name="XS",
        supported_platforms=frozenset(_FILENAMES),
    )

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if requested != "latest":
            return requested.removeprefix("v")
        for release in github_releases(_REPO):
            if not release.get("prerelease"):
                return release["tag_name"].removeprefix("v")
        raise VersionResolutionError(f"No stable release in {_REPO}")

    def get_download_url(self, version: str) -> str:
        filename = _FILENAMES.get(self.platform())
        if filename is None:
            raise self.unsupported()
        return f"https://github.com/{_REPO}/releases/download/v{version}/xst-{filename}.zip"

    def extract(self) -> None:
        fs_ops.unzip(self.download_path, self.extracted_path)

    def install(self) -> None:
        if self.on_windows:
            xst = self.register_asset("xst.exe")
            self.bin_path = self.register_script("xs", f'"{xst}"')
        else:
            self.bin_path = self.register_binary("xst", "xs")

    def test(self) -> None:
        self.expect("42", ["-e", 'print("42");'])
