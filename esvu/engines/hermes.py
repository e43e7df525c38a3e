"""Hermes — Meta's engine, CLI tarballs from GitHub releases."""

from __future__ import annotations

from esvu.core.models.engine import EngineDescriptor
from esvu.core.services import fs_ops
from esvu.core.services.http_fetch import fetch_json
from esvu.engines.base import EngineInstaller

_FILENAMES = {
    "linux-x64": "linux",
    "darwin-x64": "darwin",
    "darwin-arm64": "darwin",
    "win32-x64": "windows",
}


class HermesInstaller(EngineInstaller):
    descriptor = EngineDescriptor(
        id="hermes",
        display_name="Hermes",
        supported_platforms=frozenset(_FILENAMES),
    )

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if requested == "latest":
            return fetch_json("https://registry.npmjs.org/hermes-engine")["dist-tags"]["latest"]
        return requested

    def get_download_url(self, version: str) -> str:
        filename = _FILENAMES.get(self.platform())
        if filename is None:
            raise self.unsupported()
        return (
            "https://github.com/facebook/hermes/releases/download/"
            f"v{version}/hermes-cli-{filename}-v{version}.tar.gz"
        )

    def extract(self) -> None:
        fs_ops.untar(self.download_path, self.extracted_path)

    def install(self) -> None:
        if self.on_windows:
            self.register_assets("*.dll")
            hermes = self.register_asset("hermes.exe")
            self.bin_path = self.register_script("hermes", f'"{hermes}"')
        else:
            self.bin_path = self.register_binary("hermes")

    def test(self) -> None:
        program = self.write_test_program('print("42");')
        self.expect("42", [str(program)])
