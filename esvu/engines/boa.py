"""Boa — a JavaScript engine written in Rust, shipped as a bare binary."""

from __future__ import annotations

from esvu.core.models.engine import EngineDescriptor
from esvu.core.services import fs_ops
from esvu.core.services.http_fetch import github_latest_tag
from esvu.engines.base import EngineInstaller

_FILENAMES = {
    "darwin-x64": "boa-macos-amd64",
    "linux-x64": "boa-linux-amd64",
    "win32-x64": "boa-windows-amd64",
}


class BoaInstaller(EngineInstaller):
    descriptor = EngineDescriptor(
        id="boa",
        display_name="Boa",
        supported_platforms=frozenset(_FILENAMES),
    )

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if requested == "latest":
            return github_latest_tag("boa-dev/boa")
        return requested

    @property
    def binary_name(self) -> str:
        return "boa.exe" if self.on_windows else "boa"

    def get_download_url(self, version: str) -> str:
        filename = _FILENAMES.get(self.platform())
        if filename is None:
            raise self.unsupported()
        return f"https://github.com/boa-dev/boa/releases/download/{version}/{filename}"

    def extract(self) -> None:
        # Not an archive: the download is the executable itself.
        fs_ops.remove_tree(self.extracted_path)
        fs_ops.ensure_directory(self.extracted_path)
        fs_ops.copy_file(self.download_path, self.extracted_path / self.binary_name)

    def install(self) -> None:
        self.bin_path = self.register_binary(self.binary_name)

    def test(self) -> None:
        self.expect("42\nundefined", stdin='console.log("42");')
