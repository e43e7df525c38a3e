"""ChakraCore — Microsoft's engine, from the aka.ms release redirects."""

from __future__ import annotations

from esvu.core.models.engine import EngineDescriptor
from esvu.core.services import fs_ops
from esvu.core.services.http_fetch import fetch_text
from esvu.engines.base import EngineInstaller

_FILENAMES = {
    "darwin-x64": "osx_x64",
    "linux-x64": "linux_x64",
    "win32-ia32": "windows_all",
    "win32-x64": "windows_all",
}


class ChakraInstaller(EngineInstaller):
    descriptor = EngineDescriptor(
        id="chakra",
        display_name="Chakra",
        supported_platforms=frozenset(_FILENAMES),
    )

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if requested == "latest":
            return fetch_text("https://aka.ms/chakracore/version").strip()
        return requested

    def get_download_url(self, version: str) -> str:
        filename = _FILENAMES.get(self.platform())
        if filename is None:
            raise self.unsupported()
        return f"https://aka.ms/chakracore/cc_{filename}_{version}"

    def extract(self) -> None:
        if self.on_windows:
            fs_ops.unzip(self.download_path, self.extracted_path)
        else:
            fs_ops.untar(self.download_path, self.extracted_path)

    def install(self) -> None:
        if self.on_windows:
            root = "x86_release" if self.platform() == "win32-ia32" else "x64_release"
            self.register_assets(f"{root}/*.pdb")
            self.register_assets(f"{root}/*.dll")
            ch = self.register_asset(f"{root}/ch.exe")
            self.register_script("ch", f'"{ch}"')
            self.bin_path = self.register_script("chakra", f'"{ch}"')
        else:
            self.register_assets("ChakraCoreFiles/lib/*")
            self.bin_path = self.register_binary("ChakraCoreFiles/bin/ch", "chakra")
            self.register_asset("ChakraCoreFiles/LICENSE")

    def test(self) -> None:
        program = self.write_test_program('print("42");')
        self.expect("42", [str(program)])
