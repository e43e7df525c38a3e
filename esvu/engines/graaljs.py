"""GraalJS — the JavaScript language of GraalVM Community Edition."""

from __future__ import annotations

from esvu.core.models.engine import EngineDescriptor
from esvu.core.services import fs_ops
from esvu.core.services.http_fetch import github_releases
from esvu.engines.base import EngineInstaller

_REPO = "graalvm/graalvm-ce-builds"

_FILENAMES = {
    "darwin-x64": "darwin-amd64",
    "linux-x64": "linux-amd64",
    "win32-x64": "windows-amd64",
}


class GraalJSInstaller(EngineInstaller):
    descriptor = EngineDescriptor(
        id="graaljs",
        display_name="GraalJS",
        supported_platforms=frozenset(_FILENAMES),
    )

    @classmethod
    def install_by_default(cls) -> bool:
        # Install only on request.
        return False

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if requested == "latest":
            tag = github_releases(_REPO)[0]["tag_name"]
            return tag.removeprefix("vm-")
        return requested

    @property
    def root(self) -> str:
        return f"graalvm-ce-java11-{self.version}"

    def get_download_url(self, version: str) -> str:
        filename = _FILENAMES.get(self.platform())
        if filename is None:
            raise self.unsupported()
        ext = "zip" if self.on_windows else "tar.gz"
        return (
            f"https://github.com/{_REPO}/releases/download/"
            f"vm-{version}/graalvm-ce-java11-{filename}-{version}.{ext}"
        )

    def extract(self) -> None:
        fs_ops.extract_archive(self.download_path, self.extracted_path)

    def install(self) -> None:
        # The launcher needs the whole VM next to it.
        self.register_assets(f"{self.root}/**/*")
        if self.on_windows:
            js = self.install_path / self.root / "languages" / "js" / "bin" / "js.exe"
            self.bin_path = self.register_script("graaljs", f'"{js}"')
        else:
            js = self.install_path / self.root / "languages" / "js" / "bin" / "js"
            fs_ops.make_executable(js)
            self.bin_path = self.link_binary(js, "graaljs")

    def test(self) -> None:
        self.expect("42", ["-e", 'print("42");'])
