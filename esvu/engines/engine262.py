"""engine262 — a JavaScript engine written in JavaScript, run on Node.js."""

from __future__ import annotations

from esvu.core.errors import DownloadError
from esvu.core.models.engine import EngineDescriptor, ExternalRequirement
from esvu.core.services import fs_ops
from esvu.core.services.http_fetch import fetch_json
from esvu.engines.base import EngineInstaller

_API = "https://api.engine262.js.org/download"


class Engine262Installer(EngineInstaller):
    descriptor = EngineDescriptor(
        id="engine262",
        display_name="engine262",
        external_requirements=(
            ExternalRequirement(name="Node.js", url="https://nodejs.org/"),
        ),
    )

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if requested == "latest":
            return fetch_json(_API)["latest"]
        return requested

    def get_download_url(self, version: str) -> str:
        body = fetch_json(f"{_API}?version={version}", error_cls=DownloadError)
        tarball = body.get("tarball") if isinstance(body, dict) else None
        if not tarball:
            raise DownloadError(f"No engine262 tarball for version {version}")
        return tarball

    def extract(self) -> None:
        fs_ops.untar(self.download_path, self.extracted_path)

    def install(self) -> None:
        self.register_assets("package/**/*")
        bin_js = self.install_path / "package" / "bin" / "engine262.js"
        fs_ops.make_executable(bin_js)
        self.bin_path = self.link_binary(bin_js, "engine262")

    def test(self) -> None:
        self.expect("42", stdin='print("42");')
