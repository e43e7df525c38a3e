"""SpiderMonkey — Mozilla's ``jsshell`` archives (releases and nightlies)."""

from __future__ import annotations

import re
from datetime import datetime

from esvu.core.models.engine import EngineDescriptor
from esvu.core.services import fs_ops
from esvu.core.services.http_fetch import fetch_json
from esvu.engines.base import EngineInstaller

_HISTORY_URL = "https://product-details.mozilla.org/1.0/firefox_history_development_releases.json"
_ARCHIVE = "https://archive.mozilla.org/pub/firefox"

# Nightly builds are requested as "<anything>#YYYYMMDDhhmmss".
_NIGHTLY_RE = re.compile(r"#(\d{4})(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})$")

_FILENAMES = {
    "darwin-x64": "mac",
    "darwin-arm64": "mac",
    "linux-ia32": "linux-i686",
    "linux-x64": "linux-x86_64",
    "win32-ia32": "win32",
    "win32-x64": "win64",
}


class SpiderMonkeyInstaller(EngineInstaller):
    descriptor = EngineDescriptor(
        id="spidermonkey",
        display_name="SpiderMonkey",
        supported_platforms=frozenset(_FILENAMES),
    )

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if cls.platform() not in _FILENAMES:
            raise cls.unsupported()
        if requested != "latest":
            return requested
        history: dict[str, str] = fetch_json(_HISTORY_URL)
        newest = max(history.items(), key=lambda kv: datetime.fromisoformat(kv[1]))
        return newest[0]

    def get_download_url(self, version: str) -> str:
        filename = _FILENAMES.get(self.platform())
        if filename is None:
            raise self.unsupported()
        match = _NIGHTLY_RE.search(version)
        if match:
            year, month = match.group(1), match.group(2)
            stamp = "-".join(match.groups())
            return (
                f"{_ARCHIVE}/nightly/{year}/{month}/{stamp}-mozilla-central/"
                f"jsshell-{filename}.zip"
            )
        return f"{_ARCHIVE}/releases/{version}/jsshell/jsshell-{filename}.zip"

    def extract(self) -> None:
        fs_ops.unzip(self.download_path, self.extracted_path)

    def install(self) -> None:
        plat = self.platform()
        if plat.startswith("darwin"):
            self.register_assets("*.dylib")
            self.register_binary("js", "sm")
            self.bin_path = self.register_binary("js", "spidermonkey")
        elif self.on_windows:
            self.register_assets("*.dll")
            sm = self.register_asset("js.exe")
            self.bin_path = self.register_script("spidermonkey", f'"{sm}"')
            self.register_script("sm", f'"{sm}"')
        else:
            self.register_assets("*.so")
            sm = self.register_asset("js")
            fs_ops.make_executable(sm)
            source = f'LD_LIBRARY_PATH="{self.install_path}" "{sm}"'
            self.bin_path = self.register_script("spidermonkey", source)
            self.register_script("sm", source)

    def test(self) -> None:
        self.expect("42", ["-e", 'print("42");'])
