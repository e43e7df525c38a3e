"""JavaScriptCore — WebKit's engine, from WebKitGTK and build.webkit.org archives."""

from __future__ import annotations

import re

from esvu.core.errors import VersionResolutionError
from esvu.core.models.engine import EngineDescriptor, ExternalRequirement
from esvu.core.services import fs_ops
from esvu.core.services.http_fetch import fetch_text
from esvu.engines.base import EngineInstaller

_WEBKITGTK = "https://webkitgtk.org/jsc-built-products/x86_{bits}/release"
# A build is complete once its .sha256sum has been published.
_WEBKITGTK_RE = re.compile(r'<a href="(\d+)\.sha256sum">')

_BUILDERS = {
    "darwin-x64": "https://build.webkit.org/builders/Apple-Catalina-Release-Build?numbuilds=25",
    "win32-ia32": "https://build.webkit.org/builders/Apple%20Win%2010%20Release%20(Build)?numbuilds=25",
    "win32-x64": (
        "https://build.webkit.org/builders/"
        "WinCairo%2064-bit%20WKL%20Release%20%28Build%29?numbuilds=25"
    ),
}
_BUILDER_RE = re.compile(
    r'<td><span[^>]+><a href="[^"]+">(\d+)</a></span></td>\s*<td class="success">success</td>'
)

_ARCHIVES = {
    "darwin-x64": "https://s3-us-west-2.amazonaws.com/minified-archives.webkit.org/mac-catalina-x86_64-release",
    "linux-ia32": _WEBKITGTK.format(bits=32),
    "linux-x64": _WEBKITGTK.format(bits=64),
    "win32-ia32": "https://s3-us-west-2.amazonaws.com/archives.webkit.org/win-i386-release",
    "win32-x64": "https://s3-us-west-2.amazonaws.com/archives.webkit.org/wincairo-x86_64-release",
}

_WINCAIRO = ExternalRequirement(
    name="WinCairoRequirements",
    url="https://github.com/WebKitForWindows/WinCairoRequirements",
)


class JavaScriptCoreInstaller(EngineInstaller):
    descriptor = EngineDescriptor(
        id="javascriptcore",
        display_name="JavaScriptCore",
        supported_platforms=frozenset(_ARCHIVES),
        external_requirements=(_WINCAIRO,),
    )

    @classmethod
    def external_requirements(cls) -> tuple[ExternalRequirement, ...]:
        if cls.platform().startswith("win32"):
            return cls.descriptor.external_requirements
        return ()

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if requested != "latest":
            return requested
        plat = cls.platform()
        if plat in ("linux-ia32", "linux-x64"):
            page = fetch_text(f"{_ARCHIVES[plat]}/?C=M;O=D")
            match = _WEBKITGTK_RE.search(page)
        elif plat in _BUILDERS:
            match = _BUILDER_RE.search(fetch_text(_BUILDERS[plat]))
        else:
            raise cls.unsupported()
        if not match:
            raise VersionResolutionError("No successful JavaScriptCore build listed")
        return match.group(1)

    def get_download_url(self, version: str) -> str:
        base = _ARCHIVES.get(self.platform())
        if base is None:
            raise self.unsupported()
        return f"{base}/{version}.zip"

    def extract(self) -> None:
        fs_ops.unzip(self.download_path, self.extracted_path)

    def install(self) -> None:
        plat = self.platform()
        if plat == "darwin-x64":
            self.register_assets("Release/JavaScriptCore.framework/**/*")
            jsc = self.register_asset("Release/jsc")
            fs_ops.make_executable(jsc)
            release = self.install_path / "Release"
            source = f'DYLD_FRAMEWORK_PATH="{release}" DYLD_LIBRARY_PATH="{release}" "{jsc}"'
        elif self.on_windows:
            self.register_assets("bin64/JavaScriptCore.resources/*")
            self.register_assets("bin64/*.dll")
            self.register_assets("bin64/*.pdb")
            jsc = self.register_asset("bin64/jsc.exe")
            source = f'"{jsc}"'
        else:
            self.register_assets("lib/*")
            jsc = self.register_asset("bin/jsc")
            fs_ops.make_executable(jsc)
            lib = self.install_path / "lib"
            loader = "ld-linux-x86-64.so.2" if plat == "linux-x64" else "ld-linux.so.2"
            source = f'LD_LIBRARY_PATH="{lib}" exec "{lib / loader}" "{jsc}"'

        self.bin_path = self.register_script("javascriptcore", source)
        self.register_script("jsc", source)

    def test(self) -> None:
        self.expect("42", ["-e", 'print("42");'])
