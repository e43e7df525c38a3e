"""
Tests for the concrete engine installers.

Upstream metadata lookups are patched; only version resolution, URL
construction, and install layouts are exercised.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from esvu.core import context
from esvu.core.errors import VersionResolutionError
from esvu.engines.boa import BoaInstaller
from esvu.engines.chakra import ChakraInstaller
from esvu.engines.engine262 import Engine262Installer
from esvu.engines.graaljs import GraalJSInstaller
from esvu.engines.hermes import HermesInstaller
from esvu.engines.javascriptcore import JavaScriptCoreInstaller
from esvu.engines.libjs import LibJSInstaller
from esvu.engines.quickjs import QuickJSInstaller
from esvu.engines.spidermonkey import SpiderMonkeyInstaller
from esvu.engines.v8 import V8Installer
from esvu.engines.xs import XSInstaller


def _extracted(installer, tmp_path: Path, files: list[str]) -> Path:
    root = tmp_path / "dl.zip-extracted"
    for name in files:
        f = root / name
        f.parent.mkdir(parents=True, exist_ok=True)
        f.write_text(name)
    installer.extracted_path = root
    return root


class TestQuickJS:
    def test_resolve_latest(self, set_platform):
        set_platform("linux-x64")
        with patch("esvu.engines.quickjs.fetch_json", return_value={"version": "2024-01-13"}) as m:
            assert QuickJSInstaller.resolve_version("latest") == "2024-01-13"
        m.assert_called_once_with("https://bellard.org/quickjs/binary_releases/LATEST.json")

    def test_explicit_version_passes_through(self, set_platform):
        set_platform("linux-x64")
        assert QuickJSInstaller.resolve_version("2021-03-27") == "2021-03-27"

    def test_community_builds_on_mac(self, set_platform):
        set_platform("darwin-arm64")
        releases = [{"tag_name": "v2024.1"}, {"tag_name": "v2023.9"}]
        with patch("esvu.engines.quickjs.github_releases", return_value=releases):
            version = QuickJSInstaller.resolve_version("latest")
        assert version == "v2024.1"
        url = QuickJSInstaller(version).get_download_url(version)
        assert url.endswith("/v2024.1/qjs-macOS-arm64.zip")

    @pytest.mark.parametrize("token,fragment", [
        ("linux-x64", "quickjs-linux-x86_64-2024-01-13.zip"),
        ("linux-ia32", "quickjs-linux-i686-2024-01-13.zip"),
        ("win32-x64", "quickjs-win-x86_64-2024-01-13.zip"),
    ])
    def test_download_url(self, set_platform, token, fragment):
        set_platform(token)
        url = QuickJSInstaller("2024-01-13").get_download_url("2024-01-13")
        assert url == f"https://bellard.org/quickjs/binary_releases/{fragment}"

    def test_unsupported_platform(self, set_platform):
        set_platform("win32-arm64")
        assert not QuickJSInstaller.is_supported()
        with pytest.raises(VersionResolutionError):
            QuickJSInstaller.resolve_version("latest")

    def test_install_linux_layout(self, set_platform, tmp_path):
        set_platform("linux-x64")
        inst = QuickJSInstaller("2024-01-13")
        _extracted(inst, tmp_path, ["qjs", "run-test262"])

        inst.install()

        assert inst.bin_entries == ["quickjs", "quickjs-run-test262"]
        assert inst.bin_path == context.bin_dir() / "quickjs"

    def test_install_windows_layout(self, set_platform, tmp_path):
        set_platform("win32-x64")
        inst = QuickJSInstaller("2024-01-13")
        _extracted(inst, tmp_path, ["qjs.exe", "libwinpthread-1.dll"])

        inst.install()

        assert inst.bin_entries == ["quickjs.cmd"]
        assert (inst.install_path / "libwinpthread-1.dll").is_file()


class TestV8:
    def test_resolve_latest(self, set_platform):
        set_platform("linux-x64")
        with patch("esvu.engines.v8.fetch_json", return_value={"version": "11.2.214"}) as m:
            assert V8Installer.resolve_version("latest") == "11.2.214"
        assert "v8-linux64-rel-latest.json" in m.call_args.args[0]

    def test_resolve_branch(self, set_platform):
        set_platform("linux-x64")
        header = "#define V8_MINOR_VERSION 2\n#define V8_BUILD_NUMBER 214\n"
        with patch("esvu.engines.v8.fetch_text", return_value=header) as m:
            assert V8Installer.resolve_version("11.2") == "11.2.214"
        assert "11.2-lkgr/include/v8-version.h" in m.call_args.args[0]

    def test_exact_version_passes_through(self, set_platform):
        set_platform("linux-x64")
        assert V8Installer.resolve_version("11.2.214.1") == "11.2.214.1"

    def test_branch_without_build_number(self, set_platform):
        set_platform("linux-x64")
        with patch("esvu.engines.v8.fetch_text", return_value="nothing here"):
            with pytest.raises(VersionResolutionError):
                V8Installer.resolve_version("11.2")

    def test_download_url(self, set_platform):
        set_platform("win32-ia32")
        url = V8Installer("11.2.214").get_download_url("11.2.214")
        assert url.endswith("/v8-win32-rel-11.2.214.zip")

    def test_unsupported(self, set_platform):
        set_platform("linux-arm64")
        with pytest.raises(VersionResolutionError):
            V8Installer.resolve_version("latest")

    def test_install_writes_snapshot_script(self, set_platform, tmp_path):
        set_platform("linux-x64")
        inst = V8Installer("11.2.214", pinned=True)
        _extracted(inst, tmp_path, ["icudtl.dat", "snapshot_blob.bin", "d8"])

        inst.install()

        assert inst.bin_entries == ["v8-11.2.214"]
        body = inst.bin_path.read_text()
        assert f'"{inst.install_path / "d8"}"' in body
        assert f'--snapshot_blob="{inst.install_path / "snapshot_blob.bin"}"' in body

    def test_install_old_build_uses_natives_blob(self, set_platform, tmp_path):
        set_platform("linux-x64")
        inst = V8Installer("6.9.100")
        _extracted(inst, tmp_path, ["icudtl.dat", "snapshot_blob.bin", "d8", "natives_blob.bin"])

        inst.install()

        assert (inst.install_path / "natives_blob.bin").is_file()
        assert f'cd "{inst.install_path}"' in inst.bin_path.read_text()


class TestSpiderMonkey:
    def test_newest_release_by_date(self, set_platform):
        set_platform("linux-x64")
        history = {
            "120.0b1": "2023-10-24",
            "121.0b3": "2023-11-27",
            "120.0b9": "2023-11-10",
        }
        with patch("esvu.engines.spidermonkey.fetch_json", return_value=history):
            assert SpiderMonkeyInstaller.resolve_version("latest") == "121.0b3"

    def test_release_url(self, set_platform):
        set_platform("linux-x64")
        url = SpiderMonkeyInstaller("121.0b3").get_download_url("121.0b3")
        assert url == (
            "https://archive.mozilla.org/pub/firefox/releases/121.0b3/jsshell/"
            "jsshell-linux-x86_64.zip"
        )

    def test_nightly_url(self, set_platform):
        set_platform("darwin-arm64")
        version = "nightly#20231201094512"
        url = SpiderMonkeyInstaller(version).get_download_url(version)
        assert url == (
            "https://archive.mozilla.org/pub/firefox/nightly/2023/12/"
            "2023-12-01-09-45-12-mozilla-central/jsshell-mac.zip"
        )

    def test_install_linux_scripts(self, set_platform, tmp_path):
        set_platform("linux-x64")
        inst = SpiderMonkeyInstaller("121.0b3")
        _extracted(inst, tmp_path, ["js", "libnspr4.so", "libmozjs.so"])

        inst.install()

        assert inst.bin_entries == ["spidermonkey", "sm"]
        assert f'LD_LIBRARY_PATH="{inst.install_path}"' in inst.bin_path.read_text()
        assert (inst.install_path / "libnspr4.so").is_file()


class TestHermes:
    def test_resolve_from_npm(self, set_platform):
        set_platform("linux-x64")
        body = {"dist-tags": {"latest": "0.12.0"}}
        with patch("esvu.engines.hermes.fetch_json", return_value=body):
            assert HermesInstaller.resolve_version("latest") == "0.12.0"

    def test_download_url(self, set_platform):
        set_platform("darwin-x64")
        url = HermesInstaller("0.12.0").get_download_url("0.12.0")
        assert url == (
            "https://github.com/facebook/hermes/releases/download/"
            "v0.12.0/hermes-cli-darwin-v0.12.0.tar.gz"
        )


class TestBoa:
    def test_resolve_latest_tag(self, set_platform):
        set_platform("linux-x64")
        with patch("esvu.engines.boa.github_latest_tag", return_value="v0.17") as m:
            assert BoaInstaller.resolve_version("latest") == "v0.17"
        m.assert_called_once_with("boa-dev/boa")

    def test_extract_copies_bare_binary(self, set_platform, tmp_path):
        set_platform("linux-x64")
        inst = BoaInstaller("v0.17")
        inst.download_path = tmp_path / "boa"
        inst.download_path.write_bytes(b"\x7fELF")
        inst.extracted_path = tmp_path / "boa-extracted"

        inst.extract()
        inst.install()

        assert (inst.extracted_path / "boa").read_bytes() == b"\x7fELF"
        assert inst.bin_entries == ["boa"]


class TestChakra:
    def test_resolve_strips_text(self, set_platform):
        set_platform("linux-x64")
        with patch("esvu.engines.chakra.fetch_text", return_value="1.11.24\n"):
            assert ChakraInstaller.resolve_version("latest") == "1.11.24"

    def test_download_url(self, set_platform):
        set_platform("win32-ia32")
        url = ChakraInstaller("1.11.24").get_download_url("1.11.24")
        assert url == "https://aka.ms/chakracore/cc_windows_all_1.11.24"


class TestEngine262:
    def test_supported_everywhere_with_requirement(self, set_platform):
        set_platform("linux-riscv64")
        assert Engine262Installer.is_supported()
        reqs = Engine262Installer.external_requirements()
        assert [r.name for r in reqs] == ["Node.js"]

    def test_download_url_is_looked_up(self, set_platform):
        with patch(
            "esvu.engines.engine262.fetch_json",
            return_value={"tarball": "https://registry.example/engine262-0.0.1.tgz"},
        ) as m:
            url = Engine262Installer("0.0.1").get_download_url("0.0.1")
        assert url == "https://registry.example/engine262-0.0.1.tgz"
        assert m.call_args.args[0].endswith("download?version=0.0.1")


class TestGraalJS:
    def test_not_installed_by_default(self, set_platform):
        set_platform("linux-x64")
        assert GraalJSInstaller.is_supported()
        assert GraalJSInstaller.install_by_default() is False

    def test_resolve_strips_tag_prefix(self, set_platform):
        set_platform("linux-x64")
        with patch("esvu.engines.graaljs.github_releases", return_value=[{"tag_name": "vm-22.3.1"}]):
            assert GraalJSInstaller.resolve_version("latest") == "22.3.1"

    def test_download_url(self, set_platform):
        set_platform("linux-x64")
        url = GraalJSInstaller("22.3.1").get_download_url("22.3.1")
        assert url.endswith("/vm-22.3.1/graalvm-ce-java11-linux-amd64-22.3.1.tar.gz")


class TestJavaScriptCore:
    def test_linux_latest_from_checksum_listing(self, set_platform):
        set_platform("linux-x64")
        page = '<a href="270123.sha256sum">x</a><a href="270100.sha256sum">y</a>'
        with patch("esvu.engines.javascriptcore.fetch_text", return_value=page):
            assert JavaScriptCoreInstaller.resolve_version("latest") == "270123"

    def test_wincairo_requirement_only_on_windows(self, set_platform):
        set_platform("linux-x64")
        assert JavaScriptCoreInstaller.external_requirements() == ()
        set_platform("win32-x64")
        assert [r.name for r in JavaScriptCoreInstaller.external_requirements()] == [
            "WinCairoRequirements",
        ]

    def test_install_linux_uses_bundled_loader(self, set_platform, tmp_path):
        set_platform("linux-x64")
        inst = JavaScriptCoreInstaller("270123")
        _extracted(inst, tmp_path, ["bin/jsc", "lib/libjsc.so", "lib/ld-linux-x86-64.so.2"])

        inst.install()

        assert inst.bin_entries == ["javascriptcore", "jsc"]
        body = inst.bin_path.read_text()
        assert "ld-linux-x86-64.so.2" in body
        assert f'LD_LIBRARY_PATH="{inst.install_path / "lib"}"' in body


class TestLibJS:
    def test_only_latest(self, set_platform):
        set_platform("linux-x64")
        with pytest.raises(VersionResolutionError, match="only provides"):
            LibJSInstaller.resolve_version("2023.01")

    def test_unsupported_platform(self, set_platform):
        set_platform("darwin-x64")
        with pytest.raises(VersionResolutionError):
            LibJSInstaller.resolve_version("latest")

    def test_resolve_latest(self, set_platform):
        set_platform("linux-x64")
        artifacts = {"artifacts": [{"name": "other", "id": 1}, {"name": "serenity-js", "id": 42}]}
        runs = {"workflow_runs": [
            {"name": "Run test262 with LibJS and push results to the website repo", "check_suite_id": 7},
            {"name": "Run test262 with LibJS and push results to the website repo", "check_suite_id": 9},
            {"name": "Lint", "check_suite_id": 11},
        ]}
        with patch("esvu.engines.libjs.fetch_json", side_effect=[artifacts, runs]):
            version = LibJSInstaller.resolve_version("latest")
        assert version == "9/42"
        url = LibJSInstaller(version).get_download_url(version)
        assert url == "https://nightly.link/serenityos/serenity/suites/9/artifacts/42"


class TestXS:
    def test_skips_prereleases(self, set_platform):
        set_platform("linux-x64")
        releases = [
            {"tag_name": "v4.1.0-beta", "prerelease": True},
            {"tag_name": "v4.0.2", "prerelease": False},
        ]
        with patch("esvu.engines.xs.github_releases", return_value=releases):
            assert XSInstaller.resolve_version("latest") == "4.0.2"

    def test_download_url(self, set_platform):
        set_platform("linux-ia32")
        url = XSInstaller("4.0.2").get_download_url("4.0.2")
        assert url.endswith("/download/v4.0.2/xst-lin32.zip")
