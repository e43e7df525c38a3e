"""LibJS — SerenityOS's engine, from the latest CI artifact."""

from __future__ import annotations

import logging
from pathlib import Path

from esvu.core.errors import VersionResolutionError
from esvu.core.models.engine import EngineDescriptor
from esvu.core.services import fs_ops
from esvu.core.services.http_fetch import fetch_json
from esvu.engines.base import EngineInstaller

logger = logging.getLogger(__name__)

_API = "https://api.github.com/repos/serenityos/serenity/actions"
_ARTIFACT_NAME = "serenity-js"
_WORKFLOW_NAME = "Run test262 with LibJS and push results to the website repo"


class LibJSInstaller(EngineInstaller):
    descriptor = EngineDescriptor(
        id="libjs",
        display_name="LibJS",
        supported_platforms=frozenset({"linux-x64"}),
    )

    @classmethod
    def _resolve_version(cls, requested: str) -> str:
        if not cls.is_supported():
            raise cls.unsupported()
        if requested != "latest":
            raise VersionResolutionError("LibJS only provides binary builds for 'latest'")

        artifacts = [
            a for a in fetch_json(f"{_API}/artifacts")["artifacts"]
            if a["name"] == _ARTIFACT_NAME
        ]
        if not artifacts:
            raise VersionResolutionError(f"No {_ARTIFACT_NAME} artifacts on serenityos/serenity")

        runs = [
            r for r in fetch_json(
                f"{_API}/runs?event=push&branch=master&status=success"
            )["workflow_runs"]
            if r["name"] == _WORKFLOW_NAME
        ]
        if not runs:
            raise VersionResolutionError("No recent serenity-js build run")

        suite_id = max(r["check_suite_id"] for r in runs)
        return f"{suite_id}/{artifacts[0]['id']}"

    def get_download_url(self, version: str) -> str:
        suite_id, _, artifact_id = version.partition("/")
        return (
            "https://nightly.link/serenityos/serenity/"
            f"suites/{suite_id}/artifacts/{artifact_id}"
        )

    @property
    def _zip_dir(self) -> Path:
        return Path(f"{self.extracted_path}zip")

    def extract(self) -> None:
        # A zip (the CI artifact) wrapping the actual tarball.
        fs_ops.unzip(self.download_path, self._zip_dir)
        fs_ops.untar(self._zip_dir / "serenity-js.tar.gz", self.extracted_path)

    def install(self) -> None:
        self.register_assets("serenity-js/lib/*.so*")
        js = self.register_asset("serenity-js/bin/js")
        fs_ops.make_executable(js)
        self.bin_path = self.register_script("serenity-js", f'"{js}"')

    def test(self) -> None:
        self.expect("42", ["-c", 'console.log("42")'])

    def cleanup(self) -> None:
        super().cleanup()
        if self.extracted_path is not None:
            try:
                fs_ops.remove_tree(self._zip_dir)
            except OSError as e:
                logger.warning("Cleanup of %s failed: %s", self._zip_dir, e)
