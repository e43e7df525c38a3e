"""
Tests for CLI commands — global options, install/uninstall, bulk update, status.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from esvu.core import context
from esvu.core.persistence.state_store import StateStore
from esvu.main import cli


def _state_file() -> dict:
    return json.loads(context.state_path().read_text())


@pytest.fixture
def fake_catalog(monkeypatch, catalog, downloads):
    """Make the CLI see only the fake engine, with downloads served locally."""
    monkeypatch.setattr("esvu.engines.registry._catalog", catalog)
    return catalog


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _invoke(runner: CliRunner, args: list[str]):
    # Each CLI run is its own process in real use; start from a fresh store.
    StateStore.reset_instance()
    return runner.invoke(cli, args)


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "JavaScript engines" in result.output
        for command in ("install", "uninstall", "update", "status", "engines"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_invalid_config(self, runner, tmp_path: Path):
        config = tmp_path / "config.yml"
        config.write_text("- not a mapping\n")
        result = runner.invoke(cli, ["--config", str(config), "status"])
        assert result.exit_code == 1
        assert "mapping" in result.output

    def test_unwritable_state_file_is_reported_not_raised(self, runner):
        context.get_home().mkdir(parents=True)
        context.state_path().mkdir()

        result = _invoke(runner, ["status"])

        assert result.exit_code == 0
        assert result.exception is None

    def test_home_option(self, runner, tmp_path: Path):
        home = tmp_path / "elsewhere"
        result = runner.invoke(cli, ["--home", str(home), "status", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["home"] == str(home)


class TestInstallCommand:
    def test_unknown_engine(self, runner, fake_catalog):
        result = _invoke(runner, ["install", "nosuchjs"])
        assert result.exit_code == 1
        assert "Engine not recognized" in result.output

    def test_install_latest(self, runner, fake_catalog):
        result = _invoke(runner, ["install", "fakejs"])

        assert result.exit_code == 0, result.output
        assert "Installed version 1.0.0" in result.output
        assert (context.bin_dir() / "fakejs").is_symlink()
        saved = _state_file()
        assert saved["selectedEngines"] == ["fakejs"]
        assert saved["installed"]["fakejs"] == {
            "version": "1.0.0",
            "binEntries": ["fakejs", "fakejs-shell"],
        }

    def test_install_pinned_json(self, runner, fake_catalog):
        result = _invoke(runner, ["-q", "install", "fakejs@2.3", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["slot"] == "fakejs@2.3.7"
        assert data["ok"] is True
        assert data["bin_entries"] == ["fakejs-2.3.7", "fakejs-shell-2.3.7"]
        assert _state_file()["selectedEngines"] == []

    def test_install_failure_exits_1(self, runner, fake_catalog, fake_engine):
        fake_engine.output = "41"
        result = _invoke(runner, ["install", "fakejs"])

        assert result.exit_code == 1
        assert "fakejs" not in _state_file()["installed"]


class TestUpdateCommand:
    def test_not_installed(self, runner, fake_catalog):
        result = _invoke(runner, ["update", "fakejs"])
        assert result.exit_code == 1
        assert "not installed" in result.output

    def test_update_to_newer(self, runner, fake_catalog, fake_engine):
        _invoke(runner, ["install", "fakejs"])
        fake_engine.latest = "1.1.0"

        result = _invoke(runner, ["update", "fakejs"])

        assert result.exit_code == 0, result.output
        assert _state_file()["installed"]["fakejs"]["version"] == "1.1.0"


class TestUninstallCommand:
    def test_uninstall(self, runner, fake_catalog):
        _invoke(runner, ["install", "fakejs"])

        result = _invoke(runner, ["uninstall", "fakejs"])

        assert result.exit_code == 0, result.output
        assert "Removed fakejs" in result.output
        assert not (context.bin_dir() / "fakejs").exists()
        assert not (context.engines_dir() / "fakejs").exists()
        assert _state_file() == {"selectedEngines": [], "installed": {}}

    def test_uninstall_missing(self, runner, fake_catalog):
        result = _invoke(runner, ["uninstall", "fakejs"])
        assert result.exit_code == 1


class TestBulkUpdate:
    def test_no_selection(self, runner, fake_catalog):
        StateStore.reset_instance()
        result = runner.invoke(cli, [], input="n\n")
        assert result.exit_code == 1
        assert "No engines are configured to be installed" in result.output

    def test_engines_option_seeds_first_run(self, runner, fake_catalog, downloads):
        result = _invoke(runner, ["--engines", "fakejs"])

        assert result.exit_code == 0, result.output
        assert "Installing FakeJS" in result.output
        assert downloads == ["https://downloads.example.invalid/fakejs-1.0.0.zip"]
        assert _state_file()["installed"]["fakejs"]["version"] == "1.0.0"

    def test_engines_all_uses_default_selection(self, runner, fake_catalog):
        result = _invoke(runner, ["--engines", "all"])
        assert result.exit_code == 0, result.output
        assert _state_file()["selectedEngines"] == ["fakejs"]

    def test_config_seeds_first_run(self, runner, fake_catalog, tmp_path: Path):
        config = tmp_path / "config.yml"
        config.write_text("engines: [fakejs]\n")
        result = _invoke(runner, ["--config", str(config)])
        assert result.exit_code == 0, result.output
        assert "fakejs" in _state_file()["installed"]

    def test_prompt_on_first_run(self, runner, fake_catalog):
        StateStore.reset_instance()
        result = runner.invoke(cli, [], input="y\n")
        assert result.exit_code == 0, result.output
        assert "Which engines would you like to install?" in result.output
        assert _state_file()["selectedEngines"] == ["fakejs"]

    def test_second_run_is_up_to_date(self, runner, fake_catalog, downloads):
        _invoke(runner, ["--engines", "fakejs"])
        result = _invoke(runner, [])

        assert result.exit_code == 0, result.output
        assert "Version 1.0.0 is already installed" in result.output
        assert len(downloads) == 1

    def test_partial_failure_exits_1(self, runner, fake_catalog):
        result = _invoke(runner, ["--engines", "fakejs,ghostjs"])
        assert result.exit_code == 1
        assert "1 of 2 engine(s) failed" in result.output


class TestStatusCommand:
    def test_empty(self, runner):
        result = _invoke(runner, ["status"])
        assert result.exit_code == 0
        assert "(none)" in result.output

    def test_json_after_install(self, runner, fake_catalog):
        _invoke(runner, ["install", "fakejs@1.2.3"])
        result = _invoke(runner, ["status", "--json"])

        data = json.loads(result.output)
        assert data["installed"]["fakejs@1.2.3"]["version"] == "1.2.3"
        assert data["home"] == str(context.get_home())


class TestEnginesCommand:
    def test_list_json_shows_full_catalog(self, runner):
        result = _invoke(runner, ["engines", "list", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert len(data["engines"]) == 11
        assert {"v8", "quickjs", "engine262", "xs"} <= {e["id"] for e in data["engines"]}

    def test_list_marks_installed(self, runner, fake_catalog):
        _invoke(runner, ["install", "fakejs"])
        result = _invoke(runner, ["engines", "list", "--json"])

        row = json.loads(result.output)["engines"][0]
        assert row["installed"] == {"fakejs": "1.0.0"}
        assert row["selected"] is True

    def test_list_text(self, runner, fake_catalog):
        result = _invoke(runner, ["engines", "list"])
        assert result.exit_code == 0
        assert "FakeJS (fakejs)" in result.output
