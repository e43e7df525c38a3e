"""
Tests for the core models — descriptors, slots, installation state.
"""

import pytest
from pydantic import ValidationError

from esvu.core.models import (
    EngineDescriptor,
    ExternalRequirement,
    InstallationState,
    InstalledRecord,
    slot_key,
    split_slot_key,
)


class TestEngineDescriptor:
    def test_unrestricted_supports_all(self):
        d = EngineDescriptor(id="engine262", display_name="engine262")
        assert d.supports("linux-x64")
        assert d.supports("win32-arm64")

    def test_restricted(self):
        d = EngineDescriptor(
            id="libjs", display_name="LibJS", supported_platforms=frozenset({"linux-x64"}),
        )
        assert d.supports("linux-x64")
        assert not d.supports("darwin-x64")

    def test_frozen(self):
        d = EngineDescriptor(id="v8", display_name="V8")
        with pytest.raises(ValidationError):
            d.id = "d8"

    def test_requirements_keep_order(self):
        reqs = (
            ExternalRequirement(name="Node.js", url="https://nodejs.org/"),
            ExternalRequirement(name="Java", url="https://example.invalid/java"),
        )
        d = EngineDescriptor(id="x", display_name="X", external_requirements=reqs)
        assert [r.name for r in d.external_requirements] == ["Node.js", "Java"]


class TestSlotKey:
    def test_latest(self):
        assert slot_key("v8") == "v8"
        assert slot_key("v8", "latest") == "v8"

    def test_pinned(self):
        assert slot_key("v8", "11.2.214") == "v8@11.2.214"

    def test_split(self):
        assert split_slot_key("v8@11.2.214") == ("v8", "11.2.214")
        assert split_slot_key("v8") == ("v8", "latest")


class TestInstallationState:
    def test_defaults(self):
        state = InstallationState()
        assert state.selected_engines == []
        assert state.installed == {}

    def test_records(self):
        state = InstallationState()
        rec = state.set_record("v8", "11.2.214", ["v8"])
        assert isinstance(rec, InstalledRecord)
        assert state.get_record("v8").bin_entries == ["v8"]
        assert state.remove_record("v8").version == "11.2.214"
        assert state.get_record("v8") is None
        assert state.remove_record("v8") is None

    def test_set_record_copies_entries(self):
        entries = ["v8"]
        state = InstallationState()
        state.set_record("v8", "1", entries)
        entries.append("d8")
        assert state.get_record("v8").bin_entries == ["v8"]

    def test_selection_is_ordered_and_unique(self):
        state = InstallationState()
        state.select("v8")
        state.select("quickjs")
        state.select("v8")
        assert state.selected_engines == ["v8", "quickjs"]
        state.deselect("v8")
        assert state.selected_engines == ["quickjs"]

    def test_slots_for_lists_latest_first(self):
        state = InstallationState()
        state.set_record("v8@9.0.1", "9.0.1", [])
        state.set_record("v8", "11.2.214", [])
        state.set_record("v8@10.1.2", "10.1.2", [])
        state.set_record("v8x", "1", [])
        assert state.slots_for("v8") == ["v8", "v8@10.1.2", "v8@9.0.1"]

    def test_serializes_camel_case(self):
        state = InstallationState()
        state.select("quickjs")
        state.set_record("quickjs", "2024-01-13", ["quickjs", "quickjs-run-test262"])
        assert state.to_json_dict() == {
            "selectedEngines": ["quickjs"],
            "installed": {
                "quickjs": {
                    "version": "2024-01-13",
                    "binEntries": ["quickjs", "quickjs-run-test262"],
                },
            },
        }

    def test_parses_camel_case(self):
        state = InstallationState.model_validate({
            "selectedEngines": ["v8"],
            "installed": {"v8@11.2.214": {"version": "11.2.214", "binEntries": ["v8-11.2.214"]}},
        })
        assert state.selected_engines == ["v8"]
        assert state.get_record("v8@11.2.214").bin_entries == ["v8-11.2.214"]

    def test_legacy_layout(self):
        """Older files used ``engines`` and left unfinished installs as null records."""
        state = InstallationState.model_validate({
            "engines": ["ch", "v8"],
            "installed": {
                "ch": {"version": None, "binEntries": None},
                "v8": {"version": "8.0.1", "binEntries": ["v8"]},
            },
        })
        assert state.selected_engines == ["ch", "v8"]
        assert list(state.installed) == ["v8"]
