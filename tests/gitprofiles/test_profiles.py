from __future__ import annotations

import itertools
from pathlib import Path

import pytest
from pydantic import ValidationError

from gitprofiles import paths
from gitprofiles.errors import ProfileNotFoundError, SettingsWriteError
from gitprofiles.models import (
    InvalidSelectionInput,
    NoSelection,
    Profile,
    SelectionFound,
    SelectionLookup,
)
from gitprofiles.profiles import ProfileStore, migrate_records
from gitprofiles.settings import (
    PROFILES_KEY,
    SELECTED_PROFILE_ID_KEY,
    JsonSettingsStore,
    MemorySettingsStore,
)
from tests.gitprofiles.helpers import make_profile

ROOT = Path("/src/app")
OTHER_ROOT = Path("/src/other")


def _ids(prefix: str = "gen"):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


class ReadOnlySettings(MemorySettingsStore):
    def update(self, key: str, value: object, *, root: Path | None = None) -> None:
        raise SettingsWriteError("read-only")


def _store(records: list[dict] | None = None, **locations: str) -> tuple[ProfileStore, MemorySettingsStore]:
    settings = MemorySettingsStore(
        {PROFILES_KEY: records or []},
        {ROOT: {SELECTED_PROFILE_ID_KEY: locations["selected"]}} if "selected" in locations else None,
    )
    return ProfileStore(settings, id_factory=_ids()), settings


class TestMigration:
    def test_migrate_records_assigns_ids_and_signing_keys(self) -> None:
        records = [
            {"label": "Work", "userName": "Alice", "email": "a@x.com", "selected": True},
            {"id": "keep", "label": "Home", "userName": "A", "email": "h@x.com", "signingKey": "K"},
        ]

        result = migrate_records(records, id_factory=_ids())

        assert result.changed is True
        assert result.records[0]["id"] == "gen-1"
        assert result.records[0]["signingKey"] == ""
        assert result.records[0]["selected"] is True
        assert result.records[1] == records[1]
        assert "id" not in records[0]

    def test_migrate_records_treats_blank_id_as_missing(self) -> None:
        result = migrate_records([{"id": "  ", "signingKey": ""}], id_factory=_ids())

        assert result.records[0]["id"] == "gen-1"

    def test_migrated_records_are_unchanged_on_second_pass(self) -> None:
        first = migrate_records([{"label": "Work"}], id_factory=_ids())
        second = migrate_records(first.records, id_factory=_ids("other"))

        assert second.changed is False
        assert second.records == first.records

    def test_migrate_persists_once(self) -> None:
        store, settings = _store([{"label": "Work", "userName": "Alice", "email": "a@x.com"}])

        store.migrate()
        store.migrate()
        profiles = store.list()

        assert settings.writes == [(PROFILES_KEY, None)]
        assert [profile.id for profile in profiles] == ["gen-1"]
        assert profiles[0].signing_key == ""

    def test_list_migrates_lazily(self) -> None:
        store, settings = _store([{"label": "Work"}])

        assert [profile.id for profile in store.list()] == ["gen-1"]
        assert settings.get(PROFILES_KEY) == [{"label": "Work", "id": "gen-1", "signingKey": ""}]

    def test_list_survives_unwritable_settings(self) -> None:
        store = ProfileStore(ReadOnlySettings({PROFILES_KEY: [{"label": "Work"}]}), id_factory=_ids())

        assert [profile.label for profile in store.list()] == ["Work"]

    def test_legacy_selection_matches_unpersisted_ids(self) -> None:
        legacy = {"label": "Work", "userName": "Alice", "email": "a@x.com", "selected": True}
        store = ProfileStore(ReadOnlySettings({PROFILES_KEY: [legacy]}), id_factory=_ids())

        profiles, selection = store.list_with_selection(ROOT)

        assert [profile.id for profile in profiles] == ["gen-1"]
        assert isinstance(selection, SelectionFound)
        assert selection.profile == profiles[0]
        assert selection.tier == "legacy_flag"

    def test_invalid_records_are_skipped(self) -> None:
        store, _ = _store(
            [
                "not an object",
                {"id": "p1", "label": "Work", "userName": "A", "email": "a@x.com"},
                {"id": "p2", "label": ["bad"]},
            ]
        )

        assert [profile.id for profile in store.list()] == ["p1"]

    def test_non_list_profiles_setting_is_empty(self) -> None:
        settings = MemorySettingsStore({PROFILES_KEY: {"oops": True}})

        assert ProfileStore(settings).list() == []


class TestLookups:
    def test_list_returns_independent_values(self) -> None:
        store, _ = _store([make_profile().to_record()])

        first = store.list()[0]
        second = store.list()[0]

        assert first == second
        assert first is not second
        with pytest.raises(ValidationError):
            first.label = "Changed"  # type: ignore[misc]

    def test_find_by_id_and_label(self) -> None:
        store, _ = _store(
            [
                make_profile("p1", "Work $(check)").to_record(),
                make_profile("p2", "Home").to_record(),
            ]
        )

        assert store.find("p2") is not None and store.find("p2").label == "Home"
        assert store.find(None) is None
        assert store.find_by_label("work") is not None
        assert store.find_by_label("  ") is None
        assert store.find_reference("HOME").id == "p2"

    def test_find_reference_raises_for_unknown(self) -> None:
        store, _ = _store([make_profile().to_record()])

        with pytest.raises(ProfileNotFoundError, match="no profile matches 'missing'"):
            store.find_reference("missing")

    def test_create_strips_markers_and_whitespace(self) -> None:
        store, settings = _store()

        profile = store.create("Work $(alert)", " Alice ", " a@x.com ", " KEY ")

        assert profile == Profile(
            id="gen-1", label="Work", user_name="Alice", email="a@x.com", signing_key="KEY"
        )
        assert settings.writes == []


class TestSave:
    def test_save_appends_new_profile(self) -> None:
        store, _ = _store([make_profile("p1").to_record()])

        stored = store.save(make_profile("p2", "Home"))

        assert stored.id == "p2"
        assert [profile.id for profile in store.list()] == ["p1", "p2"]

    def test_save_replaces_by_id(self) -> None:
        store, _ = _store([make_profile("p1").to_record(), make_profile("p2", "Home").to_record()])

        store.save(make_profile("p1", "Work", email="new@x.com"))

        assert [profile.email for profile in store.list()] == ["new@x.com", "a@x.com"]

    def test_save_replaces_by_previous_key(self) -> None:
        store, _ = _store([make_profile("p1").to_record()])

        store.save(make_profile("p1", "Renamed"), "p1")

        assert [profile.label for profile in store.list()] == ["Renamed"]

    def test_save_assigns_id_to_profile_without_one(self) -> None:
        store, _ = _store()

        stored = store.save(Profile(label="Work", user_name="Alice", email="a@x.com"))

        assert stored.id == "gen-1"
        assert store.find("gen-1") is not None

    def test_save_strips_label_markers(self) -> None:
        store, settings = _store()

        store.save(make_profile("p1", "Work $(check)"))

        records = settings.get(PROFILES_KEY)
        assert isinstance(records, list)
        assert records[0]["label"] == "Work"

    def test_save_keeps_unknown_record_fields(self) -> None:
        record = make_profile("p1").to_record()
        record["color"] = "blue"
        store, settings = _store([record])

        profile = store.find("p1")
        assert profile is not None
        store.save(profile.model_copy(update={"email": "b@x.com"}))

        records = settings.get(PROFILES_KEY)
        assert isinstance(records, list)
        assert records[0]["color"] == "blue"
        assert records[0]["email"] == "b@x.com"

    def test_save_without_root_leaves_legacy_flags(self) -> None:
        legacy = make_profile("p1").to_record()
        legacy["selected"] = True
        store, _ = _store([legacy, make_profile("p2", "Home").to_record()])

        store.save(make_profile("p2", "Home", email="h@x.com"))

        assert store.find("p1").selected is True

    def test_save_with_root_carries_legacy_selection_over(self) -> None:
        legacy = make_profile("p1").to_record()
        legacy["selected"] = True
        store, settings = _store([legacy, make_profile("p2", "Home").to_record()])

        store.save(make_profile("p2", "Home", email="h@x.com"), root=ROOT)

        assert all(profile.selected is None for profile in store.list())
        assert settings.get(SELECTED_PROFILE_ID_KEY, root=ROOT) == "p1"
        assert store.get_selected_id(ROOT) == SelectionLookup(profile_id="p1", tier="location")

    def test_save_with_root_keeps_existing_location_selection(self) -> None:
        legacy = make_profile("p1").to_record()
        legacy["selected"] = True
        store, settings = _store([legacy, make_profile("p2", "Home").to_record()], selected="p2")

        store.save(make_profile("p1", "Work"), root=ROOT)

        assert settings.get(SELECTED_PROFILE_ID_KEY, root=ROOT) == "p2"
        assert store.find("p1").selected is None


class TestDelete:
    def test_delete_clears_matching_location_selection(self) -> None:
        store, settings = _store(
            [make_profile("p1").to_record(), make_profile("p2", "Home").to_record()],
            selected="p1",
        )

        removed = store.delete("p1", root=ROOT)

        assert removed.id == "p1"
        assert [profile.id for profile in store.list()] == ["p2"]
        assert settings.get(SELECTED_PROFILE_ID_KEY, root=ROOT) is None

    def test_delete_keeps_other_selection(self) -> None:
        store, settings = _store(
            [make_profile("p1").to_record(), make_profile("p2", "Home").to_record()],
            selected="p2",
        )

        store.delete("p1", root=ROOT)

        assert settings.get(SELECTED_PROFILE_ID_KEY, root=ROOT) == "p2"

    def test_delete_unknown_raises(self) -> None:
        store, _ = _store([make_profile("p1").to_record()])

        with pytest.raises(ProfileNotFoundError):
            store.delete("nope")


class TestSelection:
    def test_location_tier_wins_over_legacy_flag(self) -> None:
        legacy = make_profile("p1").to_record()
        legacy["selected"] = True
        store, _ = _store([legacy, make_profile("p2", "Home").to_record()], selected="p2")

        assert store.get_selected_id(ROOT) == SelectionLookup(profile_id="p2", tier="location")

    def test_legacy_flag_is_fallback(self) -> None:
        legacy = make_profile("p2", "Home").to_record()
        legacy["selected"] = True
        store, _ = _store([make_profile("p1").to_record(), legacy])

        assert store.get_selected_id(ROOT) == SelectionLookup(profile_id="p2", tier="legacy_flag")

    def test_first_legacy_flag_wins(self) -> None:
        first = make_profile("p1").to_record()
        second = make_profile("p2", "Home").to_record()
        first["selected"] = True
        second["selected"] = True
        store, _ = _store([first, second])

        assert store.get_selected_id(ROOT).profile_id == "p1"

    def test_no_selection(self) -> None:
        store, _ = _store([make_profile("p1").to_record()])

        assert store.get_selected_id(ROOT) == SelectionLookup(profile_id=None, tier="none")

    def test_selection_is_per_root(self) -> None:
        store, _ = _store([make_profile("p1").to_record(), make_profile("p2", "Home").to_record()])

        store.set_selected_id("p1", ROOT)
        store.set_selected_id("p2", OTHER_ROOT)

        assert store.get_selected_id(ROOT).profile_id == "p1"
        assert store.get_selected_id(OTHER_ROOT).profile_id == "p2"

    def test_set_selected_id_none_clears(self) -> None:
        store, settings = _store([make_profile("p1").to_record()], selected="p1")

        store.set_selected_id(None, ROOT)

        assert settings.get(SELECTED_PROFILE_ID_KEY, root=ROOT) is None

    def test_resolve_selection_variants(self) -> None:
        store, _ = _store([make_profile("p1").to_record()], selected="p1")
        profiles = store.list()

        found = store.resolve_selection(ROOT, profiles)
        assert isinstance(found, SelectionFound)
        assert found.profile.id == "p1"
        assert found.kind == "found"

        dangling = store.resolve_selection(ROOT, [])
        assert dangling == NoSelection(selected_id="p1", tier="location")

        assert isinstance(store.resolve_selection(None, profiles), InvalidSelectionInput)

    def test_selection_persists_in_git_dir(self, tmp_path: Path) -> None:
        root = tmp_path / "repo"
        (root / ".git").mkdir(parents=True)
        store = ProfileStore(JsonSettingsStore(tmp_path / "global.json"))
        stored = store.save(make_profile("p1"))

        store.set_selected_id(stored.id, root)

        reopened = ProfileStore(JsonSettingsStore(tmp_path / "global.json"))
        assert reopened.get_selected_id(root).profile_id == "p1"
        assert (root / ".git" / "gitprofiles.json").exists()
        assert not (root / ".gitprofiles.json").exists()

    def test_unreadable_location_file_falls_back_to_legacy_flag(self, tmp_path: Path) -> None:
        root = tmp_path / "repo"
        (root / ".git").mkdir(parents=True)
        paths.location_settings_path(root).write_text("{not json", encoding="utf-8")
        settings = JsonSettingsStore(tmp_path / "global.json")
        settings.update(PROFILES_KEY, [dict(make_profile("p1").to_record(), selected=True)])
        store = ProfileStore(settings)

        profiles, selection = store.list_with_selection(root)

        assert isinstance(selection, SelectionFound)
        assert selection.profile == profiles[0]
        assert selection.tier == "legacy_flag"
