"""Profile storage on top of the settings collaborator.

Profiles live as an ordered list of camelCase records under the global
``profiles`` key. Each repository root stores the id of its selected profile
under the location-scoped ``selectedProfileId`` key. Records written by older
releases may lack an ``id`` or ``signingKey`` and may mark the selection with
a global ``selected`` flag; ``migrate`` upgrades them in place.

Every read goes back to the settings store and returns fresh ``Profile``
values, so callers never share mutable state. Changing a profile requires an
explicit ``save``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from . import log as gp_log
from .errors import ProfileNotFoundError, SettingsReadError, SettingsWriteError
from .models import (
    InvalidSelectionInput,
    NoSelection,
    Profile,
    ResolvedSelection,
    SelectionFound,
    SelectionLookup,
    strip_label_markers,
)
from .settings import PROFILES_KEY, SELECTED_PROFILE_ID_KEY, SettingsStore

Record = dict[str, object]


def new_profile_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class MigrationResult:
    records: list[Record]
    changed: bool


def migrate_records(
    records: list[Record], *, id_factory: Callable[[], str] = new_profile_id
) -> MigrationResult:
    """Assign missing ids and normalize missing signing keys.

    The input list is not modified.
    """
    migrated: list[Record] = []
    changed = False
    for record in records:
        upgraded = dict(record)
        raw_id = upgraded.get("id")
        if not isinstance(raw_id, str) or not raw_id.strip():
            upgraded["id"] = id_factory()
            changed = True
        if upgraded.get("signingKey") is None:
            upgraded["signingKey"] = ""
            changed = True
        migrated.append(upgraded)
    return MigrationResult(records=migrated, changed=changed)


def _labels_match(record: Record, label: str) -> bool:
    stored = record.get("label")
    if not isinstance(stored, str):
        return False
    return strip_label_markers(stored).lower() == strip_label_markers(label).lower()


def _record_id(record: Record) -> str | None:
    value = record.get("id")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class ProfileStore:
    """Named identity profiles plus the per-root selection indirection."""

    def __init__(
        self,
        settings: SettingsStore,
        *,
        id_factory: Callable[[], str] = new_profile_id,
    ) -> None:
        self.settings = settings
        self._id_factory = id_factory

    def _raw_records(self) -> list[Record]:
        payload = self.settings.get(PROFILES_KEY, [])
        if payload is None:
            return []
        if not isinstance(payload, list):
            gp_log.warning(
                "ignoring profiles setting that is not a list", category="settings"
            )
            return []
        records: list[Record] = []
        for index, item in enumerate(payload):
            if not isinstance(item, dict):
                gp_log.warning(
                    "ignoring profile record that is not an object",
                    category="settings",
                    index=index,
                )
                continue
            records.append(dict(item))
        return records

    def _write_records(self, records: list[Record]) -> None:
        self.settings.update(PROFILES_KEY, records)

    def migrate(self) -> MigrationResult:
        """Upgrade legacy records and persist them in one write if anything changed.

        Raises:
            SettingsWriteError: The upgraded list could not be persisted.
        """
        result = migrate_records(self._raw_records(), id_factory=self._id_factory)
        if result.changed:
            gp_log.info(
                "migrating stored profiles", category="settings", count=len(result.records)
            )
            self._write_records(result.records)
        return result

    def _load(self) -> list[Record]:
        result = migrate_records(self._raw_records(), id_factory=self._id_factory)
        if result.changed:
            try:
                self._write_records(result.records)
            except SettingsWriteError as exc:
                gp_log.warning(
                    f"failed to persist migrated profiles: {exc}", category="settings"
                )
        return result.records

    @staticmethod
    def _to_profiles(records: list[Record]) -> list[Profile]:
        profiles: list[Profile] = []
        for index, record in enumerate(records):
            try:
                profiles.append(Profile.model_validate(record))
            except ValidationError as exc:
                gp_log.warning(
                    "ignoring invalid profile record",
                    category="settings",
                    index=index,
                    errors=exc.error_count(),
                )
        return profiles

    def list(self) -> list[Profile]:
        """Return independent copies of every stored profile, migrating first."""
        return self._to_profiles(self._load())

    def find(self, profile_id: str | None) -> Profile | None:
        if not profile_id:
            return None
        for profile in self.list():
            if profile.id == profile_id:
                return profile
        return None

    def find_by_label(self, label: str) -> Profile | None:
        """Return the first profile whose label matches, ignoring case and markers."""
        wanted = strip_label_markers(label).lower()
        if not wanted:
            return None
        for profile in self.list():
            if profile.display_label.lower() == wanted:
                return profile
        return None

    def find_reference(self, reference: str) -> Profile:
        """Resolve an id or a label to a stored profile.

        Raises:
            ProfileNotFoundError: Nothing matches ``reference``.
        """
        profile = self.find(reference.strip()) or self.find_by_label(reference)
        if profile is None:
            raise ProfileNotFoundError(reference)
        return profile

    def create(
        self, label: str, user_name: str, email: str, signing_key: str = ""
    ) -> Profile:
        """Build an unsaved profile with a fresh id."""
        return Profile(
            id=self._id_factory(),
            label=strip_label_markers(label),
            user_name=user_name.strip(),
            email=email.strip(),
            signing_key=signing_key.strip(),
        )

    @staticmethod
    def _find_index(
        records: list[Record], profile: Profile, previous_key: str | None
    ) -> int:
        for index, record in enumerate(records):
            record_id = _record_id(record)
            if previous_key:
                if record_id is not None and record_id == previous_key:
                    return index
                if record_id is None and _labels_match(record, previous_key):
                    return index
            elif profile.id:
                if record_id == profile.id:
                    return index
                if record_id is None and _labels_match(record, profile.label):
                    return index
            elif _labels_match(record, profile.label):
                return index
        return -1

    def save(
        self,
        profile: Profile,
        previous_key: str | None = None,
        *,
        root: Path | None = None,
    ) -> Profile:
        """Insert or overwrite a profile.

        The target record is found by ``previous_key`` when given, otherwise
        by ``profile.id``; records without an id match by label. Unmatched
        profiles are appended. Label markers are stripped before storing.

        When ``root`` is given the location-scoped selection is available, so
        every legacy ``selected`` flag is cleared after carrying a legacy
        selection over to ``root``. Without a root the flags are left alone.

        Returns:
            The profile as stored.
        """
        records = self._load()
        index = self._find_index(records, profile, previous_key)
        profile_id = profile.id
        if not profile_id and index > -1:
            profile_id = _record_id(records[index])
        if not profile_id:
            profile_id = self._id_factory()

        record = profile.to_record()
        record["id"] = profile_id
        record["label"] = strip_label_markers(profile.label)

        if root is not None:
            lookup = self._lookup_selected_id(root, records)
            if lookup.tier == "legacy_flag" and lookup.profile_id:
                self.set_selected_id(lookup.profile_id, root)
            for stored in records:
                stored.pop("selected", None)
                if isinstance(stored.get("label"), str):
                    stored["label"] = strip_label_markers(str(stored["label"]))
            record.pop("selected", None)

        if index > -1:
            records[index] = record
        else:
            records.append(record)
        self._write_records(records)
        gp_log.debug(
            "saved profile",
            category="settings",
            profile_id=profile_id,
            replaced=index > -1,
        )
        return Profile.model_validate(record)

    def delete(self, profile_id: str, *, root: Path | None = None) -> Profile:
        """Remove a stored profile and clear ``root``'s selection if it pointed at it.

        Raises:
            ProfileNotFoundError: No profile has ``profile_id``.
        """
        records = self._load()
        remaining = [record for record in records if _record_id(record) != profile_id]
        if len(remaining) == len(records):
            raise ProfileNotFoundError(profile_id)
        removed = next(record for record in records if _record_id(record) == profile_id)
        self._write_records(remaining)
        if root is not None and self._location_selected_id(root) == profile_id:
            self.settings.update(SELECTED_PROFILE_ID_KEY, None, root=root)
        return Profile.model_validate(removed)

    def _location_selected_id(self, root: Path) -> str | None:
        try:
            value = self.settings.get(SELECTED_PROFILE_ID_KEY, None, root=root)
        except SettingsReadError as exc:
            gp_log.warning(str(exc), category="settings", root=root)
            return None
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    def _lookup_selected_id(self, root: Path, records: list[Record]) -> SelectionLookup:
        location_id = self._location_selected_id(root)
        if location_id:
            return SelectionLookup(profile_id=location_id, tier="location")
        # Several records may carry the legacy flag; the first one wins.
        for record in records:
            if record.get("selected") is True and _record_id(record):
                return SelectionLookup(profile_id=_record_id(record), tier="legacy_flag")
        return SelectionLookup(profile_id=None, tier="none")

    def get_selected_id(self, root: Path) -> SelectionLookup:
        """Two-tier lookup: the root's setting, then the legacy ``selected`` flag."""
        return self._traced_lookup(root, self._load())

    def _traced_lookup(self, root: Path, records: list[Record]) -> SelectionLookup:
        lookup = self._lookup_selected_id(root, records)
        gp_log.trace(
            "selected profile lookup",
            category="workspace-status",
            root=root,
            tier=lookup.tier,
            profile_id=lookup.profile_id or "<none>",
        )
        return lookup

    def set_selected_id(self, profile_id: str | None, root: Path) -> None:
        """Persist ``profile_id`` as the selection for ``root``; ``None`` clears it."""
        value = profile_id.strip() if isinstance(profile_id, str) else None
        self.settings.update(SELECTED_PROFILE_ID_KEY, value or None, root=root)
        gp_log.debug(
            "updated selected profile",
            category="workspace-status",
            root=root,
            profile_id=value or "<none>",
        )

    @staticmethod
    def _match_selection(
        lookup: SelectionLookup, profiles: list[Profile]
    ) -> ResolvedSelection:
        if lookup.profile_id is None:
            return NoSelection(selected_id=None, tier=lookup.tier)
        for profile in profiles:
            if profile.id == lookup.profile_id:
                return SelectionFound(profile=profile, tier=lookup.tier)
        return NoSelection(selected_id=lookup.profile_id, tier=lookup.tier)

    def resolve_selection(
        self, root: Path | None, profiles: list[Profile]
    ) -> ResolvedSelection:
        """Resolve the selected profile for ``root`` among ``profiles``."""
        if root is None:
            return InvalidSelectionInput(reason="no repository root")
        return self._match_selection(self.get_selected_id(root), profiles)

    def list_with_selection(
        self, root: Path
    ) -> tuple[list[Profile], ResolvedSelection]:
        """Return every profile and ``root``'s selection from a single read.

        Ids minted by a migration that could not be persisted differ on every
        read, so the selection must be matched against the same records.
        """
        records = self._load()
        profiles = self._to_profiles(records)
        lookup = self._traced_lookup(root, records)
        return profiles, self._match_selection(lookup, profiles)
