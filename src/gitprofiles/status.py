"""Workspace status resolution.

``WorkspaceStatusEngine.resolve`` classifies a location into exactly one
``StatusCode``, checking in this order:

1. no location, or not inside a git work tree -> ``NotAValidWorkspace``
2. a fresh cached status for the repository root is returned as is
3. stored profiles are migrated and the local identity is read
4. no stored profiles -> ``NoProfilesInConfig``
5. no selected profile for the root -> ``NoSelectedProfilesInConfig``
6. selected profile lacks label, user name or email -> ``FieldsMissing``
7. with auto-select enabled, a profile whose identity exactly equals the
   local identity replaces a different selection -> ``NoIssues`` (not cached)
8. local identity matches the selection (case-insensitive) -> ``NoIssues``,
   otherwise ``ConfigOutofSync``

Outcomes of steps 4-8 are cached per root for a short time. Tool and
persistence failures degrade into a status; ``resolve`` does not raise them.
"""

from __future__ import annotations

from pathlib import Path

from . import config as gp_config
from . import exec as exec_util
from . import log as gp_log
from .cache import StatusCache
from .errors import ProfileNotFoundError, SettingsReadError, SettingsWriteError
from .git import IdentityConfigAccessor, RepositoryRootLocator
from .models import (
    GitIdentity,
    Profile,
    SelectionFound,
    StatusCode,
    SyncOutcome,
    WorkspaceStatus,
)
from .profiles import ProfileStore
from .settings import JsonSettingsStore, SettingsStore

NO_ACTIVE_LOCATION = "No active location to resolve."
NOT_A_VALID_REPO = "This does not seem to be a valid git repository."
NO_PROFILES = "No profiles found in settings."
NO_SELECTED_PROFILE = "No profiles selected in settings."
FIELDS_MISSING = (
    "One of label, userName or email properties is missing in the config. Please verify."
)
OUT_OF_SYNC = "User name, email or signing key does not match the local git config."
AUTO_SELECTED = "Selected the profile matching the local git config."

_CATEGORY = "workspace-status"


def is_in_sync(identity: GitIdentity, profile: Profile | None) -> bool:
    """Return whether ``identity`` matches ``profile`` field by field, ignoring case.

    An entirely empty identity is never in sync.

    Example:
        >>> profile = Profile(id="p1", label="Work", userName="Alice", email="a@x.com")
        >>> is_in_sync(GitIdentity(userName="alice", email="A@X.COM"), profile)
        True
        >>> is_in_sync(GitIdentity(), profile)
        False
    """
    if profile is None or identity.is_empty:
        return False
    return (
        identity.email.lower() == profile.email.lower()
        and identity.user_name.lower() == profile.user_name.lower()
        and identity.signing_key.lower() == profile.signing_key.lower()
    )


def find_exact_matches(identity: GitIdentity, profiles: list[Profile]) -> list[Profile]:
    """Return profiles whose identity equals ``identity`` exactly, in stored order."""
    if identity.is_empty:
        return []
    return [profile for profile in profiles if profile.identity() == identity]


def has_missing_fields(profile: Profile) -> bool:
    return not (
        profile.display_label.strip()
        and profile.user_name.strip()
        and profile.email.strip()
    )


class WorkspaceStatusEngine:
    """Resolve, cache and reconcile the identity status of repository roots.

    Construct one engine per process (or per test) and pass it to callers;
    it owns its cache.
    """

    def __init__(
        self,
        settings: SettingsStore,
        *,
        profiles: ProfileStore | None = None,
        locator: RepositoryRootLocator | None = None,
        accessor: IdentityConfigAccessor | None = None,
        cache: StatusCache | None = None,
    ) -> None:
        self.settings = settings
        self.profiles = profiles or ProfileStore(settings)
        self.locator = locator or RepositoryRootLocator()
        self.accessor = accessor or IdentityConfigAccessor()
        self.cache = cache or StatusCache()

    @classmethod
    def create(
        cls,
        settings: SettingsStore | None = None,
        *,
        runner: exec_util.CommandRunner | None = None,
    ) -> WorkspaceStatusEngine:
        """Build an engine configured from the global settings scope."""
        store = settings or JsonSettingsStore()
        engine_config = gp_config.load_engine_config(store)
        return cls(
            store,
            locator=RepositoryRootLocator(git_path=engine_config.git_path, runner=runner),
            accessor=IdentityConfigAccessor(git_path=engine_config.git_path, runner=runner),
            cache=StatusCache(engine_config.status_cache_ttl_seconds),
        )

    def find_root(self, location: Path | str | None) -> Path | None:
        return self.locator.find(location)

    def invalidate(self, root: Path | None = None) -> None:
        self.cache.invalidate(root)

    def resolve(self, location: Path | str | None) -> WorkspaceStatus:
        """Classify the identity status of ``location``."""
        if location is None or not str(location).strip():
            return WorkspaceStatus(
                status=StatusCode.NOT_A_VALID_WORKSPACE, message=NO_ACTIVE_LOCATION
            )
        root = self.locator.find(location)
        if root is None:
            gp_log.debug("not a valid workspace", category=_CATEGORY, location=location)
            return WorkspaceStatus(
                status=StatusCode.NOT_A_VALID_WORKSPACE, message=NOT_A_VALID_REPO
            )

        cached = self.cache.get(root)
        if cached is not None:
            gp_log.trace(
                "cache hit", category=_CATEGORY, root=root, status=cached.status.value
            )
            return cached

        status, cacheable = self._classify(root)
        if cacheable:
            self.cache.put(root, status)
        gp_log.debug(
            "resolved workspace status",
            category=_CATEGORY,
            root=root,
            status=status.status.value,
            in_sync=status.in_sync,
        )
        return status

    def _classify(self, root: Path) -> tuple[WorkspaceStatus, bool]:
        identity = self.accessor.read(root)

        try:
            # migrates legacy records and persists them when needed
            profiles, selection = self.profiles.list_with_selection(root)
        except SettingsReadError as exc:
            gp_log.warning(str(exc), category="settings")
            return (
                WorkspaceStatus(
                    status=StatusCode.NO_PROFILES_IN_CONFIG,
                    message=str(exc),
                    root=root,
                    current_identity=identity,
                ),
                True,
            )

        if not profiles:
            return (
                WorkspaceStatus(
                    status=StatusCode.NO_PROFILES_IN_CONFIG,
                    message=NO_PROFILES,
                    root=root,
                    profiles_count=0,
                    current_identity=identity,
                ),
                True,
            )

        if not isinstance(selection, SelectionFound):
            return (
                WorkspaceStatus(
                    status=StatusCode.NO_SELECTED_PROFILES_IN_CONFIG,
                    message=NO_SELECTED_PROFILE,
                    root=root,
                    profiles_count=len(profiles),
                    current_identity=identity,
                ),
                True,
            )
        selected = selection.profile

        if has_missing_fields(selected):
            return (
                WorkspaceStatus(
                    status=StatusCode.FIELDS_MISSING,
                    message=FIELDS_MISSING,
                    root=root,
                    profiles_count=len(profiles),
                    current_identity=identity,
                    selected_profile=selected,
                    in_sync=is_in_sync(identity, selected),
                ),
                True,
            )

        auto_selected = self._auto_select(root, identity, profiles, selected)
        if auto_selected is not None:
            return (
                WorkspaceStatus(
                    status=StatusCode.NO_ISSUES,
                    message=AUTO_SELECTED,
                    root=root,
                    profiles_count=len(profiles),
                    current_identity=identity,
                    selected_profile=auto_selected,
                    in_sync=True,
                ),
                False,
            )

        in_sync = is_in_sync(identity, selected)
        return (
            WorkspaceStatus(
                status=StatusCode.NO_ISSUES if in_sync else StatusCode.CONFIG_OUT_OF_SYNC,
                message="" if in_sync else OUT_OF_SYNC,
                root=root,
                profiles_count=len(profiles),
                current_identity=identity,
                selected_profile=selected,
                in_sync=in_sync,
            ),
            True,
        )

    def _auto_select(
        self,
        root: Path,
        identity: GitIdentity,
        profiles: list[Profile],
        selected: Profile,
    ) -> Profile | None:
        if not gp_config.auto_select_enabled(self.settings):
            return None
        matches = find_exact_matches(identity, profiles)
        if not matches or any(match.id == selected.id for match in matches):
            return None
        match = matches[0]
        gp_log.debug(
            "auto-selecting matching profile",
            category="profile-matching",
            root=root,
            profile_id=match.id,
            previous_id=selected.id,
        )
        try:
            self.profiles.set_selected_id(match.id, root)
        except (SettingsReadError, SettingsWriteError) as exc:
            gp_log.warning(f"failed to persist auto-selection: {exc}", category="settings")
        self.cache.invalidate(root)
        return match

    def select_profile(self, root: Path, profile_id: str) -> None:
        """Persist ``profile_id`` as the selection for ``root``.

        Raises:
            ProfileNotFoundError: ``profile_id`` is blank.
            SettingsReadError: The location settings could not be read.
            SettingsWriteError: The selection could not be written.
        """
        if not profile_id or not profile_id.strip():
            raise ProfileNotFoundError(profile_id)
        try:
            self.profiles.set_selected_id(profile_id, root)
        finally:
            self.cache.invalidate(root)

    def apply_profile(self, root: Path, profile: Profile) -> WorkspaceStatus:
        """Write ``profile``'s identity to ``root`` and select it there.

        Raises:
            IdentityWriteError: A field could not be written; the other
                fields were still attempted.
            SettingsWriteError: The selection could not be written.
        """
        try:
            self.accessor.write(root, profile.identity())
            if profile.id:
                self.profiles.set_selected_id(profile.id, root)
        finally:
            self.cache.invalidate(root)
        gp_log.success(
            f"Profile '{profile.display_label}' is now applied for '{root.name}'.",
            category="git-config",
        )
        return self.resolve(root)

    def sync_profiles_with_git_config(self, location: Path | str | None) -> SyncOutcome:
        """Select the stored profile matching the local identity, creating one if needed."""
        root = self.locator.find(location)
        if root is None:
            return SyncOutcome(kind="no_workspace")
        identity = self.accessor.read(root)
        if not identity.has_name_or_email:
            return SyncOutcome(kind="no_identity", root=root)

        profiles = self.profiles.list()
        matches = [profile for profile in profiles if is_in_sync(identity, profile)]
        try:
            if matches:
                profile = matches[0]
                gp_log.debug(
                    "found matching profile for git config",
                    category="profile-matching",
                    profile_id=profile.id,
                    root=root,
                )
                if profile.id:
                    self.profiles.set_selected_id(profile.id, root)
                return SyncOutcome(kind="selected_existing", root=root, profile=profile)

            gp_log.debug(
                "creating profile from git config",
                category="profile-matching",
                root=root,
            )
            created = self.profiles.create(
                identity.user_name or identity.email,
                identity.user_name,
                identity.email,
                identity.signing_key,
            )
            stored = self.profiles.save(created, root=root)
            if stored.id:
                self.profiles.set_selected_id(stored.id, root)
            return SyncOutcome(kind="created", root=root, profile=stored)
        finally:
            self.cache.invalidate(root)
