"""Pydantic models and typed records for identity profiles and status."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import log as gp_log

LABEL_MARKERS = ("$(check)", "$(alert)")


def strip_label_markers(label: str | None) -> str:
    """Remove decorative status markers from a profile label.

    Example:
        >>> strip_label_markers("Work $(check)")
        'Work'
    """
    if not label:
        return ""
    cleaned = label
    for marker in LABEL_MARKERS:
        cleaned = cleaned.replace(marker, "")
    return cleaned.strip()


def _none_to_empty(value: object) -> object:
    if value is None:
        return ""
    return value


class Profile(BaseModel):
    """A named, stored git identity.

    Attributes:
        id: Stable identifier; ``None`` only on legacy records that have not
            been migrated yet.
        label: Display name, not guaranteed unique.
        user_name: Value for ``user.name``.
        email: Value for ``user.email``.
        signing_key: Value for ``user.signingkey``; empty means unset.
        selected: Legacy selection flag from pre-identifier storage.

    Example:
        >>> Profile(id="p1", label="Work", userName="Alice", email="a@x.com")
        Profile(...)
    """

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    id: str | None = None
    label: str = ""
    user_name: str = Field(default="", alias="userName")
    email: str = ""
    signing_key: str = Field(default="", alias="signingKey")
    selected: bool | None = None

    @field_validator("label", "user_name", "email", "signing_key", mode="before")
    @classmethod
    def normalize_missing(cls, value: object) -> object:
        return _none_to_empty(value)

    @field_validator("id", mode="before")
    @classmethod
    def normalize_id(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip()
            return normalized or None
        return value

    @property
    def display_label(self) -> str:
        return strip_label_markers(self.label)

    def identity(self) -> GitIdentity:
        return GitIdentity(
            user_name=self.user_name, email=self.email, signing_key=self.signing_key
        )

    def to_record(self) -> dict[str, object]:
        """Serialize to the camelCase record stored in settings."""
        return self.model_dump(by_alias=True, exclude_none=True)


class GitIdentity(BaseModel):
    """The identity triple configured at one repository root."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_name: str = Field(default="", alias="userName")
    email: str = ""
    signing_key: str = Field(default="", alias="signingKey")

    @field_validator("user_name", "email", "signing_key", mode="before")
    @classmethod
    def normalize_missing(cls, value: object) -> object:
        return _none_to_empty(value)

    @property
    def is_empty(self) -> bool:
        return not (self.user_name or self.email or self.signing_key)

    @property
    def has_name_or_email(self) -> bool:
        return bool(self.user_name or self.email)


class StatusCode(str, Enum):
    """Mutually exclusive outcomes of a status resolution."""

    NOT_A_VALID_WORKSPACE = "NotAValidWorkspace"
    NO_PROFILES_IN_CONFIG = "NoProfilesInConfig"
    NO_SELECTED_PROFILES_IN_CONFIG = "NoSelectedProfilesInConfig"
    FIELDS_MISSING = "FieldsMissing"
    CONFIG_OUT_OF_SYNC = "ConfigOutofSync"
    NO_ISSUES = "NoIssues"


class WorkspaceStatus(BaseModel):
    """Result of resolving the identity status of one location.

    Instances are recomputed for every resolution and never mutated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: StatusCode
    message: str = ""
    root: Path | None = None
    profiles_count: int = Field(default=0, alias="profilesInVSConfigCount")
    current_identity: GitIdentity | None = Field(default=None, alias="currentGitConfig")
    selected_profile: Profile | None = Field(default=None, alias="selectedProfile")
    in_sync: bool = Field(default=False, alias="configInSync")

    def to_payload(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)


SelectionTier = Literal["location", "legacy_flag", "none"]


@dataclass(frozen=True)
class SelectionLookup:
    """Outcome of the two-tier selected-profile lookup.

    ``tier`` names which source answered: the location-scoped setting, the
    legacy ``selected`` flag, or neither.
    """

    profile_id: str | None
    tier: SelectionTier


@dataclass(frozen=True)
class SelectionFound:
    profile: Profile
    tier: SelectionTier
    kind: Literal["found"] = "found"


@dataclass(frozen=True)
class NoSelection:
    selected_id: str | None
    tier: SelectionTier
    kind: Literal["no_selection"] = "no_selection"


@dataclass(frozen=True)
class InvalidSelectionInput:
    reason: str
    kind: Literal["invalid_input"] = "invalid_input"


ResolvedSelection = SelectionFound | NoSelection | InvalidSelectionInput


SyncKind = Literal["no_workspace", "no_identity", "selected_existing", "created"]


@dataclass(frozen=True)
class SyncOutcome:
    """Result of reconciling stored profiles with a repository's git identity."""

    kind: SyncKind
    root: Path | None = None
    profile: Profile | None = None


class EngineConfig(BaseModel):
    """Engine options read from the global settings scope.

    Example:
        >>> EngineConfig.model_validate({"statusCacheTtlSeconds": 2}).status_cache_ttl_seconds
        2.0
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    git_path: str = Field(default="git", alias="gitPath")
    status_cache_ttl_seconds: float = Field(
        default=1.0, alias="statusCacheTtlSeconds", gt=0
    )
    select_matched_profile_automatically: bool = Field(
        default=False, alias="selectMatchedProfileAutomatically"
    )
    log_level: str | None = Field(default=None, alias="logLevel")

    @field_validator("git_path", mode="before")
    @classmethod
    def normalize_git_path(cls, value: object) -> object:
        if value is None:
            return "git"
        if isinstance(value, str):
            normalized = value.strip()
            return normalized or "git"
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, str):
            normalized = value.strip().lower()
            if not normalized:
                return None
            if normalized not in gp_log.LEVEL_NAMES and normalized != "warn":
                raise ValueError(
                    "logLevel must be one of: " + ", ".join(gp_log.LEVEL_NAMES)
                )
            return normalized
        return value
