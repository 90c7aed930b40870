"""Failure contracts for git-profiles.

Operations raise ``GitProfilesError`` subclasses on expected failures.
Status resolution never lets these escape: it degrades to a status record.
Command handlers catch them and exit with a user-facing message.
"""

from __future__ import annotations

from typing import Literal

ErrorCode = Literal[
    "git_command_failed",
    "identity_write_failed",
    "settings_read_failed",
    "settings_write_failed",
    "profile_not_found",
    "profile_invalid",
]


class GitProfilesError(Exception):
    """Expected failure with a stable code and an optional recovery hint."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.recovery_hint = recovery_hint


class GitCommandError(GitProfilesError):
    """A git invocation failed or git is not installed."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("git_command_failed", message, recovery_hint=recovery_hint)


class IdentityWriteError(GitProfilesError):
    """One or more identity fields could not be written to the local config."""

    def __init__(self, failed_keys: list[str], details: list[str]) -> None:
        self.failed_keys = list(failed_keys)
        self.details = list(details)
        summary = ", ".join(self.failed_keys)
        super().__init__(
            "identity_write_failed",
            f"failed to write local git config: {summary}",
            recovery_hint="\n".join(self.details) or None,
        )


class SettingsReadError(GitProfilesError):
    """A settings file exists but could not be read or parsed."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("settings_read_failed", message, recovery_hint=recovery_hint)


class SettingsWriteError(GitProfilesError):
    """A settings file could not be written."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("settings_write_failed", message, recovery_hint=recovery_hint)


class ProfileNotFoundError(GitProfilesError):
    """No stored profile matches the requested id or label."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(
            "profile_not_found",
            f"no profile matches {reference!r}",
            recovery_hint="run `git-profiles list` to see stored profiles",
        )


class ProfileValidationError(GitProfilesError):
    """Profile field values failed validation."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("profile_invalid", "; ".join(self.problems))
