"""Human-facing rendering of workspace status and profile lists."""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.table import Table

from .models import Profile, StatusCode, WorkspaceStatus

APPLICATION_NAME = "Git Config User Profiles"
CHECK_MARKER = "$(check)"
ALERT_MARKER = "$(alert)"


def display_label(status: WorkspaceStatus) -> str:
    """Return the status indicator text for ``status``.

    The selected profile's label gets a check marker when in sync and an
    alert marker otherwise. Without a selection the application name is
    shown.
    """
    profile = status.selected_profile
    if profile is None or not profile.display_label:
        return APPLICATION_NAME
    marker = CHECK_MARKER if status.in_sync else ALERT_MARKER
    return f"{profile.display_label} {marker}"


def describe(status: WorkspaceStatus) -> str:
    """Explain ``status`` in one or two sentences."""
    repo_name = status.root.name if status.root else ""
    label = status.selected_profile.display_label if status.selected_profile else ""
    code = status.status
    if code is StatusCode.NOT_A_VALID_WORKSPACE:
        return status.message or "The current location is not a git repository."
    if code is StatusCode.NO_PROFILES_IN_CONFIG:
        return "No profiles created yet."
    if code is StatusCode.NO_SELECTED_PROFILES_IN_CONFIG:
        return f"No profile selected. {status.profiles_count} profile(s) available."
    if code is StatusCode.FIELDS_MISSING:
        return f"Selected profile has issues. {status.message or 'Missing required fields.'}"
    if code is StatusCode.CONFIG_OUT_OF_SYNC:
        return (
            f"'{repo_name}' is not using user details from '{label}' profile. "
            f"{status.message}"
        ).strip()
    return f"Profile '{label}' is active because its user details match the local git config."


def _display_value(value: object) -> str:
    if value is None or value == "":
        return "-"
    return str(value)


def render_status(status: WorkspaceStatus, *, console: Console | None = None) -> None:
    console = console or Console()
    overview = Table(title="Workspace Status", box=box.SIMPLE, show_header=False)
    overview.add_column("Field", style="bold")
    overview.add_column("Value", overflow="fold")
    overview.add_row("Status", status.status.value)
    overview.add_row("Repo root", _display_value(status.root))
    overview.add_row("Profiles", _display_value(status.profiles_count))
    overview.add_row("Selected", display_label(status))
    overview.add_row("In sync", "yes" if status.in_sync else "no")
    console.print(overview)

    identity = status.current_identity
    profile = status.selected_profile
    if identity is not None and profile is not None:
        diff = Table(title="Identity", box=box.SIMPLE)
        diff.add_column("Field", no_wrap=True)
        diff.add_column("Profile", overflow="fold")
        diff.add_column("Git config", overflow="fold")
        diff.add_row("user.name", _display_value(profile.user_name), _display_value(identity.user_name))
        diff.add_row("user.email", _display_value(profile.email), _display_value(identity.email))
        diff.add_row(
            "user.signingkey",
            _display_value(profile.signing_key),
            _display_value(identity.signing_key),
        )
        console.print(diff)
    console.print(describe(status))


def render_profiles(
    profiles: list[Profile],
    *,
    selected_id: str | None = None,
    console: Console | None = None,
) -> None:
    console = console or Console()
    if not profiles:
        console.print("No profiles created yet.")
        return
    table = Table(title="Profiles", box=box.SIMPLE)
    table.add_column("", no_wrap=True)
    table.add_column("Label", no_wrap=True)
    table.add_column("User name", overflow="fold")
    table.add_column("Email", overflow="fold")
    table.add_column("Signing key", overflow="fold")
    table.add_column("Id", no_wrap=True, style="dim")
    for profile in profiles:
        table.add_row(
            "*" if selected_id and profile.id == selected_id else "",
            profile.display_label,
            _display_value(profile.user_name),
            _display_value(profile.email),
            _display_value(profile.signing_key),
            _display_value(profile.id),
        )
    console.print(table)
