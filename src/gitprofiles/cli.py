"""Command-line entry point for git-profiles."""

import json
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer

from . import __version__
from . import config as gp_config
from . import log as gp_log
from .errors import GitProfilesError, ProfileNotFoundError, ProfileValidationError
from .io import confirm, die, say
from .models import Profile, SelectionFound, StatusCode
from .presentation import describe, display_label, render_profiles, render_status
from .settings import JsonSettingsStore
from .status import NOT_A_VALID_REPO, WorkspaceStatusEngine
from .validation import (
    validate_email,
    validate_profile,
    validate_profile_name,
    validate_user_name,
)

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Manage git identity profiles per repository.",
)

_FORMATS = ("table", "json")

PathArgument = Annotated[
    Optional[Path],
    typer.Argument(help="Location inside a repository (defaults to the current directory)."),
]
FormatOption = Annotated[str, typer.Option("--format", help="Output format: table or json.")]


def _build_engine() -> WorkspaceStatusEngine:
    return WorkspaceStatusEngine.create(JsonSettingsStore())


def _location(path: Path | None) -> Path:
    return path if path is not None else Path.cwd()


def _check_format(value: str) -> str:
    normalized = (value or "table").strip().lower()
    if normalized not in _FORMATS:
        die(f"unsupported format: {value}")
    return normalized


def _require_root(engine: WorkspaceStatusEngine, path: Path | None) -> Path:
    root = engine.find_root(_location(path))
    if root is None:
        die(NOT_A_VALID_REPO)
    return root


def _fail(exc: GitProfilesError) -> NoReturn:
    die(str(exc), hint=exc.recovery_hint)


def _stored_id(profile: Profile) -> str:
    if not profile.id:
        raise ProfileNotFoundError(profile.display_label)
    return profile.id


def _validate_fields(
    engine: WorkspaceStatusEngine,
    *,
    label: str,
    user_name: str,
    email: str,
    exclude_id: str | None = None,
) -> None:
    problems = [
        problem
        for problem in (
            validate_profile_name(label, engine.profiles.list(), exclude_id=exclude_id),
            validate_user_name(user_name),
            validate_email(email),
        )
        if problem
    ]
    if problems:
        raise ProfileValidationError(problems)


def _log_level_callback(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in gp_log.LEVEL_NAMES:
        raise typer.BadParameter("expected one of: " + ", ".join(gp_log.LEVEL_NAMES))
    return normalized


def _version_callback(value: bool) -> None:
    if value:
        say(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    log_level: Annotated[
        Optional[str],
        typer.Option(
            "--log-level",
            help="Log level: " + ", ".join(gp_log.LEVEL_NAMES) + ".",
            callback=_log_level_callback,
        ),
    ] = None,
    no_color: Annotated[
        bool, typer.Option("--no-color", help="Disable coloured output.")
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version", callback=_version_callback, is_eager=True, help="Show the version."
        ),
    ] = False,
) -> None:
    if no_color:
        gp_log.set_no_color(True)
    if log_level is not None:
        gp_log.set_level(log_level)
        return
    configured = gp_config.load_engine_config(JsonSettingsStore()).log_level
    if configured:
        gp_log.set_level(configured)


@app.command("status")
def status_command(path: PathArgument = None, format: FormatOption = "table") -> None:
    """Show which profile governs a repository and whether it is applied."""
    output = _check_format(format)
    engine = _build_engine()
    status = engine.resolve(_location(path))
    if output == "json":
        payload = status.to_payload()
        payload["label"] = display_label(status)
        payload["description"] = describe(status)
        say(json.dumps(payload, indent=2, sort_keys=True))
        return
    render_status(status)


@app.command("list")
def list_command(path: PathArgument = None, format: FormatOption = "table") -> None:
    """List stored profiles, marking the one selected for a repository."""
    output = _check_format(format)
    engine = _build_engine()
    try:
        root = engine.find_root(_location(path))
        selected_id: str | None = None
        if root is None:
            profiles = engine.profiles.list()
        else:
            profiles, selection = engine.profiles.list_with_selection(root)
            if isinstance(selection, SelectionFound):
                selected_id = selection.profile.id
    except GitProfilesError as exc:
        _fail(exc)
    if output == "json":
        payload = {
            "profiles": [profile.to_record() for profile in profiles],
            "selectedProfileId": selected_id,
        }
        say(json.dumps(payload, indent=2, sort_keys=True))
        return
    render_profiles(profiles, selected_id=selected_id)


@app.command("add")
def add_command(
    label: Annotated[str, typer.Argument(help="Profile name.")],
    name: Annotated[str, typer.Option("--name", help="Value for user.name.")],
    email: Annotated[str, typer.Option("--email", help="Value for user.email.")],
    signing_key: Annotated[
        str, typer.Option("--signing-key", help="Value for user.signingkey.")
    ] = "",
) -> None:
    """Create a profile."""
    engine = _build_engine()
    try:
        _validate_fields(engine, label=label, user_name=name, email=email)
        profile = engine.profiles.save(
            engine.profiles.create(label, name, email, signing_key)
        )
    except GitProfilesError as exc:
        _fail(exc)
    engine.invalidate()
    gp_log.success(f"Profile '{profile.display_label}' created.")


@app.command("edit")
def edit_command(
    reference: Annotated[str, typer.Argument(help="Profile id or label.")],
    label: Annotated[Optional[str], typer.Option("--label")] = None,
    name: Annotated[Optional[str], typer.Option("--name")] = None,
    email: Annotated[Optional[str], typer.Option("--email")] = None,
    signing_key: Annotated[Optional[str], typer.Option("--signing-key")] = None,
) -> None:
    """Change fields of a stored profile."""
    engine = _build_engine()
    try:
        profile = engine.profiles.find_reference(reference)
        updates: dict[str, object] = {}
        if label is not None:
            updates["label"] = label.strip()
        if name is not None:
            updates["user_name"] = name.strip()
        if email is not None:
            updates["email"] = email.strip()
        if signing_key is not None:
            updates["signing_key"] = signing_key.strip()
        edited = profile.model_copy(update=updates)
        _validate_fields(
            engine,
            label=edited.label,
            user_name=edited.user_name,
            email=edited.email,
            exclude_id=profile.id,
        )
        stored = engine.profiles.save(edited, profile.id or profile.label)
    except GitProfilesError as exc:
        _fail(exc)
    engine.invalidate()
    gp_log.success(f"Profile '{stored.display_label}' updated.")


@app.command("remove")
def remove_command(
    reference: Annotated[str, typer.Argument(help="Profile id or label.")],
    path: PathArgument = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
) -> None:
    """Delete a stored profile."""
    engine = _build_engine()
    try:
        profile = engine.profiles.find_reference(reference)
        if not yes and not confirm(f"Delete profile '{profile.display_label}'?"):
            say("Aborted.")
            raise typer.Exit(code=1)
        root = engine.find_root(_location(path))
        engine.profiles.delete(_stored_id(profile), root=root)
    except GitProfilesError as exc:
        _fail(exc)
    engine.invalidate()
    gp_log.success(f"Profile '{profile.display_label}' deleted.")


@app.command("select")
def select_command(
    reference: Annotated[str, typer.Argument(help="Profile id or label.")],
    path: PathArgument = None,
) -> None:
    """Select a profile for a repository without changing its git config."""
    engine = _build_engine()
    root = _require_root(engine, path)
    try:
        profile = engine.profiles.find_reference(reference)
        engine.select_profile(root, _stored_id(profile))
    except GitProfilesError as exc:
        _fail(exc)
    status = engine.resolve(root)
    say(describe(status))


@app.command("apply")
def apply_command(
    reference: Annotated[
        Optional[str], typer.Argument(help="Profile id or label (defaults to the selection).")
    ] = None,
    path: PathArgument = None,
) -> None:
    """Write a profile's identity into a repository's local git config."""
    engine = _build_engine()
    root = _require_root(engine, path)
    try:
        if reference is not None:
            profile: Profile | None = engine.profiles.find_reference(reference)
        else:
            _, selection = engine.profiles.list_with_selection(root)
            profile = selection.profile if isinstance(selection, SelectionFound) else None
        if profile is None:
            die("no profile selected for this repository; pass a profile id or label")
        problems = validate_profile(profile)
        if problems:
            raise ProfileValidationError(problems)
        status = engine.apply_profile(root, profile)
    except GitProfilesError as exc:
        _fail(exc)
    if status.status is not StatusCode.NO_ISSUES:
        die(describe(status))


@app.command("sync")
def sync_command(path: PathArgument = None) -> None:
    """Select (or create) the profile matching a repository's git config."""
    engine = _build_engine()
    try:
        outcome = engine.sync_profiles_with_git_config(_location(path))
    except GitProfilesError as exc:
        _fail(exc)
    if outcome.kind == "no_workspace":
        die(NOT_A_VALID_REPO)
    root_name = outcome.root.name if outcome.root else ""
    if outcome.kind == "no_identity":
        say(f"No user details found in git config of '{root_name}'.")
        return
    label = outcome.profile.display_label if outcome.profile else ""
    if outcome.kind == "created":
        gp_log.success(f"Created profile '{label}' from git config of '{root_name}'.")
    else:
        gp_log.success(f"Selected profile '{label}' for '{root_name}'.")


@app.command("validate")
def validate_command(
    reference: Annotated[str, typer.Argument(help="Profile id or label.")],
) -> None:
    """Check a stored profile's fields."""
    engine = _build_engine()
    try:
        profile = engine.profiles.find_reference(reference)
    except GitProfilesError as exc:
        _fail(exc)
    problems = validate_profile(profile)
    if problems:
        for problem in problems:
            gp_log.error(f"- {problem}")
        die(f"Profile '{profile.display_label}' validation failed")
    gp_log.success(f"Profile '{profile.display_label}' is valid and ready to use!")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
