"""Path helpers for locating git-profiles settings files."""

import os
from pathlib import Path

from platformdirs import user_config_dir

from . import git

APP_NAME = "git-profiles"
CONFIG_DIR_ENV = "GITPROFILES_CONFIG_DIR"
GLOBAL_SETTINGS_FILENAME = "settings.json"
LOCATION_SETTINGS_FILENAME = "gitprofiles.json"
WORKTREE_SETTINGS_FILENAME = ".gitprofiles.json"


def config_dir() -> Path:
    """Return the directory holding the global settings file.

    ``GITPROFILES_CONFIG_DIR`` overrides the platform default.

    Example:
        >>> isinstance(config_dir(), Path)
        True
    """
    override = os.environ.get(CONFIG_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path(user_config_dir(APP_NAME))


def global_settings_path() -> Path:
    """Return the path to the global settings file.

    Example:
        >>> global_settings_path().name == GLOBAL_SETTINGS_FILENAME
        True
    """
    return config_dir() / GLOBAL_SETTINGS_FILENAME


def location_settings_path(root: Path) -> Path:
    """Return the location-scoped settings file for a repository root.

    The file lives in the repository's git directory so it never shows up as
    an untracked file. Roots git does not recognise fall back to a file in the
    root itself.

    Example:
        >>> location_settings_path(Path("/src/app")).as_posix()
        '/src/app/.gitprofiles.json'
    """
    git_dir = root / ".git"
    if git_dir.is_dir():
        return git_dir / LOCATION_SETTINGS_FILENAME
    resolved = git.resolve_git_dir_path(root, LOCATION_SETTINGS_FILENAME)
    if resolved is not None:
        return resolved
    return root / WORKTREE_SETTINGS_FILENAME


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)
