"""Git helpers: repository root discovery and local identity config access.

All invocations are delegated to the git executable so nested repositories,
submodules and worktrees follow git's own rules.
"""

from __future__ import annotations

from pathlib import Path

from . import exec as exec_util
from . import log as gp_log
from .errors import GitCommandError, IdentityWriteError
from .models import GitIdentity

USER_NAME_KEY = "user.name"
USER_EMAIL_KEY = "user.email"
USER_SIGNING_KEY_KEY = "user.signingkey"

# git config exit codes
_CONFIG_KEY_MISSING = 1
_CONFIG_NOTHING_TO_UNSET = 5


def git_command(args: list[str], *, git_path: str | None = None) -> list[str]:
    """Build a git command using an optional executable path.

    Example:
        >>> git_command(["status"], git_path=" ")
        ['git', 'status']
    """
    resolved = git_path.strip() if isinstance(git_path, str) else ""
    if not resolved:
        resolved = "git"
    return [resolved, *args]


def _run_git(
    args: list[str],
    *,
    repo_dir: Path,
    git_path: str | None = None,
    runner: exec_util.CommandRunner | None = None,
) -> exec_util.CommandResult | None:
    cmd = git_command(["-C", str(repo_dir), *args], git_path=git_path)
    result = exec_util.run_with_runner(
        exec_util.CommandRequest(argv=tuple(cmd)), runner=runner
    )
    if result is None:
        gp_log.debug("git executable not found", category="git", git_path=cmd[0])
    return result


def is_repository(
    path: Path,
    *,
    git_path: str | None = None,
    runner: exec_util.CommandRunner | None = None,
) -> bool:
    """Return whether ``path`` is inside a git work tree."""
    result = _run_git(
        ["rev-parse", "--is-inside-work-tree"],
        repo_dir=path,
        git_path=git_path,
        runner=runner,
    )
    if result is None or not result.ok:
        return False
    return result.stdout.strip() == "true"


def top_level(
    path: Path,
    *,
    git_path: str | None = None,
    runner: exec_util.CommandRunner | None = None,
) -> Path | None:
    """Return the top-level directory of the work tree containing ``path``."""
    result = _run_git(
        ["rev-parse", "--show-toplevel"],
        repo_dir=path,
        git_path=git_path,
        runner=runner,
    )
    if result is None or not result.ok:
        return None
    resolved = result.stdout.strip()
    if not resolved:
        return None
    return Path(resolved)


def resolve_git_dir_path(
    root: Path,
    name: str,
    *,
    git_path: str | None = None,
    runner: exec_util.CommandRunner | None = None,
) -> Path | None:
    """Return where git keeps ``name`` for the repository at ``root``.

    Worktrees and submodules keep their git directory outside ``root``;
    ``rev-parse --git-path`` follows those indirections.
    """
    result = _run_git(
        ["rev-parse", "--git-path", name],
        repo_dir=root,
        git_path=git_path,
        runner=runner,
    )
    if result is None or not result.ok:
        return None
    resolved = result.stdout.strip()
    if not resolved:
        return None
    path = Path(resolved)
    return path if path.is_absolute() else root / path


def get_local_config(
    root: Path,
    key: str,
    *,
    git_path: str | None = None,
    runner: exec_util.CommandRunner | None = None,
) -> str | None:
    """Read one key from the repository-local git config.

    Returns:
        The configured value, or ``None`` when the key is unset or git fails.
    """
    result = _run_git(
        ["config", "--local", "--get", key],
        repo_dir=root,
        git_path=git_path,
        runner=runner,
    )
    if result is None:
        return None
    if result.returncode == _CONFIG_KEY_MISSING and not result.timed_out:
        return None
    if not result.ok:
        gp_log.debug(result.detail(), category="git-config", key=key)
        return None
    return result.stdout.rstrip("\r\n")


def set_local_config(
    root: Path,
    key: str,
    value: str,
    *,
    git_path: str | None = None,
    runner: exec_util.CommandRunner | None = None,
) -> None:
    """Write one key to the repository-local git config.

    Raises:
        GitCommandError: git is missing or the write failed.
    """
    result = _run_git(
        ["config", "--local", key, value],
        repo_dir=root,
        git_path=git_path,
        runner=runner,
    )
    if result is None:
        raise GitCommandError("missing required command: git")
    if not result.ok:
        raise GitCommandError(result.detail())


def unset_local_config(
    root: Path,
    key: str,
    *,
    git_path: str | None = None,
    runner: exec_util.CommandRunner | None = None,
) -> None:
    """Remove one key from the repository-local git config.

    An already-absent key is not an error.

    Raises:
        GitCommandError: git is missing or the removal failed.
    """
    result = _run_git(
        ["config", "--local", "--unset", key],
        repo_dir=root,
        git_path=git_path,
        runner=runner,
    )
    if result is None:
        raise GitCommandError("missing required command: git")
    if result.returncode == _CONFIG_NOTHING_TO_UNSET and not result.timed_out:
        return
    if not result.ok:
        raise GitCommandError(result.detail())


class RepositoryRootLocator:
    """Find the canonical root of the innermost repository containing a path."""

    def __init__(
        self,
        *,
        git_path: str | None = None,
        runner: exec_util.CommandRunner | None = None,
    ) -> None:
        self.git_path = git_path
        self.runner = runner

    def find(self, location: Path | str | None) -> Path | None:
        """Return the resolved repository root for ``location``.

        Any failure, including a missing location or a missing git
        executable, yields ``None``.
        """
        if location is None:
            return None
        raw = str(location).strip()
        if not raw:
            return None
        path = Path(raw).expanduser()
        try:
            path = path.resolve()
        except (OSError, RuntimeError):
            return None
        if not path.exists():
            gp_log.trace("location does not exist", category="workspace-status", path=path)
            return None
        if not path.is_dir():
            path = path.parent
        if not is_repository(path, git_path=self.git_path, runner=self.runner):
            gp_log.trace("not a git work tree", category="workspace-status", path=path)
            return None
        root = top_level(path, git_path=self.git_path, runner=self.runner)
        if root is None:
            return None
        try:
            return root.resolve()
        except (OSError, RuntimeError):
            return None


class IdentityConfigAccessor:
    """Read and write ``user.name``/``user.email``/``user.signingkey`` locally."""

    def __init__(
        self,
        *,
        git_path: str | None = None,
        runner: exec_util.CommandRunner | None = None,
    ) -> None:
        self.git_path = git_path
        self.runner = runner

    def read(self, root: Path) -> GitIdentity:
        """Read the local identity; unset or unreadable fields become ``""``."""
        gp_log.debug("reading local identity", category="git-config", root=root)
        values = {
            key: get_local_config(root, key, git_path=self.git_path, runner=self.runner)
            for key in (USER_NAME_KEY, USER_EMAIL_KEY, USER_SIGNING_KEY_KEY)
        }
        return GitIdentity(
            user_name=values[USER_NAME_KEY] or "",
            email=values[USER_EMAIL_KEY] or "",
            signing_key=values[USER_SIGNING_KEY_KEY] or "",
        )

    def write(self, root: Path, identity: GitIdentity) -> None:
        """Write all three fields, attempting each even if an earlier one fails.

        An empty signing key clears ``user.signingkey``.

        Raises:
            IdentityWriteError: At least one field could not be written.
        """
        failed: list[str] = []
        details: list[str] = []
        writes = (
            (USER_NAME_KEY, identity.user_name),
            (USER_EMAIL_KEY, identity.email),
            (USER_SIGNING_KEY_KEY, identity.signing_key),
        )
        for key, value in writes:
            try:
                if key == USER_SIGNING_KEY_KEY and not value:
                    unset_local_config(
                        root, key, git_path=self.git_path, runner=self.runner
                    )
                else:
                    set_local_config(
                        root, key, value, git_path=self.git_path, runner=self.runner
                    )
            except GitCommandError as exc:
                gp_log.warning(str(exc), category="git-config", key=key, root=root)
                failed.append(key)
                details.append(str(exc))
        if failed:
            raise IdentityWriteError(failed, details)
        gp_log.debug("wrote local identity", category="git-config", root=root)
