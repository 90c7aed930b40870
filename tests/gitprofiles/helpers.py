from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from gitprofiles import exec as exec_util
from gitprofiles.errors import IdentityWriteError
from gitprofiles.models import GitIdentity, Profile

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def init_repo(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    subprocess.run(["git", "-C", str(path), "init", "-q"], check=True)
    return path.resolve()


def set_local_identity(
    repo: Path, user_name: str, email: str, signing_key: str | None = None
) -> None:
    subprocess.run(["git", "-C", str(repo), "config", "user.name", user_name], check=True)
    subprocess.run(["git", "-C", str(repo), "config", "user.email", email], check=True)
    if signing_key is not None:
        subprocess.run(
            ["git", "-C", str(repo), "config", "user.signingkey", signing_key],
            check=True,
        )


def read_local(repo: Path, key: str) -> str | None:
    completed = subprocess.run(
        ["git", "-C", str(repo), "config", "--local", "--get", key],
        capture_output=True,
        text=True,
        check=False,
    )
    if completed.returncode != 0:
        return None
    return completed.stdout.strip()


def untracked_files(repo: Path) -> list[str]:
    completed = subprocess.run(
        ["git", "-C", str(repo), "status", "--porcelain", "--untracked-files=all"],
        capture_output=True,
        text=True,
        check=True,
    )
    return [line[3:] for line in completed.stdout.splitlines() if line.startswith("??")]


def commit_empty(repo: Path) -> None:
    subprocess.run(
        [
            "git",
            "-C",
            str(repo),
            "-c",
            "user.name=Test",
            "-c",
            "user.email=test@example.com",
            "-c",
            "commit.gpgsign=false",
            "commit",
            "-q",
            "--allow-empty",
            "-m",
            "init",
        ],
        check=True,
    )


def add_worktree(repo: Path, path: Path) -> Path:
    subprocess.run(["git", "-C", str(repo), "worktree", "add", "-q", str(path)], check=True)
    return path.resolve()


def make_profile(
    profile_id: str = "p1",
    label: str = "Work",
    user_name: str = "Alice",
    email: str = "a@x.com",
    signing_key: str = "",
) -> Profile:
    return Profile(
        id=profile_id,
        label=label,
        user_name=user_name,
        email=email,
        signing_key=signing_key,
    )


class FakeRunner:
    """Command runner returning scripted results keyed by the git arguments after ``-C <dir>``."""

    def __init__(
        self,
        responses: dict[tuple[str, ...], exec_util.CommandResult | None] | None = None,
        *,
        default: exec_util.CommandResult | None = None,
    ) -> None:
        self.responses = dict(responses or {})
        self.default = default
        self.requests: list[exec_util.CommandRequest] = []

    def run(self, request: exec_util.CommandRequest) -> exec_util.CommandResult | None:
        self.requests.append(request)
        key = tuple(request.argv[3:])
        if key in self.responses:
            response = self.responses[key]
        else:
            response = self.default
        if response is None:
            return None
        return exec_util.CommandResult(
            argv=request.argv,
            returncode=response.returncode,
            stdout=response.stdout,
            stderr=response.stderr,
            timed_out=response.timed_out,
        )

    def git_args(self) -> list[tuple[str, ...]]:
        return [tuple(request.argv[3:]) for request in self.requests]


def result(returncode: int = 0, stdout: str = "", stderr: str = "") -> exec_util.CommandResult:
    return exec_util.CommandResult(argv=(), returncode=returncode, stdout=stdout, stderr=stderr)


class StubLocator:
    """Maps known locations to repository roots."""

    def __init__(self, roots: dict[Path, Path] | None = None) -> None:
        self.roots = dict(roots or {})
        self.calls: list[object] = []

    def find(self, location: Path | str | None) -> Path | None:
        self.calls.append(location)
        if location is None:
            return None
        return self.roots.get(Path(location))


class StubAccessor:
    """In-memory identity config per root."""

    def __init__(self, identities: dict[Path, GitIdentity] | None = None) -> None:
        self.identities = dict(identities or {})
        self.reads: list[Path] = []
        self.writes: list[tuple[Path, GitIdentity]] = []
        self.fail_keys: list[str] = []

    def read(self, root: Path) -> GitIdentity:
        self.reads.append(root)
        return self.identities.get(root, GitIdentity())

    def write(self, root: Path, identity: GitIdentity) -> None:
        self.writes.append((root, identity))
        if self.fail_keys:
            raise IdentityWriteError(self.fail_keys, ["boom"])
        self.identities[root] = identity
