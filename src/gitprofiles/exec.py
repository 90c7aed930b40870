"""Subprocess helpers for invoking the git executable.

Every external invocation goes through a ``CommandRunner`` so callers can
inject a fake runner in tests and so a missing executable degrades into a
``None`` result instead of an exception.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Protocol

DEFAULT_TIMEOUT_SECONDS = 10.0
TIMEOUT_RETURNCODE = 124


@dataclass(frozen=True)
class CommandRequest:
    """Typed command invocation request."""

    argv: tuple[str, ...]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    timeout_seconds: float | None = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class CommandResult:
    """Typed command execution result."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = field(default=False)

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def detail(self) -> str:
        """Return a one-line failure description for log and error messages."""
        output = (self.stderr or self.stdout or "").strip()
        command_text = " ".join(self.argv)
        if self.timed_out:
            return f"command timed out: {command_text}"
        if output:
            return f"command failed ({self.returncode}): {command_text}: {output}"
        return f"command failed ({self.returncode}): {command_text}"


class CommandRunner(Protocol):
    """Runtime command-execution interface."""

    def run(self, request: CommandRequest) -> CommandResult | None: ...


def _git_env(overrides: Mapping[str, str] | None) -> dict[str, str]:
    env = dict(os.environ)
    # Never let git block on a credential or editor prompt.
    env.setdefault("GIT_TERMINAL_PROMPT", "0")
    if overrides:
        env.update(overrides)
    return env


class SubprocessCommandRunner:
    """Default command-runner adapter backed by subprocess."""

    def run(self, request: CommandRequest) -> CommandResult | None:
        run_kwargs: dict[str, object] = {
            "cwd": request.cwd,
            "env": _git_env(request.env),
            "check": False,
            "capture_output": True,
            "text": True,
            "stdin": subprocess.DEVNULL,
        }
        if request.timeout_seconds is not None:
            run_kwargs["timeout"] = request.timeout_seconds
        try:
            completed = subprocess.run(list(request.argv), **run_kwargs)
        except (FileNotFoundError, NotADirectoryError, PermissionError):
            return None
        except subprocess.TimeoutExpired as exc:
            stdout = exc.stdout if isinstance(exc.stdout, str) else ""
            stderr = exc.stderr if isinstance(exc.stderr, str) else ""
            return CommandResult(
                argv=request.argv,
                returncode=TIMEOUT_RETURNCODE,
                stdout=stdout,
                stderr=stderr,
                timed_out=True,
            )

        stdout = completed.stdout if isinstance(completed.stdout, str) else ""
        stderr = completed.stderr if isinstance(completed.stderr, str) else ""
        return CommandResult(
            argv=request.argv,
            returncode=completed.returncode,
            stdout=stdout,
            stderr=stderr,
        )


_DEFAULT_COMMAND_RUNNER: CommandRunner = SubprocessCommandRunner()


def run_with_runner(
    request: CommandRequest, *, runner: CommandRunner | None = None
) -> CommandResult | None:
    """Execute a typed command request with the given runner.

    Args:
        request: Invocation to run.
        runner: Optional runner; the subprocess-backed default is used when
            omitted.

    Returns:
        The command result, or ``None`` when the executable is missing.
    """
    active_runner = runner or _DEFAULT_COMMAND_RUNNER
    return active_runner.run(request)
