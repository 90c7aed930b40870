# ruff: noqa: E402

import builtins
import sys
from pathlib import Path

import pytest
from _pytest.doctest import DoctestModule

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import gitprofiles.io as io
import gitprofiles.log as gp_log

DOCTEST_MODULES = {
    ROOT / "src" / "gitprofiles" / "config.py",
    ROOT / "src" / "gitprofiles" / "git.py",
    ROOT / "src" / "gitprofiles" / "log.py",
    ROOT / "src" / "gitprofiles" / "models.py",
    ROOT / "src" / "gitprofiles" / "paths.py",
    ROOT / "src" / "gitprofiles" / "status.py",
    ROOT / "src" / "gitprofiles" / "validation.py",
}


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GITPROFILES_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig-global"))
    monkeypatch.delenv("GITPROFILES_LOG_LEVEL", raising=False)
    monkeypatch.setattr(gp_log, "_configured_level", None)
    monkeypatch.setattr(gp_log, "_no_color", None)
    monkeypatch.setattr(io, "_use_questionary", lambda: False)

    def fail_input(prompt: str = "") -> str:
        raise AssertionError("prompted unexpectedly")

    monkeypatch.setattr(builtins, "input", fail_input)


def pytest_collect_file(
    parent: pytest.Collector, file_path: Path
) -> DoctestModule | None:
    path = file_path if isinstance(file_path, Path) else Path(str(file_path))
    if path in DOCTEST_MODULES:
        return DoctestModule.from_parent(parent, path=path)
    return None
