"""Two-scope key-value settings store.

Global settings apply everywhere and live in the user config directory.
Location-scoped settings apply to one repository root and live in a JSON file
at that root. Values are plain JSON data; every read goes back to disk so the
files stay the single source of truth.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, Protocol

from . import paths
from .errors import SettingsReadError, SettingsWriteError

PROFILES_KEY = "profiles"
SELECTED_PROFILE_ID_KEY = "selectedProfileId"
AUTO_SELECT_KEY = "selectMatchedProfileAutomatically"


class SettingsStore(Protocol):
    """Settings collaborator consumed by the profile store and the engine."""

    def get(self, key: str, default: object = None, *, root: Path | None = None) -> object: ...

    def update(self, key: str, value: object, *, root: Path | None = None) -> None: ...

    def snapshot(self, *, root: Path | None = None) -> dict[str, object]: ...


def load_json(path: Path) -> dict | None:
    """Load a JSON object from disk.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed payload, or ``None`` when the file does not exist or is empty.

    Raises:
        SettingsReadError: The file is unreadable or not a JSON object.

    Example:
        >>> load_json(Path("missing.json")) is None
        True
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise SettingsReadError(f"failed to read settings at {path}: {exc}") from exc
    if not raw.strip():
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SettingsReadError(
            f"invalid JSON in settings at {path}: {exc}",
            recovery_hint="fix or delete the file to reset it",
        ) from exc
    if not isinstance(payload, dict):
        raise SettingsReadError(f"settings at {path} must be a JSON object")
    return payload


def write_json(path: Path, payload: dict) -> None:
    """Atomically write a JSON object to disk.

    Raises:
        SettingsWriteError: The file could not be written.
    """
    try:
        paths.ensure_dir(path.parent)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
                fh.write("\n")
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise SettingsWriteError(f"failed to write settings at {path}: {exc}") from exc


class JsonSettingsStore:
    """Settings store backed by one global and many per-root JSON files."""

    def __init__(
        self,
        global_path: Path | None = None,
        *,
        location_path: Callable[[Path], Path] = paths.location_settings_path,
    ) -> None:
        self._global_path = global_path
        self._location_path = location_path
        self._lock = threading.Lock()

    @property
    def global_path(self) -> Path:
        return self._global_path or paths.global_settings_path()

    def path_for(self, root: Path | None) -> Path:
        if root is None:
            return self.global_path
        return self._location_path(root)

    def snapshot(self, *, root: Path | None = None) -> dict[str, object]:
        return dict(load_json(self.path_for(root)) or {})

    def get(self, key: str, default: object = None, *, root: Path | None = None) -> object:
        return self.snapshot(root=root).get(key, default)

    def update(self, key: str, value: object, *, root: Path | None = None) -> None:
        """Set ``key`` in one scope; ``None`` removes the key."""
        target = self.path_for(root)
        with self._lock:
            payload = dict(load_json(target) or {})
            if value is None:
                if key not in payload:
                    return
                payload.pop(key)
            else:
                payload[key] = value
            write_json(target, payload)


class MemorySettingsStore:
    """In-process settings store for embedding hosts that own persistence."""

    def __init__(
        self,
        global_settings: dict[str, object] | None = None,
        location_settings: dict[Path, dict[str, object]] | None = None,
    ) -> None:
        self._global = dict(global_settings or {})
        self._locations = {
            root: dict(values) for root, values in (location_settings or {}).items()
        }
        self._lock = threading.Lock()
        self.writes: list[tuple[str, Path | None]] = []

    def _scope(self, root: Path | None) -> dict[str, object]:
        if root is None:
            return self._global
        return self._locations.setdefault(root, {})

    def snapshot(self, *, root: Path | None = None) -> dict[str, object]:
        with self._lock:
            return json.loads(json.dumps(self._scope(root)))

    def get(self, key: str, default: object = None, *, root: Path | None = None) -> object:
        return self.snapshot(root=root).get(key, default)

    def update(self, key: str, value: object, *, root: Path | None = None) -> None:
        with self._lock:
            scope = self._scope(root)
            if value is None:
                scope.pop(key, None)
            else:
                scope[key] = json.loads(json.dumps(value))
            self.writes.append((key, root))
