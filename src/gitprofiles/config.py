"""Engine configuration read from the global settings scope.

Example:
    >>> from gitprofiles.settings import MemorySettingsStore
    >>> load_engine_config(MemorySettingsStore({"gitPath": " /usr/bin/git "})).git_path
    '/usr/bin/git'
"""

from pydantic import ValidationError

from . import log as gp_log
from .errors import SettingsReadError
from .models import EngineConfig
from .settings import AUTO_SELECT_KEY, SettingsStore


def parse_engine_config(payload: dict, source: str | None = None) -> EngineConfig:
    """Validate engine options, falling back to defaults on invalid input."""
    try:
        return EngineConfig.model_validate(payload)
    except ValidationError as exc:
        location = f" at {source}" if source else ""
        gp_log.warning(
            f"invalid settings{location}; using defaults",
            category="settings",
            errors=exc.error_count(),
        )
        return EngineConfig()


def load_engine_config(store: SettingsStore) -> EngineConfig:
    """Load engine options from the global scope of ``store``.

    Unreadable settings degrade to defaults with a warning.
    """
    try:
        payload = store.snapshot()
    except SettingsReadError as exc:
        gp_log.warning(str(exc), category="settings")
        return EngineConfig()
    return parse_engine_config(payload, "global settings")


def auto_select_enabled(store: SettingsStore) -> bool:
    """Return whether matched profiles should be selected automatically."""
    try:
        value = store.get(AUTO_SELECT_KEY, False)
    except SettingsReadError as exc:
        gp_log.warning(str(exc), category="settings")
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1"}
    return False
