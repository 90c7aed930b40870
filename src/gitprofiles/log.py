"""Structured terminal logging for git-profiles.

Messages carry an optional category and key/value context, rendered after the
message text, for example::

    [workspace-status] cache hit  root=/src/app status=NoIssues
"""

from __future__ import annotations

import os
import sys
from enum import IntEnum

from rich.console import Console
from rich.text import Text


class LogLevel(IntEnum):
    TRACE = 10
    DEBUG = 20
    INFO = 30
    SUCCESS = 35
    WARNING = 40
    ERROR = 50


LEVEL_NAMES = ("trace", "debug", "info", "success", "warning", "error")

_LEVEL_BY_NAME = {
    "trace": LogLevel.TRACE,
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "success": LogLevel.SUCCESS,
    "warning": LogLevel.WARNING,
    "warn": LogLevel.WARNING,
    "error": LogLevel.ERROR,
}
_DEFAULT_LEVEL = LogLevel.INFO
_configured_level: LogLevel | None = None
_no_color: bool | None = None


def _normalize_level(value: str | None) -> LogLevel:
    if value is None:
        return _DEFAULT_LEVEL
    normalized = value.strip().lower()
    if not normalized:
        return _DEFAULT_LEVEL
    return _LEVEL_BY_NAME.get(normalized, _DEFAULT_LEVEL)


def configured_level() -> LogLevel:
    global _configured_level
    if _configured_level is None:
        _configured_level = _normalize_level(os.environ.get("GITPROFILES_LOG_LEVEL"))
    return _configured_level


def set_level(value: str | None) -> None:
    """Set the active log level."""
    global _configured_level
    _configured_level = _normalize_level(value)


def set_no_color(value: bool) -> None:
    """Force colour output off (``True``) or back to environment detection."""
    global _no_color
    _no_color = True if value else None


def is_enabled(level: LogLevel) -> bool:
    return level >= configured_level()


def _colour_disabled() -> bool:
    if _no_color is not None:
        return _no_color
    return bool(os.environ.get("NO_COLOR") or os.environ.get("GITPROFILES_NO_COLOR"))


def _console(*, stderr: bool) -> Console:
    return Console(
        file=sys.stderr if stderr else sys.stdout,
        soft_wrap=True,
        highlight=False,
        no_color=_colour_disabled(),
    )


def _default_style(level: LogLevel) -> str:
    if level is LogLevel.TRACE:
        return "dim"
    if level is LogLevel.DEBUG:
        return "cyan"
    if level is LogLevel.SUCCESS:
        return "green"
    if level is LogLevel.WARNING:
        return "yellow"
    if level is LogLevel.ERROR:
        return "bold red"
    return ""


def format_message(
    message: str, *, category: str | None = None, context: dict[str, object] | None = None
) -> str:
    """Render a log line from its message, category and context.

    Example:
        >>> format_message("cache hit", category="cache", context={"root": "/r"})
        '[cache] cache hit  root=/r'
    """
    parts = [f"[{category}] {message}" if category else message]
    if context:
        rendered = " ".join(f"{key}={value}" for key, value in context.items())
        parts.append(rendered)
    return "  ".join(parts)


def emit(
    level: LogLevel,
    message: str,
    *,
    category: str | None = None,
    context: dict[str, object] | None = None,
    style: str | None = None,
    stderr: bool | None = None,
) -> None:
    if not is_enabled(level):
        return
    target_stderr = stderr if stderr is not None else level >= LogLevel.WARNING
    text = Text(
        format_message(message, category=category, context=context),
        style=style or _default_style(level),
    )
    _console(stderr=target_stderr).print(text)


def trace(message: str, *, category: str | None = None, **context: object) -> None:
    emit(LogLevel.TRACE, message, category=category, context=context, stderr=True)


def debug(message: str, *, category: str | None = None, **context: object) -> None:
    emit(LogLevel.DEBUG, message, category=category, context=context, stderr=True)


def info(message: str, *, category: str | None = None, **context: object) -> None:
    emit(LogLevel.INFO, message, category=category, context=context, stderr=False)


def success(message: str, *, category: str | None = None, **context: object) -> None:
    emit(LogLevel.SUCCESS, message, category=category, context=context, stderr=False)


def warning(message: str, *, category: str | None = None, **context: object) -> None:
    emit(LogLevel.WARNING, message, category=category, context=context, stderr=True)


def error(message: str, *, category: str | None = None, **context: object) -> None:
    emit(LogLevel.ERROR, message, category=category, context=context, stderr=True)
