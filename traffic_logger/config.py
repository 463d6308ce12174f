"""Configuration utilities for traffic_logger."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, replace
from typing import Any, Mapping

from .redaction.defaults import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_REPLACEMENT,
    LAST4_FIELDS,
    REMOVE_FIELDS,
)


def _comma_tuple(value: str | None, *, default: tuple[str, ...]) -> tuple[str, ...]:
    """Convert a comma-separated string to a tuple."""

    if not value:
        return default

    return tuple(filter(None, (part.strip() for part in value.split(","))))


def _bool_env(value: str | None, default: bool) -> bool:
    """Convert a string to a boolean."""

    if value is None:
        return default

    return value.lower() in {"1", "true", "yes", "on"}


def _int_env(value: str | None, default: int) -> int:
    if value is None:
        return default

    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class RedactionSettings:
    """Configuration for key-driven payload redaction."""

    enabled: bool
    replacement: str
    max_depth: int
    extra_keys: tuple[str, ...]
    allowlist: tuple[str, ...]
    remove_fields: tuple[str, ...]
    last4_fields: tuple[str, ...]


@dataclass(frozen=True)
class LoggingSettings:
    """Immutable runtime configuration."""

    level: str
    release_mode: bool
    sinks: tuple[str, ...]
    color: bool
    line_width: int
    redaction: RedactionSettings

    def with_overrides(self, **kwargs: Any) -> "LoggingSettings":
        return replace(self, **kwargs)


_SETTINGS_LOCK = threading.RLock()
_SETTINGS: LoggingSettings | None = None


def load_settings(env: Mapping[str, str] | None = None) -> LoggingSettings:
    source = os.environ if env is None else env

    redaction_settings = RedactionSettings(
        enabled=_bool_env(source.get("LOG_REDACTION_ENABLED"), True),
        replacement=source.get("LOG_REDACTION_REPLACEMENT", DEFAULT_REPLACEMENT),
        max_depth=max(0, _int_env(source.get("LOG_REDACTION_MAX_DEPTH"), DEFAULT_MAX_DEPTH)),
        extra_keys=_comma_tuple(source.get("LOG_REDACTION_EXTRA_KEYS"), default=()),
        allowlist=_comma_tuple(source.get("LOG_REDACTION_ALLOWLIST"), default=()),
        remove_fields=_comma_tuple(
            source.get("LOG_REDACTION_REMOVE_FIELDS"), default=tuple(sorted(REMOVE_FIELDS))
        ),
        last4_fields=_comma_tuple(
            source.get("LOG_REDACTION_LAST4_FIELDS"), default=tuple(sorted(LAST4_FIELDS))
        ),
    )

    return LoggingSettings(
        level=source.get("LOG_LEVEL", "DEBUG").upper(),
        release_mode=_bool_env(source.get("LOG_RELEASE_MODE"), False),
        sinks=_comma_tuple(source.get("LOG_SINKS"), default=("stdout",)),
        color=_bool_env(source.get("LOG_COLOR"), True),
        line_width=max(20, _int_env(source.get("LOG_LINE_WIDTH"), 100)),
        redaction=redaction_settings,
    )


def configure_settings(
    settings: LoggingSettings | None = None, **overrides: Any
) -> LoggingSettings:
    with _SETTINGS_LOCK:
        resolved = settings or load_settings()
        if overrides:
            resolved = resolved.with_overrides(**overrides)
        global _SETTINGS
        _SETTINGS = resolved
        return _SETTINGS


def get_settings() -> LoggingSettings:
    with _SETTINGS_LOCK:
        if _SETTINGS is None:
            return configure_settings()
        return _SETTINGS


def reset_settings() -> None:
    """Forget cached settings so the next lookup reloads the environment."""

    global _SETTINGS
    with _SETTINGS_LOCK:
        _SETTINGS = None
