"""Emission policy: minimum level and release-mode gating."""

from __future__ import annotations

from .config import LoggingSettings
from .metrics import record_suppressed

LEVEL_NUMERIC = {
    "DEBUG": 10,
    "INFO": 20,
    "SUCCESS": 25,
    "WARNING": 30,
    "WARN": 30,
    "ERROR": 40,
}

# Levels that may be emitted when release mode is on.
RELEASE_LEVELS = frozenset({"INFO", "SUCCESS", "WARNING", "ERROR"})


def should_emit(level: str, settings: LoggingSettings, *, convenience: bool = False) -> bool:
    """Determine if a call at ``level`` should do any work at all.

    ``convenience`` marks the developer helpers (raw, json and boxed lists)
    which release mode suppresses regardless of level.
    """

    upper_level = level.upper()
    numeric_level = LEVEL_NUMERIC.get(upper_level, 20)
    configured_threshold = LEVEL_NUMERIC.get(settings.level.upper(), 10)

    if numeric_level < configured_threshold:
        record_suppressed(upper_level)
        return False

    if settings.release_mode and (convenience or upper_level not in RELEASE_LEVELS):
        record_suppressed(upper_level)
        return False

    return True
