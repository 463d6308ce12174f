"""In-process metrics for the logging runtime."""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass
class RuntimeMetrics:
    """Runtime metrics for traffic_logger."""

    redacted_total: int = 0 # Values replaced by a mask
    removed_total: int = 0 # Entries dropped entirely
    emitted: dict[str, int] | None = None # Emitted entries per level
    suppressed: dict[str, int] | None = None # Suppressed calls per level
    format_failures: int = 0 # Entries replaced by a failure marker

    def as_dict(self) -> dict[str, object]:
        """Return the metrics as a dictionary."""

        return {
            "redacted_total": self.redacted_total,
            "removed_total": self.removed_total,
            "emitted": dict(self.emitted or {}),
            "suppressed": dict(self.suppressed or {}),
            "format_failures": self.format_failures,
        }


_LOCK = threading.RLock()
_METRICS = RuntimeMetrics(emitted={}, suppressed={})


def record_redaction(masked: int, removed: int = 0) -> None:
    """Record aggregate redaction counts for one traversal."""

    if masked <= 0 and removed <= 0:
        return

    with _LOCK:
        _METRICS.redacted_total += max(0, masked)
        _METRICS.removed_total += max(0, removed)


def record_emit(level: str) -> None:
    with _LOCK:
        emitted = _METRICS.emitted or {}
        emitted[level] = emitted.get(level, 0) + 1
        _METRICS.emitted = emitted


def record_suppressed(level: str) -> None:
    """Record a call dropped by the level or release-mode gate."""

    with _LOCK:
        suppressed = _METRICS.suppressed or {}
        suppressed[level] = suppressed.get(level, 0) + 1
        _METRICS.suppressed = suppressed


def record_format_failure() -> None:
    with _LOCK:
        _METRICS.format_failures += 1


def reset_metrics() -> None:
    """Reset the metrics."""

    with _LOCK:
        _METRICS.redacted_total = 0
        _METRICS.removed_total = 0
        _METRICS.emitted = {}
        _METRICS.suppressed = {}
        _METRICS.format_failures = 0


def get_metrics() -> RuntimeMetrics:
    """Get a snapshot of the metrics."""

    with _LOCK:
        snapshot = RuntimeMetrics(**_METRICS.as_dict())
        snapshot.emitted = dict(_METRICS.emitted or {})
        snapshot.suppressed = dict(_METRICS.suppressed or {})
        return snapshot

