"""In-memory sink used by tests and interactive debugging."""

from __future__ import annotations

import threading
from typing import Dict, List, Sequence


class InMemorySink:
    """Keep every emitted entry as ``{"level": ..., "lines": [...]}``."""

    def __init__(self) -> None:
        self.records: List[Dict[str, object]] = []
        self._lock = threading.Lock()

    def emit(self, lines: Sequence[str], level: str) -> None:
        with self._lock:
            self.records.append({"level": level, "lines": list(lines)})

    @property
    def text(self) -> str:
        """All captured lines joined by newlines."""

        with self._lock:
            return "\n".join(
                line for record in self.records for line in record["lines"]  # type: ignore[union-attr]
            )

    def clear(self) -> None:
        with self._lock:
            self.records.clear()
