"""Sink implementations."""

from __future__ import annotations

from typing import Protocol, Sequence

from .memory import InMemorySink
from .stdout import StdoutSink


class Sink(Protocol):
    """A sink for formatted log lines."""

    def emit(self, lines: Sequence[str], level: str) -> None:  # pragma: no cover - protocol
        ...


__all__ = ["Sink", "StdoutSink", "InMemorySink"]
