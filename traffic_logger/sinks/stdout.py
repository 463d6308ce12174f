"""Console sink."""

from __future__ import annotations

import sys
import threading
from typing import Sequence

from ..config import LoggingSettings
from ..formatting import colorize


class StdoutSink:
    """Write formatted lines to stdout, colored per level when enabled."""

    def __init__(self, settings: LoggingSettings, stream=None) -> None:
        self._color = settings.color  # Wrap lines in ANSI colors
        self._stream = stream or sys.stdout  # The stream to write to
        self._lock = threading.Lock()  # Keeps one entry's lines together

    def emit(self, lines: Sequence[str], level: str) -> None:
        output = colorize(lines, level) if self._color else list(lines)
        text = "\n".join(output) + "\n"

        with self._lock:
            self._stream.write(text)
            self._stream.flush()
