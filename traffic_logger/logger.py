"""Logging facade: leveled, boxed, raw and JSON calls with redaction."""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config import LoggingSettings, get_settings
from .formatting import format_entry, format_raw
from .metrics import record_emit, record_format_failure
from .policy import should_emit
from .redaction import Redactor, get_redactor
from .schema import Section, StackTrace, build_log_entry
from .sinks import InMemorySink, Sink, StdoutSink


LOGGER = logging.getLogger("traffic_logger")

FAILED_ENTRY = "[Failed to log entry]"
FAILED_RAW_ENTRY = "[Failed to log raw entry]"


class TrafficLogger:
    """Logger bound to a default tag.

    Every call accepts ``redact``: ``True``/``False`` force redaction on or
    off for that call, ``None`` falls back to the manager's global flag. A
    call never raises, whatever it is given.
    """

    def __init__(self, tag: str | None, manager: "LoggerManager") -> None:
        self._tag = tag # Default tag when a call does not supply one
        self._manager = manager

    @property
    def tag(self) -> str | None:
        return self._tag

    def debug(
        self, message: Any, *, error: Any = None, tag: str | None = None, redact: bool | None = None
    ) -> None:
        """Log a debug message."""

        self._log("DEBUG", message, error=error, tag=tag, redact=redact)

    def info(
        self, message: Any, *, error: Any = None, tag: str | None = None, redact: bool | None = None
    ) -> None:
        """Log an info message."""

        self._log("INFO", message, error=error, tag=tag, redact=redact)

    def warning(
        self, message: Any, *, error: Any = None, tag: str | None = None, redact: bool | None = None
    ) -> None:
        """Log a warning message."""

        self._log("WARNING", message, error=error, tag=tag, redact=redact)

    def error(
        self,
        message: Any,
        *,
        error: Any = None,
        stack_trace: StackTrace = None,
        tag: str | None = None,
        redact: bool | None = None,
    ) -> None:
        """Log an error message.

        When ``stack_trace`` is omitted and ``error`` is an exception, its
        traceback is rendered below the error.
        """

        self._log("ERROR", message, error=error, stack_trace=stack_trace, tag=tag, redact=redact)

    def success(
        self, message: Any, *, error: Any = None, tag: str | None = None, redact: bool | None = None
    ) -> None:
        """Log a success message."""

        self._log("SUCCESS", message, error=error, tag=tag, redact=redact)

    def boxed(
        self,
        items: Sequence[Any],
        *,
        tag: str | None = None,
        error: Any = None,
        redact: bool | None = None,
    ) -> None:
        """Log each item in its own section of a single box."""

        if isinstance(items, (str, bytes)) or not isinstance(items, Sequence):
            items = [items]

        self._log(
            "ERROR" if error is not None else "INFO",
            list(items),
            error=error,
            tag=tag,
            redact=redact,
            boxed=True,
            convenience=error is None,
        )

    def json(self, data: Any, *, tag: str | None = None, redact: bool | None = None) -> None:
        """Pretty-print a mapping or list; anything else is logged as info."""

        if not isinstance(data, (Mapping, list, tuple)):
            self.info(data, tag=tag, redact=redact)
            return

        self._log("INFO", data, tag=tag or "JSON", redact=redact, convenience=True)

    def raw(self, message: Any, *, tag: str | None = None, redact: bool | None = None) -> None:
        """Log a single unformatted line."""

        manager = self._manager

        try:
            if not should_emit("INFO", manager.settings, convenience=True):
                return

            if manager.resolve_redact(redact):
                message = manager.redact_message(message)
            line = format_raw(message, tag or self._tag)
        except Exception:
            LOGGER.exception("Failed to format raw log entry")
            record_format_failure()
            line = FAILED_RAW_ENTRY

        manager.emit([line], "INFO")

    # --------------------- internal helpers ---------------------
    def _log(
        self,
        level: str,
        message: Any,
        *,
        error: Any = None,
        stack_trace: StackTrace = None,
        tag: str | None = None,
        redact: bool | None = None,
        boxed: bool = False,
        convenience: bool = False,
    ) -> None:
        manager = self._manager

        try:
            settings = manager.settings

            if not should_emit(level, settings, convenience=convenience):
                return

            entry = build_log_entry(
                level=level,
                message=message,
                tag=tag or self._tag,
                error=error,
                stack_trace=stack_trace,
                boxed=boxed,
            )

            if manager.resolve_redact(redact):
                entry = manager.sanitize(entry)

            lines = format_entry(entry, width=settings.line_width)
        except Exception:
            LOGGER.exception("Failed to format %s log entry", level)
            record_format_failure()
            lines = [FAILED_ENTRY]

        manager.emit(lines, level)


class LoggerManager:
    """Owns the settings, redactor, sinks and global redact flag."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._loggers: Dict[Optional[str], TrafficLogger] = {}
        self._settings: LoggingSettings | None = None
        self._sinks: List[Sink] = []
        self._redactor: Redactor | None = None
        self._global_redact: bool | None = None
        self._redact_pinned = False  # set_global_redact wins over settings until reset

    def configure(
        self,
        settings: LoggingSettings,
        *,
        redactor: Redactor | None = None,
        sinks: Sequence[Sink] | None = None,
    ) -> None:
        """Configure the manager; an injected redactor is used as-is."""

        with self._lock:
            self._settings = settings
            self._loggers.clear()
            self._redactor = redactor or get_redactor()
            if not self._redact_pinned:
                self._global_redact = settings.redaction.enabled
            self._sinks = list(sinks) if sinks is not None else _build_sinks(settings)

    @property
    def settings(self) -> LoggingSettings:
        settings = self._settings

        if settings is None:
            settings = get_settings()
            self.configure(settings)

        return settings

    @property
    def redactor(self) -> Redactor:
        redactor = self._redactor

        if redactor is None:
            self.configure(self.settings)
            redactor = self._redactor

        assert redactor is not None

        return redactor

    @property
    def sinks(self) -> List[Sink]:
        with self._lock:
            if self._settings is None:
                self.configure(get_settings())
            return list(self._sinks)

    @property
    def global_redact(self) -> bool:
        with self._lock:
            if self._global_redact is None:
                return self.settings.redaction.enabled
            return self._global_redact

    def set_global_redact(self, enabled: bool) -> None:
        with self._lock:
            self._global_redact = bool(enabled)
            self._redact_pinned = True

    def resolve_redact(self, redact: bool | None) -> bool:
        return self.global_redact if redact is None else bool(redact)

    def get_logger(self, tag: str | None = None) -> TrafficLogger:
        with self._lock:
            logger = self._loggers.get(tag)

            if logger is None:
                logger = TrafficLogger(tag, self)
                self._loggers[tag] = logger

            return logger

    def redact_message(self, message: Any) -> Any:
        """Redact structured messages; text and other scalars pass through."""

        redactor = self.redactor

        if isinstance(message, Section):
            return Section(message.label, redactor.redact(message.payload))

        if isinstance(message, (list, tuple)) and any(isinstance(item, Section) for item in message):
            return [self.redact_message(item) for item in message]

        if isinstance(message, (Mapping, list, tuple)):
            return redactor.redact(message)

        return message

    def sanitize(self, entry: Mapping[str, Any]) -> Dict[str, Any]:
        sanitized = dict(entry)
        sanitized["message"] = self.redact_message(entry["message"])

        error = entry.get("error")
        if isinstance(error, (Mapping, list, tuple)):
            sanitized["error"] = self.redactor.redact(error)

        return sanitized

    def emit(self, lines: Sequence[str], level: str) -> None:
        for sink in self.sinks:
            try:
                sink.emit(lines, level)
            except Exception:
                LOGGER.exception("Sink %s failed to emit log entry", type(sink).__name__)

        record_emit(level)

    def reset(self) -> None:
        with self._lock:
            self._loggers.clear()
            self._settings = None
            self._sinks = []
            self._redactor = None
            self._global_redact = None
            self._redact_pinned = False


def _build_sinks(settings: LoggingSettings) -> List[Sink]:
    sinks: List[Sink] = []

    for sink_name in settings.sinks:
        name = sink_name.strip().lower()

        if name == "stdout":
            sinks.append(StdoutSink(settings))

        elif name == "memory":
            sinks.append(InMemorySink())

        else:
            LOGGER.warning("Unknown log sink %r ignored", sink_name)

    if not sinks:
        sinks.append(StdoutSink(settings))

    return sinks


_MANAGER = LoggerManager()


def configure_manager(
    settings: LoggingSettings,
    *,
    redactor: Redactor | None = None,
    sinks: Sequence[Sink] | None = None,
) -> None:
    _MANAGER.configure(settings, redactor=redactor, sinks=sinks)


def get_manager() -> LoggerManager:
    return _MANAGER


def get_logger(tag: str | None = None) -> TrafficLogger:
    """Get a logger whose calls default to ``tag``."""

    return _MANAGER.get_logger(tag)


def set_global_redact(enabled: bool) -> None:
    _MANAGER.set_global_redact(enabled)


def get_global_redact() -> bool:
    return _MANAGER.global_redact


def reset_loggers() -> None:
    _MANAGER.reset()
