"""Log entry schema shared by the facade, the redactor and the formatter."""

from __future__ import annotations

import datetime as _dt
import traceback
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Dict, List, Optional, Sequence, Union

ENTRY_FIELDS = {
    "ts",
    "level",
    "message",
    "tag",
    "error",
    "stack",
    "boxed",
}


@dataclass(frozen=True)
class Section:
    """A labelled payload inside a boxed entry.

    The payload stays structured until the formatter renders it as
    ``"<label>:::"`` followed by pretty JSON, so redaction sees real keys.
    """

    label: str
    payload: Any


StackTrace = Optional[Union[TracebackType, Sequence[traceback.FrameSummary], str]]


def _local_now() -> _dt.datetime:
    return _dt.datetime.now().astimezone()


def build_log_entry(
    *,
    level: str,
    message: Any,
    tag: str | None = None,
    error: Any = None,
    stack_trace: StackTrace = None,
    boxed: bool = False,
) -> Dict[str, Any]:
    """Build a log entry; the result is plain data with no formatting applied."""

    if stack_trace is None and isinstance(error, BaseException):
        stack_trace = error.__traceback__

    entry: Dict[str, Any] = {
        "ts": _local_now(),
        "level": level.upper(),
        "message": message,
        "tag": tag,
        "error": error,
        "stack": stack_lines(stack_trace),
        "boxed": boxed,
    }

    validate_entry(entry)
    return entry


def validate_entry(entry: Dict[str, Any]) -> None:
    """Validate a log entry."""

    missing = ENTRY_FIELDS.difference(entry.keys())

    if missing:
        raise ValueError(f"Log entry missing required fields: {sorted(missing)}")

    if entry["boxed"] and not isinstance(entry["message"], (list, tuple)):
        raise TypeError("boxed entries require a list of items")


def stack_lines(stack_trace: StackTrace) -> List[str] | None:
    """Turn a traceback, frame summaries or preformatted text into lines."""

    if stack_trace is None:
        return None

    if isinstance(stack_trace, str):
        text = stack_trace
    elif isinstance(stack_trace, TracebackType):
        text = "".join(traceback.format_tb(stack_trace))
    else:
        text = "".join(traceback.format_list(list(stack_trace)))

    lines = [line for line in text.rstrip().splitlines() if line.strip()]
    return lines or None
