"""Console formatting for sanitized log entries.

The formatter only ever sees entries that already went through redaction; it
turns them into lines and never inspects keys itself.
"""

from __future__ import annotations

import datetime as _dt
import json
from typing import Any, Iterable, List, Mapping

from .schema import Section

FAILED_TO_ENCODE = "[Failed to encode]"

BYTES_CHUNK_SIZE = 20
BYTES_MAX_CHUNKS = 10


class Colors:
    """ANSI color codes for terminal output."""
    CYAN = '\033[96m'
    BLUE = '\033[94m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    END = '\033[0m'


LEVEL_COLORS = {
    "DEBUG": Colors.CYAN,
    "INFO": Colors.BLUE,
    "WARNING": Colors.YELLOW,
    "ERROR": Colors.RED,
    "SUCCESS": Colors.GREEN,
}

LEVEL_ICONS = {
    "DEBUG": "🐛",
    "INFO": "💡",
    "WARNING": "⚠️",
    "ERROR": "⛔",
    "SUCCESS": "✅",
}

LEFT_LINE = "│"


def top_line(width: int) -> str:
    return "┌" + "─" * width


def divider(width: int) -> str:
    return "├" + "┄" * width


def bottom_line(width: int) -> str:
    return "└" + "─" * width


def format_time(moment: _dt.datetime) -> str:
    """Render ``2024-03-09 01:05:09 PM +05:30`` style timestamps."""

    hour12 = moment.hour % 12 or 12
    period = "PM" if moment.hour >= 12 else "AM"
    offset = moment.utcoffset() or _dt.timedelta(0)
    sign = "-" if offset < _dt.timedelta(0) else "+"
    total_minutes = abs(int(offset.total_seconds())) // 60
    return (
        f"{moment.year}-{moment.month:02d}-{moment.day:02d} "
        f"{hour12:02d}:{moment.minute:02d}:{moment.second:02d} {period} "
        f"{sign}{total_minutes // 60:02d}:{total_minutes % 60:02d}"
    )


def encode_json(value: Any) -> str:
    """Pretty-print ``value`` as JSON, or return the failure marker."""

    try:
        return json.dumps(value, indent=2, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        return FAILED_TO_ENCODE


def format_bytes(data: bytes | bytearray) -> str:
    """Render binary payloads as rows of decimal byte values."""

    if not data:
        return "[Empty bytes]"

    total_chunks = -(-len(data) // BYTES_CHUNK_SIZE)
    chunks_to_show = min(total_chunks, BYTES_MAX_CHUNKS)

    lines = [f"[{len(data)} bytes]"]
    for index in range(chunks_to_show):
        chunk = data[index * BYTES_CHUNK_SIZE:(index + 1) * BYTES_CHUNK_SIZE]
        lines.append(" ".join(str(byte) for byte in chunk))

    if total_chunks > BYTES_MAX_CHUNKS:
        lines.append(f"... {total_chunks - BYTES_MAX_CHUNKS} more chunks")

    return "\n".join(lines)


def render_section(section: Section) -> str:
    label = section.label
    payload = section.payload

    if isinstance(payload, (Mapping, list, tuple)):
        encoded = encode_json(payload)
        if encoded == FAILED_TO_ENCODE:
            return f"{label}::: {FAILED_TO_ENCODE}"
        return f"{label}:::\n{encoded}"

    if isinstance(payload, (bytes, bytearray)):
        return f"{label}:::\n{format_bytes(payload)}"

    return f"{label}:::\n{payload}"


def stringify_message(message: Any) -> List[str]:
    """Split any message into display lines."""

    if isinstance(message, Section):
        text = render_section(message)
    elif isinstance(message, (Mapping, list, tuple)):
        text = encode_json(message)
    elif isinstance(message, (bytes, bytearray)):
        text = format_bytes(message)
    else:
        text = str(message)

    return text.split("\n")


def format_entry(entry: Mapping[str, Any], *, width: int = 100) -> List[str]:
    """Render a sanitized entry as a box of plain text lines."""

    level = entry["level"]
    tag = entry.get("tag")
    formatted_tag = f"[{tag}]" if tag else ""
    tag_line = (
        f"{LEFT_LINE} [{level} {LEVEL_ICONS.get(level, '')}] "
        f"[{format_time(entry['ts'])}] {formatted_tag}"
    )

    messages: List[str] = []
    message = entry["message"]
    if entry.get("boxed") and isinstance(message, (list, tuple)):
        _add_boxed_messages(message, messages, width)
    else:
        messages.extend(f"{LEFT_LINE} {line}" for line in stringify_message(message))

    outputs = [top_line(width), tag_line, divider(width), *messages]

    error = entry.get("error")
    if error is not None:
        outputs.append(divider(width))
        outputs.extend(f"{LEFT_LINE} {line}" for line in stringify_message(error))

    stack = entry.get("stack")
    if stack:
        outputs.append(divider(width))
        outputs.extend(f"{LEFT_LINE} {line}" for line in stack)

    outputs.append(bottom_line(width))
    return [line.strip() for line in outputs]


def format_raw(message: Any, tag: str | None = None) -> str:
    formatted_tag = f"[{tag}] " if tag else ""
    return f"{formatted_tag}{message}"


def colorize(lines: Iterable[str], level: str) -> List[str]:
    color = LEVEL_COLORS.get(level.upper())
    if color is None:
        return list(lines)
    return [f"{color}{line}{Colors.END}" for line in lines]


def _add_boxed_messages(items: Iterable[Any], output: List[str], width: int) -> None:
    rendered = [stringify_message(item) for item in items]

    for index, lines in enumerate(rendered):
        output.extend(f"{LEFT_LINE} {line}" for line in lines)
        if index != len(rendered) - 1:
            output.append(divider(width))
