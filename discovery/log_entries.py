"""Decoding of event-log lines into a small set of recognised shapes.

Every non-blank line of a ``.jsonl`` log decodes to exactly one of:

  SummaryEvent      -> ``type == "summary"`` with a non-empty summary
  UserMessageEvent  -> ``message.role == "user"`` with string content
  SessionEvent      -> any other JSON object
  SkippedLine       -> not JSON, or JSON that is not an object

Decoding never raises; callers decide whether a SkippedLine is worth a warning.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

COMMAND_MARKUP_PREFIX = "<command-name>"


@dataclass(frozen=True)
class SessionEvent:
    raw: dict = field(repr=False)
    session_id: str | None = None
    cwd: str | None = None
    timestamp: datetime | None = None


@dataclass(frozen=True)
class SummaryEvent:
    raw: dict = field(repr=False)
    summary: str = ""
    session_id: str | None = None
    cwd: str | None = None
    timestamp: datetime | None = None


@dataclass(frozen=True)
class UserMessageEvent:
    raw: dict = field(repr=False)
    content: str = ""
    session_id: str | None = None
    cwd: str | None = None
    timestamp: datetime | None = None

    @property
    def is_command(self) -> bool:
        return self.content.startswith(COMMAND_MARKUP_PREFIX)


@dataclass(frozen=True)
class SkippedLine:
    reason: str


LogEntry = SessionEvent | SummaryEvent | UserMessageEvent
DecodedLine = LogEntry | SkippedLine


def parse_timestamp(value: object) -> datetime | None:
    """ISO 8601 strings (``Z`` accepted) or epoch milliseconds; None if unusable."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, UTC)
        if isinstance(value, str) and value:
            parsed = datetime.fromisoformat(value)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed
    except (ValueError, OverflowError, OSError):
        return None
    return None


def _text(value: object) -> str | None:
    return value if isinstance(value, str) and value else None


def decode_entry(data: object) -> DecodedLine:
    """Classify an already-parsed JSON value."""
    if not isinstance(data, dict):
        return SkippedLine(reason=f"expected a JSON object, got {type(data).__name__}")

    common = {
        "raw": data,
        "session_id": _text(data.get("sessionId")),
        "cwd": _text(data.get("cwd")),
        "timestamp": parse_timestamp(data.get("timestamp")),
    }

    summary = _text(data.get("summary"))
    if data.get("type") == "summary" and summary:
        return SummaryEvent(summary=summary, **common)

    message = data.get("message")
    if isinstance(message, dict) and message.get("role") == "user":
        content = _text(message.get("content"))
        if content:
            return UserMessageEvent(content=content, **common)

    return SessionEvent(**common)


def decode_line(line: str) -> DecodedLine:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        return SkippedLine(reason=str(exc))
    return decode_entry(data)


def iter_log(path: Path) -> Iterator[tuple[int, DecodedLine]]:
    """Yield ``(line_number, decoded)`` for every non-blank line of a log.

    Opening or reading the file may raise OSError; decoding never does.
    """
    with open(path, encoding="utf-8", errors="replace") as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            yield line_number, decode_line(line)
