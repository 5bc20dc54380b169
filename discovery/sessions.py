"""Session aggregation over the primary event-log store.

Each project directory holds append-only ``.jsonl`` logs. A session id
can appear in several logs; records for the same id are merged (first
real summary wins, message counts add, latest activity wins).
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from . import config_store, paths
from .extractor import session_logs
from .log_entries import (
    SkippedLine,
    SummaryEvent,
    UserMessageEvent,
    decode_line,
    iter_log,
)
from .models import (
    DEFAULT_SUMMARY,
    EPOCH,
    MessagePage,
    SessionPage,
    SessionRecord,
)
from .validation import (
    ErrorKind,
    ProjectError,
    validate_identifier,
    validate_pagination,
    validate_session_id,
)

logger = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 50
MAX_RECENT_FILES_TO_PROCESS = 3


def _project_dir(identifier: str) -> Path:
    return paths.projects_dir() / validate_identifier(identifier)


def _truncate(text: str, max_chars: int) -> str:
    return text[:max_chars] + "..." if len(text) > max_chars else text


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_session_log(path: Path, summary_max_chars: int = SUMMARY_MAX_CHARS) -> list[SessionRecord]:
    """Summarise every session found in one log, newest first.

    Malformed lines are logged and skipped; an unreadable file yields
    whatever was parsed before the failure.
    """
    sessions: dict[str, SessionRecord] = {}
    try:
        for line_number, entry in iter_log(path):
            if isinstance(entry, SkippedLine):
                logger.warning("Skipping malformed line %d in %s: %s", line_number, path.name, entry.reason)
                continue
            if not entry.session_id:
                continue

            session = sessions.get(entry.session_id)
            if session is None:
                session = SessionRecord(id=entry.session_id, cwd=entry.cwd or "")
                sessions[entry.session_id] = session

            if isinstance(entry, SummaryEvent):
                session.summary = entry.summary
            elif (
                isinstance(entry, UserMessageEvent)
                and session.summary == DEFAULT_SUMMARY
                and not entry.is_command
            ):
                session.summary = _truncate(entry.content, summary_max_chars)

            session.message_count += 1
            if entry.timestamp and entry.timestamp > session.last_activity:
                session.last_activity = entry.timestamp
    except OSError as exc:
        logger.error("Error reading session log %s: %s", path, exc)

    return sorted(sessions.values(), key=lambda s: s.last_activity, reverse=True)


def _logs_newest_first(project_dir: Path) -> list[Path]:
    with_mtime = []
    for log_file in session_logs(project_dir):
        try:
            with_mtime.append((log_file.stat().st_mtime, log_file))
        except FileNotFoundError:
            continue
    with_mtime.sort(key=lambda item: item[0], reverse=True)
    return [log_file for _, log_file in with_mtime]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def list_sessions(
    identifier: str,
    limit: int = 5,
    offset: int = 0,
    min_files: int = MAX_RECENT_FILES_TO_PROCESS,
) -> SessionPage:
    """One page of a project's sessions, most recently active first.

    Logs are read newest-modified first and scanning stops early once
    twice the requested window has been collected from at least the
    ``min_files`` most recent logs. Sessions that only live in older,
    unscanned logs are then missing from ``total``.
    """
    validate_pagination(limit, offset)
    project_dir = _project_dir(identifier)
    try:
        log_files = _logs_newest_first(project_dir)
    except FileNotFoundError:
        return SessionPage(offset=offset, limit=limit)

    merged: dict[str, SessionRecord] = {}
    for processed, log_file in enumerate(log_files, start=1):
        for record in parse_session_log(log_file):
            existing = merged.get(record.id)
            if existing is None:
                merged[record.id] = record
            else:
                existing.merge(record)

        if len(merged) >= (limit + offset) * 2 and processed >= min(min_files, len(log_files)):
            break

    ordered = sorted(merged.values(), key=lambda s: s.last_activity, reverse=True)
    total = len(ordered)
    return SessionPage(
        sessions=ordered[offset:offset + limit],
        total=total,
        has_more=offset + limit < total,
        offset=offset,
        limit=limit,
    )


def get_session_messages(
    identifier: str,
    session_id: str,
    limit: int | None = None,
    offset: int = 0,
) -> MessagePage:
    """Raw entries of one session in timestamp order.

    With a limit, the window is anchored at the newest entry: offset 0
    returns the last ``limit`` entries, offset N skips the N newest.
    """
    validate_pagination(limit, offset)
    validate_session_id(session_id)
    project_dir = _project_dir(identifier)
    try:
        log_files = session_logs(project_dir)
    except FileNotFoundError:
        return MessagePage(offset=offset, limit=limit)

    entries = []
    for log_file in log_files:
        try:
            for line_number, entry in iter_log(log_file):
                if isinstance(entry, SkippedLine):
                    logger.warning("Skipping malformed line %d in %s: %s", line_number, log_file.name, entry.reason)
                    continue
                if entry.session_id == session_id:
                    entries.append(entry)
        except OSError as exc:
            logger.error("Error reading session log %s: %s", log_file, exc)

    entries.sort(key=lambda e: e.timestamp or EPOCH)
    messages = [entry.raw for entry in entries]
    total = len(messages)

    if limit is None:
        return MessagePage(messages=messages, total=total, has_more=False, offset=offset, limit=None)

    start = max(0, total - offset - limit)
    end = max(0, total - offset)
    return MessagePage(
        messages=messages[start:end],
        total=total,
        has_more=start > 0,
        offset=offset,
        limit=limit,
    )


def is_project_empty(identifier: str) -> bool:
    return list_sessions(identifier, limit=1, offset=0).total == 0


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def _belongs_to(line: bytes, session_id: str) -> bool:
    if not line.strip():
        return False
    entry = decode_line(line.decode("utf-8", errors="replace"))
    return not isinstance(entry, SkippedLine) and entry.session_id == session_id


def delete_session(identifier: str, session_id: str) -> int:
    """Strip a session's lines from every log that has them. Returns the number of logs rewritten.

    Every other line, malformed ones included, is kept byte for byte in order.
    """
    validate_session_id(session_id)
    project_dir = _project_dir(identifier)
    try:
        log_files = session_logs(project_dir)
    except FileNotFoundError:
        log_files = []
    if not log_files:
        raise ProjectError(ErrorKind.NOT_FOUND, f"No session files found for project {identifier}")

    rewritten = 0
    for log_file in log_files:
        lines = log_file.read_bytes().splitlines(keepends=True)
        kept = [line for line in lines if not _belongs_to(line, session_id)]
        if len(kept) == len(lines):
            continue
        tmp_path = log_file.with_name(log_file.name + ".tmp")
        tmp_path.write_bytes(b"".join(kept))
        os.replace(tmp_path, log_file)
        rewritten += 1
        logger.info("Removed session %s from %s", session_id, log_file.name)

    if not rewritten:
        raise ProjectError(ErrorKind.NOT_FOUND, f"Session {session_id} not found in any files of {identifier}")
    return rewritten


def delete_project(identifier: str) -> None:
    """Remove an empty project's log directory and its config entry."""
    project_dir = _project_dir(identifier)
    if not is_project_empty(identifier):
        raise ProjectError(
            ErrorKind.PROJECT_NOT_EMPTY,
            f"Cannot delete project with existing sessions: {identifier}",
        )
    if project_dir.exists():
        shutil.rmtree(project_dir)
    config_store.remove_project(identifier)
    logger.info("Deleted project %s", identifier)
