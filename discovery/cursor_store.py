"""Session discovery in the Cursor chat store.

Cursor keeps chats under ``~/.cursor/chats/<md5(cwd)>/<chatId>/store.db``.
The project path is not stored anywhere inside; the only link is the MD5
hex digest of the exact absolute path string, so the hash must not be
changed or the path normalised before hashing.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import sqlite3
from contextlib import closing
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from . import paths
from .log_entries import parse_timestamp
from .models import UNTITLED_CURSOR_SESSION, CursorSession

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_NAME_KEYS = ("title", "sessionTitle", "name")


def cwd_hash(project_path: str) -> str:
    """Directory name Cursor uses for a working directory."""
    return hashlib.md5(project_path.encode("utf-8", "surrogateescape"), usedforsecurity=False).hexdigest()


def decode_meta_value(value: Any) -> Any:
    """Hex-encoded JSON becomes the decoded object; anything else stays a string."""
    text = value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)
    if _HEX_RE.match(text):
        try:
            return json.loads(bytes.fromhex(text).decode("utf-8"))
        except ValueError:
            pass
    return text


def _lookup(metadata: dict[str, Any], keys: tuple[str, ...]) -> Any:
    """First matching key at top level, then inside decoded JSON objects."""
    for key in keys:
        if metadata.get(key):
            return metadata[key]
    for value in metadata.values():
        if isinstance(value, dict):
            for key in keys:
                if value.get(key):
                    return value[key]
    return None


def read_session_db(db_path: Path) -> tuple[dict[str, Any], int]:
    """Metadata and blob count of one store.db, opened read-only."""
    uri = f"{db_path.resolve().as_uri()}?mode=ro"
    with closing(sqlite3.connect(uri, uri=True)) as conn:
        metadata = {}
        for key, value in conn.execute("SELECT key, value FROM meta"):
            if value:
                metadata[str(key)] = decode_meta_value(value)
        (count,) = conn.execute("SELECT COUNT(*) FROM blobs").fetchone()
    return metadata, count or 0


def _session_timestamp(metadata: dict[str, Any], db_path: Path) -> datetime:
    raw = _lookup(metadata, ("createdAt",))
    if isinstance(raw, str) and raw.isdigit():
        raw = int(raw)
    created = parse_timestamp(raw)
    if created is not None:
        return created
    try:
        return datetime.fromtimestamp(db_path.stat().st_mtime, UTC)
    except OSError:
        return datetime.now(UTC)


def list_cursor_sessions(project_path: str, limit: int = DEFAULT_LIMIT) -> list[CursorSession]:
    """Newest Cursor sessions recorded for a project path, at most ``limit``."""
    project_dir = paths.cursor_chats_dir() / cwd_hash(project_path)
    if not project_dir.is_dir():
        return []

    sessions: list[CursorSession] = []
    for session_dir in sorted(project_dir.iterdir()):
        db_path = session_dir / paths.CURSOR_DB_FILENAME
        if not db_path.is_file():
            continue
        try:
            metadata, message_count = read_session_db(db_path)
            timestamp = _session_timestamp(metadata, db_path)
            name = _lookup(metadata, _NAME_KEYS)
        except (sqlite3.Error, OSError, ValueError) as exc:
            logger.warning("Could not read Cursor session %s: %s", session_dir.name, exc)
            continue
        sessions.append(
            CursorSession(
                id=session_dir.name,
                name=str(name) if name else UNTITLED_CURSOR_SESSION,
                created_at=timestamp,
                last_activity=timestamp,
                message_count=message_count,
                project_path=project_path,
            )
        )

    sessions.sort(key=lambda s: s.created_at, reverse=True)
    return sessions[:limit]
