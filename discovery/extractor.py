"""Canonical working-directory extraction from a project's event logs.

A project's log directory name is its path with separators replaced by
'-', which is lossy. The logs themselves record the ``cwd`` of every
entry, so the real directory is inferred from them:

- one distinct cwd: use it;
- several: the most recent cwd wins unless it is rare compared with the
  most frequent one (below ``recent_cwd_threshold`` of its count), in
  which case the most frequent wins (first seen on ties).
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from . import paths
from .log_entries import SkippedLine, iter_log
from .models import EPOCH
from .validation import decode_identifier

logger = logging.getLogger(__name__)

DEFAULT_RECENT_CWD_THRESHOLD = 0.25


class DirectoryCache:
    """Identifier -> canonical path. Purely an optimisation; clear() on any config change."""

    def __init__(self) -> None:
        self._paths: dict[str, str] = {}

    def get(self, identifier: str) -> str | None:
        return self._paths.get(identifier)

    def set(self, identifier: str, path: str) -> None:
        self._paths[identifier] = path

    def clear(self) -> None:
        self._paths.clear()

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._paths

    def __len__(self) -> int:
        return len(self._paths)


def session_logs(project_dir: Path) -> list[Path]:
    """All event-log files of a project directory. Raises OSError if unreadable."""
    return sorted(
        p for p in project_dir.iterdir()
        if p.name.endswith(paths.SESSION_LOG_SUFFIX) and p.is_file()
    )


def choose_cwd(
    counts: Counter,
    latest_cwd: str | None,
    threshold: float = DEFAULT_RECENT_CWD_THRESHOLD,
) -> str | None:
    """Pick one cwd from occurrence counts (insertion-ordered) and the most recent cwd."""
    if not counts:
        return None
    if len(counts) == 1:
        return next(iter(counts))

    max_count = max(counts.values())
    recent_count = counts.get(latest_cwd, 0) if latest_cwd else 0
    if latest_cwd and recent_count >= max_count * threshold:
        return latest_cwd
    for cwd, count in counts.items():
        if count == max_count:
            return cwd
    return latest_cwd


def scan_cwds(log_files: list[Path]) -> tuple[Counter, str | None]:
    """Count cwd occurrences across logs and find the cwd with the latest timestamp."""
    counts: Counter = Counter()
    latest_cwd: str | None = None
    latest_timestamp = EPOCH
    for log_file in log_files:
        for _, entry in iter_log(log_file):
            if isinstance(entry, SkippedLine) or not entry.cwd:
                continue
            counts[entry.cwd] += 1
            timestamp = entry.timestamp or EPOCH
            if timestamp > latest_timestamp:
                latest_timestamp = timestamp
                latest_cwd = entry.cwd
    return counts, latest_cwd


def extract_canonical_path(
    identifier: str,
    cache: DirectoryCache | None = None,
    threshold: float = DEFAULT_RECENT_CWD_THRESHOLD,
) -> str:
    """Best guess of the real working directory behind a project identifier. Never raises."""
    if cache is not None:
        cached = cache.get(identifier)
        if cached is not None:
            return cached

    fallback = decode_identifier(identifier)
    project_dir = paths.projects_dir() / identifier
    try:
        log_files = session_logs(project_dir)
        counts, latest_cwd = scan_cwds(log_files)
    except FileNotFoundError:
        extracted = fallback
    except OSError as exc:
        logger.error("Error extracting project directory for %s: %s", identifier, exc)
        # Not cached: a transient failure must not pin the fallback.
        return fallback
    else:
        extracted = choose_cwd(counts, latest_cwd, threshold) or fallback

    if cache is not None:
        cache.set(identifier, extracted)
    return extracted
