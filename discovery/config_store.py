"""Project config store — one JSON document of per-project overrides.

The document is rewritten whole on every save (temp file + os.replace,
so readers never see a partial write). There is no lock: concurrent
writers race and the last one wins.
"""

from __future__ import annotations

import errno
import json
import logging
import os
import tempfile
from pathlib import Path

from . import paths
from .models import ProjectConfig, ProjectConfigEntry
from .validation import MAX_DISPLAY_NAME, validate_string_length

logger = logging.getLogger(__name__)

MAX_JSON_FILE_SIZE = 10 * 1024 * 1024  # 10 MB


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _atomic_write(path: Path, data: dict) -> None:
    """Write JSON atomically via temp file + rename."""
    tmp_fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(tmp_fd, "w") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def _safe_read_json(path: Path) -> dict:
    """Read and parse a JSON file with size limit and symlink rejection.

    Uses O_NOFOLLOW to atomically reject symlinks (no TOCTOU race).

    Raises:
        ValueError: if file is a symlink or exceeds size limit.
        json.JSONDecodeError: if file contains invalid JSON.
    """
    try:
        fd = os.open(path, os.O_RDONLY | getattr(os, "O_NOFOLLOW", 0))
    except OSError as e:
        if e.errno in (errno.ELOOP, errno.EMLINK):
            raise ValueError(f"Refusing to read symlink: {path.name}") from e
        raise
    size = os.fstat(fd).st_size
    if size > MAX_JSON_FILE_SIZE:
        os.close(fd)
        raise ValueError(
            f"File too large: {path.name} ({size} bytes, max {MAX_JSON_FILE_SIZE})"
        )
    with os.fdopen(fd, encoding="utf-8") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


def load_config() -> ProjectConfig:
    """Load every project override. A missing or unreadable document is an empty config."""
    path = paths.config_path()
    try:
        data = _safe_read_json(path)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable project config %s: %s", path, exc)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring project config %s: top level is not an object", path)
        return {}

    config: ProjectConfig = {}
    for identifier, entry in data.items():
        if isinstance(entry, dict):
            config[identifier] = ProjectConfigEntry.from_dict(entry)
        else:
            logger.warning("Skipping malformed config entry for %s", identifier)
    return config


def save_config(config: ProjectConfig) -> None:
    path = paths.config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {identifier: entry.to_dict() for identifier, entry in config.items()}
    _atomic_write(path, data)


# ---------------------------------------------------------------------------
# Entry mutations
# ---------------------------------------------------------------------------


def rename_project(identifier: str, display_name: str | None) -> ProjectConfigEntry | None:
    """Set or clear a project's custom display name.

    A blank name removes the override; the entry is dropped entirely when
    nothing else (manual registration, original path) remains in it.
    Returns the stored entry, or None when the entry was removed.
    """
    config = load_config()
    entry = config.get(identifier, ProjectConfigEntry())

    if display_name is None or not display_name.strip():
        entry.display_name = None
    else:
        entry.display_name = validate_string_length(display_name, "display name", MAX_DISPLAY_NAME)

    if entry.is_empty():
        config.pop(identifier, None)
        result = None
    else:
        config[identifier] = entry
        result = entry

    save_config(config)
    return result


def remove_project(identifier: str) -> bool:
    """Drop a project's entry. Returns True if there was one."""
    config = load_config()
    if identifier not in config:
        return False
    del config[identifier]
    save_config(config)
    return True
