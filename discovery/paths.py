"""Locations of the on-disk stores, all relative to the user's home directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "project-config.json"
SESSION_LOG_SUFFIX = ".jsonl"
CURSOR_DB_FILENAME = "store.db"


def home_dir() -> Path:
    home = os.environ.get("HOME") or os.path.expanduser("~")
    if not home or home == "~":
        raise RuntimeError("Unable to determine home directory. Set the HOME environment variable.")
    return Path(home)


def claude_dir() -> Path:
    return home_dir() / ".claude"


def projects_dir() -> Path:
    """Root of the primary event-log store."""
    if os.environ.get("PROJECTS_PATH"):
        logger.warning(
            "PROJECTS_PATH is deprecated and ignored; projects live in %s",
            claude_dir() / "projects",
        )
    return claude_dir() / "projects"


def config_path() -> Path:
    return claude_dir() / CONFIG_FILENAME


def cursor_chats_dir() -> Path:
    """Root of the secondary, content-addressed store."""
    return home_dir() / ".cursor" / "chats"
