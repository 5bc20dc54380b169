"""Runtime settings — read from environment variables, stdlib only."""

from __future__ import annotations

import os
from dataclasses import dataclass

PROJECT_BASE_DIR_ENV = "PROJECT_BASE_DIR"
RECENT_CWD_THRESHOLD_ENV = "PROJECTS_RECENT_CWD_THRESHOLD"
CURSOR_SESSION_LIMIT_ENV = "PROJECTS_CURSOR_SESSION_LIMIT"

DEFAULT_BASE_DIR = "/workspace"


@dataclass
class Settings:
    # Share of the most frequent cwd the most recent cwd needs to win.
    recent_cwd_threshold: float = 0.25
    max_symlink_depth: int = 20
    cursor_session_limit: int = 5
    project_session_limit: int = 5
    early_exit_min_files: int = 3

    @classmethod
    def from_env(cls) -> Settings:
        settings = cls()
        raw = os.environ.get(RECENT_CWD_THRESHOLD_ENV)
        if raw:
            try:
                threshold = float(raw)
            except ValueError as e:
                raise ValueError(f"{RECENT_CWD_THRESHOLD_ENV} must be a number (got {raw!r})") from e
            if not 0.0 <= threshold <= 1.0:
                raise ValueError(f"{RECENT_CWD_THRESHOLD_ENV} must be between 0 and 1 (got {threshold})")
            settings.recent_cwd_threshold = threshold
        raw = os.environ.get(CURSOR_SESSION_LIMIT_ENV)
        if raw:
            try:
                limit = int(raw)
            except ValueError as e:
                raise ValueError(f"{CURSOR_SESSION_LIMIT_ENV} must be an integer (got {raw!r})") from e
            if limit < 1:
                raise ValueError(f"{CURSOR_SESSION_LIMIT_ENV} must be positive (got {limit})")
            settings.cursor_session_limit = limit
        return settings


def raw_base_dir() -> str:
    """The configured project root exactly as found in the environment."""
    return os.environ.get(PROJECT_BASE_DIR_ENV) or DEFAULT_BASE_DIR
