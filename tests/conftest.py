"""Shared fixtures for discovery tests.

Every test gets its own HOME (so ~/.claude and ~/.cursor live under
tmp_path) and its own PROJECT_BASE_DIR. Nothing touches the real stores.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import pytest

# Ensure the project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


@pytest.fixture(autouse=True)
def home(tmp_path, monkeypatch) -> Path:
    """Redirect HOME (and with it every store path) to a temp directory."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.delenv("PROJECTS_PATH", raising=False)
    monkeypatch.delenv("PROJECTS_RECENT_CWD_THRESHOLD", raising=False)
    monkeypatch.delenv("PROJECTS_CURSOR_SESSION_LIMIT", raising=False)
    return home_dir


@pytest.fixture
def base_dir(tmp_path, monkeypatch) -> Path:
    """A valid PROJECT_BASE_DIR that does not exist yet."""
    root = tmp_path / "workspace"
    monkeypatch.setenv("PROJECT_BASE_DIR", str(root))
    return root


@pytest.fixture
def projects_root(home) -> Path:
    root = home / ".claude" / "projects"
    root.mkdir(parents=True)
    return root


def write_log(project_dir: Path, name: str, entries: list, mtime: float | None = None) -> Path:
    """Write a .jsonl log; entries may be dicts or raw strings (for malformed lines)."""
    project_dir.mkdir(parents=True, exist_ok=True)
    path = project_dir / name
    lines = [e if isinstance(e, str) else json.dumps(e) for e in entries]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def make_log(projects_root):
    """Factory: make_log(identifier, filename, entries, mtime=None) -> Path."""

    def _make(identifier: str, name: str, entries: list, mtime: float | None = None) -> Path:
        return write_log(projects_root / identifier, name, entries, mtime)

    return _make
