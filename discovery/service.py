"""Project discovery service — ties the stores together.

``ProjectDiscovery`` owns the per-instance caches (canonical directory
per identifier, validated project root per raw environment value) and is
the single place that mutates the config store, so it can invalidate the
directory cache on every change.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from . import config_store, cursor_store, paths, provisioner, sessions
from .extractor import DirectoryCache, extract_canonical_path
from .models import (
    CursorSession,
    MessagePage,
    Project,
    ProjectConfigEntry,
    ProvisionResult,
    SessionMeta,
    SessionPage,
)
from .settings import Settings
from .validation import BaseDirCache, decode_identifier, validate_identifier

logger = logging.getLogger(__name__)


def generate_display_name(identifier: str, project_path: str | None = None) -> str:
    """package.json name if the project has one, else the last path component."""
    project_path = project_path or decode_identifier(identifier)

    try:
        with open(Path(project_path) / "package.json", encoding="utf-8") as f:
            package = json.load(f)
        if isinstance(package, dict) and isinstance(package.get("name"), str) and package["name"]:
            return package["name"]
    except (OSError, ValueError):
        pass

    parts = [p for p in project_path.replace("\\", "/").split("/") if p]
    return parts[-1] if parts else project_path


class ProjectDiscovery:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.directories = DirectoryCache()
        self.base_dirs = BaseDirCache()

    def clear_cache(self) -> None:
        self.directories.clear()

    # -- canonical paths -----------------------------------------------------

    def extract_canonical_path(self, identifier: str) -> str:
        validate_identifier(identifier)
        return extract_canonical_path(
            identifier,
            cache=self.directories,
            threshold=self.settings.recent_cwd_threshold,
        )

    # -- listing -------------------------------------------------------------

    def _build_project(
        self,
        identifier: str,
        canonical_path: str,
        entry: ProjectConfigEntry | None,
    ) -> Project:
        custom_name = entry.display_name if entry else None
        return Project(
            identifier=identifier,
            canonical_path=canonical_path,
            display_name=custom_name or generate_display_name(identifier, canonical_path),
            is_manually_added=bool(entry and entry.manually_added),
            is_custom_name=bool(custom_name),
        )

    def _attach_cursor_sessions(self, project: Project) -> None:
        try:
            project.cursor_sessions = self.list_cursor_sessions(project.canonical_path)
        except (OSError, ValueError) as exc:
            logger.warning("Could not load Cursor sessions for project %s: %s", project.identifier, exc)

    def list_projects(self) -> list[Project]:
        """Every project in the event-log store, then manually added ones without logs yet."""
        config = config_store.load_config()
        projects: list[Project] = []
        seen: set[str] = set()

        try:
            entries = sorted(p for p in paths.projects_dir().iterdir() if p.is_dir())
        except FileNotFoundError:
            entries = []
        except OSError as exc:
            logger.error("Error reading projects directory: %s", exc)
            entries = []

        for entry_dir in entries:
            identifier = entry_dir.name
            seen.add(identifier)
            project = self._build_project(
                identifier,
                self.extract_canonical_path(identifier),
                config.get(identifier),
            )
            try:
                page = self.list_sessions(identifier, self.settings.project_session_limit)
                project.sessions = page.sessions
                project.session_meta = SessionMeta(total=page.total, has_more=page.has_more)
            except (OSError, ValueError) as exc:
                logger.warning("Could not load sessions for project %s: %s", identifier, exc)
            self._attach_cursor_sessions(project)
            projects.append(project)

        for identifier, entry in config.items():
            if identifier in seen or not entry.manually_added:
                continue
            canonical_path = entry.original_path or self.extract_canonical_path(identifier)
            project = self._build_project(identifier, canonical_path, entry)
            self._attach_cursor_sessions(project)
            projects.append(project)

        return projects

    # -- primary store -------------------------------------------------------

    def list_sessions(self, identifier: str, limit: int = 5, offset: int = 0) -> SessionPage:
        return sessions.list_sessions(
            identifier, limit, offset, min_files=self.settings.early_exit_min_files
        )

    def get_session_messages(
        self,
        identifier: str,
        session_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> MessagePage:
        return sessions.get_session_messages(identifier, session_id, limit, offset)

    def delete_session(self, identifier: str, session_id: str) -> int:
        return sessions.delete_session(identifier, session_id)

    def is_project_empty(self, identifier: str) -> bool:
        return sessions.is_project_empty(identifier)

    # -- secondary store -----------------------------------------------------

    def list_cursor_sessions(self, project_path: str) -> list[CursorSession]:
        return cursor_store.list_cursor_sessions(project_path, self.settings.cursor_session_limit)

    # -- config mutations ----------------------------------------------------

    def add_project(self, raw_name: str, display_name: str | None = None) -> ProvisionResult:
        result = provisioner.add_project(
            raw_name,
            display_name,
            base_dirs=self.base_dirs,
            max_symlink_depth=self.settings.max_symlink_depth,
        )
        self.clear_cache()
        if not result.display_name:
            result.display_name = generate_display_name(result.identifier, result.absolute_path)
        return result

    def rename_project(self, identifier: str, display_name: str | None) -> ProjectConfigEntry | None:
        validate_identifier(identifier)
        entry = config_store.rename_project(identifier, display_name)
        self.clear_cache()
        return entry

    def delete_project(self, identifier: str) -> None:
        sessions.delete_project(identifier)
        self.clear_cache()

