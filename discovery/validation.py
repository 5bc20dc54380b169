"""Input validation for project names, project roots and display names.

Centralised validation rules so the CLI, the HTTP layer and the
provisioner share the same constraints. Everything here raises
``ProjectError`` (a ``ValueError``) tagged with an ``ErrorKind``.
"""

from __future__ import annotations

import ntpath
import os
import re
from enum import StrEnum

from .system_paths import (
    is_filesystem_root,
    is_safe_project_path,
    is_valid_path_format,
)

# ---------------------------------------------------------------------------
# Error taxonomy
# ---------------------------------------------------------------------------


class ErrorKind(StrEnum):
    INVALID_NAME = "INVALID_NAME"
    TRAVERSAL_ATTEMPT = "TRAVERSAL_ATTEMPT"
    NOT_ABSOLUTE = "NOT_ABSOLUTE"
    SYSTEM_DIRECTORY = "SYSTEM_DIRECTORY"
    HOME_DIRECTORY = "HOME_DIRECTORY"
    ROOT_DIRECTORY = "ROOT_DIRECTORY"
    SECURITY_VIOLATION = "SECURITY_VIOLATION"
    SYMLINK_ESCAPE = "SYMLINK_ESCAPE"
    CYCLIC_SYMLINK = "CYCLIC_SYMLINK"
    SECURITY_CHECK_FAILED = "SECURITY_CHECK_FAILED"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    OUT_OF_SPACE = "OUT_OF_SPACE"
    READ_ONLY_FILESYSTEM = "READ_ONLY_FILESYSTEM"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    NAME_TOO_LONG = "NAME_TOO_LONG"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_A_DIRECTORY = "NOT_A_DIRECTORY"
    DIRECTORY_CREATION_FAILED = "DIRECTORY_CREATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    PROJECT_NOT_EMPTY = "PROJECT_NOT_EMPTY"


class ProjectError(ValueError):
    """A project operation failed for a reason the caller can act on."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


# ---------------------------------------------------------------------------
# String length limits
# ---------------------------------------------------------------------------

MAX_DISPLAY_NAME = 100
MAX_SESSION_ID = 200

_SEPARATOR_RE = re.compile(r"[\\/]")
_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._\-]*$")


# ---------------------------------------------------------------------------
# Generic validators
# ---------------------------------------------------------------------------


def validate_string_length(value: str, field: str, max_len: int) -> str:
    """Validate string is non-empty and within length limit."""
    if not value or not value.strip():
        raise ValueError(f"{field} cannot be empty")
    stripped = value.strip()
    if len(stripped) > max_len:
        raise ValueError(f"{field} too long ({len(stripped)} chars, max {max_len})")
    return stripped


def validate_optional_string(value: str | None, field: str, max_len: int) -> str | None:
    """Validate optional string — None is allowed, but if set must be within limit."""
    if value is None:
        return None
    return validate_string_length(value, field, max_len)


def validate_pagination(limit: int | None, offset: int) -> None:
    if limit is not None and limit < 0:
        raise ValueError(f"limit must not be negative (got {limit})")
    if offset < 0:
        raise ValueError(f"offset must not be negative (got {offset})")


def validate_session_id(session_id: str) -> str:
    """Session ids are matched against log content, never used as paths, but keep them sane."""
    if not session_id:
        raise ValueError("Session id cannot be empty")
    if len(session_id) > MAX_SESSION_ID or not _SESSION_ID_RE.match(session_id):
        raise ValueError(f"Invalid session id: '{session_id}'")
    return session_id


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


def encode_identifier(absolute_path: str) -> str:
    """Project identifier: the absolute path with every separator replaced by '-'."""
    return _SEPARATOR_RE.sub("-", absolute_path)


def decode_identifier(identifier: str) -> str:
    """Best-effort inverse of ``encode_identifier`` (lossy when names contain '-')."""
    return identifier.replace("-", os.sep)


def validate_identifier(identifier: str) -> str:
    """An identifier names a single directory inside the event-log store."""
    if not identifier or identifier in (".", "..") or _SEPARATOR_RE.search(identifier):
        raise ProjectError(ErrorKind.INVALID_NAME, f"Invalid project identifier: '{identifier}'")
    return identifier


# ---------------------------------------------------------------------------
# Project name and project root
# ---------------------------------------------------------------------------


def validate_project_input(raw_name: str) -> str:
    """Return the directory name to create, rejecting empty names and traversal.

    The whole trimmed input is checked, not just its last component, so
    ``foo/../bar`` is refused even though its basename looks harmless.
    """
    trimmed = (raw_name or "").strip()
    input_name = os.path.basename(trimmed)
    if not input_name or input_name in (".", ".."):
        raise ProjectError(
            ErrorKind.INVALID_NAME,
            f"Invalid project name: '{raw_name}'. Provide a valid directory name.",
        )

    segments = _SEPARATOR_RE.split(trimmed)
    backslash_form = trimmed.replace("/", "\\")
    if (
        os.path.normpath(trimmed) != trimmed
        or ("\\" in trimmed and ntpath.normpath(trimmed) != backslash_form)
        or ".." in segments
    ):
        raise ProjectError(
            ErrorKind.TRAVERSAL_ATTEMPT,
            f"Invalid project path: '{trimmed}'. Directory traversal attempts are not allowed.",
        )
    return input_name


def validate_base_dir(base_dir: str) -> str:
    """Validate the configured project root and return its normalized form."""
    if not os.path.isabs(base_dir) or not is_valid_path_format(base_dir):
        raise ProjectError(
            ErrorKind.NOT_ABSOLUTE,
            f"PROJECT_BASE_DIR must be an absolute path (got '{base_dir}')",
        )

    normalized = os.path.normpath(base_dir)

    if not is_safe_project_path(normalized):
        raise ProjectError(
            ErrorKind.SYSTEM_DIRECTORY,
            f"PROJECT_BASE_DIR cannot be set to system directories. Attempted path: {base_dir}",
        )

    home = os.path.normpath(os.path.expanduser("~"))
    if normalized == home:
        raise ProjectError(
            ErrorKind.HOME_DIRECTORY,
            f"PROJECT_BASE_DIR cannot be the home directory itself ({home}). Use a subdirectory.",
        )

    if is_filesystem_root(normalized):
        raise ProjectError(
            ErrorKind.ROOT_DIRECTORY,
            f"PROJECT_BASE_DIR cannot be the filesystem root (got '{base_dir}')",
        )

    return normalized


class BaseDirCache:
    """Raw PROJECT_BASE_DIR value -> validated root, validated once per distinct value.

    Failed validations are not stored, so a bad value raises on every call.
    """

    def __init__(self) -> None:
        self._validated: dict[str, str] = {}

    def get(self, raw: str) -> str:
        if raw not in self._validated:
            self._validated[raw] = validate_base_dir(raw)
        return self._validated[raw]

    def clear(self) -> None:
        self._validated.clear()

    def __len__(self) -> int:
        return len(self._validated)
