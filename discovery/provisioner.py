"""Creation of project directories under the configured root.

A user-supplied name goes through four gates before anything is written:

1. name validation (no empty names, no traversal anywhere in the input)
2. root validation (absolute, not a system/home/root directory)
3. a lexical containment check of ``root/name``
4. a walk up the real (symlink-resolved) path chain back to the root

Only then is the directory created and the project registered in the
config store.
"""

from __future__ import annotations

import errno
import logging
import os

from . import config_store
from .models import ProjectConfigEntry, ProvisionResult
from .settings import raw_base_dir
from .system_paths import is_within
from .validation import (
    MAX_DISPLAY_NAME,
    BaseDirCache,
    ErrorKind,
    ProjectError,
    encode_identifier,
    validate_optional_string,
    validate_project_input,
)

logger = logging.getLogger(__name__)

MAX_SYMLINK_DEPTH = 20

_CREATE_ERRORS = {
    errno.ENOSPC: (ErrorKind.OUT_OF_SPACE, "Not enough disk space"),
    errno.EROFS: (ErrorKind.READ_ONLY_FILESYSTEM, "Read-only filesystem"),
    errno.EMFILE: (ErrorKind.RESOURCE_EXHAUSTED, "Too many open files"),
    errno.ENFILE: (ErrorKind.RESOURCE_EXHAUSTED, "Too many open files in system"),
    errno.ENAMETOOLONG: (ErrorKind.NAME_TOO_LONG, "Path name too long"),
    errno.EACCES: (ErrorKind.PERMISSION_DENIED, "Permission denied creating directory"),
    errno.EPERM: (ErrorKind.PERMISSION_DENIED, "Permission denied creating directory"),
    errno.ENOTDIR: (ErrorKind.NOT_A_DIRECTORY, "Cannot create directory - parent path is not a directory"),
}


# ---------------------------------------------------------------------------
# Security checks
# ---------------------------------------------------------------------------


def resolve_project_path(base_dir: str, input_name: str) -> str:
    return os.path.abspath(os.path.join(base_dir, input_name))


def validate_path_chain(target: str, base_dir: str, max_depth: int = MAX_SYMLINK_DEPTH) -> None:
    """Walk from ``target`` up to ``base_dir`` proving no component resolves outside it.

    Components that do not exist yet are skipped (the walk continues at
    their parent). Each existing component is resolved to its real path,
    which must stay within ``base_dir``; the walk then continues from the
    parent of that real path.
    """
    base = os.path.normpath(base_dir)
    current = os.path.normpath(target)
    checked: set[str] = set()
    resolved: set[str] = set()
    iterations = 0

    while current != base and not is_filesystem_anchor(current):
        iterations += 1
        if iterations > max_depth or current in checked:
            raise ProjectError(ErrorKind.CYCLIC_SYMLINK, f"Security violation: circular symbolic link detected at {current}")
        checked.add(current)

        try:
            real = os.path.normpath(os.path.realpath(current, strict=True))
        except FileNotFoundError:
            current = os.path.dirname(current)
            continue
        except OSError as exc:
            if exc.errno == errno.ELOOP:
                raise ProjectError(
                    ErrorKind.CYCLIC_SYMLINK,
                    f"Security violation: circular symbolic link detected at {current}",
                ) from exc
            raise ProjectError(
                ErrorKind.SECURITY_CHECK_FAILED,
                f"Security check failed for {current}: {exc}",
            ) from exc

        if not is_within(real, base):
            raise ProjectError(
                ErrorKind.SYMLINK_ESCAPE,
                f"Security violation: '{current}' resolves to '{real}' outside base directory '{base}'",
            )
        if real in resolved:
            raise ProjectError(ErrorKind.CYCLIC_SYMLINK, f"Security violation: circular symbolic link detected at {real}")
        resolved.add(real)
        if real == base:
            break
        current = os.path.dirname(real)


def is_filesystem_anchor(path: str) -> bool:
    return os.path.dirname(path) == path


def validate_project_security(absolute_path: str, base_dir: str, max_depth: int = MAX_SYMLINK_DEPTH) -> None:
    normalized = os.path.normpath(absolute_path)
    base = os.path.normpath(base_dir)
    if not is_within(normalized, base):
        raise ProjectError(
            ErrorKind.SECURITY_VIOLATION,
            f"Security violation: Project path '{normalized}' is outside allowed base directory '{base}'",
        )
    validate_path_chain(normalized, base, max_depth)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


def _creation_error(exc: OSError, path: str) -> ProjectError:
    kind, message = _CREATE_ERRORS.get(
        exc.errno, (ErrorKind.DIRECTORY_CREATION_FAILED, "Failed to create directory")
    )
    return ProjectError(kind, f"{message}: {path}")


def ensure_directory(absolute_path: str) -> bool:
    """Create ``absolute_path`` (owner-only) and missing parents. Returns True if created."""
    try:
        if os.path.isdir(absolute_path):
            return False
        if os.path.lexists(absolute_path):
            raise ProjectError(ErrorKind.NOT_A_DIRECTORY, f"Path exists and is not a directory: {absolute_path}")
    except PermissionError as exc:
        raise ProjectError(ErrorKind.PERMISSION_DENIED, f"Directory access denied: {absolute_path}") from exc

    missing = []
    current = absolute_path
    while not os.path.lexists(current) and not is_filesystem_anchor(current):
        missing.append(current)
        current = os.path.dirname(current)

    try:
        for directory in reversed(missing):
            os.mkdir(directory, mode=0o700)
    except FileExistsError:
        # Raced with another creator; fine as long as it is a directory now.
        if not os.path.isdir(absolute_path):
            raise ProjectError(ErrorKind.NOT_A_DIRECTORY, f"Path exists and is not a directory: {absolute_path}")
    except OSError as exc:
        raise _creation_error(exc, absolute_path) from exc

    logger.info("Created directory: %s", absolute_path)
    return True


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def register_project(absolute_path: str, display_name: str | None = None) -> str:
    """Record a manually added project. Returns its identifier."""
    identifier = encode_identifier(absolute_path)
    config = config_store.load_config()
    if identifier in config:
        raise ProjectError(ErrorKind.ALREADY_REGISTERED, f"Project is already configured: {absolute_path}")

    config[identifier] = ProjectConfigEntry(
        display_name=display_name,
        manually_added=True,
        original_path=absolute_path,
    )
    config_store.save_config(config)
    return identifier


def add_project(
    raw_name: str,
    display_name: str | None = None,
    base_dirs: BaseDirCache | None = None,
    max_symlink_depth: int = MAX_SYMLINK_DEPTH,
) -> ProvisionResult:
    """Validate, create and register a project directory under the configured root."""
    input_name = validate_project_input(raw_name)
    if display_name is not None and not display_name.strip():
        display_name = None
    display_name = validate_optional_string(display_name, "display name", MAX_DISPLAY_NAME)

    base_dirs = base_dirs if base_dirs is not None else BaseDirCache()
    base_dir = base_dirs.get(raw_base_dir())
    absolute_path = resolve_project_path(base_dir, input_name)

    validate_project_security(absolute_path, base_dir, max_symlink_depth)
    created = ensure_directory(absolute_path)
    identifier = register_project(absolute_path, display_name)

    logger.info("Registered project %s at %s (created=%s)", identifier, absolute_path, created)
    return ProvisionResult(
        identifier=identifier,
        absolute_path=absolute_path,
        created=created,
        display_name=display_name or "",
    )
