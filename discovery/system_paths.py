"""Platform rules for where a project root may live."""

from __future__ import annotations

import os
import re
import sys

_COMMON_SYSTEM_PATHS = ["/etc", "/usr", "/var", "/sys", "/proc"]

_WINDOWS_SYSTEM_PATHS = [
    "C:\\Windows",
    "C:\\Program Files",
    "C:\\Program Files (x86)",
    "C:\\ProgramData",
    "C:\\System Volume Information",
]

_POSIX_SYSTEM_PATHS = ["/boot", "/bin", "/sbin", "/root"]

_WINDOWS_DRIVE_RE = re.compile(r"^[A-Za-z]:\\")
_WINDOWS_DRIVE_ROOT_RE = re.compile(r"^[A-Za-z]:\\?$")


def is_windows() -> bool:
    return sys.platform == "win32"


def dangerous_system_paths() -> list[str]:
    if is_windows():
        return _COMMON_SYSTEM_PATHS + _WINDOWS_SYSTEM_PATHS
    return _COMMON_SYSTEM_PATHS + _POSIX_SYSTEM_PATHS


def is_valid_path_format(path: str) -> bool:
    """Absolute in the host's native notation (drive letter on Windows, leading / elsewhere)."""
    if is_windows():
        return bool(_WINDOWS_DRIVE_RE.match(path))
    return path.startswith("/")


def is_within(path: str, parent: str) -> bool:
    """True when ``path`` is ``parent`` itself or nested below it."""
    if path == parent:
        return True
    prefix = parent if parent.endswith(os.sep) else parent + os.sep
    return path.startswith(prefix)


def is_safe_project_path(path: str) -> bool:
    """Reject any path that is, or sits under, an operating-system directory."""
    candidate = path.lower() if is_windows() else path
    for system_path in dangerous_system_paths():
        system_path = system_path.lower() if is_windows() else system_path
        if is_within(candidate, system_path):
            return False
    return True


def is_filesystem_root(path: str) -> bool:
    return path == "/" or bool(_WINDOWS_DRIVE_ROOT_RE.match(path))
