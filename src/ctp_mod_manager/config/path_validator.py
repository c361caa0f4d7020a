"""Path validation utilities for installation and backup paths.

Provides:
- Detection of protected system directories (Program Files and friends),
  used to pick the right guidance when a write is denied
- Validation of backup paths before destructive operations
- Filename sanitizing for backup archives
"""

import os
from pathlib import Path

from ..logging_config import get_logger

logger = get_logger("path_validator")

# Protected Windows system directories that need elevation to modify
PROTECTED_DIRECTORIES = [
    "C:\\Windows",
    "C:\\Program Files",
    "C:\\Program Files (x86)",
    "C:\\ProgramData",
]

# Additional protected paths based on environment variables
PROTECTED_ENV_PATHS = [
    "WINDIR",
    "SYSTEMROOT",
    "PROGRAMFILES",
    "PROGRAMFILES(X86)",
    "PROGRAMDATA",
]


def _normalize(path: str) -> str:
    """Fold a Windows or WSL path into a lowercase drive-letter form.

    ``/mnt/c/Program Files`` and ``C:\\Program Files`` both become
    ``c:/program files``.
    """
    text = str(path).replace("\\", "/").rstrip("/").lower()
    if text.startswith("/mnt/") and len(text) >= 6 and text[6:7] in ("", "/"):
        text = f"{text[5]}:{text[6:]}"
    return text


def _get_protected_paths() -> set[str]:
    """Build the set of normalized protected paths including environment-based ones."""
    protected = {_normalize(dir_path) for dir_path in PROTECTED_DIRECTORIES}

    for env_var in PROTECTED_ENV_PATHS:
        env_value = os.environ.get(env_var)
        if env_value:
            protected.add(_normalize(env_value))

    return protected


def is_protected_path(path: Path | str) -> bool:
    """Check if a path sits inside a protected system directory.

    Matching is textual and case-insensitive so that Windows paths are
    recognised on any host.

    Args:
        path: The path to check

    Returns:
        True if the path is, or is under, a protected directory
    """
    normalized = _normalize(str(path))
    for protected_path in _get_protected_paths():
        if normalized == protected_path or normalized.startswith(protected_path + "/"):
            logger.debug("Path %s is in protected directory %s", path, protected_path)
            return True
    return False


def is_path_under_root(path: Path, root: Path) -> bool:
    """Check if a path is under a given root directory.

    Args:
        path: The path to check
        root: The root directory

    Returns:
        True if path is under root, False otherwise
    """
    try:
        path_resolved = path.resolve()
        root_resolved = root.resolve()
        return path_resolved == root_resolved or root_resolved in path_resolved.parents
    except (OSError, ValueError) as e:
        logger.warning("Failed to check path relationship: %s", e)
        return False


def validate_backup_path(backup_path: Path, backup_root: Path) -> tuple[bool, str]:
    """Validate a backup path before performing operations.

    Args:
        backup_path: The backup path to validate
        backup_root: The configured backup root directory

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not backup_path:
        return False, "Backup path is empty"

    try:
        backup_path.resolve()
    except (OSError, ValueError) as e:
        return False, f"Invalid path: {e}"

    if ".." in backup_path.parts:
        return False, "Path contains directory traversal"

    if not is_path_under_root(backup_path, backup_root):
        return False, f"Path must be under backup directory: {backup_root}"

    return True, ""


def sanitize_filename(filename: str) -> str:
    """Turn an installation path into a flat archive file name.

    Separators become dashes; spaces, colons and parentheses are dropped.

    Args:
        filename: The path or name to sanitize

    Returns:
        Sanitized filename safe for use in file operations
    """
    result = str(filename).replace("\\", "-").replace("/", "-")
    for char in (" ", ":", "(", ")"):
        result = result.replace(char, "")

    dangerous_chars = ['<', '>', '"', '|', '?', '*', '\0']
    for char in dangerous_chars:
        result = result.replace(char, '_')

    result = result.strip('.- ')

    if len(result) > 200:
        result = result[:200]

    if not result:
        result = "unnamed"

    return result
