"""Exceptions raised by the mod engine.

The messages of InstallValidationError, ModPermissionError,
ModApplicationError and AggregateModError are shown to users verbatim
and must keep their wording.
"""

import errno
from pathlib import Path

from ..config.path_validator import is_protected_path

PERMISSION_ERRNOS = (errno.EPERM, errno.EACCES)


class ModManagerError(Exception):
    """Base class for all engine errors"""
    pass


class InstallValidationError(ModManagerError):
    """Exception raised when an installation or mod directory is unusable"""

    @classmethod
    def invalid_install(cls, install_dir) -> "InstallValidationError":
        return cls(f"Invalid installation directory: {install_dir}")


class ModConflictError(ModManagerError):
    """Exception raised for overlapping line edits"""
    pass


class ModPermissionError(ModManagerError):
    """Exception raised when the OS denies a write (EPERM/EACCES)"""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path

    @classmethod
    def for_directory(cls, target_dir) -> "ModPermissionError":
        if is_protected_path(target_dir):
            detail = (
                "The installation is inside a protected system folder. "
                "Run the mod manager as administrator or move the game "
                "to a folder you own."
            )
        else:
            detail = "Check that you have write access to this folder."
        return cls(f'Permission denied: Cannot write to "{target_dir}". {detail}', target_dir)

    @classmethod
    def for_ledger(cls, ledger_path) -> "ModPermissionError":
        return cls("Permission denied: Cannot write mods tracking file", ledger_path)


class ModIOError(ModManagerError):
    """Exception raised for any other filesystem failure"""
    pass


class PatchError(ModIOError):
    """Exception raised when a line change group cannot be addressed"""
    pass


class ModApplicationError(ModManagerError):
    """A single mod failed to apply"""

    def __init__(self, mod: str, cause: Exception):
        super().__init__(f'Failed to apply mod "{mod}": {cause}')
        self.mod = mod
        self.cause = cause


class AggregateModError(ModManagerError):
    """Two or more mods failed to apply, or mods and the ledger write failed"""

    def __init__(self, errors: list[ModManagerError]):
        lines = "\n".join(str(error) for error in errors)
        super().__init__(f"Multiple errors occurred during mod application:\n{lines}")
        self.errors = errors


class BackupError(ModManagerError):
    """Exception raised for backup operation errors"""
    pass


class RestoreError(ModManagerError):
    """Exception raised for restore operation errors"""
    pass


def is_permission_error(err: BaseException) -> bool:
    """Check if an exception is an OS permission denial."""
    if isinstance(err, PermissionError):
        return True
    return isinstance(err, OSError) and err.errno in PERMISSION_ERRNOS


def classify_os_error(err: OSError, target_dir: Path, action: str = "") -> ModManagerError:
    """Map an OS error raised while writing into an installation.

    Args:
        err: The OS error
        target_dir: Installation (or scenario) directory being written
        action: Optional prefix describing what was being done

    Returns:
        ModPermissionError for EPERM/EACCES, ModIOError otherwise
    """
    if is_permission_error(err):
        return ModPermissionError.for_directory(target_dir)
    message = f"{action}: {err}" if action else str(err)
    return ModIOError(message)
