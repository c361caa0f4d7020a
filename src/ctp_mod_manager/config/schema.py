"""Configuration data models"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from .paths import AppPaths


class CtpVersion(Enum):
    """Game versions an installation can hold"""
    CTP2 = "CTP2"
    CTP1 = "CTP1"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class EngineConfig:
    """Paths injected into the mod engine.

    Every engine component takes one of these at construction instead of
    reading module-level constants.
    """
    mods_dir: Path = AppPaths.MODS_DIR
    backups_dir: Path = AppPaths.BACKUPS_DIR
    ledger_filename: str = AppPaths.LEDGER_FILE_NAME

    def mod_path(self, mod: str) -> Path:
        """Get the stored directory for a mod name."""
        return self.mods_dir / mod

    def ledger_path(self, install_dir: Path) -> Path:
        """Get the ledger file location for an installation."""
        return Path(install_dir) / self.ledger_filename


@dataclass
class Installation:
    """A registered base-game directory"""
    path: Path
    version: CtpVersion = CtpVersion.UNKNOWN
    display_name: str = ""

    def exists(self) -> bool:
        """Check if the installation directory is still on disk.

        Returns:
            True if the path exists and is a directory
        """
        return self.path.is_dir()


@dataclass
class Settings:
    """Application settings"""
    first_run_complete: bool = False
    mods_dir: Path = AppPaths.MODS_DIR
    backups_dir: Path = AppPaths.BACKUPS_DIR
    ledger_filename: str = AppPaths.LEDGER_FILE_NAME
    create_backup_before_apply: bool = False


@dataclass
class BackupRecord:
    """Record of a single installation backup"""
    filename: str
    file_path: Path
    creation_date: datetime

    def exists(self) -> bool:
        """Check if the backup file still exists.

        Returns:
            True if the backup file exists on disk
        """
        return self.file_path.exists()

    def get_size_mb(self) -> float:
        """Get the backup file size in megabytes.

        Returns:
            File size in MB, or 0 if file doesn't exist
        """
        if self.exists():
            return self.file_path.stat().st_size / (1024 * 1024)
        return 0.0


@dataclass
class AppConfiguration:
    """Complete application configuration"""
    settings: Settings = field(default_factory=Settings)
    installations: list[Installation] = field(default_factory=list)

    def get_installation(self, path: Path) -> Optional[Installation]:
        """Get a registered installation by path.

        Args:
            path: Installation directory to look up

        Returns:
            The Installation object or None if not registered
        """
        wanted = Path(path).resolve()
        for installation in self.installations:
            if installation.path.resolve() == wanted:
                return installation
        return None

    def engine_config(self) -> EngineConfig:
        """Build the engine configuration from the current settings."""
        return EngineConfig(
            mods_dir=self.settings.mods_dir,
            backups_dir=self.settings.backups_dir,
            ledger_filename=self.settings.ledger_filename,
        )
