"""Backup and restore operations for game installations (ZIP-based)"""

import shutil
import zipfile
from datetime import datetime
from pathlib import Path

from ..config.path_validator import sanitize_filename, validate_backup_path
from ..config.schema import BackupRecord, EngineConfig
from ..logging_config import get_logger
from .errors import BackupError, RestoreError

logger = get_logger("backup_service")

# Directories inside an installation that a restore leaves alone
PRESERVED_DIRECTORIES = ("logs", "saves")


class BackupService:
    """Handle backup and restore operations for installations.

    Each installation is archived to a single zip in the backups
    directory, named after its sanitized path. Backing up the same
    installation again overwrites its previous archive.
    """

    def __init__(self, engine_config: EngineConfig):
        self.engine_config = engine_config

    @property
    def backups_dir(self) -> Path:
        return self.engine_config.backups_dir

    def backup_path_for(self, install_dir: Path) -> Path:
        return self.backups_dir / f"{sanitize_filename(str(install_dir))}.zip"

    def create_backup(self, install_dir: Path) -> BackupRecord:
        """Zip an installation into the backups directory.

        Args:
            install_dir: The installation to back up

        Returns:
            BackupRecord for the created backup

        Raises:
            BackupError: If backup creation fails
        """
        install_dir = Path(install_dir)
        if not install_dir.is_dir():
            raise BackupError(f"Installation directory does not exist: {install_dir}")

        self.backups_dir.mkdir(parents=True, exist_ok=True)
        backup_path = self.backup_path_for(install_dir)

        try:
            logger.info(f"Creating backup of {install_dir} at {backup_path}")
            with zipfile.ZipFile(backup_path, 'w', zipfile.ZIP_DEFLATED) as zf:
                file_count = 0
                for file in install_dir.rglob('*'):
                    if file.is_file():
                        zf.write(file, file.relative_to(install_dir).as_posix())
                        file_count += 1
            logger.info(f"Backup created successfully: {file_count} files archived")
        except PermissionError as e:
            logger.error(f"Permission denied creating backup: {e}")
            raise BackupError(f"Permission denied: {e}") from e
        except OSError as e:
            logger.error(f"Failed to create backup: {e}")
            raise BackupError(f"Failed to create backup: {e}") from e

        return self._record_for(backup_path)

    def list_backups(self) -> list[BackupRecord]:
        """List backup archives, newest first.

        Returns:
            BackupRecords, empty if the backups directory does not exist
        """
        if not self.backups_dir.exists():
            return []

        try:
            records = [
                self._record_for(path)
                for path in self.backups_dir.iterdir()
                if path.is_file() and path.suffix.lower() == ".zip"
            ]
        except OSError as e:
            logger.error(f"An error occurred while listing backup files: {e}")
            return []

        return sorted(records, key=lambda r: r.creation_date, reverse=True)

    def restore_backup(self, backup_path: Path, install_dir: Path) -> None:
        """Replace an installation's contents with a backup.

        Top-level entries are removed first, except the directories in
        PRESERVED_DIRECTORIES; the archive is then extracted over it.

        Raises:
            RestoreError: If the backup is missing, corrupt, or the
                installation cannot be written
        """
        backup_path = Path(backup_path)
        install_dir = Path(install_dir)

        if not backup_path.is_file():
            raise RestoreError(f"Backup file not found: {backup_path}")

        try:
            logger.info(f"Starting backup restoration from {backup_path} to {install_dir}")
            with zipfile.ZipFile(backup_path, 'r') as zf:
                if install_dir.exists():
                    self._clean_installation(install_dir)
                else:
                    install_dir.mkdir(parents=True, exist_ok=True)
                zf.extractall(install_dir)
            logger.info("Backup restored successfully")
        except zipfile.BadZipFile as e:
            logger.error(f"Backup file is corrupted: {backup_path}")
            raise RestoreError("Backup file is corrupted") from e
        except PermissionError as e:
            logger.error(f"Permission denied during restore: {e}")
            raise RestoreError(f"Permission denied: {e}") from e
        except OSError as e:
            logger.error(f"Failed to restore backup: {e}")
            raise RestoreError(f"Failed to restore backup: {e}") from e

    def delete_backup(self, backup_path: Path) -> bool:
        """Delete a backup archive.

        Args:
            backup_path: Archive to delete; must be inside the backups directory

        Returns:
            True if a file was deleted, False if it did not exist

        Raises:
            BackupError: If the path is outside the backups directory or
                cannot be deleted
        """
        backup_path = Path(backup_path)
        is_valid, message = validate_backup_path(backup_path, self.backups_dir)
        if not is_valid:
            raise BackupError(message)

        if not backup_path.exists():
            logger.error(f"Backup file not found: {backup_path}")
            return False

        try:
            backup_path.unlink()
        except OSError as e:
            logger.error(f"An error occurred while deleting backup: {e}")
            raise BackupError(f"Could not delete backup: {e}") from e

        logger.info(f"Successfully deleted backup: {backup_path}")
        return True

    @staticmethod
    def _clean_installation(install_dir: Path) -> None:
        logger.info(f"Cleaning installation directory: {install_dir}")
        for entry in install_dir.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                if entry.name.lower() in PRESERVED_DIRECTORIES:
                    logger.debug(f"Skipping directory: {entry.name}")
                    continue
                shutil.rmtree(entry)
            else:
                entry.unlink()

    @staticmethod
    def _record_for(path: Path) -> BackupRecord:
        return BackupRecord(
            filename=path.name,
            file_path=path,
            creation_date=datetime.fromtimestamp(path.stat().st_mtime),
        )
