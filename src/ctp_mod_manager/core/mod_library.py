"""The local store of extracted mods, one directory per mod."""

import shutil
import zipfile
from pathlib import Path

from ..config.schema import EngineConfig
from ..logging_config import get_logger
from .errors import InstallValidationError, ModIOError

logger = get_logger("mod_library")

SCENARIO_MARKER = Path("scen0000") / "scenario.txt"
GAME_DATA_DIR = "ctp2_data"
STAGING_DIR_NAME = ".staging"


def has_scenario_structure(directory: Path) -> bool:
    """Check a directory, or any directory below it, for scen0000/scenario.txt."""
    directory = Path(directory)
    if (directory / SCENARIO_MARKER).is_file():
        return True
    return any(path.is_file() for path in directory.rglob(SCENARIO_MARKER.as_posix()))


def find_game_roots(directory: Path) -> list[Path]:
    """Find the directories in an unpacked archive that hold a mod.

    A scenario folder is a root as a whole. Otherwise every directory
    that directly contains a ctp2_data folder is a root.
    """
    directory = Path(directory)
    if (directory / SCENARIO_MARKER).is_file():
        return [directory]

    roots: list[Path] = []
    for data_dir in sorted(directory.rglob("*")):
        if data_dir.is_dir() and data_dir.name.lower() == GAME_DATA_DIR and data_dir.parent not in roots:
            roots.append(data_dir.parent)
    return roots


class ModLibrary:
    """List, import and remove mods in the configured mods directory."""

    def __init__(self, engine_config: EngineConfig):
        self.engine_config = engine_config

    @property
    def mods_dir(self) -> Path:
        return self.engine_config.mods_dir

    def list_mods(self) -> list[str]:
        """Names of stored mods, sorted.

        Returns:
            Directory names in the mods directory, empty if it is missing
        """
        if not self.mods_dir.is_dir():
            return []
        return sorted(
            path.name for path in self.mods_dir.iterdir()
            if path.is_dir() and path.name != STAGING_DIR_NAME
        )

    def import_mod(self, source: Path) -> list[str]:
        """Import a mod from a directory or a .zip archive.

        Archives are unpacked into a staging directory first. Each game
        root found (see find_game_roots) is copied into the mods
        directory under its own name; a source with no recognisable root
        is copied whole under the source's name.

        Args:
            source: Directory or zip archive to import

        Returns:
            Names of the imported mods

        Raises:
            InstallValidationError: If the source does not exist or is an
                unsupported file
            ModIOError: If the archive is corrupt or copying fails
        """
        source = Path(source)
        if not source.exists():
            raise InstallValidationError(f"Mod source does not exist: {source}")

        self.mods_dir.mkdir(parents=True, exist_ok=True)

        if source.is_dir():
            return self._copy_roots(source, source.name)

        if source.suffix.lower() != ".zip":
            raise InstallValidationError(f"Unsupported mod file: {source}")

        staging = self.mods_dir / STAGING_DIR_NAME / source.stem
        try:
            if staging.exists():
                shutil.rmtree(staging)
            staging.mkdir(parents=True)
            logger.info(f"Extracting {source} to {staging}")
            with zipfile.ZipFile(source) as zf:
                zf.extractall(staging)
            return self._copy_roots(staging, source.stem)
        except zipfile.BadZipFile as e:
            raise ModIOError(f"Mod archive is corrupted: {source}") from e
        finally:
            shutil.rmtree(self.mods_dir / STAGING_DIR_NAME, ignore_errors=True)

    def remove_mod(self, name: str) -> bool:
        """Delete a stored mod.

        Returns:
            True if the mod existed and was removed
        """
        mod_path = self.engine_config.mod_path(name)
        if not mod_path.is_dir():
            logger.warning(f"Mod not found: {name}")
            return False
        try:
            shutil.rmtree(mod_path)
        except OSError as e:
            raise ModIOError(f"Could not remove mod {name}: {e}") from e
        logger.info(f"Removed mod {name}")
        return True

    def _copy_roots(self, directory: Path, fallback_name: str) -> list[str]:
        roots = find_game_roots(directory)
        if not roots:
            logger.warning(f"No game data folder found in {directory}, importing it as is")
            roots = [directory]

        imported = []
        for root in roots:
            name = root.name if root != directory else fallback_name
            target = self.mods_dir / name
            try:
                shutil.copytree(root, target, dirs_exist_ok=True)
            except OSError as e:
                raise ModIOError(f"Could not copy {root} to {target}: {e}") from e
            logger.info(f"Imported mod {name}")
            imported.append(name)
        return imported
