"""Default paths for the mod store, backups and configuration"""

import os
from pathlib import Path


def _default_app_data_dir() -> Path:
    """Resolve the per-user application data directory.

    Uses %APPDATA% on Windows and ~/.config everywhere else.
    """
    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata) / "CTPModManager"
    return Path.home() / ".config" / "CTPModManager"


class AppPaths:
    """Default locations used when no configuration overrides them.

    Only defaults live here. Engine components receive an EngineConfig
    built from these values (or from configuration.xml) at construction.
    """

    APP_DATA_DIR = _default_app_data_dir()

    # Extracted mods, one directory per mod
    MODS_DIR = APP_DATA_DIR / "Mods"

    # Zip backups of installations
    BACKUPS_DIR = APP_DATA_DIR / "InstallationBackups"

    CONFIG_FILE_NAME = "configuration.xml"
    # Named after the data directory, e.g. CTPModManager.log
    LOG_FILE_NAME = f"{APP_DATA_DIR.name}.log"

    # Applied-mods ledger, stored at the root of each installation
    LEDGER_FILE_NAME = "mods.json"

    @classmethod
    def expand_path(cls, path_str: str) -> Path:
        """Expand environment variables and ~ in a path string.

        Args:
            path_str: Path string potentially containing environment variables

        Returns:
            Path object with expanded variables
        """
        return Path(os.path.expanduser(os.path.expandvars(path_str)))

    @classmethod
    def ensure_dir(cls, path: Path) -> Path:
        """Ensure a directory exists.

        Args:
            path: Directory to create if missing

        Returns:
            The same path
        """
        path.mkdir(parents=True, exist_ok=True)
        return path
