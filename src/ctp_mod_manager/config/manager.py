"""Configuration management - load/save XML configuration"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional
from xml.dom import minidom

from .paths import AppPaths
from .schema import (
    AppConfiguration,
    CtpVersion,
    Installation,
    Settings,
)
from ..logging_config import get_logger

logger = get_logger("config_manager")


class ConfigurationManager:
    """Manages application configuration persistence.

    Handles loading and saving configuration to XML format,
    including first-run detection and default configuration creation.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else AppPaths.APP_DATA_DIR
        self.config_path = self.config_dir / AppPaths.CONFIG_FILE_NAME
        self.config: Optional[AppConfiguration] = None

    def is_first_run(self) -> bool:
        """Check if this is the first run of the application.

        First run is detected if:
        - Configuration file does not exist, OR
        - Configuration exists but FirstRunComplete is False

        Returns:
            True if this is the first run
        """
        if not self.config_path.exists():
            return True

        try:
            self.load()
            return not self.config.settings.first_run_complete
        except (ET.ParseError, FileNotFoundError, ValueError, KeyError) as e:
            # Corrupted config = treat as first run
            logger.warning(f"Could not load config, treating as first run: {e}")
            return True

    def load_or_create(self) -> AppConfiguration:
        """Load the configuration, falling back to defaults on first run.

        Returns:
            The active AppConfiguration
        """
        if self.is_first_run():
            if self.config is None:
                self.create_default()
            self.config.settings.first_run_complete = True
            self.save()
        return self.config

    def load(self) -> AppConfiguration:
        """Load configuration from XML file.

        Returns:
            AppConfiguration object with loaded settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ET.ParseError: If XML is malformed
        """
        logger.debug(f"Loading configuration from {self.config_path}")
        tree = ET.parse(self.config_path)
        root = tree.getroot()

        settings_elem = root.find("Settings")

        # Use defaults if Settings element is missing
        if settings_elem is not None:
            settings = Settings(
                first_run_complete=self._parse_bool(settings_elem, "FirstRunComplete", False),
                mods_dir=self._parse_path(settings_elem, "ModsDirectory") or AppPaths.MODS_DIR,
                backups_dir=self._parse_path(settings_elem, "BackupsDirectory") or AppPaths.BACKUPS_DIR,
                ledger_filename=self._get_text(settings_elem, "LedgerFileName", AppPaths.LEDGER_FILE_NAME),
                create_backup_before_apply=self._parse_bool(settings_elem, "BackupBeforeApply", False),
            )
        else:
            settings = Settings()

        installations = []
        installations_elem = root.find("Installations")
        if installations_elem is not None:
            for inst_elem in installations_elem.findall("Installation"):
                path = self._parse_path(inst_elem, "Path")
                if path is None:
                    logger.warning("Skipping installation entry without a path")
                    continue
                try:
                    version = CtpVersion(inst_elem.get("version", CtpVersion.UNKNOWN.value))
                except ValueError as e:
                    logger.warning(f"Unknown installation version, using Unknown: {e}")
                    version = CtpVersion.UNKNOWN
                installations.append(Installation(
                    path=path,
                    version=version,
                    display_name=self._get_text(inst_elem, "DisplayName", ""),
                ))

        self.config = AppConfiguration(
            settings=settings,
            installations=installations,
        )
        logger.debug(f"Configuration loaded: {len(installations)} installations")
        return self.config

    def save(self) -> None:
        """Save current configuration to XML file.

        Creates the configuration directory if it doesn't exist.
        """
        if self.config is None:
            raise ValueError("No configuration to save")

        logger.debug(f"Saving configuration to {self.config_path}")
        AppPaths.ensure_dir(self.config_dir)

        root = ET.Element("CTPModManager", version="1.0")

        settings = self.config.settings
        settings_elem = ET.SubElement(root, "Settings")
        ET.SubElement(settings_elem, "FirstRunComplete").text = str(settings.first_run_complete).lower()
        ET.SubElement(settings_elem, "ModsDirectory").text = str(settings.mods_dir)
        ET.SubElement(settings_elem, "BackupsDirectory").text = str(settings.backups_dir)
        ET.SubElement(settings_elem, "LedgerFileName").text = settings.ledger_filename
        ET.SubElement(settings_elem, "BackupBeforeApply").text = str(settings.create_backup_before_apply).lower()

        installations_elem = ET.SubElement(root, "Installations")
        for installation in self.config.installations:
            inst_elem = ET.SubElement(
                installations_elem,
                "Installation",
                version=installation.version.value,
            )
            ET.SubElement(inst_elem, "Path").text = str(installation.path)
            ET.SubElement(inst_elem, "DisplayName").text = installation.display_name

        # Write pretty-printed XML
        xml_str = minidom.parseString(ET.tostring(root, encoding="unicode")).toprettyxml(indent="  ")
        # Remove extra blank lines that minidom adds
        lines = [line for line in xml_str.split('\n') if line.strip()]
        xml_str = '\n'.join(lines)

        self.config_path.write_text(xml_str, encoding="utf-8")

    def create_default(self, installations: list[Installation] | None = None) -> AppConfiguration:
        """Create a default configuration.

        Args:
            installations: Optional list of already known installations

        Returns:
            New AppConfiguration with default values
        """
        settings = Settings()
        if self.config_dir != AppPaths.APP_DATA_DIR:
            # A custom config directory also holds its own mod store and backups
            settings.mods_dir = self.config_dir / AppPaths.MODS_DIR.name
            settings.backups_dir = self.config_dir / AppPaths.BACKUPS_DIR.name

        self.config = AppConfiguration(
            settings=settings,
            installations=list(installations or []),
        )
        return self.config

    def add_installation(self, installation: Installation) -> bool:
        """Register an installation and save configuration.

        Args:
            installation: The installation to add

        Returns:
            True if added, False if the path was already registered
        """
        if self.config is None:
            raise ValueError("No configuration loaded")
        if self.config.get_installation(installation.path) is not None:
            logger.info(f"Installation already registered: {installation.path}")
            return False
        self.config.installations.append(installation)
        self.save()
        return True

    def remove_installation(self, path: Path) -> bool:
        """Unregister an installation by path.

        Args:
            path: Installation directory to remove

        Returns:
            True if the installation was found and removed
        """
        if self.config is None:
            raise ValueError("No configuration loaded")

        existing = self.config.get_installation(path)
        if existing is None:
            return False
        self.config.installations.remove(existing)
        self.save()
        return True

    # Helper methods for XML parsing
    @staticmethod
    def _get_text(parent: ET.Element, tag: str, default: str = "") -> str:
        """Get text content of a child element."""
        elem = parent.find(tag)
        return elem.text if elem is not None and elem.text else default

    @staticmethod
    def _parse_bool(parent: ET.Element, tag: str, default: bool = False) -> bool:
        """Parse a boolean value from child element."""
        elem = parent.find(tag)
        if elem is not None and elem.text:
            return elem.text.lower() == "true"
        return default

    @staticmethod
    def _parse_path(parent: ET.Element, tag: str) -> Optional[Path]:
        """Parse a path value from child element."""
        elem = parent.find(tag)
        if elem is not None and elem.text and elem.text.strip():
            return AppPaths.expand_path(elem.text.strip())
        return None
