"""Recognise Call to Power installations and their game version"""

import os
from pathlib import Path

from ..config.schema import CtpVersion, Installation
from ..logging_config import get_logger

logger = get_logger("install_detector")

GAME_DATA_DIRS = ("ctp2_data", "ctp_data")
GAME_PROGRAM_DIRS = ("ctp2_program", "ctp_program")


def _top_level_names(install_dir: Path) -> list[str]:
    return [name.lower() for name in os.listdir(install_dir)]


def is_valid_install(install_dir: Path) -> bool:
    """Check for a game data directory at the top of an installation.

    Returns:
        True if a ctp2_data or ctp_data entry exists (case-insensitive)
    """
    try:
        names = _top_level_names(Path(install_dir))
    except OSError as e:
        logger.warning(f"Could not list installation directory {install_dir}: {e}")
        return False

    if any(name in GAME_DATA_DIRS for name in names):
        return True
    if any(name in GAME_PROGRAM_DIRS for name in names):
        logger.warning(f"{install_dir} has a program directory but no game data directory")
    return False


def detect_ctp_version(install_dir: Path) -> CtpVersion:
    """Detect whether a directory holds CTP1 or CTP2.

    CTP2 wins when both data directories are present. Filesystem errors
    give CtpVersion.UNKNOWN.
    """
    try:
        names = _top_level_names(Path(install_dir))
    except OSError as e:
        logger.debug(f"Could not detect version of {install_dir}: {e}")
        return CtpVersion.UNKNOWN

    if "ctp2_data" in names:
        return CtpVersion.CTP2
    if "ctp_data" in names:
        return CtpVersion.CTP1
    return CtpVersion.UNKNOWN


def describe_installation(install_dir: Path) -> Installation:
    """Build an Installation record for a user-registered directory."""
    path = Path(install_dir)
    version = detect_ctp_version(path)
    return Installation(
        path=path,
        version=version,
        display_name=f"{path.name} ({version.value})",
    )
