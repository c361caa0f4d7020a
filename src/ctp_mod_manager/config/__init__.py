"""Configuration management module.

This module provides configuration storage, loading, and data models for the application.

Submodules:
    manager: ConfigurationManager for loading/saving XML configuration
    schema: Data classes defining configuration structure (EngineConfig, Installation, Settings, etc.)
    paths: AppPaths with default locations for mods, backups and config files
    path_validator: Protected-directory detection and backup path validation

The configuration is stored as XML in <app data>/CTPModManager/configuration.xml.
"""

from .manager import ConfigurationManager
from .schema import (
    AppConfiguration,
    BackupRecord,
    CtpVersion,
    EngineConfig,
    Installation,
    Settings,
)
from .paths import AppPaths

__all__ = [
    "ConfigurationManager",
    "AppConfiguration",
    "BackupRecord",
    "CtpVersion",
    "EngineConfig",
    "Installation",
    "Settings",
    "AppPaths",
]
