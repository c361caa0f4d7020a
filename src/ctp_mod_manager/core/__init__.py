"""Core mod engine.

Submodules:
    directory_reader: Load a directory tree into a nested snapshot
    directory_differ: Turn two snapshots into per-file line change groups
    conflict_validator: Reject overlapping line edits within and across mods
    patch_applier: Apply line change groups through a line offset map
    mod_applier: ModApplicationOrchestrator, sequencing a whole run
    ledger: The per-installation mods.json record
    backup_service, mod_library, install_detector: Supporting operations
"""

from .errors import (
    AggregateModError,
    InstallValidationError,
    ModApplicationError,
    ModConflictError,
    ModManagerError,
    ModPermissionError,
)
from .ledger import get_applied_mods
from .mod_applier import ApplyReport, ModApplicationOrchestrator, ModResult, apply_mods_to_install

__all__ = [
    "AggregateModError",
    "ApplyReport",
    "InstallValidationError",
    "ModApplicationError",
    "ModApplicationOrchestrator",
    "ModConflictError",
    "ModManagerError",
    "ModPermissionError",
    "ModResult",
    "apply_mods_to_install",
    "get_applied_mods",
]
