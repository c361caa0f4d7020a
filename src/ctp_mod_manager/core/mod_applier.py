"""Apply queued mods to an installation and record them in its ledger.

Mods are applied strictly one after another. All of them are diffed
against the installation as it was when the run started, every mod's
changes are checked against its own groups and against the mods
accepted earlier in the run, and the files are patched through
PatchAppliers that live for the whole run. Concurrent runs against the
same installation are not guarded against; callers must serialize them.
"""

import os
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..config.schema import EngineConfig
from ..logging_config import get_logger
from .backup_service import BackupService
from .changes import FileChange, ModFileChanges
from .conflict_validator import are_file_changes_valid
from .directory_differ import consolidate_line_change_groups, diff_directories
from .directory_reader import DirectorySnapshot, is_snapshot, read_directory
from .errors import (
    AggregateModError,
    BackupError,
    InstallValidationError,
    ModApplicationError,
    ModConflictError,
    ModManagerError,
    ModPermissionError,
    classify_os_error,
)
from .install_detector import is_valid_install
from .ledger import update_ledger
from .mod_library import has_scenario_structure
from .patch_applier import PatchApplier

logger = get_logger("mod_applier")

SCENARIOS_DIR = "Scenarios"


@dataclass
class ModResult:
    """Outcome of applying one mod"""
    mod: str
    error: Optional[ModManagerError] = None
    change_count: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ApplyReport:
    """Outcome of a whole run against one installation"""
    install_dir: Path
    results: list[ModResult] = field(default_factory=list)
    ledger_error: Optional[ModManagerError] = None

    @property
    def succeeded(self) -> list[str]:
        return [result.mod for result in self.results if result.ok]

    @property
    def failed(self) -> list[ModResult]:
        return [result for result in self.results if not result.ok]

    def raise_for_failures(self) -> None:
        """Raise according to how many things went wrong.

        One failed mod raises its own error (permission errors as they
        are, anything else as ModApplicationError). Two or more failures
        raise one AggregateModError. A ledger write failure raises on
        its own, or joins the aggregate when mods failed too.
        """
        errors: list[ModManagerError] = [
            ModApplicationError(result.mod, result.error) for result in self.failed
        ]

        if self.ledger_error is not None:
            if not errors:
                raise self.ledger_error
            errors.append(self.ledger_error)

        if not errors:
            return

        if len(errors) == 1:
            cause = self.failed[0].error
            if isinstance(cause, ModPermissionError):
                raise cause
            raise errors[0]

        raise AggregateModError(errors)


def merge_file_changes(mod_changes: ModFileChanges) -> ModFileChanges:
    """Merge file changes that target the same file and pair up groups.

    Groups of the same file are concatenated in order and then
    consolidated into replace groups where a remove and an add hit the
    same line.
    """
    merged: dict[str, FileChange] = {}
    for file_change in mod_changes.file_changes:
        existing = merged.get(file_change.file_name)
        if existing is None:
            merged[file_change.file_name] = FileChange(
                file_name=file_change.file_name,
                is_binary=file_change.is_binary,
                line_change_groups=list(file_change.line_change_groups),
            )
        elif not existing.is_binary and not file_change.is_binary:
            existing.line_change_groups.extend(file_change.line_change_groups)

    for file_change in merged.values():
        if not file_change.is_binary:
            file_change.line_change_groups = consolidate_line_change_groups(file_change.line_change_groups)

    return ModFileChanges(mod=mod_changes.mod, file_changes=list(merged.values()))


def _sub_snapshot(snapshot: DirectorySnapshot, relative: Path) -> DirectorySnapshot:
    current = snapshot
    for part in relative.parts:
        value = current.get(part)
        if value is None or not is_snapshot(value):
            return {}
        current = value
    return current


class ModApplicationOrchestrator:
    """Sequence mod application over one installation at a time."""

    def __init__(
        self,
        engine_config: EngineConfig,
        backup_service: Optional[BackupService] = None,
        backup_before_apply: bool = False,
    ):
        self.engine_config = engine_config
        self.backup_service = backup_service
        self.backup_before_apply = backup_before_apply

    def check_mod_directory(self, mod: str) -> Path:
        """Resolve a mod's stored directory and make sure it can be read.

        Raises:
            InstallValidationError: If it is missing, not a directory, or unreadable
        """
        mod_path = self.engine_config.mod_path(mod)
        if not mod_path.exists():
            raise InstallValidationError(f"Mod directory not found: {mod_path}")
        if not mod_path.is_dir():
            raise InstallValidationError(f"{mod_path} is not a directory.")
        if not os.access(mod_path, os.R_OK | os.X_OK):
            raise InstallValidationError(f"Mod directory is not readable: {mod_path}")
        return mod_path

    def target_directory(self, install_dir: Path, mod: str, mod_path: Path) -> Path:
        """Where a mod lands: the installation, or Scenarios/<mod> for scenario mods."""
        if has_scenario_structure(mod_path):
            return Path(install_dir) / SCENARIOS_DIR / mod
        return Path(install_dir)

    def get_file_changes_to_apply_mod(
        self,
        mod: str,
        mod_path: Path,
        base_snapshot: DirectorySnapshot,
    ) -> ModFileChanges:
        """Diff a mod against the tree it will be applied to.

        Files the mod does not mention are left alone.
        """
        mod_snapshot = read_directory(mod_path)
        file_changes = diff_directories(base_snapshot, mod_snapshot, ignore_removed_files=True)
        logger.info(f"{len(file_changes)} changes found for the mod {mod}.")
        return merge_file_changes(ModFileChanges(mod=mod, file_changes=file_changes))

    def validate(self, mod_changes: ModFileChanges, accepted: list[ModFileChanges]) -> None:
        """Check a mod against itself and against mods accepted earlier.

        Raises:
            ModConflictError: On any overlapping edit
        """
        are_file_changes_valid([mod_changes])
        if accepted and not are_file_changes_valid([*accepted, mod_changes]):
            raise ModConflictError("The mods are incompatible with each other.")

    def run(self, install_dir: Path, queued_mods: list[str]) -> ApplyReport:
        """Apply mods in queue order and update the ledger.

        Per-mod failures are collected, not raised; see
        ApplyReport.raise_for_failures.

        Raises:
            InstallValidationError: If install_dir is not a game installation
        """
        install_dir = Path(install_dir)
        if not is_valid_install(install_dir):
            logger.error(f"Invalid install passed to apply: {install_dir}")
            raise InstallValidationError.invalid_install(install_dir)

        queue = list(dict.fromkeys(queued_mods))
        if len(queue) != len(queued_mods):
            logger.warning("Duplicate mods in the queue were dropped")

        self._backup_if_requested(install_dir)

        report = ApplyReport(install_dir=install_dir)
        accepted: dict[Path, list[ModFileChanges]] = defaultdict(list)
        appliers: dict[Path, PatchApplier] = {}
        install_snapshot: Optional[DirectorySnapshot] = None

        try:
            for mod in queue:
                logger.info(f"Applying mod {mod} to {install_dir}")
                try:
                    mod_path = self.check_mod_directory(mod)
                    target_dir = self.target_directory(install_dir, mod, mod_path)
                    if install_snapshot is None:
                        install_snapshot = read_directory(install_dir)
                    base = _sub_snapshot(install_snapshot, target_dir.relative_to(install_dir))

                    mod_changes = self.get_file_changes_to_apply_mod(mod, mod_path, base)
                    self.validate(mod_changes, accepted[target_dir])
                    accepted[target_dir].append(mod_changes)

                    applier = appliers.setdefault(target_dir, PatchApplier(target_dir))
                    try:
                        applier.apply_mod_file_changes(mod_changes, source_dir=mod_path)
                    except OSError as e:
                        raise classify_os_error(e, install_dir, "Error copying mod files") from e

                    report.results.append(ModResult(mod, change_count=len(mod_changes.file_changes)))
                except ModManagerError as e:
                    logger.error(f'Failed to apply mod "{mod}": {e}')
                    report.results.append(ModResult(mod, error=e))
                except OSError as e:
                    error = classify_os_error(e, install_dir)
                    logger.error(f'Failed to apply mod "{mod}": {error}')
                    report.results.append(ModResult(mod, error=error))
        finally:
            for applier in appliers.values():
                applier.close()

        try:
            update_ledger(self.engine_config.ledger_path(install_dir), report.succeeded)
        except ModManagerError as e:
            report.ledger_error = e

        logger.info(
            f"Finished applying mods to {install_dir}: "
            f"{len(report.succeeded)} succeeded, {len(report.failed)} failed"
        )
        return report

    def apply(self, install_dir: Path, queued_mods: list[str]) -> ApplyReport:
        """Apply mods and raise per the result policy if anything failed."""
        report = self.run(install_dir, queued_mods)
        report.raise_for_failures()
        return report

    def _backup_if_requested(self, install_dir: Path) -> None:
        if not (self.backup_before_apply and self.backup_service):
            return
        try:
            self.backup_service.create_backup(install_dir)
        except BackupError as e:
            logger.warning(f"Could not back up {install_dir} before applying mods: {e}")


def apply_mods_to_install(
    install_dir: Path,
    queued_mods: list[str],
    engine_config: Optional[EngineConfig] = None,
) -> ApplyReport:
    """Apply queued mods with a default-configured orchestrator."""
    orchestrator = ModApplicationOrchestrator(engine_config or EngineConfig())
    return orchestrator.apply(install_dir, queued_mods)
