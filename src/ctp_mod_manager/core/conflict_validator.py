"""Detect overlapping line edits within and across mods.

Two groups conflict when their inclusive ranges share a line in the same
file. Checks are pairwise, which is fine for the tens to low hundreds of
groups a run produces.
"""

from collections import defaultdict
from typing import Iterable

from ..logging_config import get_logger
from .changes import FileChange, LineChangeGroup, ModFileChanges
from .errors import ModConflictError

logger = get_logger("conflict_validator")


def groups_conflict(first: LineChangeGroup, second: LineChangeGroup) -> bool:
    """Check if two line change groups overlap.

    Touching ranges (first.end + 1 == second.start) do not conflict.
    """
    return first.overlaps(second)


def get_all_conflicting_line_changes(
    line_change_groups: list[LineChangeGroup],
) -> list[tuple[LineChangeGroup, LineChangeGroup]]:
    """List every overlapping pair among a flat list of groups."""
    conflicts = []
    for i, first in enumerate(line_change_groups):
        for second in line_change_groups[i + 1:]:
            if groups_conflict(first, second):
                conflicts.append((first, second))
    return conflicts


def _groups_by_file(file_changes: Iterable[FileChange]) -> dict[str, list[LineChangeGroup]]:
    by_file: dict[str, list[LineChangeGroup]] = defaultdict(list)
    for file_change in file_changes:
        if file_change.is_binary:
            continue
        by_file[file_change.file_name].extend(file_change.line_change_groups)
    return by_file


def find_conflicts(
    file_changes: Iterable[FileChange],
) -> dict[str, list[tuple[LineChangeGroup, LineChangeGroup]]]:
    """Find overlapping groups, compared only within the same file.

    Returns:
        Mapping of file name to its conflicting pairs; files without
        conflicts are left out
    """
    conflicts = {}
    for file_name, groups in _groups_by_file(file_changes).items():
        pairs = get_all_conflicting_line_changes(groups)
        if pairs:
            conflicts[file_name] = pairs
    return conflicts


def text_file_changes_are_conflicting(file_changes: Iterable[FileChange]) -> bool:
    """Check if any two groups touching the same file overlap."""
    conflicts = find_conflicts(file_changes)
    for file_name, pairs in conflicts.items():
        logger.debug(f"{len(pairs)} conflicting line change pairs in {file_name}")
    return bool(conflicts)


def are_file_changes_valid(mod_file_changes: list[ModFileChanges]) -> bool:
    """Validate that a set of mods can be applied without overlapping edits.

    With a single mod, its own groups are checked against each other and
    a conflict raises, since such a mod can never apply cleanly. With
    several mods, all groups are pooled per file and a conflict returns
    False so the caller decides how to report it.

    Args:
        mod_file_changes: Changes for one or more mods

    Returns:
        True if no groups overlap

    Raises:
        ModConflictError: If a single mod conflicts with itself
    """
    all_file_changes = [fc for mod_changes in mod_file_changes for fc in mod_changes.file_changes]
    unique_mods = {mod_changes.mod for mod_changes in mod_file_changes}

    if len(unique_mods) == 1:
        if text_file_changes_are_conflicting(all_file_changes):
            mod = next(iter(unique_mods))
            logger.error(f"Conflicts detected within mod {mod}")
            raise ModConflictError("Conflicts detected within a single mod")
        return True

    return not text_file_changes_are_conflicting(all_file_changes)
