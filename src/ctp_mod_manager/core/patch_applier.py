"""Apply line change groups to live files.

Groups are addressed in original-file coordinates. Each file being
patched gets a PatchSession holding its live line list and a line offset
map (original 0-based line -> current 0-based position). Every applied
group updates the map, so later groups computed against the original
file still land on the right lines. The file is rewritten after every
operation.
"""

import shutil
from pathlib import Path
from typing import Optional

from ..logging_config import get_logger
from .changes import ChangeType, FileChange, LineChangeGroup, ModFileChanges
from .directory_reader import read_text
from .errors import PatchError

logger = get_logger("patch_applier")

# Original 0-based line index -> current 0-based index in the live lines
LineOffsetMap = dict[int, int]


def new_line_map(lines: list[str]) -> LineOffsetMap:
    return {index: index for index in range(len(lines))}


def _insertion_point(start: int, lines: list[str], line_map: LineOffsetMap) -> int:
    """Resolve a 1-based original start line to a live insertion index.

    Uses the live position of the original line when it still exists,
    otherwise the slot after the nearest surviving line above it. The
    result is clamped to the live line count, so starts past the end
    append.
    """
    key = start - 1
    if key in line_map:
        position = line_map[key]
    else:
        below = [k for k in line_map if k < key]
        position = line_map[max(below)] + 1 if below else 0
    return max(0, min(position, len(lines)))


def _insert_at(position: int, content: str, lines: list[str], line_map: LineOffsetMap) -> int:
    inserted = content.split("\n")
    lines[position:position] = inserted
    for key, value in line_map.items():
        if value >= position:
            line_map[key] = value + len(inserted)
    return len(inserted)


def add_lines(group: LineChangeGroup, lines: list[str], line_map: LineOffsetMap) -> int:
    """Insert a group's new content before its start line.

    Args:
        group: ADD (or REPLACE) group carrying new_content
        lines: Live lines of the file, modified in place
        line_map: Offset map of the file, modified in place

    Returns:
        Number of lines inserted
    """
    position = _insertion_point(group.start, lines, line_map)
    return _insert_at(position, group.new_content or "", lines, line_map)


def remove_lines(group: LineChangeGroup, lines: list[str], line_map: LineOffsetMap) -> tuple[int, int]:
    """Remove the live lines covering a group's original range.

    Both endpoints must still be mapped. Everything between their live
    positions is removed, including lines inserted there earlier, and
    every map entry pointing into that span is dropped.

    Args:
        group: REMOVE (or REPLACE) group
        lines: Live lines of the file, modified in place
        line_map: Offset map of the file, modified in place

    Returns:
        Tuple of (live index where the removal happened, lines removed)

    Raises:
        PatchError: If the start or end line is not in the offset map
    """
    start_key = group.start - 1
    end_key = group.end - 1

    if start_key not in line_map:
        raise PatchError(f"startLineNumber ({group.start}) does not exist in the line map")
    if end_key not in line_map:
        raise PatchError(f"endLineNumber ({group.end}) does not exist in the line map")

    low = line_map[start_key]
    high = line_map[end_key]
    count = high - low + 1
    del lines[low:high + 1]

    for key in [k for k, v in line_map.items() if low <= v <= high]:
        del line_map[key]
    for key, value in line_map.items():
        if value > high:
            line_map[key] = value - count

    return low, count


def replace_lines(group: LineChangeGroup, lines: list[str], line_map: LineOffsetMap) -> None:
    """Remove a group's range, then insert its new content in the same place."""
    position, _ = remove_lines(group, lines, line_map)
    _insert_at(position, group.new_content or "", lines, line_map)


class PatchSession:
    """Live lines and offset map for one file being patched."""

    def __init__(self, file_path: Path, lines: list[str]):
        self.file_path = file_path
        self.lines = lines
        self.line_map = new_line_map(lines)

    @classmethod
    def open(cls, file_path: Path) -> "PatchSession":
        """Start a session from the file on disk, or empty if it is missing."""
        if file_path.exists():
            return cls(file_path, read_text(file_path).split("\n"))
        return cls(file_path, [])

    def apply(self, group: LineChangeGroup) -> None:
        """Apply one group and write the file."""
        if group.change_type == ChangeType.ADD:
            add_lines(group, self.lines, self.line_map)
        elif group.change_type == ChangeType.REMOVE:
            remove_lines(group, self.lines, self.line_map)
        else:
            replace_lines(group, self.lines, self.line_map)

        logger.debug(f"({group.change_type.value}) Writing {len(self.lines)} lines to {self.file_path}")
        self.write()

    def write(self) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        self.file_path.write_bytes("\n".join(self.lines).encode("utf-8"))


class PatchApplier:
    """Apply mod file changes to one target directory.

    Sessions are kept per file for the applier's lifetime, so several
    mods applied one after another all address the files as they were
    when the applier was created.
    """

    def __init__(self, target_dir: Path):
        self.target_dir = Path(target_dir)
        self._sessions: dict[str, PatchSession] = {}

    def _target_path(self, file_name: str) -> Path:
        return self.target_dir.joinpath(*file_name.split("/"))

    def session_for(self, file_name: str) -> PatchSession:
        session = self._sessions.get(file_name)
        if session is None:
            session = PatchSession.open(self._target_path(file_name))
            self._sessions[file_name] = session
        return session

    def apply_file_change(self, file_change: FileChange, source_dir: Optional[Path] = None) -> None:
        """Apply one file change.

        Binary changes copy the file from source_dir. Text changes apply
        their groups in order through the file's session.

        Raises:
            PatchError: If a group cannot be addressed, or a missing file
                gets anything other than a single ADD
            OSError: On filesystem failures
        """
        target = self._target_path(file_change.file_name)

        if file_change.is_binary:
            if source_dir is None:
                raise PatchError(f"No source to copy binary file {file_change.file_name} from")
            source = Path(source_dir).joinpath(*file_change.file_name.split("/"))
            logger.debug(f"Copying binary file {source} to {target}")
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            self._sessions.pop(file_change.file_name, None)
            return

        groups = file_change.line_change_groups
        if file_change.file_name not in self._sessions and not target.exists():
            if len(groups) != 1 or groups[0].change_type != ChangeType.ADD:
                raise PatchError(
                    f"File {file_change.file_name} does not exist and the change is not a single 'add' operation."
                )

        session = self.session_for(file_change.file_name)
        for group in groups:
            try:
                session.apply(group)
            except PatchError as e:
                raise PatchError(f"Failed to {group.change_type.value} lines in file {file_change.file_name}: {e}") from e

    def apply_mod_file_changes(self, mod_changes: ModFileChanges, source_dir: Optional[Path] = None) -> None:
        """Apply every file change of one mod."""
        for file_change in mod_changes.file_changes:
            logger.debug(f"Processing file change for: {file_change.file_name}")
            self.apply_file_change(file_change, source_dir)
        logger.info(f"Finished file changes for mod: {mod_changes.mod}")

    def close(self) -> None:
        """Drop all sessions once the run is done with these files."""
        self._sessions.clear()
