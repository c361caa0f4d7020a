"""Compute file and line changes between two directory snapshots.

The differ walks the *new* snapshot (usually a mod) against the *old*
one (usually the installation). Files that only exist in the new tree
become whole-file additions, files in both trees are compared by hash
and then by a token diff, and files only present in the old tree are
reported as whole-file removals unless removals are ignored.

Line numbering of the diff walk is per chunk: the counter moves by one
for every unchanged or removed chunk containing a newline, no matter
how many lines that chunk spans. Inserted chunks never move it. In line
mode unchanged and removed lines are one chunk each, so the counter
always names the original line a group belongs to.
"""

import difflib
import hashlib
import re
from typing import Optional

from ..logging_config import get_logger
from .changes import ChangeType, FileChange, LineChangeGroup
from .directory_reader import DirectorySnapshot, is_snapshot
from .errors import InstallValidationError

logger = get_logger("directory_differ")

# Files with these extensions are replaced whole, never diffed by line
BINARY_FILE_EXTENSIONS = (
    ".tga",
    ".til",
    ".pdf",
    ".spr",
    ".zfs",
    ".tif",
    ".db",
    ".ico",
    ".c2g",
    ".scc",
    ".htm",
    ".html",
    ".rtf",
    ".jpg",
    ".gif",
    ".dll",
    ".ogg",
    ".exe",
)

DIFF_DELETE = -1
DIFF_EQUAL = 0
DIFF_INSERT = 1

_WORD_TOKENS = re.compile(r"\n|\w+|[^\w\n]")
# A line keeps its trailing newline; the last line may have none
_LINE_TOKENS = re.compile(r"[^\n]*\n|[^\n]+")


def is_binary_file(file_path: str) -> bool:
    """Check if a file is treated as binary, by extension only.

    Args:
        file_path: Name or path of the file

    Returns:
        True if the extension is in BINARY_FILE_EXTENSIONS (case-insensitive)
    """
    return file_path.lower().endswith(BINARY_FILE_EXTENSIONS)


def count_lines(text: str) -> int:
    """Count lines the way the patcher splits them.

    A trailing newline does not start another line, and the empty
    string counts as one line.
    """
    total = text.count("\n") + 1
    if text.endswith("\n"):
        total -= 1
    return total


def hash_file_contents(contents: str) -> str:
    return hashlib.sha256(contents.encode("utf-8")).hexdigest()


def diff_texts(old_text: str, new_text: str, line_mode: bool = False) -> list[tuple[int, str]]:
    """Diff two strings into a list of (operation, text) chunks.

    Operations are DIFF_DELETE, DIFF_EQUAL and DIFF_INSERT. By default
    text is tokenized into words and punctuation and a changed region
    lists its deletion before its insertion.

    In line mode the tokens are whole lines. Every unchanged or removed
    line is a chunk of its own, and the inserted lines of a changed
    region form one chunk placed before that region's removed lines, so
    an insertion always lands in front of the first line it displaces.

    Args:
        old_text: Original text
        new_text: Changed text
        line_mode: Tokenize by lines instead of words

    Returns:
        Ordered list of (operation, text) tuples
    """
    pattern = _LINE_TOKENS if line_mode else _WORD_TOKENS
    old_tokens = pattern.findall(old_text)
    new_tokens = pattern.findall(new_text)

    matcher = difflib.SequenceMatcher(None, old_tokens, new_tokens, autojunk=False)
    diffs: list[tuple[int, str]] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if not line_mode:
            if tag == "equal":
                diffs.append((DIFF_EQUAL, "".join(old_tokens[i1:i2])))
                continue
            if i2 > i1:
                diffs.append((DIFF_DELETE, "".join(old_tokens[i1:i2])))
            if j2 > j1:
                diffs.append((DIFF_INSERT, "".join(new_tokens[j1:j2])))
            continue

        if tag == "equal":
            diffs.extend((DIFF_EQUAL, line) for line in old_tokens[i1:i2])
            continue
        if j2 > j1:
            diffs.append((DIFF_INSERT, "".join(new_tokens[j1:j2])))
        diffs.extend((DIFF_DELETE, line) for line in old_tokens[i1:i2])
    return diffs


def _join_path(parent_path: Optional[str], name: str) -> str:
    return f"{parent_path}/{name}" if parent_path else name


def _strip_newline(value: str) -> str:
    return value[:-1] if value.endswith("\n") else value


def _diff_text_file(full_path: str, old_contents: str, new_contents: str) -> Optional[FileChange]:
    """Turn a line diff into line change groups.

    An insertion becomes an ADD at the original line it goes in front
    of, each removed line a REMOVE at its own number.
    """
    groups: list[LineChangeGroup] = []
    line_number = 1

    for operation, value in diff_texts(old_contents, new_contents, line_mode=True):
        if operation == DIFF_INSERT:
            logger.debug(f"Lines added before line {line_number} in {full_path}")
            groups.append(LineChangeGroup.add(line_number, line_number, _strip_newline(value)))
            continue
        if operation == DIFF_DELETE:
            logger.debug(f"Line {line_number} removed in {full_path}")
            groups.append(LineChangeGroup.remove(line_number, line_number, _strip_newline(value)))
        if "\n" in value:
            line_number += 1

    if not groups:
        return None
    return FileChange(file_name=full_path, is_binary=False, line_change_groups=groups)


def _diff_entry(
    name: str,
    old_value,
    new_value,
    full_path: str,
    changes: list[FileChange],
    ignore_removed_files: bool,
) -> None:
    old_is_dir = old_value is not None and is_snapshot(old_value)
    new_is_dir = is_snapshot(new_value)

    if new_is_dir and (old_value is None or old_is_dir):
        logger.debug(f"Directory detected: {full_path}")
        changes.extend(diff_directories(
            old_value or {},
            new_value,
            ignore_removed_files=ignore_removed_files,
            parent_path=full_path,
        ))
        return

    if old_value is not None and old_is_dir != new_is_dir:
        raise InstallValidationError(
            f'Cannot compare "{full_path}": it is a file on one side and a directory on the other'
        )

    if old_value is None:
        logger.debug(f"File added: {full_path}")
        if is_binary_file(name):
            changes.append(FileChange.binary(full_path))
        else:
            changes.append(FileChange(
                file_name=full_path,
                line_change_groups=[LineChangeGroup.add(1, count_lines(new_value), new_value)],
            ))
        return

    if hash_file_contents(old_value) == hash_file_contents(new_value):
        logger.debug(f"Files are identical, skipping: {full_path}")
        return

    if is_binary_file(name):
        logger.debug(f"Binary file changed: {full_path}")
        changes.append(FileChange.binary(full_path))
        return

    logger.debug(f"Text file changed: {full_path}")
    change = _diff_text_file(full_path, old_value, new_value)
    if change is not None:
        changes.append(change)


def _removed_file_changes(
    old_dir: DirectorySnapshot,
    removed_names: list[str],
    parent_path: Optional[str],
) -> list[FileChange]:
    changes = []
    for name in removed_names:
        old_value = old_dir[name]
        if is_snapshot(old_value):
            continue
        full_path = _join_path(parent_path, name)
        logger.debug(f"File removed: {full_path}")
        changes.append(FileChange(
            file_name=full_path,
            line_change_groups=[LineChangeGroup.remove(1, count_lines(old_value), old_value)],
        ))
    return changes


def diff_directories(
    old_dir: Optional[DirectorySnapshot],
    new_dir: Optional[DirectorySnapshot],
    ignore_removed_files: bool = False,
    parent_path: Optional[str] = None,
) -> list[FileChange]:
    """Compute the ordered file changes that turn old_dir into new_dir.

    Args:
        old_dir: Snapshot of the base tree (e.g. the installation)
        new_dir: Snapshot of the overlay tree (e.g. a mod)
        ignore_removed_files: If True, files missing from new_dir are not
            reported; a mod is a sparse overlay, not a deletion list
        parent_path: '/'-joined prefix for file names in nested calls

    Returns:
        FileChange list in new_dir enumeration order, then removals

    Raises:
        InstallValidationError: If a name is a file on one side and a
            directory on the other
    """
    old_dir = old_dir or {}
    new_dir = new_dir or {}
    changes: list[FileChange] = []

    for name, new_value in new_dir.items():
        _diff_entry(
            name,
            old_dir.get(name),
            new_value,
            _join_path(parent_path, name),
            changes,
            ignore_removed_files,
        )

    if not ignore_removed_files:
        removed = [name for name in old_dir if name not in new_dir]
        changes.extend(_removed_file_changes(old_dir, removed, parent_path))

    return changes


def consolidate_line_change_groups(groups: list[LineChangeGroup]) -> list[LineChangeGroup]:
    """Merge remove/add pairs on the same single line into replace groups.

    Each group is paired at most once; unpaired groups keep their order.

    Example::

        [remove(1, 1, "foo"), add(1, 1, "bar")] -> [replace(1, 1, "bar", "foo")]
    """
    result: list[LineChangeGroup] = []
    used: set[int] = set()

    for i, current in enumerate(groups):
        if i in used:
            continue

        if current.change_type not in (ChangeType.ADD, ChangeType.REMOVE) or current.start != current.end:
            result.append(current)
            continue

        for j in range(i + 1, len(groups)):
            if j in used:
                continue
            candidate = groups[j]
            if (
                candidate.change_type in (ChangeType.ADD, ChangeType.REMOVE)
                and candidate.change_type != current.change_type
                and candidate.start == current.start
                and candidate.end == current.end
            ):
                removed, added = (current, candidate) if current.change_type == ChangeType.REMOVE else (candidate, current)
                result.append(LineChangeGroup.replace(
                    current.start,
                    current.end,
                    new_content=added.new_content,
                    old_content=removed.old_content,
                ))
                used.update((i, j))
                break

        if i not in used:
            result.append(current)

    return result
