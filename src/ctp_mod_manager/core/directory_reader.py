"""Snapshot a directory tree into nested dictionaries."""

import os
from pathlib import Path
from typing import Union

from ..logging_config import get_logger

logger = get_logger("directory_reader")

# Entry name -> file text or nested snapshot
DirectorySnapshot = dict[str, Union[str, "DirectorySnapshot"]]


def read_text(path: Path) -> str:
    """Read a file as UTF-8 text without newline translation.

    Undecodable bytes become U+FFFD so binary files still produce a
    comparable string.
    """
    return Path(path).read_bytes().decode("utf-8", errors="replace")


def read_directory(dir_path: Path) -> DirectorySnapshot:
    """Read every file under a directory into a nested mapping.

    Directories become nested mappings, files become their text content.
    Uses an explicit work stack so deep trees cannot exhaust the call
    stack. Symlinked directories are followed and cycles are not
    detected. Any stat or read failure propagates.

    Args:
        dir_path: Root directory to snapshot

    Returns:
        DirectorySnapshot keyed by entry name in enumeration order
    """
    root: DirectorySnapshot = {}
    stack: list[tuple[Path, DirectorySnapshot]] = [(Path(dir_path), root)]
    file_count = 0

    while stack:
        current_dir, contents = stack.pop()
        with os.scandir(current_dir) as entries:
            for entry in entries:
                entry_path = Path(entry.path)
                if entry.is_dir():
                    child: DirectorySnapshot = {}
                    contents[entry.name] = child
                    stack.append((entry_path, child))
                elif entry.is_file():
                    contents[entry.name] = read_text(entry_path)
                    file_count += 1
                else:
                    logger.debug(f"Skipping non-regular entry {entry_path}")

    logger.debug(f"Read {file_count} files from {dir_path}")
    return root


def is_snapshot(value) -> bool:
    """Check if a snapshot value is a nested directory."""
    return isinstance(value, dict)
