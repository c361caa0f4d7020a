"""Change data models produced by the differ and consumed by the patcher.

All line numbers are 1-based and expressed against the original
(pre-edit) file. A synthetic start of 0 is never produced; whole-file
groups span 1..line count.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ChangeType(Enum):
    """Kinds of line change group"""
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


@dataclass
class LineChangeGroup:
    """An atomic edit over an inclusive range of original lines.

    ``new_content`` is set for ADD and REPLACE, ``old_content`` for
    REMOVE and REPLACE.
    """
    change_type: ChangeType
    start: int
    end: int
    new_content: Optional[str] = None
    old_content: Optional[str] = None

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(
                f"Line change group start ({self.start}) is after its end ({self.end})"
            )

    @classmethod
    def add(cls, start: int, end: int, new_content: str) -> "LineChangeGroup":
        return cls(ChangeType.ADD, start, end, new_content=new_content)

    @classmethod
    def remove(cls, start: int, end: int, old_content: str) -> "LineChangeGroup":
        return cls(ChangeType.REMOVE, start, end, old_content=old_content)

    @classmethod
    def replace(cls, start: int, end: int, new_content: str, old_content: str) -> "LineChangeGroup":
        return cls(ChangeType.REPLACE, start, end, new_content=new_content, old_content=old_content)

    def overlaps(self, other: "LineChangeGroup") -> bool:
        """Check if two inclusive ranges share at least one line."""
        return self.start <= other.end and other.start <= self.end


@dataclass
class FileChange:
    """Changes to one file, addressed by its '/'-joined relative path.

    Binary changes carry no line groups; the whole file is replaced.
    """
    file_name: str
    is_binary: bool = False
    line_change_groups: list[LineChangeGroup] = field(default_factory=list)

    @classmethod
    def binary(cls, file_name: str) -> "FileChange":
        return cls(file_name=file_name, is_binary=True)


@dataclass
class ModFileChanges:
    """All file changes one mod makes to an installation"""
    mod: str
    file_changes: list[FileChange] = field(default_factory=list)
