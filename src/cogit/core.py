"""Core data models for cogit.

The models here are in-memory types only. Their persisted form is produced
and parsed exclusively by ``cogit.codec``, which writes explicit, versioned
documents rather than dumping model internals.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .utils import utc_now


# ============= Configuration =============

class RepositoryConfig(BaseModel):
    """Repository configuration (stored in .cogit/config.yaml)."""

    version: str
    created: datetime = Field(default_factory=utc_now)
    description: str = "cogit repository"


# ============= Objects =============

class TreeEntry(BaseModel):
    """A single named entry in a flat tree."""

    name: str
    hash: str
    is_file: bool = True


class Tree(BaseModel):
    """Flat, ordered list of entries snapshotted at commit time."""

    entries: List[TreeEntry] = Field(default_factory=list)

    def files(self) -> Dict[str, str]:
        """Map of file name -> blob hash."""
        return {e.name: e.hash for e in self.entries if e.is_file}

    def get(self, name: str) -> Optional[TreeEntry]:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None


class Commit(BaseModel):
    """Immutable record linking a tree snapshot to an optional parent.

    ``hash`` is the address the commit was stored under. It is not part of
    the hashed payload.
    """

    hash: str = ""
    message: str
    timestamp: datetime
    parent: Optional[str] = None
    tree_hash: str

    @property
    def is_root(self) -> bool:
        return self.parent is None


# ============= Staging =============

class StagingEntry(BaseModel):
    """Last-staged content hash for one path."""

    path: str  # root-relative POSIX
    content_hash: str
    size: int
    staged_at: datetime = Field(default_factory=utc_now)


class StagingArea(BaseModel):
    """Pending path -> hash mapping slated for the next commit."""

    entries: Dict[str, StagingEntry] = Field(default_factory=dict)
    last_updated: datetime = Field(default_factory=utc_now)

    def put(self, entry: StagingEntry) -> None:
        """Insert or overwrite the entry for entry.path."""
        self.entries[entry.path] = entry
        self.last_updated = utc_now()

    def hashes(self) -> Dict[str, str]:
        return {path: e.content_hash for path, e in self.entries.items()}

    def __len__(self) -> int:
        return len(self.entries)


# ============= Status =============

class WorkingTreeStatus(str, Enum):
    """Classification of a path against staging and head."""

    UNTRACKED = "untracked"
    MODIFIED = "modified"
    STAGED = "staged"
    DELETED = "deleted"  # reserved: no classification rule produces it
    UNCHANGED = "unchanged"


class FileStatus(BaseModel):
    """Derived status of one path (never persisted)."""

    path: str
    working_hash: Optional[str] = None
    staged_hash: Optional[str] = None
    head_hash: Optional[str] = None
    status: WorkingTreeStatus


# ============= Diffs =============

class LineChangeType(str, Enum):
    """Role of a line inside a hunk."""

    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"


class DiffLine(BaseModel):
    """One line of a hunk.

    ``line_number`` is 1-based: the old-side number for context and removed
    lines, the new-side number for added lines.
    """

    line_number: int
    content: str
    change_type: LineChangeType


class DiffHunk(BaseModel):
    """Contiguous block of added/removed/context lines."""

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: List[DiffLine] = Field(default_factory=list)

    @property
    def added(self) -> int:
        return sum(1 for l in self.lines if l.change_type == LineChangeType.ADDED)

    @property
    def removed(self) -> int:
        return sum(1 for l in self.lines if l.change_type == LineChangeType.REMOVED)


class FileChangeType(str, Enum):
    """Kind of change a file diff represents."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"  # reserved: renames are not detected


class FileDiff(BaseModel):
    """Complete diff of a single file."""

    path: str
    old_hash: Optional[str] = None  # None if the file is new
    new_hash: str
    change_type: FileChangeType
    hunks: List[DiffHunk] = Field(default_factory=list)
    patch_content: str
    created_at: datetime = Field(default_factory=utc_now)
