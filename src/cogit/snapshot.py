"""Flat working-tree snapshots.

Only direct children of the repository root are considered. Names starting
with the hidden marker (which includes the .cogit metadata directory) are
skipped, and so is anything that is not a regular file.
"""

from pathlib import Path
from typing import Dict, Iterator, Union
import logging
import os

from pydantic import BaseModel, Field

from .codec import encode_tree
from .constants import HIDDEN_PREFIX
from .core import Tree, TreeEntry
from .errors import IoFailure
from .hashing import compute_file_hash, short_hash
from .objects import ObjectStore

logger = logging.getLogger(__name__)


def iter_snapshot_files(root: Union[str, Path]) -> Iterator[os.DirEntry]:
    """Yield snapshot-eligible files of root in directory-iteration order."""
    try:
        with os.scandir(root) as it:
            for entry in it:
                if entry.name.startswith(HIDDEN_PREFIX):
                    continue
                if entry.is_file():
                    yield entry
    except OSError as exc:
        raise IoFailure("Failed to list directory", root) from exc


class WorkingFile(BaseModel):
    """Current state of one working-tree file."""

    path: str
    hash: str
    size: int


class WorkingTreeSnapshot(BaseModel):
    """Hashes of every snapshot-eligible file, without writing objects.

    Used by status resolution and handed to the embedding collaborator as
    the working-tree path set.
    """

    files: Dict[str, WorkingFile] = Field(default_factory=dict)

    @classmethod
    def scan(cls, root: Union[str, Path]) -> "WorkingTreeSnapshot":
        """Scan root and return its current state."""
        files = {}
        for entry in iter_snapshot_files(root):
            try:
                files[entry.name] = WorkingFile(
                    path=entry.name,
                    hash=compute_file_hash(Path(entry.path)),
                    size=entry.stat().st_size,
                )
            except OSError as exc:
                raise IoFailure("Failed to read file", entry.path) from exc
        return cls(files=files)

    def hashes(self) -> Dict[str, str]:
        return {path: f.hash for path, f in self.files.items()}

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files.values())


def build_tree(root: Union[str, Path], store: ObjectStore) -> str:
    """Store every eligible file of root and then the tree listing them.

    Args:
        root: Repository root
        store: Object store receiving blobs and the tree

    Returns:
        Hash of the stored tree object

    Raises:
        IoFailure: If a file cannot be read or an object cannot be written
    """
    entries = []
    for entry in iter_snapshot_files(root):
        try:
            content = Path(entry.path).read_bytes()
        except OSError as exc:
            raise IoFailure("Failed to read file", entry.path) from exc
        entries.append(TreeEntry(name=entry.name, hash=store.store(content), is_file=True))

    tree_hash = store.store(encode_tree(Tree(entries=entries)))
    logger.debug("Built tree %s with %d entries", short_hash(tree_hash), len(entries))
    return tree_hash


def scan_working_tree(root: Union[str, Path]) -> Dict[str, WorkingFile]:
    """Name -> WorkingFile for every eligible file of root."""
    return WorkingTreeSnapshot.scan(root).files
