"""Staging area (index) persistence and updates.

The staging area records hashes only. Blob bytes are written exclusively by
the snapshot builder at commit time, so a file edited after ``add`` is
committed with its current content unless it is added again.

``add`` holds the ref lock while it rewrites the index, so it cannot
interleave with a commit clearing it. Paths in subdirectories or with a
hidden name are accepted but never reach a commit, because snapshots are
flat and skip hidden names; ``add`` logs a warning for them.
"""

from pathlib import Path
from typing import Dict, Optional, Union
import logging

from .codec import decode_staging, encode_staging
from .constants import HIDDEN_PREFIX, LOCK_TIMEOUT_SECONDS
from .context import RepositoryContext
from .core import StagingArea, StagingEntry
from .errors import IoFailure
from .hashing import compute_file_hash, short_hash
from .utils import atomic_write_bytes, exclusive_lock, utc_now

logger = logging.getLogger(__name__)


class StagingIndex:
    """Owner of .cogit/index.json."""

    def __init__(self, ctx: RepositoryContext, lock_timeout: float = LOCK_TIMEOUT_SECONDS):
        self.ctx = ctx
        self.lock_timeout = lock_timeout

    @property
    def path(self) -> Path:
        return self.ctx.staging_path

    def load(self) -> StagingArea:
        """Load the staging area; a missing file is an empty area.

        Raises:
            SerializationError: If the file is malformed
            IoFailure: If the file exists but cannot be read
        """
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            return StagingArea()
        except OSError as exc:
            raise IoFailure("Failed to read staging area", self.path) from exc
        return decode_staging(data)

    def save(self, area: StagingArea) -> None:
        """Persist the staging area atomically."""
        try:
            atomic_write_bytes(self.path, encode_staging(area))
        except OSError as exc:
            raise IoFailure("Failed to write staging area", self.path) from exc

    def add(self, path: Union[str, Path]) -> StagingEntry:
        """Stage the current content hash of a file.

        Args:
            path: Absolute path, or path relative to the repository root

        Returns:
            The inserted (or overwritten) entry

        Raises:
            ValueError: If the path is outside the repository
            IoFailure: If the path does not exist or is not a regular file
            LockTimeoutError: If a commit holds the ref lock too long
        """
        key = self.ctx.relative(path)
        file_path = self.ctx.absolute(key)

        if not file_path.exists():
            raise IoFailure("No such file", key)
        if not file_path.is_file():
            raise IoFailure("Not a regular file", key)

        try:
            content_hash = compute_file_hash(file_path)
            size = file_path.stat().st_size
        except OSError as exc:
            raise IoFailure("Failed to read file", key) from exc

        if "/" in key or key.startswith(HIDDEN_PREFIX):
            logger.warning("%s is outside the flat snapshot and will not be committed", key)

        entry = StagingEntry(path=key, content_hash=content_hash, size=size, staged_at=utc_now())
        with exclusive_lock(self.ctx.ref_lock_path, self.lock_timeout):
            area = self.load()
            area.put(entry)
            self.save(area)

        logger.debug("Staged %s at %s", key, short_hash(content_hash))
        return entry

    def get(self, path: Union[str, Path]) -> Optional[StagingEntry]:
        return self.load().entries.get(self.ctx.relative(path))

    def staged_hashes(self) -> Dict[str, str]:
        """Map of staged path -> content hash."""
        return self.load().hashes()

    def clear(self) -> None:
        """Reset to empty after a commit consumes the staged paths.

        Takes no lock: the commit calls this while it holds the ref lock.
        """
        self.save(StagingArea())
        logger.debug("Cleared staging area")
