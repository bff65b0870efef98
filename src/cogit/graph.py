"""Commit graph: commit creation, the single ref, and history walks.

History is a singly linked, append-only chain of commits rooted at the
commit whose parent is None. The only mutable state is the ref file
``refs/heads/main``, which holds the head commit hash as trimmed text.

Ref Update Protocol:
--------------------
Reading the head, building the snapshot, storing the commit and moving the
ref all happen while an exclusive lock on ``refs/heads/main.lock`` is held.
The ref itself is replaced with an atomic rename. Two concurrent committers
therefore serialize, and the second one always parents on the first.
"""

from typing import Callable, ContextManager, Dict, List, Optional
import logging

from .codec import decode_commit, decode_tree, encode_commit
from .constants import LOCK_TIMEOUT_SECONDS
from .context import RepositoryContext
from .core import Commit, Tree
from .errors import (
    InvalidHashError,
    IoFailure,
    ObjectNotFoundError,
    RepositoryCorruptError,
    SerializationError,
)
from .hashing import short_hash, validate_hash
from .objects import ObjectStore
from .snapshot import build_tree
from .utils import atomic_write_text, exclusive_lock, utc_now

logger = logging.getLogger(__name__)


class CommitGraph:
    """Builds commits, advances the ref, and walks parent links."""

    def __init__(self, ctx: RepositoryContext, store: ObjectStore, lock_timeout: float = LOCK_TIMEOUT_SECONDS):
        self.ctx = ctx
        self.store = store
        self.lock_timeout = lock_timeout

    # ============= Ref =============

    def head(self) -> Optional[str]:
        """Current head commit hash, or None for an empty repository.

        Raises:
            RepositoryCorruptError: If the ref holds something other than a hash
        """
        path = self.ctx.head_ref_path
        try:
            text = path.read_text(encoding="ascii").strip()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise RepositoryCorruptError(f"Ref {self.ctx.head_ref_name} is not ASCII") from exc
        except OSError as exc:
            raise IoFailure("Failed to read ref", path) from exc

        if not text:
            return None
        try:
            return validate_hash(text)
        except InvalidHashError as exc:
            raise RepositoryCorruptError(
                f"Ref {self.ctx.head_ref_name} holds an invalid hash: {text!r}"
            ) from exc

    def _write_ref(self, hash_value: str) -> None:
        try:
            atomic_write_text(self.ctx.head_ref_path, hash_value)
        except OSError as exc:
            raise IoFailure("Failed to update ref", self.ctx.head_ref_path) from exc
        logger.debug("Moved %s to %s", self.ctx.head_ref_name, short_hash(hash_value))

    def ref_lock(self) -> ContextManager[None]:
        """Exclusive lock on refs/heads/main.lock (not reentrant)."""
        return exclusive_lock(self.ctx.ref_lock_path, self.lock_timeout)

    # ============= Commit =============

    def commit(self, message: str, on_committed: Optional[Callable[[str], None]] = None) -> str:
        """Snapshot the working tree and append a commit to the chain.

        Args:
            message: Commit message
            on_committed: Called with the new hash after the ref is written,
                while the ref lock is still held

        Returns:
            Hash of the new commit (also the new head)

        Raises:
            IoFailure: On filesystem failure while snapshotting or writing
            LockTimeoutError: If another process holds the ref lock too long
        """
        with self.ref_lock():
            parent = self.head()
            tree_hash = build_tree(self.ctx.root, self.store)
            commit = Commit(
                message=message,
                timestamp=utc_now(),
                parent=parent,
                tree_hash=tree_hash,
            )
            commit_hash = self.store.store(encode_commit(commit))
            self._write_ref(commit_hash)
            if on_committed is not None:
                on_committed(commit_hash)

        logger.info(
            "Committed %s (parent %s, tree %s)",
            short_hash(commit_hash),
            short_hash(parent) if parent else "none",
            short_hash(tree_hash),
        )
        return commit_hash

    # ============= Reads =============

    def read_commit(self, hash_value: str) -> Commit:
        """Load and decode a commit object.

        Raises:
            InvalidHashError, ObjectNotFoundError, SerializationError
        """
        return decode_commit(self.store.load(hash_value), hash_value)

    def read_tree(self, hash_value: str) -> Tree:
        """Load and decode a tree object."""
        return decode_tree(self.store.load(hash_value))

    def log(self) -> List[Commit]:
        """Commits from head to root (most recent first).

        Raises:
            RepositoryCorruptError: If a referenced commit cannot be loaded or
                decoded, or the chain loops back on itself
        """
        commits = []
        seen = set()
        current = self.head()

        while current is not None:
            if current in seen:
                raise RepositoryCorruptError(f"History cycle detected at commit {current}")
            seen.add(current)
            try:
                commit = self.read_commit(current)
            except (InvalidHashError, ObjectNotFoundError, SerializationError) as exc:
                raise RepositoryCorruptError(f"Cannot load commit {current}: {exc}") from exc
            commits.append(commit)
            current = commit.parent

        return commits

    def head_commit(self) -> Optional[Commit]:
        head = self.head()
        if head is None:
            return None
        try:
            return self.read_commit(head)
        except (InvalidHashError, ObjectNotFoundError, SerializationError) as exc:
            raise RepositoryCorruptError(f"Cannot load head commit {head}: {exc}") from exc

    def head_files(self) -> Dict[str, str]:
        """File name -> blob hash in the head commit's tree ({} if no commits)."""
        commit = self.head_commit()
        if commit is None:
            return {}
        try:
            tree = self.read_tree(commit.tree_hash)
        except (InvalidHashError, ObjectNotFoundError, SerializationError) as exc:
            raise RepositoryCorruptError(
                f"Cannot load tree {commit.tree_hash} of commit {commit.hash}: {exc}"
            ) from exc
        return tree.files()
