"""cogit Repository facade.

Wires the object store, commit graph, staging area, status resolver and
diff engine to one explicit repository root. This is the entry point the
CLI and library callers use.
"""

from pathlib import Path
from typing import List, Optional, Union
import logging

from .config import default_config, load_config, save_config
from .context import RepositoryContext
from .core import Commit, FileDiff, RepositoryConfig, StagingEntry, Tree, WorkingTreeStatus
from .diffing import DiffEngine
from .embeddings import CommitPayload, PostCommitDispatcher
from .errors import CogitError, IoFailure, NoChangesToCommitError
from .graph import CommitGraph
from .hashing import compute_hash, short_hash
from .objects import ObjectStore
from .staging import StagingIndex
from .status import StatusReport, resolve_status
from .utils import atomic_write_text

logger = logging.getLogger(__name__)


def _decode(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


class Repository:
    """A cogit repository rooted at an explicit directory.

    Use ``Repository.init`` to create one, ``Repository.open`` to bind to an
    existing root, and ``Repository.discover`` to search upward from a
    directory (the CLI does this).
    """

    def __init__(self, ctx: RepositoryContext):
        self.ctx = ctx
        self.store = ObjectStore(ctx.objects_dir)
        self.graph = CommitGraph(ctx, self.store)
        self.staging = StagingIndex(ctx)
        self.engine = DiffEngine()

    # ============= Construction =============

    @classmethod
    def init(cls, root: Union[str, Path], description: Optional[str] = None) -> "Repository":
        """Create the metadata directory under root.

        Safe to call on an existing repository: missing pieces are created,
        existing HEAD and config are left untouched.

        Raises:
            IoFailure: If the metadata layout cannot be created
        """
        root = Path(root)
        ctx = RepositoryContext(root, must_exist=False)
        existed = ctx.cogit_dir.is_dir()

        try:
            ctx.root.mkdir(parents=True, exist_ok=True)
            ctx.objects_dir.mkdir(parents=True, exist_ok=True)
            ctx.heads_dir.mkdir(parents=True, exist_ok=True)
            if not ctx.head_file.exists():
                atomic_write_text(ctx.head_file, f"ref: {ctx.head_ref_name}\n")
        except OSError as exc:
            raise IoFailure("Failed to initialize repository", ctx.cogit_dir) from exc

        if not ctx.config_path.exists():
            save_config(default_config(description), ctx)

        if existed:
            logger.info("Reinitialized existing repository in %s", ctx.cogit_dir)
        else:
            logger.info("Initialized empty repository in %s", ctx.cogit_dir)
        return cls(ctx)

    @classmethod
    def open(cls, root: Union[str, Path]) -> "Repository":
        """Bind to an existing repository.

        Raises:
            NotARepositoryError: If root has no .cogit directory
        """
        return cls(RepositoryContext(root))

    @classmethod
    def discover(cls, start: Union[str, Path]) -> "Repository":
        """Open the nearest repository at or above start."""
        return cls(RepositoryContext.discover(start))

    @property
    def root(self) -> Path:
        return self.ctx.root

    @property
    def config(self) -> RepositoryConfig:
        return load_config(self.ctx)

    # ============= Write path =============

    def add(self, path: Union[str, Path]) -> StagingEntry:
        """Stage a file by its current content hash."""
        return self.staging.add(path)

    def commit(self, message: str, dispatcher: Optional[PostCommitDispatcher] = None) -> str:
        """Snapshot the working tree, advance the head and clear staging.

        Staging is cleared while the ref lock is still held, so a concurrent
        ``add`` lands either before the commit or in the fresh staging area.

        If a dispatcher is given, the commit is handed to it only after the
        ref is written. Nothing the dispatcher does changes the result.

        Returns:
            Hash of the new commit
        """
        commit_hash = self.graph.commit(message, on_committed=lambda _hash: self.staging.clear())

        if dispatcher is not None:
            try:
                dispatcher.submit(self.commit_payload(commit_hash))
            except (CogitError, RuntimeError) as exc:
                logger.warning(
                    "Commit %s succeeded, embeddings skipped: %s", short_hash(commit_hash), exc
                )
        return commit_hash

    def commit_payload(self, commit_hash: str) -> CommitPayload:
        """Describe a stored commit for post-commit collaborators."""
        commit = self.graph.read_commit(commit_hash)
        parent_files = {}
        if commit.parent is not None:
            parent_files = self.read_tree(self.graph.read_commit(commit.parent).tree_hash).files()
        return CommitPayload(
            commit_hash=commit_hash,
            files=self.read_tree(commit.tree_hash).files(),
            load_blob=self.load_blob,
            parent_files=parent_files,
        )

    # ============= Read path =============

    def head(self) -> Optional[str]:
        return self.graph.head()

    def log(self) -> List[Commit]:
        """Commits from head to root."""
        return self.graph.log()

    def status(self) -> StatusReport:
        return resolve_status(self.staging, self.graph)

    def load_blob(self, hash_value: str) -> bytes:
        return self.store.load(hash_value)

    def read_tree(self, hash_value: str) -> Tree:
        return self.graph.read_tree(hash_value)

    def diff(self, path: Union[str, Path]) -> FileDiff:
        """Diff a working file against its version in the head commit.

        Raises:
            IoFailure: If the file does not exist or cannot be read
            NoChangesToCommitError: If the file matches the head version
        """
        key = self.ctx.relative(path)
        file_path = self.ctx.absolute(key)
        if not file_path.is_file():
            raise IoFailure("No such file", key)
        try:
            new_bytes = file_path.read_bytes()
        except OSError as exc:
            raise IoFailure("Failed to read file", key) from exc

        head_hash = self.graph.head_files().get(key)
        old = _decode(self.store.load(head_hash)) if head_hash is not None else None

        return self.engine.file_diff(
            key,
            old,
            _decode(new_bytes),
            old_hash=head_hash,
            new_hash=compute_hash(new_bytes),
        )

    def diff_all(self) -> List[FileDiff]:
        """Diffs for every modified or untracked file, sorted by path."""
        diffs = []
        for f in self.status().files:
            if f.status not in (WorkingTreeStatus.MODIFIED, WorkingTreeStatus.UNTRACKED):
                continue
            try:
                diffs.append(self.diff(f.path))
            except NoChangesToCommitError:
                continue
        return diffs

    def __repr__(self) -> str:
        return f"Repository(root={str(self.root)!r})"
