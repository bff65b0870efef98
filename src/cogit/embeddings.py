"""Boundary to the embedding collaborator.

The core never talks to a network service. After a commit is durably
written, the repository hands a ``CommitPayload`` to a
``PostCommitDispatcher``, which runs the handler on a single background
worker. Whatever the handler does (typically computing embeddings through
an ``Embedder`` and saving an ``EmbeddingIndex``), its failure is logged and
swallowed: the commit has already succeeded and is never rolled back.

What the core supplies:
    - the finalized commit hash
    - blob retrieval by hash
    - the committed working-tree path set (path -> blob hash)

What the collaborator owns:
    - API keys and request construction (inside its Embedder)
    - its per-commit index under .cogit/embeddings/<commit_hash>.json
"""

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol
import logging
import time

from pydantic import BaseModel, Field, ValidationError

from .core import FileChangeType
from .errors import IoFailure, ObjectNotFoundError, SerializationError
from .hashing import short_hash, validate_hash
from .utils import atomic_write_text, utc_now

logger = logging.getLogger(__name__)


# ============= Contract =============

@dataclass(frozen=True)
class CommitPayload:
    """Everything the collaborator may read about a finished commit."""

    commit_hash: str
    files: Dict[str, str]  # path -> blob hash, as committed
    load_blob: Callable[[str], bytes] = field(repr=False, compare=False)
    parent_files: Dict[str, str] = field(default_factory=dict)


class Embedder(Protocol):
    """Turns file content into a vector. Implementations may call remote APIs."""

    model: str

    def embed(self, path: str, content: bytes) -> List[float]:
        ...


# ============= Index =============

class FileEmbedding(BaseModel):
    """Embedding of one committed file."""

    path: str
    content_hash: str
    embedding: List[float]
    change_type: Optional[FileChangeType] = None  # None if unchanged since parent
    size: int
    created_at: datetime = Field(default_factory=utc_now)


class EmbeddingIndex(BaseModel):
    """All embeddings computed for one commit."""

    commit_hash: str
    model: str = ""
    files: List[FileEmbedding] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    processing_time_ms: int = 0
    created_at: datetime = Field(default_factory=utc_now)


class EmbeddingIndexStore:
    """Persists one JSON index per commit hash."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, commit_hash: str) -> Path:
        validate_hash(commit_hash)
        return self.directory / f"{commit_hash}.json"

    def save(self, index: EmbeddingIndex) -> Path:
        path = self.path_for(index.commit_hash)
        try:
            atomic_write_text(path, index.model_dump_json(indent=2))
        except OSError as exc:
            raise IoFailure("Failed to write embedding index", path) from exc
        return path

    def load(self, commit_hash: str) -> EmbeddingIndex:
        """Load the index for a commit.

        Raises:
            ObjectNotFoundError: If the commit has no index
            SerializationError: If the index file is malformed
        """
        path = self.path_for(commit_hash)
        if not path.exists():
            raise ObjectNotFoundError(commit_hash, what="Embedding index")
        try:
            return EmbeddingIndex.model_validate_json(path.read_text())
        except ValidationError as exc:
            raise SerializationError("embedding index", str(exc)) from exc

    def list_embedded_commits(self) -> List[str]:
        """Hashes of all commits with a saved index, sorted."""
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json") if p.is_file())


# ============= Work =============

def _change_type(path: str, blob_hash: str, parent_files: Dict[str, str]) -> Optional[FileChangeType]:
    previous = parent_files.get(path)
    if previous is None:
        return FileChangeType.ADDED
    if previous != blob_hash:
        return FileChangeType.MODIFIED
    return None


def build_embedding_index(
    payload: CommitPayload,
    embedder: Embedder,
    store: EmbeddingIndexStore,
) -> EmbeddingIndex:
    """Embed every committed file and persist the index.

    A file that fails to load or embed is recorded in ``skipped`` and the
    rest of the commit is still indexed.
    """
    started = time.monotonic()
    files = []
    skipped = []

    for path, blob_hash in sorted(payload.files.items()):
        try:
            content = payload.load_blob(blob_hash)
            vector = embedder.embed(path, content)
        except Exception as exc:
            logger.warning("Skipping embedding for %s: %s", path, exc)
            skipped.append(path)
            continue
        files.append(FileEmbedding(
            path=path,
            content_hash=blob_hash,
            embedding=list(vector),
            change_type=_change_type(path, blob_hash, payload.parent_files),
            size=len(content),
        ))

    index = EmbeddingIndex(
        commit_hash=payload.commit_hash,
        model=getattr(embedder, "model", ""),
        files=files,
        skipped=skipped,
        processing_time_ms=int((time.monotonic() - started) * 1000),
    )
    store.save(index)
    logger.info(
        "Indexed %d files for commit %s (%d skipped)",
        len(files), short_hash(payload.commit_hash), len(skipped),
    )
    return index


class PostCommitDispatcher:
    """Single-worker task queue for work that must follow a commit.

    Handlers run strictly after the commit is durable. Their exceptions are
    logged and converted to a ``None`` result; nothing propagates back into
    the commit path.
    """

    def __init__(self, handler: Callable[[CommitPayload], Any]):
        self.handler = handler
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cogit-post-commit")

    @classmethod
    def for_embeddings(cls, embedder: Embedder, store: EmbeddingIndexStore) -> "PostCommitDispatcher":
        return cls(lambda payload: build_embedding_index(payload, embedder, store))

    def submit(self, payload: CommitPayload) -> "Future[Any]":
        return self._executor.submit(self._run, payload)

    def _run(self, payload: CommitPayload) -> Any:
        try:
            return self.handler(payload)
        except Exception as exc:
            logger.warning(
                "Commit %s succeeded, embeddings skipped: %s",
                short_hash(payload.commit_hash), exc,
            )
            return None

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "PostCommitDispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)
