"""Tests for the post-commit embedding boundary."""

import logging
import pytest

from cogit.core import FileChangeType
from cogit.embeddings import (
    CommitPayload,
    EmbeddingIndex,
    EmbeddingIndexStore,
    FileEmbedding,
    PostCommitDispatcher,
    build_embedding_index,
)
from cogit.errors import ObjectNotFoundError, SerializationError
from cogit.hashing import compute_hash


class FakeEmbedder:
    """Deterministic embedder: vector is [len(content), len(path)]."""

    model = "fake-embedder"

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = []

    def embed(self, path, content):
        self.calls.append(path)
        if path in self.fail_on:
            raise ConnectionError(f"embedding service unreachable for {path}")
        return [float(len(content)), float(len(path))]


class BrokenEmbedder:
    model = "broken"

    def embed(self, path, content):
        raise ConnectionError("service down")


@pytest.fixture
def index_store(ctx):
    return EmbeddingIndexStore(ctx.embeddings_dir)


def _payload(blobs, parent_files=None):
    files = {path: compute_hash(data) for path, data in blobs.items()}
    by_hash = {compute_hash(data): data for data in blobs.values()}
    return CommitPayload(
        commit_hash=compute_hash(b"commit"),
        files=files,
        load_blob=by_hash.__getitem__,
        parent_files=parent_files or {},
    )


class TestBuildEmbeddingIndex:
    """Test index construction."""

    def test_embeds_every_file(self, index_store):
        payload = _payload({"a.py": b"print(1)", "b.md": b"# doc"})
        index = build_embedding_index(payload, FakeEmbedder(), index_store)

        assert [f.path for f in index.files] == ["a.py", "b.md"]
        assert index.files[0].embedding == [8.0, 4.0]
        assert index.files[0].content_hash == compute_hash(b"print(1)")
        assert index.model == "fake-embedder"
        assert index.processing_time_ms >= 0
        assert index_store.load(payload.commit_hash).files == index.files

    def test_change_types_against_parent(self, index_store):
        parent = {"same.txt": compute_hash(b"s"), "edit.txt": compute_hash(b"old")}
        payload = _payload({"same.txt": b"s", "edit.txt": b"new", "add.txt": b"+"}, parent)

        index = build_embedding_index(payload, FakeEmbedder(), index_store)
        change = {f.path: f.change_type for f in index.files}
        assert change == {
            "add.txt": FileChangeType.ADDED,
            "edit.txt": FileChangeType.MODIFIED,
            "same.txt": None,
        }

    def test_single_file_failure_skipped(self, index_store, caplog):
        payload = _payload({"ok.txt": b"fine", "bad.txt": b"boom"})

        with caplog.at_level(logging.WARNING, logger="cogit.embeddings"):
            index = build_embedding_index(payload, FakeEmbedder(fail_on={"bad.txt"}), index_store)

        assert [f.path for f in index.files] == ["ok.txt"]
        assert index.skipped == ["bad.txt"]
        assert "bad.txt" in caplog.text


class TestEmbeddingIndexStore:
    """Test per-commit index persistence."""

    def test_missing_index(self, index_store):
        with pytest.raises(ObjectNotFoundError):
            index_store.load(compute_hash(b"no index"))

    def test_list_sorted(self, index_store):
        hashes = [compute_hash(bytes([i])) for i in range(3)]
        for h in hashes:
            index_store.save(EmbeddingIndex(commit_hash=h))
        assert index_store.list_embedded_commits() == sorted(hashes)

    def test_list_without_directory(self, tmp_path):
        assert EmbeddingIndexStore(tmp_path / "nope").list_embedded_commits() == []

    def test_malformed_index(self, index_store):
        digest = compute_hash(b"x")
        index_store.directory.mkdir(parents=True, exist_ok=True)
        index_store.path_for(digest).write_text("{not json")
        with pytest.raises(SerializationError):
            index_store.load(digest)

    def test_saved_index_loads_back(self, index_store):
        digest = compute_hash(b"commit")
        index = EmbeddingIndex(
            commit_hash=digest,
            model="fake",
            files=[FileEmbedding(path="a.txt", content_hash=compute_hash(b"a"), embedding=[0.5], size=1)],
        )
        index_store.save(index)

        loaded = index_store.load(digest)
        assert loaded == index
        assert loaded.created_at.tzinfo is not None

    def test_wrong_shape_index(self, index_store):
        digest = compute_hash(b"x")
        index_store.directory.mkdir(parents=True, exist_ok=True)
        index_store.path_for(digest).write_text("[1, 2]")
        with pytest.raises(SerializationError):
            index_store.load(digest)


class TestPostCommitDispatcher:
    """Test background dispatch around a real commit."""

    def test_commit_then_index(self, repo, write_file, index_store):
        write_file("x.txt", "hello")

        with PostCommitDispatcher.for_embeddings(FakeEmbedder(), index_store) as dispatcher:
            digest = repo.commit("first", dispatcher=dispatcher)

        assert index_store.list_embedded_commits() == [digest]
        index = index_store.load(digest)
        assert [f.path for f in index.files] == ["x.txt"]

    def test_failing_embedder_never_changes_commit(self, repo, write_file, index_store):
        write_file("x.txt", "hello")

        with PostCommitDispatcher.for_embeddings(BrokenEmbedder(), index_store) as dispatcher:
            digest = repo.commit("first", dispatcher=dispatcher)

        assert repo.head() == digest
        assert len(repo.log()) == 1
        assert index_store.load(digest).skipped == ["x.txt"]

    def test_handler_exception_logged(self, repo, write_file, caplog):
        write_file("x.txt", "hello")

        def explode(payload):
            raise RuntimeError("index store unavailable")

        dispatcher = PostCommitDispatcher(explode)
        with caplog.at_level(logging.WARNING, logger="cogit.embeddings"):
            digest = repo.commit("first", dispatcher=dispatcher)
            future = dispatcher.submit(repo.commit_payload(digest))
            assert future.result(timeout=10) is None
            dispatcher.shutdown()

        assert repo.head() == digest
        assert "embeddings skipped" in caplog.text

    def test_submit_after_shutdown_still_commits(self, repo, write_file):
        write_file("x.txt", "hello")
        dispatcher = PostCommitDispatcher(lambda payload: None)
        dispatcher.shutdown()

        digest = repo.commit("first", dispatcher=dispatcher)
        assert repo.head() == digest
