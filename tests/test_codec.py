"""Tests for versioned encode/decode of persisted types."""

from datetime import datetime, timedelta, timezone
import json
import pytest

from cogit.codec import (
    decode_commit,
    decode_staging,
    decode_tree,
    encode_commit,
    encode_staging,
    encode_tree,
)
from cogit.core import Commit, StagingArea, StagingEntry, Tree, TreeEntry
from cogit.errors import SerializationError
from cogit.hashing import compute_hash

H1 = compute_hash(b"one")
H2 = compute_hash(b"two")
TS = datetime(2025, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)


class TestTreeCodec:
    """Test tree documents."""

    def test_roundtrip_preserves_order(self):
        tree = Tree(entries=[TreeEntry(name="b.txt", hash=H1), TreeEntry(name="a.txt", hash=H2)])
        decoded = decode_tree(encode_tree(tree))
        assert [e.name for e in decoded.entries] == ["b.txt", "a.txt"]
        assert decoded.files() == {"b.txt": H1, "a.txt": H2}

    def test_document_is_versioned_and_canonical(self):
        data = encode_tree(Tree(entries=[TreeEntry(name="x", hash=H1)]))
        doc = json.loads(data)
        assert doc["schema"] == 1
        assert doc["type"] == "tree"
        assert b" " not in data
        assert encode_tree(Tree(entries=[TreeEntry(name="x", hash=H1)])) == data

    def test_duplicate_names_rejected(self):
        data = json.dumps({
            "schema": 1,
            "type": "tree",
            "entries": [
                {"name": "x", "hash": H1, "is_file": True},
                {"name": "x", "hash": H2, "is_file": True},
            ],
        }).encode()
        with pytest.raises(SerializationError, match="duplicate"):
            decode_tree(data)

    def test_wrong_type_rejected(self):
        data = encode_commit(Commit(message="m", timestamp=TS, tree_hash=H1))
        with pytest.raises(SerializationError):
            decode_tree(data)


class TestCommitCodec:
    """Test commit documents."""

    def test_roundtrip(self):
        commit = Commit(message="first", timestamp=TS, parent=H2, tree_hash=H1)
        digest = compute_hash(encode_commit(commit))
        decoded = decode_commit(encode_commit(commit), digest)

        assert decoded.hash == digest
        assert decoded.message == "first"
        assert decoded.timestamp == TS
        assert decoded.parent == H2
        assert decoded.tree_hash == H1

    def test_root_commit_parent_none(self):
        commit = Commit(message="root", timestamp=TS, tree_hash=H1)
        decoded = decode_commit(encode_commit(commit))
        assert decoded.parent is None
        assert decoded.is_root

    def test_hash_field_not_in_payload(self):
        """The stored hash does not feed back into the payload."""
        a = Commit(hash="", message="m", timestamp=TS, tree_hash=H1)
        b = Commit(hash=H2, message="m", timestamp=TS, tree_hash=H1)
        assert encode_commit(a) == encode_commit(b)
        assert "hash" not in json.loads(encode_commit(a))

    def test_timestamps_normalized_to_utc(self):
        local = TS.astimezone(timezone(timedelta(hours=5)))
        doc = json.loads(encode_commit(Commit(message="m", timestamp=local, tree_hash=H1)))
        assert doc["timestamp"].endswith("+00:00")

    @pytest.mark.parametrize("data", [
        b"not json",
        b"[]",
        b'{"schema": 2, "type": "commit"}',
        b'{"schema": 1, "type": "commit", "message": "m"}',
        b'{"schema": 1, "type": "commit", "message": 5, "timestamp": "2025-01-01T00:00:00+00:00",'
        b' "parent": null, "tree_hash": "x"}',
        b'{"schema": 1, "type": "commit", "message": "m", "timestamp": "yesterday",'
        b' "parent": null, "tree_hash": "x"}',
    ])
    def test_malformed_commit(self, data):
        with pytest.raises(SerializationError) as exc_info:
            decode_commit(data)
        assert exc_info.value.kind == "commit"


class TestStagingCodec:
    """Test staging documents."""

    def test_roundtrip(self):
        area = StagingArea()
        area.put(StagingEntry(path="b.txt", content_hash=H1, size=3, staged_at=TS))
        area.put(StagingEntry(path="a.txt", content_hash=H2, size=0, staged_at=TS))

        decoded = decode_staging(encode_staging(area))
        assert decoded.hashes() == {"a.txt": H2, "b.txt": H1}
        assert decoded.entries["b.txt"].size == 3
        assert decoded.entries["a.txt"].staged_at == TS

    def test_pretty_and_sorted(self):
        area = StagingArea()
        area.put(StagingEntry(path="z", content_hash=H1, size=1, staged_at=TS))
        area.put(StagingEntry(path="a", content_hash=H2, size=1, staged_at=TS))
        text = encode_staging(area).decode()

        assert text.endswith("\n")
        assert text.index('"a"') < text.index('"z"')

    def test_key_must_match_path(self):
        data = json.dumps({
            "schema": 1,
            "type": "staging",
            "last_updated": TS.isoformat(),
            "entries": {"a": {"path": "b", "content_hash": H1, "size": 1, "staged_at": TS.isoformat()}},
        }).encode()
        with pytest.raises(SerializationError, match="does not match"):
            decode_staging(data)

    @pytest.mark.parametrize("size", [-1, True, "3"])
    def test_bad_size_rejected(self, size):
        data = json.dumps({
            "schema": 1,
            "type": "staging",
            "last_updated": TS.isoformat(),
            "entries": {"a": {"path": "a", "content_hash": H1, "size": size, "staged_at": TS.isoformat()}},
        }).encode()
        with pytest.raises(SerializationError):
            decode_staging(data)
