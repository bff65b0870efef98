"""Tests for flat working-tree snapshots."""

from cogit.codec import decode_tree
from cogit.hashing import compute_hash
from cogit.snapshot import WorkingTreeSnapshot, build_tree, scan_working_tree


class TestScan:
    """Test snapshot enumeration rules."""

    def test_direct_files_only(self, tmp_path):
        (tmp_path / "a.txt").write_text("a")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "deep.txt").write_text("deep")

        files = scan_working_tree(tmp_path)
        assert set(files) == {"a.txt"}
        assert files["a.txt"].hash == compute_hash(b"a")
        assert files["a.txt"].size == 1

    def test_hidden_names_skipped(self, tmp_path):
        """Names starting with '.' (including .cogit) are not part of a snapshot."""
        (tmp_path / ".hidden").write_text("secret")
        (tmp_path / ".cogit").mkdir()
        (tmp_path / ".cogit" / "x").write_text("meta")
        (tmp_path / "visible.txt").write_text("v")

        assert set(scan_working_tree(tmp_path)) == {"visible.txt"}

    def test_snapshot_totals(self, tmp_path):
        (tmp_path / "a").write_bytes(b"12")
        (tmp_path / "b").write_bytes(b"345")

        snapshot = WorkingTreeSnapshot.scan(tmp_path)
        assert snapshot.total_size == 5
        assert snapshot.hashes() == {"a": compute_hash(b"12"), "b": compute_hash(b"345")}

    def test_empty_directory(self, tmp_path):
        assert scan_working_tree(tmp_path) == {}


class TestBuildTree:
    """Test tree construction."""

    def test_stores_blobs_and_tree(self, tmp_path, store):
        (tmp_path / "x.txt").write_text("hello")
        (tmp_path / "y.txt").write_text("world")

        tree_hash = build_tree(tmp_path, store)
        tree = decode_tree(store.load(tree_hash))

        assert tree.files() == {"x.txt": compute_hash(b"hello"), "y.txt": compute_hash(b"world")}
        assert store.load(compute_hash(b"hello")) == b"hello"
        assert all(e.is_file for e in tree.entries)
        assert tree.get("x.txt").hash == compute_hash(b"hello")
        assert tree.get("missing") is None

    def test_objects_dir_not_snapshotted(self, tmp_path, store):
        """The store lives under a hidden name in real repositories."""
        (tmp_path / "f").write_text("f")
        hidden_store = type(store)(tmp_path / ".cogit" / "objects")

        tree = decode_tree(hidden_store.load(build_tree(tmp_path, hidden_store)))
        assert [e.name for e in tree.entries] == ["f"]

    def test_same_content_same_tree(self, tmp_path, store):
        (tmp_path / "x.txt").write_text("hello")
        assert build_tree(tmp_path, store) == build_tree(tmp_path, store)
