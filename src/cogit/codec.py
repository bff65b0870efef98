"""Explicit, versioned encode/decode for persisted schema types.

Each persisted type has a hand-written encoder and decoder pair:

    Tree         -> encode_tree / decode_tree        (stored as a blob)
    Commit       -> encode_commit / decode_commit    (stored as a blob)
    StagingArea  -> encode_staging / decode_staging  (.cogit/index.json)

Every document carries ``"schema": SCHEMA_VERSION`` and a ``"type"`` tag.
Decoders validate shape and field types field by field and raise
SerializationError for anything unexpected; they never trust the input to
match a model.

Tree and commit documents are emitted with sorted keys and compact
separators so the same logical object always produces the same bytes and
therefore the same hash.
"""

from datetime import datetime, timezone
from typing import Any, Dict
import json

from .constants import SCHEMA_VERSION
from .core import Commit, StagingArea, StagingEntry, Tree, TreeEntry
from .errors import SerializationError

_MISSING = object()


# ============= Helpers =============

def _dumps_canonical(doc: Dict[str, Any]) -> bytes:
    return json.dumps(doc, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _loads(kind: str, data: bytes) -> Dict[str, Any]:
    try:
        doc = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SerializationError(kind, f"not valid JSON ({exc})") from exc
    if not isinstance(doc, dict):
        raise SerializationError(kind, f"expected an object, got {type(doc).__name__}")
    schema = doc.get("schema")
    if schema != SCHEMA_VERSION:
        raise SerializationError(kind, f"unsupported schema version {schema!r}")
    doc_type = doc.get("type")
    if doc_type != kind:
        raise SerializationError(kind, f"document type is {doc_type!r}")
    return doc


def _field(doc: Dict[str, Any], key: str, expected: type, kind: str, optional: bool = False) -> Any:
    value = doc.get(key, _MISSING)
    if value is _MISSING:
        raise SerializationError(kind, f"missing field '{key}'")
    if value is None and optional:
        return None
    # bool is a subclass of int; keep them apart
    if expected is int and isinstance(value, bool):
        raise SerializationError(kind, f"field '{key}' must be int")
    if not isinstance(value, expected):
        raise SerializationError(kind, f"field '{key}' must be {expected.__name__}")
    return value


def _encode_ts(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


def _decode_ts(value: str, kind: str, key: str) -> datetime:
    try:
        ts = datetime.fromisoformat(value)
    except ValueError as exc:
        raise SerializationError(kind, f"field '{key}' is not an ISO-8601 timestamp") from exc
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


# ============= Tree =============

def encode_tree(tree: Tree) -> bytes:
    """Serialize a tree to canonical bytes (entry order is preserved)."""
    return _dumps_canonical({
        "schema": SCHEMA_VERSION,
        "type": "tree",
        "entries": [
            {"name": e.name, "hash": e.hash, "is_file": e.is_file}
            for e in tree.entries
        ],
    })


def decode_tree(data: bytes) -> Tree:
    """Parse tree bytes.

    Raises:
        SerializationError: On malformed JSON, wrong schema or duplicate names
    """
    doc = _loads("tree", data)
    raw_entries = _field(doc, "entries", list, "tree")

    entries = []
    seen = set()
    for raw in raw_entries:
        if not isinstance(raw, dict):
            raise SerializationError("tree", "entry must be an object")
        name = _field(raw, "name", str, "tree")
        if name in seen:
            raise SerializationError("tree", f"duplicate entry name {name!r}")
        seen.add(name)
        entries.append(TreeEntry(
            name=name,
            hash=_field(raw, "hash", str, "tree"),
            is_file=_field(raw, "is_file", bool, "tree"),
        ))
    return Tree(entries=entries)


# ============= Commit =============

def encode_commit(commit: Commit) -> bytes:
    """Serialize the hashed payload of a commit.

    The commit's own ``hash`` is excluded: it is derived from
    these bytes.
    """
    return _dumps_canonical({
        "schema": SCHEMA_VERSION,
        "type": "commit",
        "message": commit.message,
        "timestamp": _encode_ts(commit.timestamp),
        "parent": commit.parent,
        "tree_hash": commit.tree_hash,
    })


def decode_commit(data: bytes, hash_value: str = "") -> Commit:
    """Parse commit bytes, attaching the address they were loaded from."""
    doc = _loads("commit", data)
    return Commit(
        hash=hash_value,
        message=_field(doc, "message", str, "commit"),
        timestamp=_decode_ts(_field(doc, "timestamp", str, "commit"), "commit", "timestamp"),
        parent=_field(doc, "parent", str, "commit", optional=True),
        tree_hash=_field(doc, "tree_hash", str, "commit"),
    )


# ============= Staging =============

def encode_staging(area: StagingArea) -> bytes:
    """Serialize the staging area (pretty-printed, paths sorted)."""
    doc = {
        "schema": SCHEMA_VERSION,
        "type": "staging",
        "last_updated": _encode_ts(area.last_updated),
        "entries": {
            path: {
                "path": entry.path,
                "content_hash": entry.content_hash,
                "size": entry.size,
                "staged_at": _encode_ts(entry.staged_at),
            }
            for path, entry in sorted(area.entries.items())
        },
    }
    return (json.dumps(doc, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def decode_staging(data: bytes) -> StagingArea:
    """Parse staging bytes."""
    doc = _loads("staging", data)
    raw_entries = _field(doc, "entries", dict, "staging")

    entries: Dict[str, StagingEntry] = {}
    for key, raw in raw_entries.items():
        if not isinstance(raw, dict):
            raise SerializationError("staging", f"entry {key!r} must be an object")
        path = _field(raw, "path", str, "staging")
        if path != key:
            raise SerializationError("staging", f"entry key {key!r} does not match path {path!r}")
        size = _field(raw, "size", int, "staging")
        if size < 0:
            raise SerializationError("staging", f"entry {key!r} has negative size")
        entries[key] = StagingEntry(
            path=path,
            content_hash=_field(raw, "content_hash", str, "staging"),
            size=size,
            staged_at=_decode_ts(_field(raw, "staged_at", str, "staging"), "staging", "staged_at"),
        )

    return StagingArea(
        entries=entries,
        last_updated=_decode_ts(_field(doc, "last_updated", str, "staging"), "staging", "last_updated"),
    )


__all__ = [
    "encode_tree",
    "decode_tree",
    "encode_commit",
    "decode_commit",
    "encode_staging",
    "decode_staging",
]
