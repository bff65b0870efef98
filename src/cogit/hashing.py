"""Hashing utilities for content addressing.

All identities in cogit are plain SHA-256 hex digests (64 lowercase hex
characters, no scheme prefix). Blobs, trees and commits share the same
address space.
"""

from pathlib import Path
import hashlib
import re

from .errors import InvalidHashError

HASH_LENGTH = 64

_HEX64 = re.compile(r"^[0-9a-f]{64}$")


def compute_hash(data: bytes) -> str:
    """Compute SHA-256 hex digest of raw bytes.

    Args:
        data: Content to hash

    Returns:
        64-character lowercase hex digest
    """
    return hashlib.sha256(data).hexdigest()


def compute_file_hash(path: Path) -> str:
    """Compute SHA-256 hex digest of file contents.

    Streams the file so large files are not read into memory at once. The
    result is identical to ``compute_hash(path.read_bytes())``.

    Args:
        path: Path to file to hash

    Returns:
        64-character lowercase hex digest
    """
    sha256 = hashlib.sha256()
    with Path(path).open("rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


def validate_hash(value: str) -> str:
    """Validate a hash before it is used to build a filesystem path.

    Args:
        value: Candidate hash string

    Returns:
        The same string, unchanged

    Raises:
        InvalidHashError: If value is not 64 lowercase hex characters

    Security:
        Rejecting anything but hex prevents path traversal through the
        object fan-out directories.
    """
    if not isinstance(value, str) or not _HEX64.fullmatch(value):
        raise InvalidHashError(value)
    return value


def short_hash(value: str, length: int = 12) -> str:
    """Abbreviate a hash for log messages and display."""
    return value[:length]


__all__ = [
    "HASH_LENGTH",
    "compute_hash",
    "compute_file_hash",
    "validate_hash",
    "short_hash",
]
