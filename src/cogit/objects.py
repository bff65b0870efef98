"""Content-addressed object storage.

Objects are raw bytes stored under the SHA-256 hex digest of those bytes:

    <cogit_dir>/objects/<hash[:2]>/<hash[2:]>

The two-character bucket bounds fan-out to 256 directories. Objects are
immutable: once an address exists it is never rewritten, and the file is
made read-only before it becomes visible.
"""

from pathlib import Path
import logging

from .errors import InvalidHashError, IoFailure, ObjectNotFoundError
from .hashing import compute_hash, short_hash, validate_hash
from .utils import atomic_write_bytes

logger = logging.getLogger(__name__)

OBJECT_MODE = 0o444


class ObjectStore:
    """Blob persistence keyed by content hash.

    The store knows nothing about trees or commits; those are encoded by
    ``cogit.codec`` and handed over as bytes like any other blob.
    """

    def __init__(self, objects_dir: Path):
        """
        Args:
            objects_dir: Directory holding the fan-out buckets
        """
        self.objects_dir = Path(objects_dir)

    def path_for(self, hash_value: str) -> Path:
        """Get the fan-out path for a hash.

        Raises:
            InvalidHashError: If the hash is malformed
        """
        validate_hash(hash_value)
        return self.objects_dir / hash_value[:2] / hash_value[2:]

    def exists(self, hash_value: str) -> bool:
        """Check whether an object is stored (malformed hashes are absent)."""
        try:
            return self.path_for(hash_value).is_file()
        except InvalidHashError:
            return False

    def store(self, content: bytes) -> str:
        """Store content and return its hash.

        Idempotent: identical content maps to the same path, and an existing
        object is left untouched.

        Raises:
            IoFailure: If the object cannot be written
        """
        hash_value = compute_hash(content)
        dest = self.path_for(hash_value)

        if dest.exists():
            return hash_value

        try:
            atomic_write_bytes(dest, content, mode=OBJECT_MODE)
        except OSError as exc:
            raise IoFailure(f"Failed to write object {short_hash(hash_value)}", dest) from exc

        logger.debug("Stored object %s (%d bytes)", short_hash(hash_value), len(content))
        return hash_value

    def load(self, hash_value: str) -> bytes:
        """Load the bytes stored under a hash.

        Raises:
            InvalidHashError: If the hash is malformed
            ObjectNotFoundError: If no object exists under the hash
            IoFailure: If the object exists but cannot be read
        """
        path = self.path_for(hash_value)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise ObjectNotFoundError(hash_value) from None
        except OSError as exc:
            raise IoFailure(f"Failed to read object {short_hash(hash_value)}", path) from exc
