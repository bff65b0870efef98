"""Custom exceptions for cogit.

Every failure the engine reports is one of these typed exceptions. Absent
head, absent ref and absent staging file are not errors; they surface as
``None`` or empty results from the components that own them.
"""

from pathlib import Path
from typing import Optional, Union


class CogitError(RuntimeError):
    """Base class for all cogit errors."""
    pass


# Filesystem Errors
class IoFailure(CogitError):
    """Underlying filesystem operation failed."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = str(path) if path is not None else None
        if self.path:
            message = f"{message}: {self.path}"
        super().__init__(message)


class NotARepositoryError(CogitError):
    """Operation requires a .cogit directory that does not exist."""

    def __init__(self, root: Union[str, Path]):
        self.root = str(root)
        super().__init__(
            f"Not a cogit repository (no .cogit directory in {self.root}). "
            f"Run 'cogit init' first."
        )


class LockTimeoutError(CogitError):
    """Repository lock could not be acquired in time."""

    def __init__(self, lock_path: Union[str, Path], timeout: float):
        self.lock_path = str(lock_path)
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout}s waiting for repository lock {self.lock_path}. "
            f"Another cogit process may be committing."
        )


# Object Store Errors
class ObjectNotFoundError(CogitError):
    """No object stored under the requested hash."""

    def __init__(self, hash_value: str, what: str = "Object"):
        self.hash = hash_value
        super().__init__(f"{what} not found: {hash_value}")


class InvalidHashError(CogitError):
    """Hash is not a 64-character lowercase hex digest."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid hash (must be 64 lowercase hex chars): {value!r}")


# Data Errors
class SerializationError(CogitError):
    """Persisted commit, tree, staging or config data is malformed."""

    def __init__(self, kind: str, detail: str):
        self.kind = kind
        self.detail = detail
        super().__init__(f"Malformed {kind} data: {detail}")


class RepositoryCorruptError(CogitError):
    """History references an object that cannot be loaded or decoded."""
    pass


# Diff Errors
class NoChangesToCommitError(CogitError):
    """Diff requested between identical old and new content."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        target = f" in {path}" if path else ""
        super().__init__(f"No changes{target}: old and new content are identical")
