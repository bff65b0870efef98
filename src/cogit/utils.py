"""Utility functions for cogit."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional
import contextlib
import logging
import os
import tempfile

import portalocker

from .errors import LockTimeoutError

logger = logging.getLogger(__name__)


# ============= Atomic Write Helpers =============

def fsync_dir(path: Path) -> None:
    """Fsync a directory so that a rename inside it is durable.

    Best-effort: Windows and some filesystems do not support directory fsync.
    """
    try:
        flags = os.O_RDONLY
        if hasattr(os, "O_DIRECTORY"):
            flags |= os.O_DIRECTORY
        fd = os.open(str(path), flags)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        logger.debug("Directory fsync not supported for %s", path)


def atomic_write_bytes(path: Path, data: bytes, mode: Optional[int] = None) -> None:
    """Atomically write bytes to a file with crash safety.

    1. Write to a temp file in the same directory and fsync it
    2. Optionally chmod the temp file (so the target is never visible writable)
    3. Atomic rename onto the target path
    4. Fsync the parent directory so the rename is durable

    Args:
        path: Target file path
        data: Content to write
        mode: Optional permission bits applied before the rename

    Raises:
        OSError: On any filesystem failure; no temp file is left behind
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.tmp-")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise

    fsync_dir(path.parent)


def atomic_write_text(path: Path, text: str) -> None:
    """Atomically write UTF-8 text to a file."""
    atomic_write_bytes(path, text.encode("utf-8"))


# ============= Time and Display =============

def utc_now() -> datetime:
    """Get current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """Format a timestamp for display.

    Examples:
        2025-08-26T02:51:17.317839+00:00 -> "2025-08-26 02:51:17 UTC"
    """
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%d %H:%M:%S UTC")


def humanize_size(size: float) -> str:
    """Convert bytes to human-readable format."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


# ============= Locking =============

@contextlib.contextmanager
def exclusive_lock(lock_path: Path, timeout: float) -> Iterator[None]:
    """Hold an exclusive lock on lock_path for the duration of the block.

    Raises:
        LockTimeoutError: If the lock is not acquired within timeout seconds
    """
    lock_path = Path(lock_path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)

    lock = portalocker.Lock(str(lock_path), "w", timeout=timeout)
    try:
        lock.acquire()
    except portalocker.LockException as exc:
        raise LockTimeoutError(lock_path, timeout) from exc
    try:
        yield
    finally:
        lock.release()
