"""Repository context for managing the root and metadata paths."""

from pathlib import Path
from typing import Union

from .constants import (
    COGIT_DIR,
    CONFIG_FILE,
    DEFAULT_BRANCH,
    EMBEDDINGS_DIR,
    HEAD_FILE,
    HEADS_DIR,
    OBJECTS_DIR,
    REFS_DIR,
    STAGING_FILE,
)
from .errors import NotARepositoryError


class RepositoryContext:
    """Resolves every on-disk location of a repository from an explicit root.

    The root is always passed in; nothing here consults the process working
    directory except ``discover``, which the CLI uses to locate a root.
    """

    def __init__(self, root: Union[str, Path], must_exist: bool = True):
        """Bind a context to a repository root.

        Args:
            root: Repository root (the directory containing .cogit)
            must_exist: Raise if the metadata directory is missing

        Raises:
            NotARepositoryError: If must_exist and .cogit is missing
        """
        self.root = Path(root).resolve()
        if must_exist and not self.cogit_dir.is_dir():
            raise NotARepositoryError(self.root)

    @classmethod
    def is_initialized(cls, path: Union[str, Path]) -> bool:
        """Check if a specific directory is initialized (without traversing up)."""
        return (Path(path) / COGIT_DIR).is_dir()

    @classmethod
    def discover(cls, start: Union[str, Path]) -> "RepositoryContext":
        """Walk up from start to find the nearest repository root.

        Raises:
            NotARepositoryError: If no ancestor contains .cogit
        """
        start = Path(start).resolve()
        current = start
        while True:
            if (current / COGIT_DIR).is_dir():
                return cls(current)
            if current == current.parent:
                raise NotARepositoryError(start)
            current = current.parent

    def relative(self, path: Union[str, Path]) -> str:
        """Convert a path to a root-relative POSIX string.

        Relative paths are interpreted relative to the repository root, not
        the process working directory.

        Raises:
            ValueError: If the path is outside the repository
        """
        p = Path(path)
        absolute = p if p.is_absolute() else self.root / p
        try:
            rel = absolute.resolve().relative_to(self.root)
        except ValueError:
            raise ValueError(f"Path {p} is outside repository {self.root}")
        if not rel.parts:
            raise ValueError(f"Path {p} is the repository root")
        return rel.as_posix()

    def absolute(self, repo_path: Union[str, Path]) -> Path:
        """Get absolute path from a root-relative path."""
        return self.root / repo_path

    @property
    def cogit_dir(self) -> Path:
        return self.root / COGIT_DIR

    @property
    def objects_dir(self) -> Path:
        return self.cogit_dir / OBJECTS_DIR

    @property
    def heads_dir(self) -> Path:
        return self.cogit_dir / REFS_DIR / HEADS_DIR

    @property
    def head_ref_path(self) -> Path:
        """Path to the single branch ref (refs/heads/main)."""
        return self.heads_dir / DEFAULT_BRANCH

    @property
    def head_ref_name(self) -> str:
        return f"{REFS_DIR}/{HEADS_DIR}/{DEFAULT_BRANCH}"

    @property
    def ref_lock_path(self) -> Path:
        return self.heads_dir / f"{DEFAULT_BRANCH}.lock"

    @property
    def head_file(self) -> Path:
        return self.cogit_dir / HEAD_FILE

    @property
    def staging_path(self) -> Path:
        return self.cogit_dir / STAGING_FILE

    @property
    def config_path(self) -> Path:
        return self.cogit_dir / CONFIG_FILE

    @property
    def embeddings_dir(self) -> Path:
        return self.cogit_dir / EMBEDDINGS_DIR

    def __repr__(self) -> str:
        return f"RepositoryContext(root={str(self.root)!r})"


def ensure_context(root: Union[str, Path, RepositoryContext]) -> RepositoryContext:
    """Accept either a root path or an existing context."""
    if isinstance(root, RepositoryContext):
        return root
    return RepositoryContext(root)
