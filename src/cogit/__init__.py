"""cogit: a local, single-branch version-tracking engine."""

from .constants import COGIT_VERSION
from .errors import (
    CogitError,
    InvalidHashError,
    IoFailure,
    NoChangesToCommitError,
    NotARepositoryError,
    ObjectNotFoundError,
    RepositoryCorruptError,
    SerializationError,
)
from .repository import Repository

__version__ = COGIT_VERSION

__all__ = [
    "Repository",
    "CogitError",
    "InvalidHashError",
    "IoFailure",
    "NoChangesToCommitError",
    "NotARepositoryError",
    "ObjectNotFoundError",
    "RepositoryCorruptError",
    "SerializationError",
    "__version__",
]
