"""Shared test fixtures and utilities."""

from pathlib import Path
import pytest

from cogit.context import RepositoryContext
from cogit.objects import ObjectStore
from cogit.repository import Repository


@pytest.fixture
def repo(tmp_path):
    """An initialized, empty repository rooted at tmp_path."""
    return Repository.init(tmp_path)


@pytest.fixture
def ctx(repo):
    return repo.ctx


@pytest.fixture
def store(tmp_path):
    """A standalone object store (no repository around it)."""
    return ObjectStore(tmp_path / "objects")


@pytest.fixture
def write_file(tmp_path):
    """Factory writing text files under the repository root."""
    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path
    return _write
