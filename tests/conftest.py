"""Global pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from tests.utils import InMemoryArchive, InMemoryKVStore, seed_mixed_store


@pytest.fixture
def store():
    """Empty in-memory store."""
    return InMemoryKVStore()


@pytest.fixture
def mixed_store():
    """Store holding one key of each supported type."""
    return seed_mixed_store(InMemoryKVStore())


@pytest.fixture
def archive():
    """Empty in-memory archive."""
    return InMemoryArchive()
