"""Shared fixtures."""

from pathlib import Path

import pytest

from memdesk.backends import SQLiteBackend


@pytest.fixture
async def backend(tmp_path: Path) -> SQLiteBackend:
    """Create a SQLiteBackend with a temporary database."""
    backend = SQLiteBackend(tmp_path / "test_memory.db")
    backend.init_db()
    yield backend
    await backend.close()
