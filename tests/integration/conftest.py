"""Pytest configuration and fixtures for integration tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from src.core.db_client import SqliteTaskStore


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path to a fresh SQLite file for the test."""
    return tmp_path / "data" / "tasks.db"


@pytest.fixture
async def sqlite_store(db_path: Path) -> AsyncGenerator[SqliteTaskStore]:
    """SqliteTaskStore on a temporary file, closed after the test."""
    store = SqliteTaskStore(db_path)
    yield store
    await store.close()
