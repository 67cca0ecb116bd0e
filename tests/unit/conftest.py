"""Pytest configuration and fixtures for unit tests."""

import pytest

from src.modules.sync.service import SyncService
from tests.factories import FIXED_NOW
from tests.unit.mocks import FakeRemoteSource, InMemoryTaskStore


@pytest.fixture
def in_memory_store() -> InMemoryTaskStore:
    """Provides a fresh InMemoryTaskStore for each test."""
    return InMemoryTaskStore()


@pytest.fixture
def fake_remote() -> FakeRemoteSource:
    """Provides a remote source with no tasks; set ``records`` per test."""
    return FakeRemoteSource()


@pytest.fixture
def sync_service(fake_remote: FakeRemoteSource, in_memory_store: InMemoryTaskStore) -> SyncService:
    """SyncService wired to in-memory collaborators and a fixed clock."""
    return SyncService(remote=fake_remote, store=in_memory_store, clock=lambda: FIXED_NOW)
