"""Tests for SyncExecutor batch application."""

from datetime import UTC, datetime

import pytest

from src.core.errors import StoreWriteError
from src.domain.remote import resolve_remote_task
from src.modules.sync.executor import SyncExecutor
from src.modules.sync.reconciler import build_remote_snapshot, reconcile
from tests.factories import FIXED_NOW, active_payload, completed_payload, make_task
from tests.unit.mocks import InMemoryTaskStore


@pytest.fixture
def executor(in_memory_store: InMemoryTaskStore) -> SyncExecutor:
    return SyncExecutor(in_memory_store, clock=lambda: FIXED_NOW)


@pytest.mark.unit
class TestSyncExecutor:
    """Tests for SyncExecutor.apply."""

    async def test_applies_creates_updates_and_deletes_in_one_batch(self, in_memory_store, executor):
        in_memory_store._tasks = {
            "edit": make_task("edit", content="Old"),
            "gone": make_task("gone"),
        }
        remote, _ = build_remote_snapshot([active_payload("new"), active_payload("edit")])
        plan = reconcile(remote, {t.id: t for t in await in_memory_store.find_all()}, now=FIXED_NOW)

        result = await executor.apply(to_create=plan.to_create, to_update=plan.to_update, to_delete=plan.to_delete)

        assert (result.created, result.updated, result.deleted) == (1, 1, 1)
        assert len(in_memory_store.batch_calls) == 1
        stored = in_memory_store.tasks
        assert set(stored) == {"new", "edit"}
        assert stored["edit"].content == "Task edit"
        assert stored["edit"].updated_at == FIXED_NOW
        assert stored["edit"].created_at == datetime(2024, 1, 10, 9, 30, tzinfo=UTC)

    async def test_empty_plan_skips_store_call(self, in_memory_store, executor):
        result = await executor.apply(to_create=[], to_update=[], to_delete=[])

        assert (result.created, result.updated, result.deleted) == (0, 0, 0)
        assert in_memory_store.batch_calls == []

    async def test_unmappable_create_is_reported_not_written(self, in_memory_store, executor):
        good = resolve_remote_task(active_payload("1"))
        bad = resolve_remote_task(completed_payload("2", content=""))

        result = await executor.apply(to_create=[good, bad], to_update=[], to_delete=[])

        assert result.created == 1
        assert len(result.failures) == 1
        assert "no content" in result.failures[0].reason
        assert set(in_memory_store.tasks) == {"1"}

    async def test_write_failure_raises_and_applies_nothing(self, in_memory_store, executor):
        in_memory_store._tasks = {"keep": make_task("keep")}
        in_memory_store.fail_writes = True
        remote = resolve_remote_task(active_payload("1"))

        with pytest.raises(StoreWriteError):
            await executor.apply(to_create=[remote], to_update=[], to_delete=[make_task("keep")])

        assert set(in_memory_store.tasks) == {"keep"}

    async def test_unexpected_store_error_is_wrapped(self, executor, in_memory_store, monkeypatch):
        async def broken_batch_write(**_kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(in_memory_store, "batch_write", broken_batch_write)

        with pytest.raises(StoreWriteError, match="disk on fire"):
            await executor.apply(to_create=[resolve_remote_task(active_payload("1"))], to_update=[], to_delete=[])

    async def test_uses_explicit_now(self, in_memory_store, executor):
        write_time = datetime(2024, 5, 5, tzinfo=UTC)

        remote = resolve_remote_task(active_payload("1"))

        await executor.apply(to_create=[remote], to_update=[], to_delete=[], now=write_time)

        assert in_memory_store.tasks["1"].updated_at == write_time
