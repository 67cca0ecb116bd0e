"""Tests for SyncService end-to-end behavior against in-memory collaborators."""

import asyncio
from datetime import UTC, datetime

import pytest

from src.core.errors import RemoteUnavailable, StoreReadError, StoreWriteError, SyncInProgressError
from src.modules.sync.service import SyncService
from tests.factories import FIXED_NOW, active_payload, completed_payload, make_task
from tests.unit.mocks import FakeRemoteSource, InMemoryTaskStore


@pytest.mark.unit
class TestSync:
    """Tests for SyncService.sync."""

    async def test_create_idle_complete_delete_lifecycle(self, sync_service, fake_remote, in_memory_store):
        buy_milk = {"id": "1", "content": "Buy milk", "is_completed": False, "priority": 4, "labels": []}

        fake_remote.records = [buy_milk]
        first = await sync_service.sync()
        assert (first.created, first.updated, first.deleted) == (1, 0, 0)
        assert in_memory_store.tasks["1"].completed_at is None

        second = await sync_service.sync()
        assert (second.created, second.updated, second.deleted) == (0, 0, 0)

        fake_remote.records = [{**buy_milk, "is_completed": True}]
        third = await sync_service.sync()
        assert third.updated == 1
        assert in_memory_store.tasks["1"].is_completed is True
        assert in_memory_store.tasks["1"].completed_at == FIXED_NOW

        fake_remote.records = []
        fourth = await sync_service.sync()
        assert fourth.deleted == 1
        assert in_memory_store.tasks == {}

    async def test_first_sync_creates_everything(self, sync_service, fake_remote, in_memory_store):
        fake_remote.records = [active_payload("1"), active_payload("2"), completed_payload("3")]

        stats = await sync_service.sync()

        assert stats.created == 3
        assert stats.updated == 0
        assert stats.deleted == 0
        assert stats.total_remote == 3
        assert stats.total_local == 0
        assert stats.final_count == 3
        assert stats.completed_count == 1
        assert set(in_memory_store.tasks) == {"1", "2", "3"}

    async def test_second_sync_is_a_no_op(self, sync_service, fake_remote, in_memory_store):
        fake_remote.records = [
            active_payload("1", labels=["z", "a"], due={"datetime": "2024-03-06T14:30:00.250Z", "date": "2024-03-06"}),
            completed_payload("2"),
        ]
        await sync_service.sync()
        batches_after_first = len(in_memory_store.batch_calls)

        stats = await sync_service.sync()

        assert (stats.created, stats.updated, stats.deleted) == (0, 0, 0)
        assert stats.unchanged == 2
        assert len(in_memory_store.batch_calls) == batches_after_first

    async def test_label_reorder_is_not_an_update(self, sync_service, fake_remote):
        fake_remote.records = [active_payload("1", labels=["work", "home"])]
        await sync_service.sync()

        fake_remote.records = [active_payload("1", labels=["home", "work"])]
        stats = await sync_service.sync()

        assert stats.updated == 0
        assert stats.unchanged == 1

    async def test_remote_edit_updates_and_keeps_created_at(self, sync_service, fake_remote, in_memory_store):
        fake_remote.records = [active_payload("1")]
        await sync_service.sync()
        created_at = in_memory_store.tasks["1"].created_at

        fake_remote.records = [active_payload("1", content="Edited", created_at="2030-01-01T00:00:00Z")]
        stats = await sync_service.sync()

        assert stats.updated == 1
        assert in_memory_store.tasks["1"].content == "Edited"
        assert in_memory_store.tasks["1"].created_at == created_at

    async def test_completion_is_stamped_once(self, sync_service, fake_remote, in_memory_store):
        fake_remote.records = [active_payload("1")]
        await sync_service.sync()

        fake_remote.records = [completed_payload("1", content="Task 1")]
        await sync_service.sync()
        first_stamp = in_memory_store.tasks["1"].completed_at

        fake_remote.records = [completed_payload("1", content="Task 1", completed_at="2024-02-28T00:00:00Z")]
        await sync_service.sync()

        assert first_stamp == datetime(2024, 2, 20, 18, 45, tzinfo=UTC)
        assert in_memory_store.tasks["1"].completed_at == first_stamp
        assert in_memory_store.tasks["1"].is_completed is True

    async def test_reactivation_clears_completed_at(self, sync_service, fake_remote, in_memory_store):
        fake_remote.records = [completed_payload("1", content="Task 1")]
        await sync_service.sync()

        fake_remote.records = [active_payload("1")]
        stats = await sync_service.sync()

        assert stats.updated == 1
        assert in_memory_store.tasks["1"].is_completed is False
        assert in_memory_store.tasks["1"].completed_at is None

    async def test_task_gone_remotely_is_deleted(self, sync_service, fake_remote, in_memory_store):
        fake_remote.records = [active_payload("1"), active_payload("2")]
        await sync_service.sync()

        fake_remote.records = [active_payload("1")]
        stats = await sync_service.sync()

        assert stats.deleted == 1
        assert stats.final_count == 1
        assert set(in_memory_store.tasks) == {"1"}

    async def test_unmappable_records_are_skipped(self, sync_service, fake_remote, in_memory_store):
        fake_remote.records = [active_payload("1"), {"content": "no id"}, active_payload("2", content="")]

        stats = await sync_service.sync()

        assert stats.created == 1
        assert stats.skipped == 2
        assert set(in_memory_store.tasks) == {"1"}

    async def test_remote_failure_leaves_store_untouched(self, fake_remote, sync_service, in_memory_store):
        in_memory_store._tasks = {"1": make_task("1")}
        fake_remote.fail = True

        with pytest.raises(RemoteUnavailable):
            await sync_service.sync()

        assert in_memory_store.batch_calls == []
        assert set(in_memory_store.tasks) == {"1"}

    async def test_store_read_failure_propagates(self, sync_service, in_memory_store):
        in_memory_store.fail_reads = True

        with pytest.raises(StoreReadError):
            await sync_service.sync()

    async def test_store_write_failure_propagates(self, sync_service, fake_remote, in_memory_store):
        fake_remote.records = [active_payload("1")]
        in_memory_store.fail_writes = True

        with pytest.raises(StoreWriteError):
            await sync_service.sync()

        assert in_memory_store.tasks == {}
        assert sync_service.is_running is False

    async def test_concurrent_sync_is_rejected(self, in_memory_store):
        release = asyncio.Event()

        class SlowRemote(FakeRemoteSource):
            async def fetch_all(self):
                await release.wait()
                return await super().fetch_all()

        service = SyncService(remote=SlowRemote([active_payload("1")]), store=in_memory_store, clock=lambda: FIXED_NOW)

        first = asyncio.create_task(service.sync())
        await asyncio.sleep(0)
        assert service.is_running is True

        with pytest.raises(SyncInProgressError):
            await service.sync()

        release.set()
        stats = await first
        assert stats.created == 1
        assert service.is_running is False


@pytest.mark.unit
class TestCheckOnly:
    """Tests for SyncService.check_only."""

    async def test_check_only_never_writes(self, sync_service, fake_remote, in_memory_store):
        in_memory_store._tasks = {"old": make_task("old")}
        fake_remote.records = [active_payload("1")]

        plan = await sync_service.check_only()

        assert plan.summary.created == 1
        assert plan.summary.deleted == 1
        assert in_memory_store.batch_calls == []

    async def test_check_only_reports_anomalies(self, sync_service, fake_remote):
        fake_remote.records = [{"content": "no id"}]

        plan = await sync_service.check_only()

        assert plan.summary.skipped == 1
        assert len(plan.anomalies) == 1

    async def test_check_only_matches_sync_outcome(self, fake_remote):
        store = InMemoryTaskStore([make_task("stale")])
        fake_remote.records = [active_payload("1"), completed_payload("2")]
        service = SyncService(remote=fake_remote, store=store, clock=lambda: FIXED_NOW)

        plan = await service.check_only()
        stats = await service.sync()

        assert (plan.summary.created, plan.summary.updated, plan.summary.deleted) == (
            stats.created,
            stats.updated,
            stats.deleted,
        )
