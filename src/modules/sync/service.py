"""Sync service: fetch both snapshots, reconcile, apply, report."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from src.core.clock import utc_now
from src.core.errors import SyncInProgressError
from src.core.logging import span
from src.core.ports import RemoteTaskSource, TaskStore
from src.domain.sync import SyncPlan, SyncStats
from src.modules.sync.executor import SyncExecutor
from src.modules.sync.reconciler import build_local_snapshot, build_remote_snapshot, reconcile


logger = logging.getLogger(__name__)

COMPLETED_FILTER = 'is_completed = "true"'


class SyncService:
    """One-way Todoist -> local store synchronization.

    The remote source, store and clock are fixed for the lifetime of the
    service. At most one ``sync()`` runs per service at a time; a call made
    while another is in flight is rejected rather than queued.
    """

    def __init__(
        self,
        *,
        remote: RemoteTaskSource,
        store: TaskStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._remote = remote
        self._store = store
        self._clock = clock
        self._executor = SyncExecutor(store, clock=clock)
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        """Whether a sync is currently in flight."""
        return self._lock.locked()

    async def _build_plan(self, *, now: datetime) -> SyncPlan:
        raw_remote, local_tasks = await asyncio.gather(self._remote.fetch_all(), self._store.find_all())
        logger.info("snapshots_loaded", extra={"remote": len(raw_remote), "local": len(local_tasks)})

        remote_snapshot, anomalies = build_remote_snapshot(raw_remote)
        plan = reconcile(remote_snapshot, build_local_snapshot(local_tasks), now=now)

        if anomalies:
            plan.anomalies = anomalies + plan.anomalies
            plan.summary.skipped = len(plan.anomalies)
        return plan

    async def check_only(self) -> SyncPlan:
        """Reconcile without writing anything, for previewing a sync."""
        with span("sync_service.check_only"):
            return await self._build_plan(now=self._clock())

    async def sync(self) -> SyncStats:
        """Run a full sync and return its statistics.

        Raises:
            SyncInProgressError: If another sync is already running
            RemoteUnavailable: If Todoist could not be read
            StoreReadError: If the local snapshot or final counts could not be read
            StoreWriteError: If the batch write failed
        """
        if self._lock.locked():
            raise SyncInProgressError("A sync is already in progress")

        async with self._lock:
            with span("sync_service.sync"):
                logger.info("sync_started")
                now = self._clock()
                plan = await self._build_plan(now=now)

                result = await self._executor.apply(
                    to_create=plan.to_create,
                    to_update=plan.to_update,
                    to_delete=plan.to_delete,
                    now=now,
                )

                final_count, completed_count = await asyncio.gather(
                    self._store.count(),
                    self._store.count(COMPLETED_FILTER),
                )

                stats = SyncStats(
                    created=result.created,
                    updated=result.updated,
                    deleted=result.deleted,
                    unchanged=plan.summary.unchanged,
                    skipped=len(plan.anomalies) + len(result.failures),
                    total_remote=plan.summary.total_remote,
                    total_local=plan.summary.total_local,
                    final_count=final_count,
                    completed_count=completed_count,
                )
                logger.info("sync_completed", extra={"stats": stats.model_dump()})
                return stats
