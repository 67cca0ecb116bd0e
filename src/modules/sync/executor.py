"""Apply a sync plan to the local store as one batch write."""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from src.core.clock import utc_now
from src.core.errors import MappingAnomaly, StoreWriteError
from src.core.logging import log_with_context, span
from src.core.ports import TaskStore
from src.domain.remote import RemoteTask
from src.domain.sync import ExecutionResult, PendingUpdate, SkippedRecord
from src.domain.task import Task
from src.modules.sync.mapper import map_to_local


logger = logging.getLogger(__name__)


class SyncExecutor:
    """Maps planned operations to local records and submits them in one batch.

    The executor does not deduplicate: applying the same plan twice writes
    twice. Convergence comes from reconciling again before each apply.
    """

    def __init__(self, store: TaskStore, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock

    async def apply(
        self,
        *,
        to_create: Sequence[RemoteTask],
        to_update: Sequence[PendingUpdate],
        to_delete: Sequence[Task],
        now: datetime | None = None,
    ) -> ExecutionResult:
        """Write the plan to the store.

        Args:
            to_create: Remote tasks with no local counterpart
            to_update: Remote tasks whose stored copy differs
            to_delete: Stored tasks no longer present remotely
            now: Write timestamp; defaults to the executor clock

        Returns:
            ExecutionResult with applied counts and per-record mapping failures

        Raises:
            StoreWriteError: If the batch write fails (nothing is reported as applied)
        """
        with span("sync_executor.apply"):
            now = now or self._clock()
            failures: list[SkippedRecord] = []

            inserts: list[Task] = []
            for remote in to_create:
                try:
                    inserts.append(map_to_local(remote, None, now=now))
                except MappingAnomaly as e:
                    logger.warning("task_create_skipped", extra={"task_id": remote.task_id, "reason": str(e)})
                    failures.append(SkippedRecord(reason=str(e), raw=remote.raw))

            updates: list[Task] = []
            written_updates: list[PendingUpdate] = []
            for pending in to_update:
                try:
                    updates.append(map_to_local(pending.remote, pending.local, now=now))
                    written_updates.append(pending)
                except MappingAnomaly as e:
                    logger.warning("task_update_skipped", extra={"task_id": pending.id, "reason": str(e)})
                    failures.append(SkippedRecord(reason=str(e), raw=pending.remote.raw))

            deletes = [task.id for task in to_delete]

            if not (inserts or updates or deletes):
                logger.info("sync_batch_empty")
                return ExecutionResult(failures=failures)

            try:
                await self._store.batch_write(inserts=inserts, updates=updates, deletes=deletes)
            except StoreWriteError:
                logger.error(
                    "sync_batch_failed",
                    extra={"inserts": len(inserts), "updates": len(updates), "deletes": len(deletes)},
                )
                raise
            except Exception as e:
                logger.error("sync_batch_failed", extra={"error": str(e)})
                msg = f"Batch write failed: {e}"
                raise StoreWriteError(msg) from e

            for task in inserts:
                log_with_context(logger, "info", "task_created", task_id=task.id, content=task.content)
            for pending in written_updates:
                log_with_context(
                    logger, "info", "task_updated", task_id=pending.id, changed_fields=sorted(pending.changed_fields)
                )
            for task in to_delete:
                log_with_context(logger, "info", "task_deleted", task_id=task.id, content=task.content)

            return ExecutionResult(
                created=len(inserts),
                updated=len(updates),
                deleted=len(deletes),
                failures=failures,
            )
