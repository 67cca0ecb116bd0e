"""Diff a remote snapshot against a local snapshot into create/update/delete sets."""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from src.core.clock import utc_now
from src.core.errors import MappingAnomaly
from src.domain.remote import RemoteTask, resolve_remote_task
from src.domain.sync import FieldChange, PendingUpdate, SkippedRecord, SyncPlan, SyncSummary
from src.domain.task import Task
from src.modules.sync.mapper import map_to_local
from src.modules.sync.normalizer import changed_fields, normalize


logger = logging.getLogger(__name__)


def build_remote_snapshot(records: Iterable[dict[str, Any]]) -> tuple[dict[str, RemoteTask], list[SkippedRecord]]:
    """Key raw remote records by canonical id.

    Records that cannot be resolved to an id are skipped with a warning
    instead of aborting the sync. A later record with an id already seen
    replaces the earlier one.
    """
    snapshot: dict[str, RemoteTask] = {}
    anomalies: list[SkippedRecord] = []

    for raw in records:
        try:
            remote = resolve_remote_task(raw)
        except MappingAnomaly as e:
            logger.warning("remote_task_skipped", extra={"reason": str(e)})
            anomalies.append(SkippedRecord(reason=str(e), raw=raw))
            continue
        snapshot[remote.task_id] = remote

    return snapshot, anomalies


def build_local_snapshot(tasks: Iterable[Task]) -> dict[str, Task]:
    """Key stored tasks by id."""
    return {task.id: task for task in tasks}


def diff_task(remote: RemoteTask, local: Task, *, now: datetime) -> dict[str, FieldChange]:
    """Return the normalized field differences between a remote task and its stored copy.

    The remote side is first mapped against the stored copy, so fields the
    mapper carries over (created_at, a completed task's completed_at) never
    count as changes.
    """
    mapped = map_to_local(remote, local, now=now)
    return {
        name: FieldChange(old=old, new=new)
        for name, (old, new) in changed_fields(normalize(local), normalize(mapped)).items()
    }


def reconcile(
    remote_snapshot: dict[str, RemoteTask],
    local_snapshot: dict[str, Task],
    *,
    now: datetime | None = None,
) -> SyncPlan:
    """Compute the operations that bring the local snapshot in line with the remote one.

    Args:
        remote_snapshot: Remote tasks keyed by canonical id
        local_snapshot: Stored tasks keyed by id
        now: Reference time for mapping; defaults to the current UTC time

    Returns:
        SyncPlan with to_create, to_update, to_delete, summary and anomalies
    """
    now = now or utc_now()
    plan = SyncPlan()
    unchanged = 0

    for task_id, remote in remote_snapshot.items():
        local = local_snapshot.get(task_id)
        if local is None:
            plan.to_create.append(remote)
            continue

        try:
            changes = diff_task(remote, local, now=now)
        except MappingAnomaly as e:
            logger.warning("remote_task_skipped", extra={"task_id": task_id, "reason": str(e)})
            plan.anomalies.append(SkippedRecord(reason=str(e), raw=remote.raw))
            continue

        if changes:
            plan.to_update.append(PendingUpdate(id=task_id, remote=remote, local=local, changed_fields=changes))
        else:
            unchanged += 1

    plan.to_delete.extend(task for task_id, task in local_snapshot.items() if task_id not in remote_snapshot)

    plan.summary = SyncSummary(
        created=len(plan.to_create),
        updated=len(plan.to_update),
        deleted=len(plan.to_delete),
        unchanged=unchanged,
        skipped=len(plan.anomalies),
        total_remote=len(remote_snapshot),
        total_local=len(local_snapshot),
    )

    logger.info(
        "sync_check_summary",
        extra={
            "to_create": plan.summary.created,
            "to_update": plan.summary.updated,
            "to_delete": plan.summary.deleted,
            "unchanged": plan.summary.unchanged,
        },
    )
    return plan
