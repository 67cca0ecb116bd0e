"""Translate remote Todoist tasks into the local task schema."""

from datetime import datetime

from dateutil.parser import isoparse

from src.core.config import constants
from src.core.errors import MappingAnomaly
from src.domain.remote import ActiveRemoteTask, RemoteDue, RemoteTask
from src.domain.task import Task, TaskSource
from src.modules.sync.normalizer import coerce_priority, normalize_labels, parse_instant


def task_url(task_id: str) -> str:
    """Build the Todoist web URL for a task id."""
    return constants.TASK_URL_TEMPLATE.format(task_id=task_id)


def _wall_clock_time(value: object) -> str:
    """Return HH:MM as written in the due datetime, or "" if it has no readable time."""
    if not isinstance(value, str) or not value.strip():
        return ""
    try:
        return isoparse(value.strip()).strftime("%H:%M")
    except (ValueError, OverflowError):
        return ""


def map_due(due: RemoteDue | None) -> tuple[datetime | None, str]:
    """Derive (due_date, due_time) from a remote due object.

    ``due.datetime`` wins over ``due.date``; a due without a readable time
    component yields an empty due_time.
    """
    if due is None:
        return None, ""

    due_date = parse_instant(due.datetime)
    if due_date is not None:
        return due_date, _wall_clock_time(due.datetime)

    return parse_instant(due.date), ""


def resolve_completed_at(remote: RemoteTask, existing: Task | None, *, now: datetime) -> datetime | None:
    """Apply the completion transition rule.

    Active -> Active      : None
    Active -> Completed   : remote completion time, else now
    Completed -> Completed: keep the stored timestamp
    Completed -> Active   : None
    """
    if not remote.is_completed:
        return None

    if existing is not None and existing.is_completed and existing.completed_at is not None:
        return existing.completed_at

    return parse_instant(remote.completed_at) or now


def map_to_local(remote: RemoteTask, existing: Task | None = None, *, now: datetime) -> Task:
    """Build the full local record for a remote task.

    Args:
        remote: Resolved remote task (either shape)
        existing: Currently stored task with the same id, if any
        now: Timestamp used for updated_at and for any stamp the remote lacks

    Returns:
        Task ready to be written to the store

    Raises:
        MappingAnomaly: If the remote task has no content
    """
    task_id = remote.task_id
    if not remote.content.strip():
        raise MappingAnomaly(f"Remote task {task_id} has no content", raw=remote.raw)

    due_date, due_time = None, ""
    is_recurring, recurrence_string = False, ""
    url, parent_task_id = "", ""
    if isinstance(remote, ActiveRemoteTask):
        due_date, due_time = map_due(remote.due)
        if remote.due is not None:
            is_recurring = bool(remote.due.is_recurring)
            recurrence_string = str(remote.due.string or "")
        url = remote.url or ""
        parent_task_id = remote.parent_id or ""

    if existing is not None:
        created_at = existing.created_at
    else:
        created_at = parse_instant(remote.created_at) or now

    return Task(
        id=task_id,
        content=remote.content,
        description=remote.description,
        is_completed=remote.is_completed,
        labels=list(normalize_labels(remote.labels)),
        priority=coerce_priority(remote.priority),
        due_date=due_date,
        due_time=due_time,
        is_recurring=is_recurring,
        recurrence_string=recurrence_string,
        parent_task_id=parent_task_id,
        url=url or task_url(task_id),
        project_id=remote.project_id,
        created_at=created_at,
        updated_at=now,
        completed_at=resolve_completed_at(remote, existing, now=now),
        last_updated_by=constants.SYNC_ACTOR,
        source=TaskSource.TODOIST,
    )
