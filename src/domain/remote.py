"""Remote (Todoist) task shapes, resolved once into a tagged union.

Todoist hands us two unrelated payload shapes: active tasks from the REST
API carry an ``id`` and an optional ``due`` object, while completed items
from the Sync API carry a flat ``task_id`` and no ``due``. Everything past
``resolve_remote_task`` works with ``RemoteTask`` and never inspects raw dicts.
"""

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from src.core.errors import MappingAnomaly


class RemoteDue(BaseModel):
    """Due information attached to an active Todoist task."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    date: Any = None
    datetime: Any = None
    string: Any = None
    is_recurring: bool | None = Field(default=False, validation_alias=AliasChoices("is_recurring", "recurring"))
    timezone: Any = None


class _RemoteTaskBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: str = ""
    description: str = ""
    labels: Any = None
    priority: Any = None
    project_id: str = ""
    created_at: Any = None
    completed_at: Any = None
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)


class ActiveRemoteTask(_RemoteTaskBase):
    """Task from the REST ``/tasks`` endpoint (may still be completed)."""

    kind: Literal["active"] = "active"
    id: str
    is_completed: bool = False
    due: RemoteDue | None = None
    url: str | None = None
    parent_id: str | None = None

    @property
    def task_id(self) -> str:
        return self.id


class CompletedRemoteTask(_RemoteTaskBase):
    """Item from the Sync API ``completed/get_all`` feed."""

    kind: Literal["completed"] = "completed"
    task_id: str
    is_completed: Literal[True] = True


RemoteTask = ActiveRemoteTask | CompletedRemoteTask


def _as_id(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    return str(value).strip()


def _as_str(value: Any) -> str:
    return "" if value is None else str(value)


def is_completed_shape(raw: dict[str, Any]) -> bool:
    """Return True for the flat completed-item shape.

    That is a non-blank ``task_id``, no ``due`` and no explicit ``is_completed: false``.
    """
    return bool(_as_id(raw.get("task_id"))) and not raw.get("due") and raw.get("is_completed") is not False


def resolve_remote_task(raw: dict[str, Any]) -> RemoteTask:
    """Resolve one raw Todoist payload into its tagged variant.

    Args:
        raw: Task dict as returned by either Todoist endpoint

    Returns:
        ActiveRemoteTask or CompletedRemoteTask with a string task id

    Raises:
        MappingAnomaly: If the payload carries neither ``id`` nor ``task_id``
    """
    if not isinstance(raw, dict):
        raise MappingAnomaly(f"Remote task is not an object: {type(raw).__name__}", raw=raw)

    common = {
        "content": _as_str(raw.get("content")),
        "description": _as_str(raw.get("description")),
        "labels": raw.get("labels"),
        "priority": raw.get("priority"),
        "project_id": _as_str(raw.get("project_id")),
        "created_at": raw.get("created_at"),
        "completed_at": raw.get("completed_at") or raw.get("completed_date"),
        "raw": raw,
    }

    if is_completed_shape(raw):
        return CompletedRemoteTask(task_id=_as_id(raw.get("task_id")), **common)

    task_id = _as_id(raw.get("id")) or _as_id(raw.get("task_id"))
    if not task_id:
        raise MappingAnomaly("Remote task has neither id nor task_id", raw=raw)

    due = raw.get("due")
    try:
        return ActiveRemoteTask(
            id=task_id,
            is_completed=bool(raw.get("is_completed")),
            due=RemoteDue.model_validate(due) if isinstance(due, dict) else None,
            url=_as_str(raw.get("url")) or None,
            parent_id=_as_id(raw.get("parent_id")) or None,
            **common,
        )
    except ValidationError as e:
        raise MappingAnomaly(f"Remote task {task_id} has an unreadable shape: {e}", raw=raw) from e
