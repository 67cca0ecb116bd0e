"""Pure normalization of task records into comparable values.

Both sides of a sync go through ``normalize`` before comparison, so
representation noise (label order, timezone spelling, sub-second precision,
None vs empty string, "2" vs 2 priorities) never shows up as a change.
Nothing in here raises: unreadable input normalizes to the field default.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields
from datetime import UTC, date, datetime
from typing import Any

from dateutil.parser import isoparse
from pydantic import BaseModel

from src.core.config import constants


CANONICAL_INSTANT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@dataclass(frozen=True)
class ComparableTask:
    """Normalized view of a task; ``updated_at`` is deliberately absent."""

    id: str
    content: str
    description: str
    is_completed: bool
    labels: tuple[str, ...]
    priority: int
    due_date: str | None
    due_time: str
    is_recurring: bool
    recurrence_string: str
    parent_task_id: str
    url: str
    project_id: str
    created_at: str | None
    completed_at: str | None
    last_updated_by: str
    source: str


def normalize_text(value: Any) -> str:
    """Treat None and empty string alike."""
    if value is None:
        return ""
    return str(value)


def coerce_priority(value: Any) -> int:
    """Coerce a priority to 1-4, falling back to the default (4) for anything else."""
    if isinstance(value, bool):
        return constants.DEFAULT_PRIORITY

    if isinstance(value, int):
        priority = value
    elif isinstance(value, float) and value.is_integer():
        priority = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        priority = int(value.strip())
    else:
        return constants.DEFAULT_PRIORITY

    if constants.MIN_PRIORITY <= priority <= constants.MAX_PRIORITY:
        return priority
    return constants.DEFAULT_PRIORITY


def normalize_labels(value: Any) -> tuple[str, ...]:
    """Return labels as a sorted, de-duplicated tuple."""
    if not isinstance(value, Iterable) or isinstance(value, str | bytes | Mapping):
        return ()
    return tuple(sorted({str(label) for label in value if label is not None and label != ""}))


def parse_instant(value: Any) -> datetime | None:
    """Parse a date-like value into an aware UTC datetime truncated to the second.

    Accepts datetimes, dates and ISO 8601 strings (date-only or date+time).
    Naive values are taken as UTC. Returns None for anything unparsable.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            parsed = isoparse(value.strip())
        except (ValueError, OverflowError):
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC).replace(microsecond=0)


def canonical_instant(value: Any) -> str | None:
    """Render a date-like value as ``YYYY-MM-DDTHH:MM:SSZ`` or None."""
    parsed = parse_instant(value)
    if parsed is None:
        return None
    return parsed.strftime(CANONICAL_INSTANT_FORMAT)


def normalize(record: BaseModel | Mapping[str, Any]) -> ComparableTask:
    """Canonicalize a local-schema task (model or dict) for comparison."""
    data = record.model_dump() if isinstance(record, BaseModel) else dict(record)

    return ComparableTask(
        id=normalize_text(data.get("id")),
        content=normalize_text(data.get("content")),
        description=normalize_text(data.get("description")),
        is_completed=bool(data.get("is_completed")),
        labels=normalize_labels(data.get("labels")),
        priority=coerce_priority(data.get("priority")),
        due_date=canonical_instant(data.get("due_date")),
        due_time=normalize_text(data.get("due_time")),
        is_recurring=bool(data.get("is_recurring")),
        recurrence_string=normalize_text(data.get("recurrence_string")),
        parent_task_id=normalize_text(data.get("parent_task_id")),
        url=normalize_text(data.get("url")),
        project_id=normalize_text(data.get("project_id")),
        created_at=canonical_instant(data.get("created_at")),
        completed_at=canonical_instant(data.get("completed_at")),
        last_updated_by=normalize_text(data.get("last_updated_by")),
        source=normalize_text(data.get("source")),
    )


def changed_fields(old: ComparableTask, new: ComparableTask) -> dict[str, tuple[Any, Any]]:
    """List the fields that differ between two normalized tasks as (old, new) pairs."""
    changes = {}
    for field in fields(ComparableTask):
        old_value = getattr(old, field.name)
        new_value = getattr(new, field.name)
        if old_value != new_value:
            changes[field.name] = (old_value, new_value)
    return changes
