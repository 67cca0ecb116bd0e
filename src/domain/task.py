"""Task domain models and enums for the local task store."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from src.core.config import constants


class TaskSource(StrEnum):
    """Provenance of a stored task."""

    TODOIST = "todoist"
    NOTION = "notion"


class Task(BaseModel):
    """Task record as persisted in the local store."""

    id: str = Field(..., description="Todoist task ID (stable identity key)")
    content: str = Field(..., min_length=1, description="Task title")
    description: str = Field(default="", description="Detailed task description")
    is_completed: bool = Field(default=False, description="Whether the task is completed")
    labels: list[str] = Field(default_factory=list, description="Label names attached to the task")
    priority: int = Field(
        default=constants.DEFAULT_PRIORITY,
        ge=constants.MIN_PRIORITY,
        le=constants.MAX_PRIORITY,
        description="Todoist priority (1-4)",
    )
    due_date: datetime | None = Field(default=None, description="Due instant (date-only dues are midnight UTC)")
    due_time: str = Field(default="", description="Due time as HH:MM, empty when the due has no time")
    is_recurring: bool = Field(default=False, description="Whether the due date repeats")
    recurrence_string: str = Field(default="", description="Human recurrence text, e.g. 'every monday'")
    parent_task_id: str = Field(default="", description="Parent task ID for sub-tasks")
    url: str = Field(default="", description="Todoist URL for the task")
    project_id: str = Field(default="", description="ID of the project containing this task")
    created_at: datetime = Field(..., description="First-seen creation timestamp, never changed afterwards")
    updated_at: datetime = Field(..., description="Timestamp of the last write")
    completed_at: datetime | None = Field(default=None, description="Set on completion, cleared on reactivation")
    last_updated_by: str = Field(default=constants.SYNC_ACTOR, description="Process that last wrote the task")
    source: TaskSource = Field(default=TaskSource.TODOIST, description="Where the task came from")
