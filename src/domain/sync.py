"""Sync plan and result models passed between reconciler, executor and service."""

from typing import Annotated, Any

from pydantic import BaseModel, Field

from src.domain.remote import ActiveRemoteTask, CompletedRemoteTask
from src.domain.task import Task


RemoteTaskField = Annotated[ActiveRemoteTask | CompletedRemoteTask, Field(discriminator="kind")]


class FieldChange(BaseModel):
    """One field that differs between the stored task and the remote task."""

    old: Any = Field(..., description="Normalized local value")
    new: Any = Field(..., description="Normalized remote value")


class PendingUpdate(BaseModel):
    """A task present on both sides whose normalized fields differ."""

    id: str = Field(..., description="Canonical task ID")
    remote: RemoteTaskField = Field(..., description="Remote task as fetched")
    local: Task = Field(..., description="Task as currently stored")
    changed_fields: dict[str, FieldChange] = Field(default_factory=dict, description="Per-field differences")


class SkippedRecord(BaseModel):
    """A remote record left out of the plan because it could not be mapped."""

    reason: str
    raw: Any = None


class SyncSummary(BaseModel):
    """Counts describing a reconciliation."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    skipped: int = 0
    total_remote: int = 0
    total_local: int = 0


class SyncPlan(BaseModel):
    """Create/update/delete sets produced by reconciling two snapshots."""

    to_create: list[RemoteTaskField] = Field(default_factory=list)
    to_update: list[PendingUpdate] = Field(default_factory=list)
    to_delete: list[Task] = Field(default_factory=list)
    summary: SyncSummary = Field(default_factory=SyncSummary)
    anomalies: list[SkippedRecord] = Field(default_factory=list)


class ExecutionResult(BaseModel):
    """What a batch write applied."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    failures: list[SkippedRecord] = Field(default_factory=list)


class SyncStats(BaseModel):
    """Statistics returned by a completed sync."""

    created: int = Field(..., description="Tasks inserted into the local store")
    updated: int = Field(..., description="Tasks rewritten in the local store")
    deleted: int = Field(..., description="Tasks removed from the local store")
    unchanged: int = Field(default=0, description="Tasks identical on both sides")
    skipped: int = Field(default=0, description="Remote records that could not be mapped")
    total_remote: int = Field(..., description="Tasks fetched from Todoist")
    total_local: int = Field(..., description="Tasks stored locally before the sync")
    final_count: int = Field(..., description="Tasks stored locally after the sync")
    completed_count: int = Field(..., description="Completed tasks stored locally after the sync")
