"""Domain models and DTOs."""

from src.domain.remote import ActiveRemoteTask, CompletedRemoteTask, RemoteDue, RemoteTask, resolve_remote_task
from src.domain.sync import (
    ExecutionResult,
    FieldChange,
    PendingUpdate,
    SkippedRecord,
    SyncPlan,
    SyncStats,
    SyncSummary,
)
from src.domain.task import Task, TaskSource


__all__ = [
    "ActiveRemoteTask",
    "CompletedRemoteTask",
    "ExecutionResult",
    "FieldChange",
    "PendingUpdate",
    "RemoteDue",
    "RemoteTask",
    "SkippedRecord",
    "SyncPlan",
    "SyncStats",
    "SyncSummary",
    "Task",
    "TaskSource",
    "resolve_remote_task",
]
