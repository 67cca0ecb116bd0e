"""In-memory collaborators for unit testing the sync pipeline."""

import copy
from collections.abc import Sequence
from typing import Any

from src.core.errors import RemoteUnavailable, StoreReadError, StoreWriteError
from src.domain.task import Task


class InMemoryTaskStore:
    """Pure Python task store for unit testing.

    Mirrors the SQLite store contract: ``batch_write`` is all-or-nothing,
    updates are upserts by id and deletes of missing ids are no-ops.
    Set ``fail_writes`` / ``fail_reads`` to simulate store outages.
    """

    def __init__(self, tasks: Sequence[Task] = ()):
        self._tasks: dict[str, Task] = {task.id: task.model_copy(deep=True) for task in tasks}
        self.fail_writes = False
        self.fail_reads = False
        self.batch_calls: list[dict[str, list[Any]]] = []

    @property
    def tasks(self) -> dict[str, Task]:
        return copy.deepcopy(self._tasks)

    async def find_all(self) -> list[Task]:
        if self.fail_reads:
            raise StoreReadError("Simulated read failure")
        return [task.model_copy(deep=True) for task in self._tasks.values()]

    async def find_by_ids(self, ids: Sequence[str]) -> list[Task]:
        return [self._tasks[task_id].model_copy(deep=True) for task_id in ids if task_id in self._tasks]

    async def count(self, filter_query: str = "") -> int:
        if self.fail_reads:
            raise StoreReadError("Simulated read failure")
        if not filter_query:
            return len(self._tasks)
        if filter_query == 'is_completed = "true"':
            return sum(1 for task in self._tasks.values() if task.is_completed)
        raise ValueError(f"Unsupported filter in InMemoryTaskStore: {filter_query}")

    async def batch_write(
        self,
        *,
        inserts: Sequence[Task],
        updates: Sequence[Task],
        deletes: Sequence[str],
    ) -> None:
        self.batch_calls.append(
            {
                "inserts": [task.id for task in inserts],
                "updates": [task.id for task in updates],
                "deletes": list(deletes),
            }
        )
        if self.fail_writes:
            raise StoreWriteError("Simulated write failure")

        staged = dict(self._tasks)
        for task in inserts:
            if task.id in staged:
                raise StoreWriteError(f"Duplicate id on insert: {task.id}")
            staged[task.id] = task.model_copy(deep=True)
        for task in updates:
            staged[task.id] = task.model_copy(deep=True)
        for task_id in deletes:
            staged.pop(task_id, None)
        self._tasks = staged


class FakeRemoteSource:
    """Remote task source returning canned raw payloads."""

    def __init__(self, records: Sequence[dict[str, Any]] = ()):
        self.records = [dict(record) for record in records]
        self.fail = False
        self.fetch_calls = 0

    async def fetch_all(self) -> list[dict[str, Any]]:
        self.fetch_calls += 1
        if self.fail:
            raise RemoteUnavailable("Simulated Todoist outage", status_code=503)
        return copy.deepcopy(self.records)
