"""Protocols for the collaborators the sync pipeline depends on."""

from collections.abc import Sequence
from typing import Any, Protocol

from src.domain.task import Task


class RemoteTaskSource(Protocol):
    """Read-only access to the remote task source."""

    async def fetch_all(self) -> list[dict[str, Any]]:
        """Return every remote task, active and completed, as raw payloads.

        Raises:
            RemoteUnavailable: If the source cannot be read
            RemoteAuthError: If the source rejects our credentials
        """
        ...


class TaskStore(Protocol):
    """Persistence for local task records, keyed by a uniquely indexed id."""

    async def find_all(self) -> list[Task]:
        """Return every stored task.

        Raises:
            StoreReadError: If the store cannot be read
        """
        ...

    async def find_by_ids(self, ids: Sequence[str]) -> list[Task]:
        """Return the stored tasks whose id is in ``ids``."""
        ...

    async def batch_write(
        self,
        *,
        inserts: Sequence[Task],
        updates: Sequence[Task],
        deletes: Sequence[str],
    ) -> None:
        """Apply inserts, upserts-by-id and deletes-by-id in one call.

        Raises:
            StoreWriteError: If the batch fails
        """
        ...

    async def count(self, filter_query: str = "") -> int:
        """Count stored tasks, optionally restricted by a filter expression."""
        ...
