#!/usr/bin/env python3
"""Preview what a Todoist sync would change in the local store, without writing."""

import asyncio
import logging

from src.core.config import get_settings
from src.core.db_client import SqliteTaskStore
from src.interface.todoist_client import TodoistClient
from src.modules.sync.service import SyncService


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def preview() -> None:
    settings = get_settings()
    store = SqliteTaskStore(settings.sqlite_db_path)

    try:
        service = SyncService(remote=TodoistClient.from_settings(settings), store=store)
        plan = await service.check_only()
    finally:
        await store.close()

    summary = plan.summary
    logger.info(
        f"Remote: {summary.total_remote}  Local: {summary.total_local}  "
        f"Create: {summary.created}  Update: {summary.updated}  Delete: {summary.deleted}  "
        f"Unchanged: {summary.unchanged}  Skipped: {summary.skipped}"
    )

    for remote in plan.to_create:
        logger.info(f"+ {remote.task_id}: {remote.content}")
    for pending in plan.to_update:
        logger.info(f"~ {pending.id}: {', '.join(sorted(pending.changed_fields))}")
    for task in plan.to_delete:
        logger.info(f"- {task.id}: {task.content}")
    for anomaly in plan.anomalies:
        logger.warning(f"! skipped: {anomaly.reason}")


def main() -> None:
    asyncio.run(preview())


if __name__ == "__main__":
    main()
