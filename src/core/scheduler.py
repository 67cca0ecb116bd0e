"""Optional background scheduler running periodic syncs."""

import logging
from datetime import datetime
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.core.clock import utc_now
from src.core.errors import SyncError, SyncInProgressError
from src.modules.sync.service import SyncService


logger = logging.getLogger(__name__)

SYNC_JOB_ID = "todoist_sync"


class SyncJobStatus:
    """In-memory health record for the scheduled sync job."""

    def __init__(self) -> None:
        self.last_run: datetime | None = None
        self.last_success: datetime | None = None
        self.last_error: str | None = None
        self.consecutive_failures = 0
        self.success_count = 0
        self.skipped_count = 0

    def record_success(self) -> None:
        now = utc_now()
        self.last_run = now
        self.last_success = now
        self.last_error = None
        self.consecutive_failures = 0
        self.success_count += 1

    def record_failure(self, error: str) -> None:
        self.last_run = utc_now()
        self.last_error = error
        self.consecutive_failures += 1

    def record_skip(self) -> None:
        self.skipped_count += 1

    def as_dict(self) -> dict[str, Any]:
        return {
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_error": self.last_error,
            "consecutive_failures": self.consecutive_failures,
            "success_count": self.success_count,
            "skipped_count": self.skipped_count,
        }


async def run_scheduled_sync(service: SyncService, status: SyncJobStatus) -> None:
    """Run one sync for the scheduler, recording the outcome instead of raising."""
    try:
        stats = await service.sync()
    except SyncInProgressError:
        logger.info("scheduled_sync_skipped", extra={"reason": "sync already in progress"})
        status.record_skip()
    except SyncError as e:
        logger.error("scheduled_sync_failed", extra={"error": str(e), "error_code": e.code})
        status.record_failure(str(e))
    except Exception as e:
        logger.exception("scheduled_sync_unexpected_error")
        status.record_failure(str(e))
    else:
        logger.info("scheduled_sync_completed", extra={"stats": stats.model_dump()})
        status.record_success()


def start_scheduler(*, service: SyncService, status: SyncJobStatus, interval_minutes: int) -> AsyncIOScheduler:
    """Create and start a scheduler that syncs every ``interval_minutes``.

    This should be called during FastAPI app startup.
    """
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_scheduled_sync,
        trigger=IntervalTrigger(minutes=interval_minutes),
        args=[service, status],
        id=SYNC_JOB_ID,
        name="Sync Todoist Tasks",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Scheduled Todoist sync job", extra={"interval_minutes": interval_minutes})
    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=False)
    logger.info("Scheduler stopped")
