"""todoist-sync - One-way Todoist to local task store synchronization service."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core.config import Settings, get_settings
from src.core.db_client import SqliteTaskStore
from src.core.errors import SyncError
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.scheduler import SyncJobStatus, start_scheduler, stop_scheduler
from src.interface.task_router import router as task_router
from src.interface.task_router import sync_error_handler
from src.interface.todoist_client import TodoistClient
from src.modules.sync.service import SyncService


logger = logging.getLogger(__name__)


def build_todoist_client(settings: Settings) -> TodoistClient:
    """Build the Todoist client, exiting if the API token is missing."""
    logger.info("startup_validation_begin")

    try:
        client = TodoistClient.from_settings(settings)
    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    logger.info("startup_validation_complete", extra={"status": "ok"})
    return client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    # Configure logging first so validation logs are captured
    settings = get_settings()
    configure_logfire(settings)

    client = build_todoist_client(settings)

    store = SqliteTaskStore(settings.sqlite_db_path)
    await store.connect()
    logger.info("Database initialized", extra={"db_path": str(store.path)})

    service = SyncService(remote=client, store=store)
    job_status = SyncJobStatus()

    app.state.todoist_client = client
    app.state.task_store = store
    app.state.sync_service = service
    app.state.sync_job_status = job_status
    app.state.scheduler = None

    if settings.sync_interval_minutes:
        app.state.scheduler = start_scheduler(
            service=service,
            status=job_status,
            interval_minutes=settings.sync_interval_minutes,
        )

    yield
    # Shutdown
    if app.state.scheduler is not None:
        stop_scheduler(app.state.scheduler)
    await store.close()


app = FastAPI(
    title="todoist-sync",
    description="One-way synchronization of Todoist tasks into a local task store",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers and error handlers
app.include_router(task_router)
app.add_exception_handler(SyncError, sync_error_handler)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)


@app.get("/health/scheduler")
async def scheduler_health_check(request: Request) -> JSONResponse:
    """Scheduler health check endpoint with the sync job status."""
    job_status: SyncJobStatus | None = getattr(request.app.state, "sync_job_status", None)
    if getattr(request.app.state, "scheduler", None) is None or job_status is None:
        return JSONResponse(content={"status": "disabled", "jobs": {}}, status_code=200)

    overall_status = "degraded" if job_status.consecutive_failures > 0 else "healthy"

    return JSONResponse(
        content={"status": overall_status, "jobs": {"todoist_sync": job_status.as_dict()}},
        status_code=200 if overall_status == "healthy" else 503,
    )
