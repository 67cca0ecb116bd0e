"""Task endpoints: read Todoist, read the local store, preview and run syncs."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from src.core.db_client import SqliteTaskStore
from src.core.errors import error_response_for
from src.domain.sync import SyncPlan, SyncStats
from src.domain.task import Task
from src.interface.todoist_client import TodoistClient
from src.modules.sync.service import SyncService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def get_sync_service(request: Request) -> SyncService:
    return request.app.state.sync_service


def get_todoist_client(request: Request) -> TodoistClient:
    return request.app.state.todoist_client


def get_task_store(request: Request) -> SqliteTaskStore:
    return request.app.state.task_store


def _plan_preview(plan: SyncPlan) -> dict[str, Any]:
    """Compact, JSON-friendly view of a sync plan."""
    return {
        "summary": plan.summary.model_dump(),
        "to_create": [{"id": remote.task_id, "content": remote.content} for remote in plan.to_create],
        "to_update": [
            {
                "id": pending.id,
                "content": pending.remote.content,
                "changed_fields": {name: change.model_dump() for name, change in pending.changed_fields.items()},
            }
            for pending in plan.to_update
        ],
        "to_delete": [{"id": task.id, "content": task.content} for task in plan.to_delete],
        "anomalies": [anomaly.model_dump() for anomaly in plan.anomalies],
    }


@router.get("")
async def list_remote_tasks(client: TodoistClient = Depends(get_todoist_client)) -> list[dict[str, Any]]:
    """Get all tasks (active and completed) from Todoist."""
    tasks = await client.fetch_all()
    logger.info("remote_tasks_listed", extra={"count": len(tasks)})
    return tasks


@router.get("/active")
async def list_active_tasks(client: TodoistClient = Depends(get_todoist_client)) -> list[dict[str, Any]]:
    """Get only active tasks from Todoist."""
    return await client.fetch_active()


@router.get("/completed")
async def list_completed_tasks(client: TodoistClient = Depends(get_todoist_client)) -> list[dict[str, Any]]:
    """Get only recently completed tasks from Todoist."""
    return await client.fetch_completed()


@router.api_route("/sync", methods=["GET", "POST"])
async def run_sync(service: SyncService = Depends(get_sync_service)) -> dict[str, Any]:
    """Sync tasks from Todoist into the local store."""
    stats: SyncStats = await service.sync()
    return {"message": "Successfully synced tasks from Todoist", "stats": stats.model_dump()}


@router.get("/check")
async def check_sync(service: SyncService = Depends(get_sync_service)) -> dict[str, Any]:
    """Preview what a sync would create, update and delete without writing."""
    plan = await service.check_only()
    return _plan_preview(plan)


@router.get("/db")
async def list_local_tasks(
    filter_query: str = Query(default="", alias="filter", description='e.g. is_completed = "true"'),
    sort: str = Query(default="", description="Column name with optional ASC/DESC"),
    store: SqliteTaskStore = Depends(get_task_store),
) -> list[Task]:
    """Get tasks from the local store."""
    try:
        return await store.find_all(filter_query=filter_query, sort=sort)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


async def sync_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Render sync pipeline failures as structured JSON errors."""
    status_code, body = error_response_for(exc)
    logger.error("request_failed", extra={"status_code": status_code, "error_code": body.code, "error": str(exc)})
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude={"severity"}))
