"""SQLite schema for the local task store (code-first approach)."""

import logging

import aiosqlite

from src.core.config import constants


logger = logging.getLogger(__name__)


# Column order used for inserts and upserts; ``id`` is the Todoist task id.
TASK_COLUMNS = (
    "id",
    "content",
    "description",
    "is_completed",
    "labels",
    "priority",
    "due_date",
    "due_time",
    "is_recurring",
    "recurrence_string",
    "parent_task_id",
    "url",
    "project_id",
    "created_at",
    "updated_at",
    "completed_at",
    "last_updated_by",
    "source",
)

TABLE_SCHEMAS: dict[str, str] = {
    constants.TASKS_TABLE: f"""CREATE TABLE IF NOT EXISTS {constants.TASKS_TABLE} (
        id TEXT PRIMARY KEY NOT NULL,
        content TEXT NOT NULL CHECK (length(content) > 0),
        description TEXT NOT NULL DEFAULT '',
        is_completed INTEGER NOT NULL DEFAULT 0,
        labels TEXT NOT NULL DEFAULT '[]',
        priority INTEGER NOT NULL DEFAULT {constants.DEFAULT_PRIORITY}
            CHECK (priority BETWEEN {constants.MIN_PRIORITY} AND {constants.MAX_PRIORITY}),
        due_date TEXT,
        due_time TEXT NOT NULL DEFAULT '',
        is_recurring INTEGER NOT NULL DEFAULT 0,
        recurrence_string TEXT NOT NULL DEFAULT '',
        parent_task_id TEXT NOT NULL DEFAULT '',
        url TEXT NOT NULL DEFAULT '',
        project_id TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        completed_at TEXT,
        last_updated_by TEXT NOT NULL DEFAULT '',
        source TEXT NOT NULL CHECK (source IN ('todoist', 'notion'))
    )""",
}

INDEXES: list[str] = [
    f"CREATE INDEX IF NOT EXISTS idx_tasks_is_completed ON {constants.TASKS_TABLE} (is_completed)",
    f"CREATE INDEX IF NOT EXISTS idx_tasks_project ON {constants.TASKS_TABLE} (project_id)",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """Create tables and indexes if they do not exist yet."""
    for table_name, ddl in TABLE_SCHEMAS.items():
        await conn.execute(ddl)
        logger.info("Ensured table", extra={"table": table_name})

    for index_sql in INDEXES:
        await conn.execute(index_sql)

    await conn.commit()
