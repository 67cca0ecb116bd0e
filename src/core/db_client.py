"""SQLite task store with batch writes and filter-query reads."""

import asyncio
import json
import logging
import re
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
from pydantic import ValidationError

from src.core.config import constants
from src.core.errors import StoreReadError, StoreWriteError
from src.core.schema import TASK_COLUMNS, init_db
from src.domain.task import Task


logger = logging.getLogger(__name__)

# SQLite caps bound parameters per statement; stay well under the oldest limit.
_ID_CHUNK_SIZE = 500

_BOOL_COLUMNS = {"is_completed", "is_recurring"}
_INT_COLUMNS = {"priority"}

FilterParam = str | int | bool

_COMPARISON_RE = re.compile(
    r"""^(?P<field>\w+)\s*(?P<op>!=|>=|<=|=|>|<|~)\s*(?P<quote>['"])(?P<value>[^'"]*)(?P=quote)$"""
)

_SQL_OPERATORS = {"=": "=", "!=": "!=", ">": ">", "<": "<", ">=": ">=", "<=": "<="}


def _coerce_filter_value(field: str, value: str) -> FilterParam:
    """Type a quoted filter value by the column it is compared against."""
    if field in _BOOL_COLUMNS:
        lowered = value.strip().lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
        msg = f"Expected true or false for {field}, got: {value}"
        raise ValueError(msg)

    if field in _INT_COLUMNS:
        if not value.strip().isdigit():
            msg = f"Expected an integer for {field}, got: {value}"
            raise ValueError(msg)
        return int(value)

    return value


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _compile_comparison(expression: str) -> tuple[str, FilterParam]:
    """Compile one ``field op "value"`` term into a SQL condition and its parameter."""
    match = _COMPARISON_RE.match(expression.strip())
    if match is None:
        msg = f"Invalid filter syntax: {expression}"
        raise ValueError(msg)

    field, op, value = match["field"], match["op"], match["value"]
    if field not in TASK_COLUMNS:
        msg = f"Unknown filter field: {field}"
        raise ValueError(msg)

    if op == "~":
        return f"{field} LIKE ? ESCAPE '\\'", f"%{_escape_like(value)}%"
    return f"{field} {_SQL_OPERATORS[op]} ?", _coerce_filter_value(field, value)


def _top_level_terms(filter_query: str) -> list[str]:
    """Split on ``&&`` outside parentheses."""
    terms: list[str] = []
    depth = 0
    start = 0
    index = 0

    while index < len(filter_query):
        char = filter_query[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                break
        elif depth == 0 and filter_query.startswith("&&", index):
            terms.append(filter_query[start:index].strip())
            start = index + 2
            index += 2
            continue
        index += 1

    if depth != 0:
        msg = f"Unbalanced parentheses in filter: {filter_query}"
        raise ValueError(msg)

    terms.append(filter_query[start:].strip())
    if not all(terms):
        msg = f"Empty term in filter: {filter_query}"
        raise ValueError(msg)
    return terms


def parse_filter(filter_query: str) -> tuple[str, list[FilterParam]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list.

    Syntax: ``field = "value" && (field = "a" || field = "b")`` with the
    operators ``= != > < >= <= ~`` (``~`` is a substring match). Field names
    must be task columns; values are typed by column (booleans, priority).

    Raises:
        ValueError: If the expression cannot be parsed
    """
    if not filter_query or not filter_query.strip():
        return "", []

    conditions: list[str] = []
    params: list[FilterParam] = []

    for term in _top_level_terms(filter_query):
        if term.startswith("(") and term.endswith(")"):
            compiled = [_compile_comparison(part) for part in term[1:-1].split("||")]
            conditions.append(f"({' OR '.join(sql for sql, _ in compiled)})")
            params.extend(value for _, value in compiled)
        else:
            sql, value = _compile_comparison(term)
            conditions.append(sql)
            params.append(value)

    return " AND ".join(conditions), params


def task_to_row(task: Task) -> tuple[Any, ...]:
    """Serialize a task into column values ordered like TASK_COLUMNS."""
    data = task.model_dump()
    values = []
    for column in TASK_COLUMNS:
        value = data[column]
        if isinstance(value, datetime):
            values.append(value.isoformat())
        elif column == "labels":
            values.append(json.dumps(value))
        elif column in _BOOL_COLUMNS:
            values.append(int(bool(value)))
        elif column == "source":
            values.append(str(value))
        else:
            values.append(value)
    return tuple(values)


def row_to_task(row: dict[str, Any]) -> Task:
    """Deserialize a task row."""
    data = dict(row)
    data["labels"] = json.loads(data.get("labels") or "[]")
    for column in _BOOL_COLUMNS:
        data[column] = bool(data.get(column))
    return Task.model_validate(data)


_COLUMNS_SQL = ", ".join(TASK_COLUMNS)
_PLACEHOLDERS_SQL = ", ".join("?" for _ in TASK_COLUMNS)
_UPSERT_SET_SQL = ", ".join(f"{column} = excluded.{column}" for column in TASK_COLUMNS if column != "id")

_INSERT_SQL = f"INSERT INTO {constants.TASKS_TABLE} ({_COLUMNS_SQL}) VALUES ({_PLACEHOLDERS_SQL})"  # noqa: S608
_UPSERT_SQL = f"{_INSERT_SQL} ON CONFLICT(id) DO UPDATE SET {_UPSERT_SET_SQL}"
_DELETE_SQL = f"DELETE FROM {constants.TASKS_TABLE} WHERE id = ?"  # noqa: S608


class SqliteTaskStore:
    """Local task store backed by one SQLite file.

    The connection is opened lazily on first use and owned by this instance;
    call ``close()`` on shutdown.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._path = Path(db_path).resolve()
        self._conn: aiosqlite.Connection | None = None
        self._conn_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def connect(self) -> aiosqlite.Connection:
        """Open the connection and ensure the schema exists."""
        if self._conn is not None:
            return self._conn

        async with self._conn_lock:
            if self._conn is not None:
                return self._conn

            self._path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self._path))
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA journal_mode = WAL")
            await init_db(conn)

            self._conn = conn
            logger.info("Opened SQLite task store", extra={"db_path": str(self._path)})
            return conn

    async def close(self) -> None:
        """Close the connection if it is open."""
        if self._conn is None:
            return
        try:
            await self._conn.close()
            logger.info("Closed SQLite task store", extra={"db_path": str(self._path)})
        except Exception as e:
            logger.warning("Error closing SQLite task store", extra={"error": str(e)})
        finally:
            self._conn = None

    async def _select(self, where_clause: str, params: Sequence[Any], *, sort: str = "") -> list[Task]:
        safe_sort = "id ASC"
        if sort:
            sort_pattern = re.match(r"^([A-Za-z_][A-Za-z0-9_]*)\s*(ASC|DESC)?$", sort.strip(), re.IGNORECASE)
            if sort_pattern and sort_pattern.group(1) in TASK_COLUMNS:
                safe_sort = sort.strip()
            else:
                logger.warning("Invalid sort parameter, using default", extra={"sort": sort})

        where_sql = f"WHERE {where_clause}" if where_clause else ""
        query = f"SELECT {_COLUMNS_SQL} FROM {constants.TASKS_TABLE} {where_sql} ORDER BY {safe_sort}"  # noqa: S608

        try:
            conn = await self.connect()
            cursor = await conn.execute(query, list(params))
            rows = await cursor.fetchall()
            return [row_to_task(dict(row)) for row in rows]
        except (aiosqlite.Error, OSError, ValueError, ValidationError) as e:
            logger.error("find_tasks_failed", extra={"error": str(e)})
            msg = f"Failed to read tasks: {e}"
            raise StoreReadError(msg) from e

    async def find_all(self, filter_query: str = "", sort: str = "") -> list[Task]:
        """Return stored tasks, optionally filtered and sorted.

        Raises:
            ValueError: If the filter expression is invalid
            StoreReadError: If the store cannot be read
        """
        where_clause, params = parse_filter(filter_query)
        tasks = await self._select(where_clause, params, sort=sort)
        logger.info("Listed tasks", extra={"count": len(tasks)})
        return tasks

    async def find_by_ids(self, ids: Sequence[str]) -> list[Task]:
        """Return the stored tasks whose id is in ``ids``."""
        unique_ids = list(dict.fromkeys(str(task_id) for task_id in ids))
        tasks: list[Task] = []
        for start in range(0, len(unique_ids), _ID_CHUNK_SIZE):
            chunk = unique_ids[start : start + _ID_CHUNK_SIZE]
            placeholders = ", ".join("?" for _ in chunk)
            tasks.extend(await self._select(f"id IN ({placeholders})", chunk))
        return tasks

    async def count(self, filter_query: str = "") -> int:
        """Count stored tasks, optionally restricted by a filter expression.

        Raises:
            ValueError: If the filter expression is invalid
            StoreReadError: If the store cannot be read
        """
        where_clause, params = parse_filter(filter_query)
        where_sql = f"WHERE {where_clause}" if where_clause else ""
        query = f"SELECT COUNT(*) FROM {constants.TASKS_TABLE} {where_sql}"  # noqa: S608

        try:
            conn = await self.connect()
            cursor = await conn.execute(query, params)
            row = await cursor.fetchone()
            return int(row[0]) if row else 0
        except (aiosqlite.Error, OSError) as e:
            logger.error("count_tasks_failed", extra={"filter_query": filter_query, "error": str(e)})
            msg = f"Failed to count tasks: {e}"
            raise StoreReadError(msg) from e

    async def batch_write(
        self,
        *,
        inserts: Sequence[Task],
        updates: Sequence[Task],
        deletes: Sequence[str],
    ) -> None:
        """Apply inserts, upserts by id and deletes by id in a single transaction.

        Raises:
            StoreWriteError: If any statement fails; the whole batch is rolled back
        """
        try:
            conn = await self.connect()
        except (aiosqlite.Error, OSError) as e:
            msg = f"Failed to open task store: {e}"
            raise StoreWriteError(msg) from e

        try:
            insert_rows = [task_to_row(task) for task in inserts]
            update_rows = [task_to_row(task) for task in updates]

            if insert_rows:
                await conn.executemany(_INSERT_SQL, insert_rows)
            if update_rows:
                await conn.executemany(_UPSERT_SQL, update_rows)
            if deletes:
                await conn.executemany(_DELETE_SQL, [(task_id,) for task_id in deletes])
            await conn.commit()
        except Exception as e:
            await conn.rollback()
            logger.error(
                "batch_write_failed",
                extra={"inserts": len(inserts), "updates": len(updates), "deletes": len(deletes), "error": str(e)},
            )
            msg = f"Failed to write task batch: {e}"
            raise StoreWriteError(msg) from e

        logger.info(
            "batch_write_applied",
            extra={"inserts": len(inserts), "updates": len(updates), "deletes": len(deletes)},
        )
