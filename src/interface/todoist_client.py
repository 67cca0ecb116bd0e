"""Todoist API client: active tasks (REST) and completed tasks (Sync) with retry logic."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import httpx

from src.core.clock import utc_now
from src.core.config import Settings, constants
from src.core.errors import RemoteAuthError, RemoteUnavailable
from src.core.logging import span


logger = logging.getLogger(__name__)

# Hard stop for the completed feed in case the API keeps returning full pages
MAX_COMPLETED_PAGES = 50


def _retry_after_seconds(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value and value.strip().isdigit():
        return float(value.strip())
    return None


class TodoistClient:
    """Read-only Todoist client.

    Authentication uses a Bearer token. Transient failures (transport errors,
    429 and 5xx responses) are retried with exponential backoff; auth failures
    are not retried.
    """

    def __init__(
        self,
        *,
        api_token: str,
        rest_url: str = "https://api.todoist.com/rest/v2",
        sync_url: str = "https://api.todoist.com/sync/v9",
        completed_lookback_days: int = 30,
        completed_page_size: int = 200,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = constants.API_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._headers = {"Authorization": f"Bearer {api_token}"}
        self._rest_url = rest_url.rstrip("/")
        self._sync_url = sync_url.rstrip("/")
        self._lookback_days = completed_lookback_days
        self._page_size = completed_page_size
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay
        self._timeout = timeout
        self._transport = transport
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "TodoistClient":
        """Build a client from application settings.

        Raises:
            ValueError: If no Todoist API token is configured
        """
        return cls(
            api_token=settings.require_credential("todoist_api_token", "Todoist API token"),
            rest_url=settings.todoist_rest_url,
            sync_url=settings.todoist_sync_url,
            completed_lookback_days=settings.completed_lookback_days,
            completed_page_size=settings.completed_page_size,
            max_retries=settings.remote_max_retries,
            retry_delay=settings.remote_retry_delay,
            **kwargs,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, headers=self._headers, transport=self._transport)

    async def _get_json(self, client: httpx.AsyncClient, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET a JSON document with retry on transient failures."""
        for attempt in range(self._max_retries):
            is_last_attempt = attempt == self._max_retries - 1
            delay = self._retry_delay * (2**attempt)

            try:
                response = await client.get(url, params=params)
            except httpx.TransportError as e:
                logger.warning("todoist_request_error", extra={"url": url, "attempt": attempt + 1, "error": str(e)})
                if is_last_attempt:
                    msg = f"Todoist request to {url} failed after {self._max_retries} attempts: {e}"
                    raise RemoteUnavailable(msg) from e
                await asyncio.sleep(delay)
                continue

            if response.is_success:
                try:
                    return response.json()
                except ValueError as e:
                    msg = f"Todoist returned invalid JSON from {url}"
                    raise RemoteUnavailable(msg, status_code=response.status_code) from e

            status_code = response.status_code
            if status_code in (constants.HTTP_UNAUTHORIZED, constants.HTTP_FORBIDDEN):
                logger.error("todoist_auth_failed", extra={"url": url, "status_code": status_code})
                msg = f"Todoist rejected the API token ({status_code})"
                raise RemoteAuthError(msg, status_code=status_code)

            if status_code == constants.HTTP_TOO_MANY_REQUESTS or status_code >= constants.HTTP_SERVER_ERROR:
                logger.warning(
                    "todoist_request_retryable",
                    extra={"url": url, "attempt": attempt + 1, "status_code": status_code},
                )
                if is_last_attempt:
                    msg = f"Todoist returned {status_code} from {url} after {self._max_retries} attempts"
                    raise RemoteUnavailable(msg, status_code=status_code)
                await asyncio.sleep(max(delay, _retry_after_seconds(response) or 0.0))
                continue

            msg = f"Todoist returned {status_code} from {url}: {response.text[:200]}"
            raise RemoteUnavailable(msg, status_code=status_code)

        msg = f"Todoist request to {url} exhausted retries"
        raise RemoteUnavailable(msg)

    async def _fetch_active(self, client: httpx.AsyncClient) -> list[dict[str, Any]]:
        data = await self._get_json(client, f"{self._rest_url}/tasks")
        if not isinstance(data, list):
            msg = f"Unexpected active tasks payload: {type(data).__name__}"
            raise RemoteUnavailable(msg)

        logger.info("Fetched active tasks", extra={"count": len(data)})
        return data

    async def _fetch_completed(self, client: httpx.AsyncClient) -> list[dict[str, Any]]:
        since = (self._clock() - timedelta(days=self._lookback_days)).strftime("%Y-%m-%dT00:00")
        items: list[dict[str, Any]] = []

        for page in range(MAX_COMPLETED_PAGES):
            params = {"since": since, "limit": self._page_size, "offset": page * self._page_size}
            data = await self._get_json(client, f"{self._sync_url}/completed/get_all", params=params)
            page_items = data.get("items") if isinstance(data, dict) else None
            if not isinstance(page_items, list):
                msg = "Unexpected completed tasks payload"
                raise RemoteUnavailable(msg)

            items.extend(page_items)
            if len(page_items) < self._page_size:
                break
        else:
            logger.warning("completed_feed_truncated", extra={"pages": MAX_COMPLETED_PAGES, "count": len(items)})

        logger.info("Fetched completed tasks", extra={"count": len(items), "since": since})
        return [
            {**item, "is_completed": True, "completed_at": item.get("completed_at") or item.get("completed_date")}
            for item in items
        ]

    async def fetch_active(self) -> list[dict[str, Any]]:
        """Fetch active (uncompleted) tasks from the REST API."""
        async with self._client() as client:
            return await self._fetch_active(client)

    async def fetch_completed(self) -> list[dict[str, Any]]:
        """Fetch tasks completed within the lookback window from the Sync API.

        Each item is tagged ``is_completed=True`` with ``completed_at`` filled
        from ``completed_date`` when the API only provides the latter.
        """
        async with self._client() as client:
            return await self._fetch_completed(client)

    async def fetch_all(self) -> list[dict[str, Any]]:
        """Fetch active and completed tasks concurrently (active first)."""
        with span("todoist_client.fetch_all"):
            async with self._client() as client:
                active, completed = await asyncio.gather(self._fetch_active(client), self._fetch_completed(client))

            logger.info(
                "Fetched all tasks",
                extra={"total": len(active) + len(completed), "active": len(active), "completed": len(completed)},
            )
            return [*active, *completed]
