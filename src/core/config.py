"""Configuration management for todoist-sync."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Todoist Configuration
    todoist_api_token: str | None = Field(default=None, description="Todoist API token (Bearer auth)")
    todoist_rest_url: str = Field(
        default="https://api.todoist.com/rest/v2", description="Todoist REST API base URL (active tasks)"
    )
    todoist_sync_url: str = Field(
        default="https://api.todoist.com/sync/v9", description="Todoist Sync API base URL (completed tasks)"
    )
    completed_lookback_days: int = Field(
        default=30, description="How many days of completed tasks to pull from Todoist"
    )
    completed_page_size: int = Field(default=200, description="Page size for the completed tasks feed (API max 200)")
    remote_max_retries: int = Field(default=3, description="Attempts per Todoist request before giving up")
    remote_retry_delay: float = Field(default=1.0, description="Base delay in seconds for exponential backoff")

    # SQLite Configuration
    sqlite_db_path: str = Field(default="data/tasks.db", description="Path to the local SQLite task store")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="production", description="Deployment environment name")

    # Scheduled Sync (optional)
    sync_interval_minutes: int | None = Field(
        default=None, description="Run a sync every N minutes in the background (disabled when unset)"
    )

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # HTTP Status Codes
    HTTP_UNAUTHORIZED: int = 401
    HTTP_FORBIDDEN: int = 403
    HTTP_CONFLICT: int = 409
    HTTP_TOO_MANY_REQUESTS: int = 429
    HTTP_SERVER_ERROR: int = 500
    HTTP_BAD_GATEWAY: int = 502

    # Sync Provenance
    SYNC_ACTOR: str = "todoist-sync"
    TASK_URL_TEMPLATE: str = "https://app.todoist.com/app/task/{task_id}"

    # Task Defaults
    DEFAULT_PRIORITY: int = 4
    MIN_PRIORITY: int = 1
    MAX_PRIORITY: int = 4

    # Store
    TASKS_TABLE: str = "tasks"


def get_settings() -> Settings:
    """Build application settings from the environment."""
    return Settings()


constants = Constants()
