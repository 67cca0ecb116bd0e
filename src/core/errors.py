"""Error taxonomy for the sync pipeline and its mapping to HTTP responses."""

from enum import Enum

from pydantic import BaseModel

from src.core.config import constants


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Remote source errors
    ERR_REMOTE_UNAVAILABLE = "ERR_REMOTE_UNAVAILABLE"
    ERR_REMOTE_AUTH = "ERR_REMOTE_AUTH"

    # Local store errors
    ERR_STORE_READ = "ERR_STORE_READ"
    ERR_STORE_WRITE = "ERR_STORE_WRITE"

    # Sync errors
    ERR_MAPPING_ANOMALY = "ERR_MAPPING_ANOMALY"
    ERR_SYNC_IN_PROGRESS = "ERR_SYNC_IN_PROGRESS"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class SyncError(Exception):
    """Base class for every failure raised by the sync pipeline."""

    code: str = ErrorCode.ERR_UNKNOWN


class RemoteUnavailable(SyncError):  # noqa: N818
    """The remote task source could not be read (network, rate limit, server error)."""

    code = ErrorCode.ERR_REMOTE_UNAVAILABLE

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteAuthError(RemoteUnavailable):
    """The remote task source rejected our credentials."""

    code = ErrorCode.ERR_REMOTE_AUTH


class StoreError(SyncError):
    """Base class for local store failures."""


class StoreReadError(StoreError):
    """The local snapshot could not be obtained."""

    code = ErrorCode.ERR_STORE_READ


class StoreWriteError(StoreError):
    """A batch write failed; no operation of the batch is guaranteed applied."""

    code = ErrorCode.ERR_STORE_WRITE


class MappingAnomaly(SyncError):  # noqa: N818
    """A single remote record cannot be mapped (no id, no content).

    Raised per record and caught by the pipeline, which skips the record
    and keeps going.
    """

    code = ErrorCode.ERR_MAPPING_ANOMALY

    def __init__(self, message: str, *, raw: object = None) -> None:
        super().__init__(message)
        self.raw = raw


class SyncInProgressError(SyncError):
    """Another sync is already running against the same store."""

    code = ErrorCode.ERR_SYNC_IN_PROGRESS


class ErrorResponse(BaseModel):
    """Structured error payload returned by the HTTP layer."""

    error: str
    code: str
    details: str
    severity: ErrorSeverity


def error_response_for(exception: Exception) -> tuple[int, ErrorResponse]:
    """Map an exception to an HTTP status code and structured error body.

    Args:
        exception: The exception raised while serving the request

    Returns:
        Tuple of (status_code, ErrorResponse)
    """
    details = str(exception)

    if isinstance(exception, SyncInProgressError):
        return constants.HTTP_CONFLICT, ErrorResponse(
            error="A sync is already running. Try again when it finishes.",
            code=exception.code,
            details=details,
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, RemoteAuthError):
        return constants.HTTP_BAD_GATEWAY, ErrorResponse(
            error="Todoist rejected the configured API token.",
            code=exception.code,
            details=details,
            severity=ErrorSeverity.CRITICAL,
        )

    if isinstance(exception, RemoteUnavailable):
        return constants.HTTP_BAD_GATEWAY, ErrorResponse(
            error="Failed to fetch tasks from Todoist.",
            code=exception.code,
            details=details,
            severity=ErrorSeverity.HIGH,
        )

    if isinstance(exception, StoreWriteError):
        return constants.HTTP_SERVER_ERROR, ErrorResponse(
            error="Failed to write tasks to the local store. No changes are guaranteed applied.",
            code=exception.code,
            details=details,
            severity=ErrorSeverity.HIGH,
        )

    if isinstance(exception, StoreReadError):
        return constants.HTTP_SERVER_ERROR, ErrorResponse(
            error="Failed to read tasks from the local store.",
            code=exception.code,
            details=details,
            severity=ErrorSeverity.HIGH,
        )

    return constants.HTTP_SERVER_ERROR, ErrorResponse(
        error="An unexpected error occurred.",
        code=ErrorCode.ERR_UNKNOWN,
        details=details,
        severity=ErrorSeverity.MEDIUM,
    )
