"""Exception hierarchy shared by the client services and the companion API."""
from __future__ import annotations

from typing import Any


class StorageClientError(Exception):
    """Base class for failures talking to the storage backend."""


class TransportError(StorageClientError):
    """The request failed before any response arrived."""


class ServerError(StorageClientError):
    """The backend answered with a non-success status and a message."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class MalformedResponseError(StorageClientError):
    """The backend answered 200 but the body has an unexpected shape."""


class UploadInProgressError(StorageClientError):
    """Another upload session is still pending or active."""


class UploadRejectedError(StorageClientError):
    """The upload was refused before sending (missing file, too large)."""


class AppError(Exception):
    """Base exception for errors surfaced by the companion API."""

    status_code = 500
    error_code = "app_error"
    default_detail = "An unexpected error occurred."

    def __init__(self, detail: str | None = None, *, extra: dict[str, Any] | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail
        self.extra = extra or {}


class DomainError(AppError):
    """Normalized domain error surfaced to API handlers."""


class BadRequestError(DomainError):
    status_code = 400
    error_code = "bad_request"
    default_detail = "Invalid request."


class NotFoundError(DomainError):
    status_code = 404
    error_code = "not_found"
    default_detail = "Resource not found."


class ConflictError(DomainError):
    status_code = 409
    error_code = "conflict"
    default_detail = "Request conflict."


class BadGatewayError(DomainError):
    status_code = 502
    error_code = "bad_gateway"
    default_detail = "Storage backend failed."


class ServiceUnavailableError(DomainError):
    status_code = 503
    error_code = "service_unavailable"
    default_detail = "Storage backend unreachable."


def normalize_client_error(exc: StorageClientError) -> DomainError:
    """Map a backend client failure to the API error returned to the browser."""
    if isinstance(exc, UploadInProgressError):
        return ConflictError(str(exc) or "An upload is already in progress")
    if isinstance(exc, UploadRejectedError):
        return BadRequestError(str(exc))
    if isinstance(exc, ServerError):
        return BadGatewayError(exc.message, extra={"status": exc.status_code})
    if isinstance(exc, MalformedResponseError):
        return BadGatewayError(str(exc) or "Malformed backend response")
    return ServiceUnavailableError(str(exc) or ServiceUnavailableError.default_detail)
