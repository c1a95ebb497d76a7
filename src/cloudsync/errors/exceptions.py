"""Exception hierarchy and HTTP error mapping for cloudsync."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class CloudSyncError(Exception):
    """
    Base exception for cloudsync.

    Attributes:
        details: Optional structured information (e.g., HTTP status, provider).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class InvalidStateError(CloudSyncError):
    """Raised when the library is used in an invalid state (e.g., no active provider)."""


class TransportError(CloudSyncError):
    """Raised when no response reached the engine (connection, TLS, timeout)."""


class ParseError(CloudSyncError):
    """Raised when a response body is malformed or has an unexpected shape."""


class HttpStatusError(CloudSyncError):
    """Raised for a non-2xx response. `details['status_code']` holds the status."""

    @property
    def status_code(self) -> int:
        return int(self.details.get("status_code") or 0)


class AuthError(HttpStatusError):
    """Raised when a request is unauthorized or a token refresh fails."""


class PermissionError(HttpStatusError):
    """Raised when access is denied (HTTP 403)."""


class InvalidArgumentError(HttpStatusError):
    """Raised when request arguments are invalid (HTTP 400, bad local input)."""


class NotFoundError(HttpStatusError):
    """Raised when a remote item is not found (HTTP 404 or provider equivalent)."""


class ConflictError(HttpStatusError):
    """Raised when a conflict occurs (HTTP 409/412)."""


class RateLimitError(HttpStatusError):
    """Raised when rate-limited (HTTP 429)."""


class ApiError(HttpStatusError):
    """Raised for unclassified API errors (5xx, unknown 4xx, etc.)."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to cloudsync exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> CloudSyncError:
    """
    Map an HTTP error to a cloudsync exception.

    Policy:
        - 400 -> InvalidArgumentError
        - 401 -> AuthError
        - 403 -> PermissionError
        - 404 -> NotFoundError
        - 409/412 -> ConflictError
        - 429 -> RateLimitError
        - 5xx and anything else -> ApiError
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP error {info.status_code}"

    if info.status_code == 400:
        return InvalidArgumentError(message, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 403:
        return PermissionError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code in (409, 412):
        return ConflictError(message, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(message, details=details, cause=cause)

    return ApiError(message, details=details, cause=cause)
