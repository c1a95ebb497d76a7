"""Public error exports for cloudsync."""

from __future__ import annotations

from .exceptions import (
    ApiError,
    AuthError,
    CloudSyncError,
    ConflictError,
    HttpErrorInfo,
    HttpStatusError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    ParseError,
    PermissionError,
    RateLimitError,
    TransportError,
    map_http_error,
)

__all__ = [
    "CloudSyncError",
    "InvalidStateError",
    "TransportError",
    "ParseError",
    "HttpStatusError",
    "AuthError",
    "PermissionError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "ApiError",
    "HttpErrorInfo",
    "map_http_error",
]
