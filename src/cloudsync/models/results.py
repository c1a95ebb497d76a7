"""Typed results returned across the provider interface."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Literal, Optional, TypeVar

from cloudsync.errors import (
    AuthError,
    CloudSyncError,
    HttpStatusError,
    InvalidStateError,
    NotFoundError,
    ParseError,
    TransportError,
)

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Discriminator for the failure carried by a ProviderResult."""

    NONE = "none"
    TRANSPORT = "transport"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    HTTP = "http"
    PARSE = "parse"
    INVALID_STATE = "invalid_state"


def classify_error(error: Optional[CloudSyncError]) -> ErrorKind:
    if error is None:
        return ErrorKind.NONE
    if isinstance(error, TransportError):
        return ErrorKind.TRANSPORT
    if isinstance(error, AuthError):
        return ErrorKind.UNAUTHORIZED
    if isinstance(error, NotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(error, HttpStatusError):
        return ErrorKind.HTTP
    if isinstance(error, ParseError):
        return ErrorKind.PARSE
    if isinstance(error, InvalidStateError):
        return ErrorKind.INVALID_STATE
    return ErrorKind.HTTP


@dataclass(slots=True)
class ProviderResult(Generic[T]):
    """
    Outcome of one provider operation.

    Exactly one of `value`/`error` is meaningful: a result is successful when
    `error` is None (the value may legitimately be None, e.g. for delete).
    Truthiness equals success.
    """

    value: Optional[T] = None
    error: Optional[CloudSyncError] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "ProviderResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: CloudSyncError) -> "ProviderResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind:
        return classify_error(self.error)

    def unwrap(self) -> T:
        """Return the value, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def __bool__(self) -> bool:
        return self.ok


FileSyncStatus = Literal["uploaded", "downloaded", "unchanged", "failed"]


@dataclass(slots=True)
class FileSyncResult:
    """Result for a single file handled by a folder sync."""

    name: str
    status: FileSyncStatus

    error_type: Optional[str] = None
    error_message: Optional[str] = None
    error_details: Optional[dict[str, Any]] = None


@dataclass(slots=True)
class SyncResult:
    """Aggregate result for CloudStorageManager.sync_folder."""

    folder_name: str
    results: list[FileSyncResult] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(r.status != "failed" for r in self.results)
