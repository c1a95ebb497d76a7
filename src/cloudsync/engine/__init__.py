"""Request/continuation engine shared by all backends."""

from __future__ import annotations

from .operation import (
    ContinuationData,
    OperationState,
    RestOperation,
    error_from_response,
    fail_with_status,
)
from .pagination import Page, PageFetcher, paginate_into

__all__ = [
    "ContinuationData",
    "OperationState",
    "RestOperation",
    "error_from_response",
    "fail_with_status",
    "Page",
    "PageFetcher",
    "paginate_into",
]
