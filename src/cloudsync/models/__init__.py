"""Public model exports for cloudsync."""

from __future__ import annotations

from .item import CloudFile, CloudFolder, CloudItem, HashType, ItemType
from .results import (
    ErrorKind,
    FileSyncResult,
    FileSyncStatus,
    ProviderResult,
    SyncResult,
    classify_error,
)

__all__ = [
    "CloudItem",
    "CloudFile",
    "CloudFolder",
    "HashType",
    "ItemType",
    "ErrorKind",
    "ProviderResult",
    "FileSyncStatus",
    "FileSyncResult",
    "SyncResult",
    "classify_error",
]
