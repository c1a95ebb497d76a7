"""cloudsync public API."""

from __future__ import annotations

from cloudsync.auth import (
    AccessToken,
    AuthInfo,
    AuthManager,
    AuthStatus,
    JsonFileCredentialStore,
    MemoryCredentialStore,
    ProviderState,
)
from cloudsync.engine import OperationState, Page, RestOperation, paginate_into
from cloudsync.errors import (
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
from cloudsync.manager import DEFAULT_FOLDER_NAMES, CloudStorageManager, FolderType
from cloudsync.models import (
    CloudFile,
    CloudFolder,
    CloudItem,
    ErrorKind,
    FileSyncResult,
    HashType,
    ItemType,
    ProviderResult,
    SyncResult,
)
from cloudsync.providers import (
    AuthorizationStatus,
    CloudStorageProvider,
    DropboxProvider,
    GoogleDriveProvider,
    OneDriveProvider,
    RestProvider,
)
from cloudsync.transport import HttpRequest, HttpResponse, RequestsTransport, Transport

__all__ = [
    # High-level
    "CloudStorageManager",
    "FolderType",
    "DEFAULT_FOLDER_NAMES",
    # Providers
    "CloudStorageProvider",
    "RestProvider",
    "GoogleDriveProvider",
    "OneDriveProvider",
    "DropboxProvider",
    "AuthorizationStatus",
    # Auth
    "AuthInfo",
    "AuthManager",
    "AuthStatus",
    "AccessToken",
    "ProviderState",
    "JsonFileCredentialStore",
    "MemoryCredentialStore",
    # Engine / transport
    "OperationState",
    "RestOperation",
    "Page",
    "paginate_into",
    "HttpRequest",
    "HttpResponse",
    "Transport",
    "RequestsTransport",
    # Models
    "CloudItem",
    "CloudFile",
    "CloudFolder",
    "HashType",
    "ItemType",
    "ProviderResult",
    "ErrorKind",
    "FileSyncResult",
    "SyncResult",
    # Errors
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
