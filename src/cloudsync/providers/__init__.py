"""Cloud storage backends."""

from __future__ import annotations

from .base import AuthorizationStatus, AuthorizeCallback, CloudStorageProvider, RestProvider
from .dropbox import DropboxProvider
from .google_drive import GoogleDriveProvider
from .onedrive import OneDriveProvider

__all__ = [
    "AuthorizationStatus",
    "AuthorizeCallback",
    "CloudStorageProvider",
    "RestProvider",
    "GoogleDriveProvider",
    "OneDriveProvider",
    "DropboxProvider",
]
