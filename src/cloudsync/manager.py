"""CloudStorageManager: provider registry, well-known folders and folder sync."""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Callable, Mapping, Optional, Sequence

from cloudsync.errors import (
    AuthError,
    CloudSyncError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from cloudsync.models import CloudFile, CloudFolder, FileSyncResult, SyncResult
from cloudsync.providers import AuthorizationStatus, AuthorizeCallback, CloudStorageProvider
from cloudsync.util.hashing import local_matches_remote

logger = logging.getLogger(__name__)


class FolderType(str, Enum):
    GAME_SAVES = "game_saves"
    GAME_STATES = "game_states"
    RUNTIME_LOGS = "runtime_logs"
    SCREENSHOTS = "screenshots"


DEFAULT_FOLDER_NAMES: dict[FolderType, str] = {
    FolderType.GAME_SAVES: "save_games",
    FolderType.GAME_STATES: "save_states",
    FolderType.RUNTIME_LOGS: "runtime_logs",
    FolderType.SCREENSHOTS: "screenshots",
}


class CloudStorageManager:
    """
    Front end over interchangeable providers.

    Policy:
        - Provider results are unwrapped: failures raise cloudsync errors.
        - sync_folder records per-file failures and keeps going, except for
          AuthError, which is re-raised.
        - Local content wins when hashes differ; there is no conflict
          resolution.
    """

    def __init__(
        self,
        providers: Sequence[CloudStorageProvider] = (),
        *,
        folder_names: Optional[Mapping[FolderType, str]] = None,
    ) -> None:
        self._providers: dict[str, CloudStorageProvider] = {}
        self._active: Optional[str] = None
        self._folder_names = dict(DEFAULT_FOLDER_NAMES)
        if folder_names:
            self._folder_names.update(folder_names)
        self._folders: dict[tuple[str, FolderType], CloudFolder] = {}

        for provider in providers:
            self.register(provider)

    # ----------------------------
    # Providers
    # ----------------------------
    def register(self, provider: CloudStorageProvider) -> None:
        if not provider.name:
            raise InvalidArgumentError("provider has no name")
        if provider.name in self._providers:
            raise InvalidArgumentError(
                "Provider already registered",
                details={"provider": provider.name},
            )
        self._providers[provider.name] = provider
        if self._active is None:
            self._active = provider.name

    def set_active_provider(self, name: str) -> None:
        if name not in self._providers:
            raise InvalidArgumentError("Unknown provider", details={"provider": name})
        self._active = name

    @property
    def provider_names(self) -> list[str]:
        return list(self._providers)

    @property
    def active_provider(self) -> CloudStorageProvider:
        if self._active is None:
            raise InvalidStateError("No provider registered")
        return self._providers[self._active]

    def need_authorization(self) -> bool:
        return self.active_provider.need_authorization

    def have_default_credentials(self) -> bool:
        return self.active_provider.have_default_credentials()

    def authorize(self, callback: AuthorizeCallback) -> AuthorizationStatus:
        return self.active_provider.authorize(callback)

    def shutdown(self) -> None:
        self._providers.clear()
        self._folders.clear()
        self._active = None

    # ----------------------------
    # Folders and files
    # ----------------------------
    def folder_name(self, folder_type: FolderType) -> str:
        return self._folder_names[folder_type]

    def resolve_folder(self, folder_type: FolderType) -> CloudFolder:
        """Return the remote folder for a role, creating it when missing."""
        provider = self.active_provider
        key = (provider.name, folder_type)
        cached = self._folders.get(key)
        if cached is not None:
            return cached

        name = self.folder_name(folder_type)
        result = provider.get_folder_metadata(name)
        if not result.ok and isinstance(result.error, NotFoundError):
            logger.info("%s: creating folder %s", provider.name, name)
            result = provider.create_folder(name)

        folder = result.unwrap()
        self._folders[key] = folder
        return folder

    def upload_file(self, folder_type: FolderType, local_path: str) -> CloudFile:
        """Upload one local file into a role folder, replacing a same-named remote file."""
        provider = self.active_provider
        folder = self.resolve_folder(folder_type)
        listing = _fresh_listing(folder)
        provider.list_files(listing).unwrap()

        existing = listing.find_child(os.path.basename(local_path))
        remote_file = existing if isinstance(existing, CloudFile) else None
        return provider.upload_file(folder, remote_file, local_path).unwrap()

    def sync_folder(self, folder_type: FolderType, local_dir: str) -> SyncResult:
        """
        Synchronize a local directory with a role folder.

        - local files missing remotely or with a different hash are uploaded
        - remote files missing locally are downloaded
        """
        if not os.path.isdir(local_dir):
            raise InvalidArgumentError(
                "local_dir must be an existing directory",
                details={"local_dir": local_dir},
            )

        provider = self.active_provider
        folder = self.resolve_folder(folder_type)
        listing = _fresh_listing(folder)
        provider.list_files(listing).unwrap()
        remote_files = {f.name: f for f in listing.files()}

        local_names = sorted(
            name for name in os.listdir(local_dir)
            if os.path.isfile(os.path.join(local_dir, name))
        )

        def push(local_path: str, remote_file: Optional[CloudFile]) -> str:
            if remote_file is not None and _same_content(local_path, remote_file):
                return "unchanged"
            provider.upload_file(folder, remote_file, local_path).unwrap()
            return "uploaded"

        def pull(remote_file: CloudFile, local_path: str) -> str:
            provider.download_file(remote_file, local_path).unwrap()
            return "downloaded"

        results: list[FileSyncResult] = []
        for name in local_names:
            local_path = os.path.join(local_dir, name)
            results.append(
                _run_file_step(name, lambda: push(local_path, remote_files.get(name)))
            )

        for name, remote_file in remote_files.items():
            if name in local_names:
                continue
            local_path = os.path.join(local_dir, name)
            results.append(_run_file_step(name, lambda: pull(remote_file, local_path)))

        summary = _summarize_results(results)
        logger.info(
            "%s: synced %s (%s)",
            provider.name,
            folder.name,
            ", ".join(f"{k}={v}" for k, v in summary.items()),
        )
        return SyncResult(folder_name=folder.name, results=results, summary=summary)


def _fresh_listing(folder: CloudFolder) -> CloudFolder:
    return CloudFolder(
        id=folder.id,
        name=folder.name,
        last_sync_time=folder.last_sync_time,
        path=folder.path,
    )


def _same_content(local_path: str, remote_file: CloudFile) -> bool:
    try:
        return local_matches_remote(local_path, remote_file)
    except OSError as exc:
        raise InvalidArgumentError(
            "Cannot read local file",
            details={"local_path": local_path},
            cause=exc,
        ) from exc


def _run_file_step(name: str, step: Callable[[], str]) -> FileSyncResult:
    try:
        status = step()
    except AuthError:
        raise
    except CloudSyncError as exc:
        logger.warning("Sync of %s failed: %s", name, exc)
        return FileSyncResult(
            name=name,
            status="failed",
            error_type=exc.__class__.__name__,
            error_message=str(exc),
            error_details=exc.details,
        )
    return FileSyncResult(name=name, status=status)  # type: ignore[arg-type]


def _summarize_results(results: list[FileSyncResult]) -> dict[str, int]:
    summary: dict[str, int] = {"uploaded": 0, "downloaded": 0, "unchanged": 0, "failed": 0}
    for r in results:
        summary[r.status] = summary.get(r.status, 0) + 1
    return summary
