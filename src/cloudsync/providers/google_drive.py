"""Google Drive backend (Drive API v3, appDataFolder space)."""

from __future__ import annotations

import json
import os
from typing import Any, Callable, Optional, Sequence

from cloudsync.auth import AuthInfo, google_installed_app_flow
from cloudsync.engine import Page
from cloudsync.models import CloudFile, CloudFolder, CloudItem, HashType, ProviderResult
from cloudsync.transport import HttpRequest
from cloudsync.util.ids import new_boundary
from cloudsync.util.mime import FOLDER_MIME, OCTET_STREAM, is_folder
from cloudsync.util.time import parse_optional_rfc3339

from .base import (
    RestProvider,
    empty_handler,
    expect_file,
    expect_folder,
    json_handler,
    lookup_handler,
    require_local_file,
)
from .fields import FILE_FIELDS, LIST_FIELDS

FILES_URL = "https://www.googleapis.com/drive/v3/files"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
TOKEN_URL = "https://oauth2.googleapis.com/token"
APP_DATA_FOLDER = "appDataFolder"


class GoogleDriveProvider(RestProvider):
    """Google Drive, storing files in the application's hidden appDataFolder."""

    name = "google"
    token_url = TOKEN_URL
    DEFAULT_SCOPES: tuple[str, ...] = ("https://www.googleapis.com/auth/drive.appdata",)

    def __init__(
        self,
        auth_info: AuthInfo,
        *,
        scopes: Optional[Sequence[str]] = None,
        **kwargs: Any,
    ) -> None:
        use_scopes = list(scopes) if scopes is not None else list(self.DEFAULT_SCOPES)
        kwargs.setdefault("consent_flow", google_installed_app_flow(auth_info, use_scopes))
        super().__init__(auth_info, **kwargs)

    # ----------------------------
    # Provider interface
    # ----------------------------
    def download_file(self, file: CloudFile, local_path: str) -> ProviderResult[None]:
        request = HttpRequest(url=f"{FILES_URL}/{file.id}", response_file=local_path)
        request.set_url_param("alt", "media")
        return self._execute(request, empty_handler)

    def upload_file(
        self,
        remote_dir: CloudFolder,
        remote_file: Optional[CloudFile],
        local_path: str,
    ) -> ProviderResult[CloudFile]:
        error = require_local_file(local_path)
        if error is not None:
            return ProviderResult.failure(error)

        if remote_file is not None:
            request = HttpRequest(
                url=f"{UPLOAD_URL}/{remote_file.id}",
                method="PATCH",
                body_file=local_path,
                log_body=False,
            )
            request.set_url_param("uploadType", "media")
            request.set_header("Content-Type", OCTET_STREAM)
        else:
            metadata = {"name": os.path.basename(local_path), "parents": [remote_dir.id]}
            request = HttpRequest(url=UPLOAD_URL, method="POST", log_body=False)
            request.set_url_param("uploadType", "multipart")
            _set_multipart_body(request, metadata, local_path)

        request.set_url_param("fields", FILE_FIELDS)
        return self._execute(request, json_handler(lambda d: expect_file(_parse_item(d))))

    def get_folder_metadata(self, name: str) -> ProviderResult[CloudFolder]:
        q = (
            f"name = '{_escape_query(name)}' and mimeType = '{FOLDER_MIME}'"
            f" and '{APP_DATA_FOLDER}' in parents and trashed = false"
        )
        return self._execute(
            self._query_request(q),
            lookup_handler(_find_first(expect_folder), {"folder_name": name}),
        )

    def get_file_metadata(self, file: CloudFile) -> ProviderResult[CloudFile]:
        request = HttpRequest(url=f"{FILES_URL}/{file.id}")
        request.set_url_param("fields", FILE_FIELDS)
        return self._execute(request, json_handler(lambda d: expect_file(_parse_item(d))))

    def get_file_metadata_by_name(
        self,
        folder: CloudFolder,
        name: str,
    ) -> ProviderResult[CloudFile]:
        q = f"{_build_parent_query(folder.id)} and name = '{_escape_query(name)}'"
        return self._execute(
            self._query_request(q),
            lookup_handler(_find_first(expect_file), {"folder_id": folder.id, "name": name}),
        )

    def delete_file(self, file: CloudFile) -> ProviderResult[None]:
        request = HttpRequest(url=f"{FILES_URL}/{file.id}", method="DELETE")
        return self._execute(request, empty_handler, success_statuses=(200, 204))

    def create_folder(self, name: str) -> ProviderResult[CloudFolder]:
        request = HttpRequest(url=FILES_URL, method="POST")
        request.set_url_param("fields", FILE_FIELDS)
        request.set_json_body(
            {"name": name, "mimeType": FOLDER_MIME, "parents": [APP_DATA_FOLDER]}
        )
        return self._execute(request, json_handler(lambda d: expect_folder(_parse_item(d))))

    # ----------------------------
    # Internals
    # ----------------------------
    def _list_request(self, folder: CloudFolder, token: Optional[str]) -> HttpRequest:
        request = HttpRequest(url=FILES_URL)
        request.set_url_param("q", _build_parent_query(folder.id))
        request.set_url_param("spaces", APP_DATA_FOLDER)
        request.set_url_param("fields", LIST_FIELDS)
        if token:
            request.set_url_param("pageToken", token)
        return request

    def _parse_list_page(self, payload: Any) -> Optional[Page]:
        if not isinstance(payload, dict):
            return None
        files = payload.get("files", [])
        if not isinstance(files, list):
            return None

        items = [item for item in (_parse_item(f) for f in files) if item is not None]
        token = payload.get("nextPageToken")
        return Page(items=items, next_token=token if isinstance(token, str) and token else None)

    def _query_request(self, q: str) -> HttpRequest:
        request = HttpRequest(url=FILES_URL)
        request.set_url_param("q", q)
        request.set_url_param("spaces", APP_DATA_FOLDER)
        request.set_url_param("fields", f"files({FILE_FIELDS})")
        return request


def _build_parent_query(parent_id: str) -> str:
    return f"'{_escape_query(parent_id)}' in parents and trashed = false"


def _escape_query(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _parse_item(data: Any) -> Optional[CloudItem]:
    """Parse a Drive file resource. Entries without id or mimeType are rejected."""
    if not isinstance(data, dict):
        return None
    file_id = data.get("id")
    mime_type = data.get("mimeType")
    if not isinstance(file_id, str) or not file_id or not isinstance(mime_type, str):
        return None

    name = data.get("name")
    name = name if isinstance(name, str) else ""
    modified = parse_optional_rfc3339(data.get("modifiedTime"))

    if is_folder(mime_type):
        return CloudFolder(id=file_id, name=name, last_sync_time=modified)

    md5 = data.get("md5Checksum")
    if isinstance(md5, str) and md5:
        return CloudFile(
            id=file_id,
            name=name,
            last_sync_time=modified,
            hash_type=HashType.MD5,
            hash_value=md5,
        )
    return CloudFile(id=file_id, name=name, last_sync_time=modified)


def _find_first(expect: Callable[[Optional[CloudItem]], Any]) -> Callable[[Any], Any]:
    """Build a `files.list` matcher returning the first item of the expected kind."""

    def find(payload: Any) -> Any:
        files = payload.get("files", []) if isinstance(payload, dict) else None
        if not isinstance(files, list):
            raise ValueError("files.list response without a files array")
        for entry in files:
            match = expect(_parse_item(entry))
            if match is not None:
                return match
        return None

    return find


def _set_multipart_body(request: HttpRequest, metadata: dict[str, Any], local_path: str) -> None:
    boundary = new_boundary()
    with open(local_path, "rb") as f:
        content = f.read()

    parts = [
        f"--{boundary}\r\n".encode("ascii"),
        b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
        json.dumps(metadata).encode("utf-8"),
        b"\r\n",
        f"--{boundary}\r\n".encode("ascii"),
        f"Content-Type: {OCTET_STREAM}\r\n\r\n".encode("ascii"),
        content,
        b"\r\n",
        f"--{boundary}--\r\n".encode("ascii"),
    ]
    request.body = b"".join(parts)
    request.set_header("Content-Type", f"multipart/related; boundary={boundary}")
