"""Dropbox backend (API v2, app folder, static access token)."""

from __future__ import annotations

import json
import os
from typing import Any, Optional

from cloudsync.engine import OperationState, Page
from cloudsync.engine.operation import error_from_response
from cloudsync.errors import NotFoundError
from cloudsync.models import CloudFile, CloudFolder, CloudItem, HashType, ProviderResult
from cloudsync.transport import HttpRequest, HttpResponse
from cloudsync.util.mime import OCTET_STREAM
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

API_URL = "https://api.dropboxapi.com/2"
CONTENT_URL = "https://content.dropboxapi.com/2"

_API_ARG_HEADER = "Dropbox-API-Arg"


class DropboxProvider(RestProvider):
    """
    Dropbox with a long-lived access token.

    Items are addressed by path where known (`CloudItem.path`), falling back
    to the `id:` form. The app folder root is the empty path.
    """

    name = "dropbox"
    supported_auth_kinds = ("static",)

    @staticmethod
    def root_folder() -> CloudFolder:
        return CloudFolder(id="", name="", path="")

    def download_file(self, file: CloudFile, local_path: str) -> ProviderResult[None]:
        request = HttpRequest(
            url=f"{CONTENT_URL}/files/download",
            method="POST",
            response_file=local_path,
        )
        request.set_header(_API_ARG_HEADER, json.dumps({"path": _address(file)}))
        return self._execute(request, empty_handler, handlers={409: _path_error_handler})

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
            target = _address(remote_file)
        else:
            target = _child_path(remote_dir, os.path.basename(local_path))

        request = HttpRequest(
            url=f"{CONTENT_URL}/files/upload",
            method="POST",
            body_file=local_path,
            log_body=False,
        )
        request.set_header("Content-Type", OCTET_STREAM)
        request.set_header(
            _API_ARG_HEADER,
            json.dumps({"path": target, "mode": "overwrite", "mute": True}),
        )
        return self._execute(
            request,
            json_handler(lambda d: expect_file(_parse_item(d, default_tag="file"))),
            handlers={409: _path_error_handler},
        )

    def get_folder_metadata(self, name: str) -> ProviderResult[CloudFolder]:
        return self._get_metadata(f"/{name}", expect_folder, {"folder_name": name})

    def get_file_metadata(self, file: CloudFile) -> ProviderResult[CloudFile]:
        return self._get_metadata(file.id or _address(file), expect_file, {"file_id": file.id})

    def get_file_metadata_by_name(
        self,
        folder: CloudFolder,
        name: str,
    ) -> ProviderResult[CloudFile]:
        return self._get_metadata(
            _child_path(folder, name),
            expect_file,
            {"folder_id": folder.id, "name": name},
        )

    def delete_file(self, file: CloudFile) -> ProviderResult[None]:
        request = HttpRequest(url=f"{API_URL}/files/delete_v2", method="POST")
        request.set_json_body({"path": _address(file)})
        return self._execute(request, empty_handler, handlers={409: _path_error_handler})

    def create_folder(self, name: str) -> ProviderResult[CloudFolder]:
        request = HttpRequest(url=f"{API_URL}/files/create_folder_v2", method="POST")
        request.set_json_body({"path": f"/{name}", "autorename": False})
        return self._execute(
            request,
            json_handler(_parse_created_folder),
            handlers={409: _path_error_handler},
        )

    def _get_metadata(self, path: str, expect: Any, details: dict[str, Any]) -> ProviderResult[Any]:
        request = HttpRequest(url=f"{API_URL}/files/get_metadata", method="POST")
        request.set_json_body({"path": path})

        def find(payload: Any) -> Any:
            if not isinstance(payload, dict):
                raise ValueError("metadata response is not an object")
            return expect(_parse_item(payload))

        return self._execute(
            request,
            lookup_handler(find, details),
            handlers={409: _path_error_handler},
        )

    def _list_request(self, folder: CloudFolder, token: Optional[str]) -> HttpRequest:
        if token:
            request = HttpRequest(url=f"{API_URL}/files/list_folder/continue", method="POST")
            request.set_json_body({"cursor": token})
        else:
            request = HttpRequest(url=f"{API_URL}/files/list_folder", method="POST")
            request.set_json_body({"path": _address(folder)})
        return request

    def _parse_list_page(self, payload: Any) -> Optional[Page]:
        if not isinstance(payload, dict):
            return None
        entries = payload.get("entries", [])
        if not isinstance(entries, list):
            return None

        items = [item for item in (_parse_item(e) for e in entries) if item is not None]
        cursor = payload.get("cursor")
        has_more = payload.get("has_more") is True
        return Page(
            items=items,
            next_token=cursor if has_more and isinstance(cursor, str) and cursor else None,
        )


def _address(item: CloudItem) -> str:
    if item.path is not None:
        return item.path
    return item.id


def _child_path(folder: CloudFolder, name: str) -> str:
    base = folder.path if folder.path is not None else ""
    return f"{base.rstrip('/')}/{name}"


def _parse_item(data: Any, *, default_tag: Optional[str] = None) -> Optional[CloudItem]:
    """Parse a Dropbox metadata object. The `.tag` discriminator is required."""
    if not isinstance(data, dict):
        return None
    tag = data.get(".tag", default_tag)
    item_id = data.get("id")
    if tag not in ("file", "folder") or not isinstance(item_id, str) or not item_id:
        return None

    name = data.get("name")
    name = name if isinstance(name, str) else ""
    path = data.get("path_display")
    path = path if isinstance(path, str) else None

    if tag == "folder":
        return CloudFolder(id=item_id, name=name, path=path)

    content_hash = data.get("content_hash")
    has_hash = isinstance(content_hash, str) and bool(content_hash)
    return CloudFile(
        id=item_id,
        name=name,
        path=path,
        last_sync_time=parse_optional_rfc3339(data.get("server_modified")),
        hash_type=HashType.DROPBOX if has_hash else HashType.NONE,
        hash_value=content_hash if has_hash else "",
    )


def _parse_created_folder(payload: Any) -> Optional[CloudFolder]:
    if not isinstance(payload, dict):
        return None
    return expect_folder(_parse_item(payload.get("metadata"), default_tag="folder"))


def _path_error_handler(
    request: HttpRequest,
    response: HttpResponse,
    state: OperationState[Any],
) -> None:
    """Dropbox reports path errors as 409 with an `error_summary` such as 'path/not_found/..'."""
    error = error_from_response(response, details={"url": request.url})
    reason = error.details.get("reason") or ""
    if "not_found" in reason:
        state.fail(NotFoundError(str(error), details=error.details))
        return
    state.fail(error)
