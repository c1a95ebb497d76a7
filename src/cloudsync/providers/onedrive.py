"""OneDrive backend (Microsoft Graph, application folder)."""

from __future__ import annotations

import os
from typing import Any, Callable, Optional, Sequence
from urllib.parse import quote

from cloudsync.auth import AuthInfo, msal_interactive_flow
from cloudsync.engine import Page
from cloudsync.models import CloudFile, CloudFolder, CloudItem, HashType, ProviderResult
from cloudsync.transport import HttpRequest
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

DRIVE_URL = "https://graph.microsoft.com/v1.0/me/drive"
APP_ROOT_URL = f"{DRIVE_URL}/special/approot"
TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
REDIRECT_URI = "https://login.microsoftonline.com/common/oauth2/nativeclient"

_DOWNLOAD_URL_KEY = "@microsoft.graph.downloadUrl"
_NEXT_LINK_KEY = "@odata.nextLink"
_PAGE_SIZE = "200"


class OneDriveProvider(RestProvider):
    """OneDrive, storing files under the application's special approot folder."""

    name = "onedrive"
    token_url = TOKEN_URL
    default_redirect_uri = REDIRECT_URI
    DEFAULT_SCOPES: tuple[str, ...] = ("Files.ReadWrite.AppFolder",)

    def __init__(
        self,
        auth_info: AuthInfo,
        *,
        scopes: Optional[Sequence[str]] = None,
        **kwargs: Any,
    ) -> None:
        use_scopes = list(scopes) if scopes is not None else list(self.DEFAULT_SCOPES)
        kwargs.setdefault("consent_flow", msal_interactive_flow(auth_info, use_scopes))
        super().__init__(auth_info, **kwargs)

    def download_file(self, file: CloudFile, local_path: str) -> ProviderResult[None]:
        if file.download_url:
            # Pre-authenticated URL; a bearer header is not accepted there.
            request = HttpRequest(url=file.download_url, response_file=local_path)
            return self._execute(request, empty_handler, authorize=False)

        request = HttpRequest(url=f"{DRIVE_URL}/items/{file.id}/content", response_file=local_path)
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
            url = f"{DRIVE_URL}/items/{remote_file.id}/content"
        else:
            filename = quote(os.path.basename(local_path))
            url = f"{DRIVE_URL}/items/{remote_dir.id}:/{filename}:/content"

        request = HttpRequest(url=url, method="PUT", body_file=local_path, log_body=False)
        request.set_header("Content-Type", OCTET_STREAM)
        return self._execute(
            request,
            json_handler(lambda d: expect_file(_parse_item(d))),
            success_statuses=(200, 201),
        )

    def get_folder_metadata(self, name: str) -> ProviderResult[CloudFolder]:
        request = HttpRequest(url=f"{APP_ROOT_URL}:/{quote(name)}")
        return self._execute(
            request,
            lookup_handler(_expect_single(expect_folder), {"folder_name": name}),
        )

    def get_file_metadata(self, file: CloudFile) -> ProviderResult[CloudFile]:
        request = HttpRequest(url=f"{DRIVE_URL}/items/{file.id}")
        return self._execute(request, json_handler(lambda d: expect_file(_parse_item(d))))

    def get_file_metadata_by_name(
        self,
        folder: CloudFolder,
        name: str,
    ) -> ProviderResult[CloudFile]:
        request = HttpRequest(url=f"{DRIVE_URL}/items/{folder.id}:/{quote(name)}")
        return self._execute(
            request,
            lookup_handler(_expect_single(expect_file), {"folder_id": folder.id, "name": name}),
        )

    def delete_file(self, file: CloudFile) -> ProviderResult[None]:
        request = HttpRequest(url=f"{DRIVE_URL}/items/{file.id}", method="DELETE")
        return self._execute(request, empty_handler, success_statuses=(204, 200))

    def create_folder(self, name: str) -> ProviderResult[CloudFolder]:
        request = HttpRequest(url=f"{APP_ROOT_URL}/children", method="POST")
        request.set_json_body(
            {
                "name": name,
                "folder": {},
                "@microsoft.graph.conflictBehavior": "fail",
            }
        )
        return self._execute(
            request,
            json_handler(lambda d: expect_folder(_parse_item(d))),
            success_statuses=(201, 200),
        )

    def _list_request(self, folder: CloudFolder, token: Optional[str]) -> HttpRequest:
        if token:
            # The next link already carries every query parameter.
            return HttpRequest(url=token)
        request = HttpRequest(url=f"{DRIVE_URL}/items/{folder.id}/children")
        request.set_url_param("$top", _PAGE_SIZE)
        return request

    def _parse_list_page(self, payload: Any) -> Optional[Page]:
        if not isinstance(payload, dict):
            return None
        entries = payload.get("value", [])
        if not isinstance(entries, list):
            return None

        items = [item for item in (_parse_item(e) for e in entries) if item is not None]
        next_link = payload.get(_NEXT_LINK_KEY)
        return Page(
            items=items,
            next_token=next_link if isinstance(next_link, str) and next_link else None,
        )


def _parse_item(data: Any) -> Optional[CloudItem]:
    """Parse a driveItem. Only items with a `file` or `folder` facet are accepted."""
    if not isinstance(data, dict):
        return None
    item_id = data.get("id")
    if not isinstance(item_id, str) or not item_id:
        return None

    name = data.get("name")
    name = name if isinstance(name, str) else ""
    modified = parse_optional_rfc3339(data.get("lastModifiedDateTime"))

    if isinstance(data.get("folder"), dict):
        return CloudFolder(id=item_id, name=name, last_sync_time=modified)

    file_facet = data.get("file")
    if not isinstance(file_facet, dict):
        return None

    hash_type, hash_value = HashType.NONE, ""
    hashes = file_facet.get("hashes")
    if isinstance(hashes, dict):
        if isinstance(hashes.get("sha1Hash"), str):
            hash_type, hash_value = HashType.SHA1, hashes["sha1Hash"]
        elif isinstance(hashes.get("sha256Hash"), str):
            hash_type, hash_value = HashType.SHA256, hashes["sha256Hash"]

    download_url = data.get(_DOWNLOAD_URL_KEY)
    return CloudFile(
        id=item_id,
        name=name,
        last_sync_time=modified,
        hash_type=hash_type,
        hash_value=hash_value,
        download_url=download_url if isinstance(download_url, str) else None,
    )


def _expect_single(expect: Callable[[Optional[CloudItem]], Any]) -> Callable[[Any], Any]:
    """Matcher for path lookups: the addressed item, if it has the expected kind."""

    def find(payload: Any) -> Any:
        if not isinstance(payload, dict):
            raise ValueError("driveItem response is not an object")
        return expect(_parse_item(payload))

    return find
