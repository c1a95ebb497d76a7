import copy
import json
import os
import tempfile
import unittest
from urllib.parse import parse_qs

from cloudsync.auth import AuthInfo, MemoryCredentialStore
from cloudsync.errors import AuthError, ConflictError, NotFoundError
from cloudsync.models import CloudFile, CloudFolder, HashType
from cloudsync.providers import OneDriveProvider
from cloudsync.providers.onedrive import APP_ROOT_URL, DRIVE_URL, REDIRECT_URI, TOKEN_URL
from cloudsync.transport import HttpRequest, HttpResponse

NOW = 1_700_000_000.0


class FakeTransport:
    def __init__(self, responses=()) -> None:
        self.responses = list(responses)
        self.requests: list[HttpRequest] = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    def submit(self, request: HttpRequest):
        self.requests.append(copy.deepcopy(request))
        response = self.responses.pop(0)
        if response is not None and request.response_file and 200 <= response.status < 300:
            with open(request.response_file, "wb") as f:
                f.write(response.body)
            return HttpResponse(status=response.status)
        return response


def json_response(status: int, payload) -> HttpResponse:
    return HttpResponse(status=status, body=json.dumps(payload).encode("utf-8"))


def drive_item(item_id: str, name: str, *, sha1: str = "", sha256: str = "", download_url: str = "") -> dict:
    hashes = {}
    if sha1:
        hashes["sha1Hash"] = sha1
    if sha256:
        hashes["sha256Hash"] = sha256
    data = {
        "id": item_id,
        "name": name,
        "lastModifiedDateTime": "2025-01-01T00:00:00Z",
        "file": {"mimeType": "application/octet-stream", "hashes": hashes},
    }
    if download_url:
        data["@microsoft.graph.downloadUrl"] = download_url
    return data


def folder_item(item_id: str, name: str) -> dict:
    return {"id": item_id, "name": name, "folder": {"childCount": 0}}


class OneDriveTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.transport = FakeTransport()
        self.store = MemoryCredentialStore()
        self.store.save("onedrive", "tok", NOW + 3600)
        self.provider = OneDriveProvider(
            AuthInfo.oauth("cid", refresh_token="rt"),
            transport=self.transport,
            credential_store=self.store,
            clock=lambda: NOW,
        )


class TestOneDriveListing(OneDriveTestCase):
    def test_next_link_is_followed_verbatim(self) -> None:
        next_link = f"{DRIVE_URL}/items/dir/children?$top=200&$skiptoken=abc"
        self.transport.queue(
            json_response(200, {"value": [drive_item("1", "a", sha1="s1")], "@odata.nextLink": next_link}),
            json_response(200, {"value": [folder_item("2", "sub")]}),
        )
        folder = CloudFolder(id="dir", name="dir")

        self.assertTrue(self.provider.list_files(folder).ok)

        self.assertEqual([c.id for c in folder.children], ["1", "2"])
        first, second = self.transport.requests
        self.assertEqual(first.url, f"{DRIVE_URL}/items/dir/children")
        self.assertEqual(first.url_params, {"$top": "200"})
        self.assertEqual(second.url, next_link)
        self.assertEqual(second.url_params, {})
        self.assertEqual(second.headers["Authorization"], "Bearer tok")

    def test_hash_preference(self) -> None:
        self.transport.queue(
            json_response(
                200,
                {
                    "value": [
                        drive_item("1", "a", sha1="S1", sha256="S256"),
                        drive_item("2", "b", sha256="S256"),
                        drive_item("3", "c"),
                    ]
                },
            )
        )
        folder = CloudFolder(id="dir", name="dir")
        self.provider.list_files(folder)

        kinds = [(f.hash_type, f.hash_value) for f in folder.files()]
        self.assertEqual(
            kinds,
            [(HashType.SHA1, "S1"), (HashType.SHA256, "S256"), (HashType.NONE, "")],
        )

    def test_items_without_file_or_folder_facet_are_skipped(self) -> None:
        self.transport.queue(
            json_response(200, {"value": [{"id": "pkg", "name": "notebook", "package": {}}]})
        )
        folder = CloudFolder(id="dir", name="dir")
        self.provider.list_files(folder)
        self.assertEqual(folder.children, [])

    def test_refresh_uses_native_client_redirect(self) -> None:
        self.transport.queue(
            HttpResponse(status=401),
            json_response(200, {"access_token": "fresh", "expires_in": 3600}),
            json_response(200, {"value": []}),
        )
        self.provider.list_files(CloudFolder(id="dir", name="dir")).unwrap()

        refresh = self.transport.requests[1]
        self.assertEqual(refresh.url, TOKEN_URL)
        self.assertEqual(parse_qs(refresh.body.decode("ascii"))["redirect_uri"], [REDIRECT_URI])

    def test_second_401_fails_with_auth_error(self) -> None:
        self.transport.queue(
            HttpResponse(status=401),
            json_response(200, {"access_token": "fresh", "expires_in": 3600}),
            json_response(401, {"error": {"code": "InvalidAuthenticationToken", "message": "expired"}}),
        )
        result = self.provider.list_files(CloudFolder(id="dir", name="dir"))

        self.assertIsInstance(result.error, AuthError)
        self.assertEqual(len(self.transport.requests), 3)


class TestOneDriveMetadata(OneDriveTestCase):
    def test_metadata_matches_listing(self) -> None:
        payload = drive_item("f1", "a.sav", sha1="ABC")
        self.transport.queue(json_response(200, {"value": [payload]}), json_response(200, payload))
        folder = CloudFolder(id="dir", name="dir")
        self.provider.list_files(folder)
        listed = folder.children[0]

        fetched = self.provider.get_file_metadata(listed).unwrap()

        self.assertEqual(fetched.id, listed.id)
        self.assertIs(fetched.hash_type, listed.hash_type)
        self.assertEqual(fetched.hash_value, listed.hash_value)

    def test_folder_lookup_by_path(self) -> None:
        self.transport.queue(json_response(200, folder_item("d1", "save games")))

        folder = self.provider.get_folder_metadata("save games").unwrap()

        self.assertEqual(folder.id, "d1")
        self.assertEqual(self.transport.requests[0].url, f"{APP_ROOT_URL}:/save%20games")

    def test_folder_lookup_404(self) -> None:
        self.transport.queue(
            json_response(404, {"error": {"code": "itemNotFound", "message": "The resource could not be found."}})
        )
        result = self.provider.get_folder_metadata("missing")

        self.assertIsInstance(result.error, NotFoundError)
        self.assertEqual(result.error.details["reason"], "itemNotFound")

    def test_folder_lookup_that_finds_a_file(self) -> None:
        self.transport.queue(json_response(200, drive_item("f", "save_games")))
        result = self.provider.get_folder_metadata("save_games")
        self.assertIsInstance(result.error, NotFoundError)

    def test_create_folder_conflict(self) -> None:
        self.transport.queue(
            json_response(409, {"error": {"code": "nameAlreadyExists", "message": "exists"}})
        )
        result = self.provider.create_folder("save_games")

        self.assertIsInstance(result.error, ConflictError)
        body = json.loads(self.transport.requests[0].body)
        self.assertEqual(body["@microsoft.graph.conflictBehavior"], "fail")

    def test_create_folder_201(self) -> None:
        self.transport.queue(json_response(201, folder_item("new", "screenshots")))
        folder = self.provider.create_folder("screenshots").unwrap()
        self.assertEqual(folder.id, "new")
        self.assertEqual(self.transport.requests[0].url, f"{APP_ROOT_URL}/children")


class TestOneDriveTransfers(OneDriveTestCase):
    def test_download_via_preauthenticated_url(self) -> None:
        self.transport.queue(HttpResponse(status=200, body=b"DATA"))
        remote = CloudFile(id="f1", name="a.sav", download_url="https://cdn.example.com/f1?sig=x")

        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "a.sav")
            self.provider.download_file(remote, path).unwrap()
            with open(path, "rb") as f:
                self.assertEqual(f.read(), b"DATA")

        request = self.transport.requests[0]
        self.assertEqual(request.url, "https://cdn.example.com/f1?sig=x")
        self.assertNotIn("Authorization", request.headers)

    def test_download_without_url_uses_content_endpoint(self) -> None:
        self.transport.queue(HttpResponse(status=200, body=b"DATA"))
        with tempfile.TemporaryDirectory() as td:
            self.provider.download_file(CloudFile(id="f1", name="a"), os.path.join(td, "a")).unwrap()

        request = self.transport.requests[0]
        self.assertEqual(request.url, f"{DRIVE_URL}/items/f1/content")
        self.assertEqual(request.headers["Authorization"], "Bearer tok")

    def test_upload_new_file_addresses_parent_path(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "slot 1.sav")
            with open(path, "wb") as f:
                f.write(b"SAVE")
            self.transport.queue(json_response(201, drive_item("new", "slot 1.sav", sha1="x")))

            uploaded = self.provider.upload_file(CloudFolder(id="dir", name="dir"), None, path).unwrap()

        self.assertEqual(uploaded.id, "new")
        request = self.transport.requests[0]
        self.assertEqual(request.method, "PUT")
        self.assertEqual(request.url, f"{DRIVE_URL}/items/dir:/slot%201.sav:/content")
        self.assertEqual(request.body_file, path)

    def test_upload_replacement_addresses_item(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "a.sav")
            with open(path, "wb") as f:
                f.write(b"SAVE")
            self.transport.queue(json_response(200, drive_item("f1", "a.sav")))

            self.provider.upload_file(
                CloudFolder(id="dir", name="dir"),
                CloudFile(id="f1", name="a.sav"),
                path,
            ).unwrap()

        self.assertEqual(self.transport.requests[0].url, f"{DRIVE_URL}/items/f1/content")


if __name__ == "__main__":
    unittest.main()
